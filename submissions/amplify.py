"""
Amplify abuse guard.

Amplify submissions self-report how many peers and students were trained in
a session. Those numbers cannot be verified, so approval is bounded by
rolling 7-day caps (hard limit) and likely duplicate sessions are flagged
for the reviewer (soft signal).

Everything here is a pure function over payload dicts: the caller fetches
the user's other APPROVED Amplify payloads and holds the lock.
"""
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Iterable, List, Optional, Union
from zoneinfo import ZoneInfo

from django.conf import settings

from core.constants import (
    AMPLIFY_POINTS_PER_PEER,
    AMPLIFY_POINTS_PER_STUDENT,
    WARNING_DUPLICATE_SESSION,
    WARNING_INCOMPLETE_PRIOR_METADATA,
    WARNING_MISSING_CITY,
    WARNING_MISSING_START_TIME,
)
from core.datetime_utils import (
    get_org_timezone,
    local_instant,
    parse_clock_time,
    rolling_window,
    to_local_date,
)
from core.exceptions import InvalidSubmissionPayload, SubmissionLimitError

WINDOW_DAYS = 7

CAP_PEERS = "Peer training"
CAP_STUDENTS = "Student training"


@dataclass(frozen=True)
class AmplifyCaps:
    peers_per_7d: int
    students_per_7d: int

    @classmethod
    def from_settings(cls):
        return cls(
            peers_per_7d=settings.AMPLIFY_PEERS_PER_7D,
            students_per_7d=settings.AMPLIFY_STUDENTS_PER_7D,
        )


@dataclass
class AmplifyCheckResult:
    warnings: List[str] = field(default_factory=list)
    peers_in_window: int = 0
    students_in_window: int = 0


@dataclass
class _Session:
    day: Optional[date]
    start: Optional[time]
    city: Optional[str]
    peers: int
    students: int

    def instant(self, tz: ZoneInfo) -> Optional[datetime]:
        if self.day is None:
            return None
        return local_instant(self.day, self.start, tz)


def _count(value) -> int:
    # Self-reported counts: anything non-numeric or negative contributes nothing
    if isinstance(value, bool):
        return 0
    try:
        number = int(value)
    except (TypeError, ValueError):
        return 0
    return max(number, 0)


def _city(payload: dict) -> Optional[str]:
    location = payload.get("location")
    if not isinstance(location, dict):
        return None
    city = location.get("city")
    if not isinstance(city, str):
        return None
    return city.strip().lower() or None


def parse_session(payload: Optional[dict], tz: ZoneInfo) -> _Session:
    payload = payload if isinstance(payload, dict) else {}
    return _Session(
        day=to_local_date(payload.get("session_date"), tz),
        start=parse_clock_time(payload.get("session_start_time")),
        city=_city(payload),
        peers=_count(payload.get("peers_trained")),
        students=_count(payload.get("students_trained")),
    )


def check_amplify_submission(
    candidate: dict,
    prior_approved: Iterable[dict],
    caps: AmplifyCaps,
    org_timezone: Union[str, ZoneInfo],
    duplicate_window_minutes: int = 60,
) -> AmplifyCheckResult:
    """
    Enforce the rolling 7-day caps and collect reviewer warnings.

    Raises SubmissionLimitError when the candidate would push the peers cap
    (checked first) or the students cap over its limit. Raises
    InvalidSubmissionPayload when the candidate has no usable session date.
    """
    tz = org_timezone if isinstance(org_timezone, ZoneInfo) else get_org_timezone(org_timezone)
    session = parse_session(candidate, tz)
    if session.day is None:
        raise InvalidSubmissionPayload("Amplify submission requires a valid session_date")

    window_start, window_end = rolling_window(session.day, WINDOW_DAYS, tz)
    candidate_start = session.instant(tz)
    max_gap_seconds = duplicate_window_minutes * 60

    warnings: List[str] = []

    def _warn(code):
        if code not in warnings:
            warnings.append(code)

    if session.start is None:
        _warn(WARNING_MISSING_START_TIME)
    if session.city is None:
        _warn(WARNING_MISSING_CITY)

    peers = session.peers
    students = session.students

    for payload in prior_approved:
        prior = parse_session(payload, tz)
        if prior.day is None:
            continue

        prior_start = prior.instant(tz)
        if window_start <= prior_start < window_end:
            peers += prior.peers
            students += prior.students

        if prior.day != session.day:
            continue

        # Same local date: duplicate comparison needs start time and city on both sides
        if session.start is None or session.city is None:
            continue
        if prior.start is None or prior.city is None:
            _warn(WARNING_INCOMPLETE_PRIOR_METADATA)
            continue
        if prior.city != session.city:
            continue
        if abs((prior_start - candidate_start).total_seconds()) <= max_gap_seconds:
            _warn(WARNING_DUPLICATE_SESSION)

    if peers > caps.peers_per_7d:
        raise SubmissionLimitError(CAP_PEERS, peers, caps.peers_per_7d)
    if students > caps.students_per_7d:
        raise SubmissionLimitError(CAP_STUDENTS, students, caps.students_per_7d)

    return AmplifyCheckResult(
        warnings=warnings,
        peers_in_window=peers,
        students_in_window=students,
    )


def amplify_points(payload: Optional[dict], caps: AmplifyCaps) -> int:
    """
    Base points for one Amplify session: per peer plus per student trained,
    each count clamped to its 7-day cap.
    """
    payload = payload if isinstance(payload, dict) else {}
    peers = min(_count(payload.get("peers_trained")), caps.peers_per_7d)
    students = min(_count(payload.get("students_trained")), caps.students_per_7d)
    return peers * AMPLIFY_POINTS_PER_PEER + students * AMPLIFY_POINTS_PER_STUDENT
