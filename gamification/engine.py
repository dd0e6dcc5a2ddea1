"""
Badge award engine.

`badges_to_award` is a pure function over a progress snapshot; it is
idempotent because already-earned badges come in through the snapshot, not
from any memory of its own. `BadgeService` is the transactional shell that
builds the snapshot from the database and persists new awards.
"""
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Set, Tuple
import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction

from core.constants import (
    ACTIVITY_AMPLIFY,
    ACTIVITY_EXPLORE,
    ACTIVITY_LEARN,
    ACTIVITY_PRESENT,
    ACTIVITY_SHINE,
    AUDIT_ASSIGN_BADGE,
    STAGES,
)
from core.datetime_utils import get_org_timezone, now
from core.exceptions import NotFoundError
from core.sanitizers import sanitize_note
from core.services import AuditService
from submissions.models import Submission
from . import ledger
from .models import Badge, EarnedBadge, LearnTagGrant

logger = logging.getLogger("leaps.gamification")


# Stage-completion badges. Learn completes once every required course tag is
# granted; the other stages on their first approved submission.
STAGE_BADGES = {
    ACTIVITY_LEARN: "STARTER",
    ACTIVITY_EXPLORE: "IN_CLASS_INNOVATOR",
    ACTIVITY_AMPLIFY: "AMPLIFIER",
    ACTIVITY_PRESENT: "COMMUNITY_VOICE",
    ACTIVITY_SHINE: "SHINING_LIGHT",
}

# Point milestones, ascending
MILESTONE_BADGES = (
    (50, "RISING_STAR"),
    (100, "TOP_SCORER"),
    (200, "LEAPS_CHAMPION"),
)

CRITERIA_POINTS = "points"
CRITERIA_SUBMISSIONS = "submissions"
CRITERIA_ACTIVITIES = "activities"
CRITERIA_STREAK = "streak"


@dataclass
class UserProgress:
    total_points: int
    approved_stages: Dict[str, bool] = field(default_factory=dict)
    already_earned: Set[str] = field(default_factory=set)
    # Approved submission counts per activity code
    approved_counts: Dict[str, int] = field(default_factory=dict)
    # (activity_code, local date) for every approved piece of evidence
    evidence_dates: List[Tuple[str, date]] = field(default_factory=list)
    # Course-completion tags granted by the learning provider
    learn_tags: Set[str] = field(default_factory=set)


# -----------------------------
# Pure rules
# -----------------------------
def learn_stage_complete(granted_tags: Iterable[str], required_tags: Iterable[str], approved_learn: int = 0) -> bool:
    """
    True once every required course tag has been granted. With no required
    tags configured, any approved Learn submission completes the stage.
    """
    required = {t.strip().lower() for t in required_tags}
    if not required:
        return approved_learn > 0
    granted = {t.strip().lower() for t in granted_tags}
    return required <= granted


def badges_to_award(progress: UserProgress, badges: Iterable = ()) -> List[str]:
    """
    Badge codes the user is newly eligible for.

    Order is fixed (stage badges in program order, milestones ascending,
    then criteria badges by code) so results are deterministic.
    `badges` is any iterable of objects with `code` and `criteria`.
    """
    awarded: List[str] = []

    def _add(code):
        if code not in progress.already_earned and code not in awarded:
            awarded.append(code)

    for stage in STAGES:
        if progress.approved_stages.get(stage):
            _add(STAGE_BADGES[stage])

    for threshold, code in MILESTONE_BADGES:
        if progress.total_points >= threshold:
            _add(code)

    for badge in sorted(badges, key=lambda b: b.code):
        if criteria_met(badge.criteria or {}, progress):
            _add(badge.code)

    return awarded


def criteria_met(criteria: dict, progress: UserProgress) -> bool:
    """Evaluate one data-driven criteria block against the snapshot."""
    ctype = criteria.get("type")
    threshold = criteria.get("threshold")
    if not isinstance(threshold, (int, float)) or isinstance(threshold, bool) or threshold <= 0:
        return False

    codes = [str(c).upper() for c in (criteria.get("activity_codes") or [])]
    conditions = criteria.get("conditions") or {}

    min_points = conditions.get("min_points")
    if isinstance(min_points, (int, float)) and progress.total_points < min_points:
        return False

    if ctype == CRITERIA_POINTS:
        return progress.total_points >= threshold

    if ctype == CRITERIA_SUBMISSIONS:
        counts = progress.approved_counts
        total = sum(counts.get(c, 0) for c in codes) if codes else sum(counts.values())
        return total >= threshold

    if ctype == CRITERIA_ACTIVITIES:
        pool = codes or list(STAGES)
        completed = sum(
            1 for c in pool
            if progress.approved_counts.get(c, 0) > 0 or progress.approved_stages.get(c)
        )
        return completed >= threshold

    if ctype == CRITERIA_STREAK:
        days = [d for code, d in progress.evidence_dates if not codes or code in codes]
        period = conditions.get("period", "week")
        return longest_trailing_streak(days, period=period) >= threshold

    return False


def longest_trailing_streak(days: Iterable[date], period: str = "week") -> int:
    """
    Length of the run of consecutive periods (ISO weeks, or days) that ends
    at the most recent period containing evidence.
    """
    if period == "day":
        buckets = sorted(set(days))
        step = timedelta(days=1)
    else:
        # Monday of the ISO week
        buckets = sorted({d - timedelta(days=d.weekday()) for d in days})
        step = timedelta(weeks=1)

    if not buckets:
        return 0

    streak = 1
    for newer, older in zip(reversed(buckets), reversed(buckets[:-1])):
        if newer - older != step:
            break
        streak += 1
    return streak


# -----------------------------
# Transactional shell
# -----------------------------
class BadgeService:

    @staticmethod
    def build_progress(user) -> UserProgress:
        """Snapshot of everything the rules look at, read fresh."""
        tz = get_org_timezone()
        approved = (
            Submission.objects
            .filter(user=user, status=Submission.STATUS_APPROVED)
            .values_list("activity_id", "created_at")
        )
        counts = Counter()
        evidence = []
        for activity_code, created_at in approved:
            counts[activity_code] += 1
            evidence.append((activity_code, created_at.astimezone(tz).date()))

        learn_tags = set(LearnTagGrant.objects.filter(user=user).values_list("tag_name", flat=True))

        stages = {code: True for code in counts if code != ACTIVITY_LEARN}
        if learn_stage_complete(learn_tags, settings.LEARN_REQUIRED_COURSE_TAGS, counts[ACTIVITY_LEARN]):
            stages[ACTIVITY_LEARN] = True

        return UserProgress(
            total_points=ledger.total_for_user(user),
            approved_stages=stages,
            already_earned=set(
                EarnedBadge.objects.filter(user=user).values_list("badge_id", flat=True)
            ),
            approved_counts=dict(counts),
            evidence_dates=evidence,
            learn_tags=learn_tags,
        )

    @staticmethod
    def record_learn_tag(user, tag_name, granted_at=None) -> bool:
        """Store a course-completion tag grant. Returns False when it was already held."""
        tag = (tag_name or "").strip().lower()
        try:
            with transaction.atomic():
                LearnTagGrant.objects.create(user=user, tag_name=tag, granted_at=granted_at or now())
        except IntegrityError:
            return False
        logger.info("Learn tag granted: user=%s tag=%s", user.pk, tag)
        return True

    @classmethod
    def grant_badges_for_user(cls, user) -> List[str]:
        """
        Evaluate and persist newly earned badges. Returns the codes created.

        The earned set is re-read inside the transaction; the (user, badge)
        unique constraint is the final backstop against a concurrent award.
        """
        created = []
        with transaction.atomic():
            progress = cls.build_progress(user)
            catalog = {badge.code: badge for badge in Badge.objects.all()}

            for code in badges_to_award(progress, catalog.values()):
                badge = catalog.get(code)
                if badge is None:
                    logger.warning("Badge %s eligible for user %s but missing from catalog", code, user.pk)
                    continue
                try:
                    with transaction.atomic():
                        EarnedBadge.objects.create(user=user, badge=badge)
                except IntegrityError:
                    logger.info("Badge %s already awarded to user %s", code, user.pk)
                    continue
                created.append(code)

        if created:
            logger.info("Badges awarded: user=%s badges=%s", user.pk, ",".join(created))
        return created

    @staticmethod
    def assign_badge(badge_code, user_ids, actor_id, reason: Optional[str] = None) -> dict:
        """
        Manual admin award. Users already holding the badge are skipped,
        unknown ids are reported as missing.
        """
        try:
            badge = Badge.objects.get(code=badge_code)
        except Badge.DoesNotExist:
            raise NotFoundError("Badge not found")

        User = get_user_model()
        users = {u.pk: u for u in User.objects.filter(pk__in=list(user_ids))}
        reason = sanitize_note(reason)

        assigned, skipped = [], []
        with transaction.atomic():
            for user_id, user in users.items():
                try:
                    with transaction.atomic():
                        EarnedBadge.objects.create(user=user, badge=badge)
                except IntegrityError:
                    skipped.append(user_id)
                    continue
                AuditService.log(
                    actor_id=actor_id,
                    action=AUDIT_ASSIGN_BADGE,
                    target_id=user_id,
                    meta={
                        "badge_code": badge.code,
                        "badge_name": badge.name,
                        "reason": reason,
                        "manual_assignment": True,
                    },
                )
                assigned.append(user_id)

        missing = [uid for uid in user_ids if uid not in users]
        logger.info(
            "Manual badge assignment: badge=%s assigned=%d skipped=%d missing=%d",
            badge.code, len(assigned), len(skipped), len(missing),
        )
        return {"assigned": assigned, "skipped": skipped, "missing": missing}
