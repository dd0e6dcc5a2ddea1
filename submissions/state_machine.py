# submissions/state_machine.py
"""
Submission review state machine.

PENDING -> APPROVED | REJECTED happens exactly once per submission, decided
by a reviewer. APPROVED -> REVOKED is an admin correction that appends a
compensating ledger entry.

Every transition runs in one transaction.atomic() block: status change,
ledger entry, audit entries and badge evaluation commit or roll back
together. The submission row is re-read with select_for_update() inside
the block, so two reviewers racing on the same submission cannot both win.
"""
from dataclasses import dataclass, field
from typing import List, Optional
import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import DatabaseError, transaction
from django.db.models import Q, Sum
from rest_framework.exceptions import ValidationError

from core.constants import (
    ACTIVITY_AMPLIFY,
    AUDIT_ADJUST_POINTS,
    AUDIT_APPROVE_SUBMISSION,
    AUDIT_REJECT_SUBMISSION,
    AUDIT_REVOKE_SUBMISSION,
    EXTERNAL_SOURCE_ADMIN_APPROVAL,
    EXTERNAL_SOURCE_ADMIN_REVOCATION,
    EXTERNAL_SOURCE_KAJABI,
    LEDGER_SOURCE_MANUAL,
)
from core.datetime_utils import get_org_timezone
from core.exceptions import (
    ConflictError,
    DuplicateLedgerEntry,
    EngineError,
    NotFoundError,
    PointAdjustmentOutOfBounds,
    SubmissionLimitError,
)
from core.sanitizers import sanitize_note
from core.services import AuditService
from gamification import ledger
from gamification.engine import BadgeService
from gamification.models import PointsLedgerEntry
from .amplify import AmplifyCaps, amplify_points, check_amplify_submission, parse_session
from .models import Submission

logger = logging.getLogger("leaps.submissions")

ACTION_APPROVE = "approve"
ACTION_REJECT = "reject"
ACTIONS = (ACTION_APPROVE, ACTION_REJECT)


@dataclass
class ReviewResult:
    submission: Submission
    delta_points: int = 0
    warnings: List[str] = field(default_factory=list)
    badges_awarded: List[str] = field(default_factory=list)
    ledger_entry_id: Optional[int] = None


def approval_event_id(submission_id) -> str:
    return f"submission_{submission_id}"


def revocation_event_id(submission_id) -> str:
    return f"submission_{submission_id}_revoked"


def max_point_adjustment(base: int) -> int:
    """Largest allowed |adjustment|: a ratio of the base points, never below the band floor."""
    ratio = settings.POINT_ADJUSTMENT_RATIO
    floor = settings.POINT_ADJUSTMENT_MIN_BAND
    return max(int(round(abs(base) * ratio)), floor)


def base_points(submission) -> int:
    """Points before adjustment. Amplify scales with the people trained."""
    if submission.activity_id == ACTIVITY_AMPLIFY:
        return amplify_points(submission.payload, AmplifyCaps.from_settings())
    return submission.activity.default_points


def validate_point_adjustment(base: int, point_adjustment: Optional[int]) -> int:
    if not point_adjustment:
        return 0
    limit = max_point_adjustment(base)
    if abs(point_adjustment) > limit:
        raise PointAdjustmentOutOfBounds(point_adjustment, limit, base)
    return int(point_adjustment)


def _get_submission(submission_id, lock=False) -> Submission:
    qs = Submission.objects.all()
    if lock:
        qs = qs.select_for_update()
    try:
        return qs.get(pk=submission_id)
    except Submission.DoesNotExist:
        raise NotFoundError("Submission not found")


# -----------------------------
# Review
# -----------------------------
def review(
    submission_id,
    action: str,
    reviewer_id,
    review_note: Optional[str] = None,
    point_adjustment: Optional[int] = None,
) -> ReviewResult:
    """
    Approve or reject a PENDING submission.

    Raises NotFoundError, ConflictError (already reviewed),
    PointAdjustmentOutOfBounds, or SubmissionLimitError (Amplify caps).
    Nothing is written when any of them is raised.
    """
    if action not in ACTIONS:
        raise ValidationError({"action": f"Must be one of: {', '.join(ACTIONS)}"})

    # Fast fail outside the transaction; re-checked under the lock below
    submission = _get_submission(submission_id)
    if submission.status != Submission.STATUS_PENDING:
        raise ConflictError("Submission already reviewed")

    adjustment = 0
    if action == ACTION_APPROVE:
        adjustment = validate_point_adjustment(base_points(submission), point_adjustment)

    note = sanitize_note(review_note)

    if action == ACTION_APPROVE:
        return _approve(submission_id, reviewer_id, note, adjustment)
    return _reject(submission_id, reviewer_id, note)


def _approve(submission_id, reviewer_id, note, adjustment) -> ReviewResult:
    with transaction.atomic():
        submission = _get_submission(submission_id, lock=True)
        if submission.status != Submission.STATUS_PENDING:
            raise ConflictError("Submission already reviewed")

        activity = submission.activity
        warnings: List[str] = []
        event_time = None

        if activity.code == ACTIVITY_AMPLIFY:
            warnings, event_time = _run_amplify_guard(submission)
            submission.approval_org_timezone = settings.ORG_TIMEZONE

        base = base_points(submission)
        delta = base + adjustment

        submission.status = Submission.STATUS_APPROVED
        submission.reviewer_id = reviewer_id
        submission.review_note = note
        submission.save(update_fields=[
            "status", "reviewer", "review_note", "approval_org_timezone", "updated_at",
        ])

        try:
            entry = ledger.append_entry(
                user=submission.user,
                activity_code=activity.code,
                delta_points=delta,
                source=LEDGER_SOURCE_MANUAL,
                external_source=EXTERNAL_SOURCE_ADMIN_APPROVAL,
                external_event_id=approval_event_id(submission.pk),
                event_time=event_time,
                meta={
                    "submission_id": submission.pk,
                    "reviewer_id": reviewer_id,
                    "base_points": base,
                    "point_adjustment": adjustment,
                },
            )
        except DuplicateLedgerEntry:
            raise ConflictError("Submission already awarded")

        AuditService.log(
            actor_id=reviewer_id,
            action=AUDIT_APPROVE_SUBMISSION,
            target_id=submission.pk,
            meta={
                "submission_user_id": submission.user_id,
                "activity_code": activity.code,
                "delta_points": delta,
                "review_note": note,
                "warnings": warnings,
            },
        )
        if adjustment:
            AuditService.log(
                actor_id=reviewer_id,
                action=AUDIT_ADJUST_POINTS,
                target_id=submission.pk,
                meta={
                    "base_points": base,
                    "point_adjustment": adjustment,
                    "final_points": delta,
                },
            )

        badges = BadgeService.grant_badges_for_user(submission.user)

    logger.info(
        "Submission approved: id=%s user=%s activity=%s delta=%+d reviewer=%s warnings=%s",
        submission.pk, submission.user_id, activity.code, delta, reviewer_id, warnings or "-",
    )
    return ReviewResult(
        submission=submission,
        delta_points=delta,
        warnings=warnings,
        badges_awarded=badges,
        ledger_entry_id=entry.pk,
    )


def _run_amplify_guard(submission):
    """
    Runs inside the approval transaction. Locks the owner's user row so
    concurrent Amplify approvals for the same educator see each other.
    """
    User = get_user_model()
    User.objects.select_for_update().filter(pk=submission.user_id).first()

    prior = list(
        Submission.objects
        .filter(user_id=submission.user_id, activity_id=ACTIVITY_AMPLIFY, status=Submission.STATUS_APPROVED)
        .exclude(pk=submission.pk)
        .values_list("payload", flat=True)
    )
    tz = get_org_timezone()

    try:
        check = check_amplify_submission(
            candidate=submission.payload,
            prior_approved=prior,
            caps=AmplifyCaps.from_settings(),
            org_timezone=tz,
            duplicate_window_minutes=settings.AMPLIFY_DUPLICATE_WINDOW_MINUTES,
        )
    except SubmissionLimitError as exc:
        logger.warning(
            "Amplify cap breached: submission=%s user=%s cap=%s current=%s max=%s",
            submission.pk, submission.user_id, exc.cap, exc.current, exc.max_allowed,
        )
        raise

    return check.warnings, parse_session(submission.payload, tz).instant(tz)


def _reject(submission_id, reviewer_id, note) -> ReviewResult:
    with transaction.atomic():
        submission = _get_submission(submission_id, lock=True)
        if submission.status != Submission.STATUS_PENDING:
            raise ConflictError("Submission already reviewed")

        submission.status = Submission.STATUS_REJECTED
        submission.reviewer_id = reviewer_id
        submission.review_note = note
        submission.save(update_fields=["status", "reviewer", "review_note", "updated_at"])

        AuditService.log(
            actor_id=reviewer_id,
            action=AUDIT_REJECT_SUBMISSION,
            target_id=submission.pk,
            meta={
                "submission_user_id": submission.user_id,
                "activity_code": submission.activity_id,
                "review_note": note,
            },
        )

    logger.info(
        "Submission rejected: id=%s user=%s activity=%s reviewer=%s",
        submission.pk, submission.user_id, submission.activity_id, reviewer_id,
    )
    return ReviewResult(submission=submission)


def bulk_review(submission_ids, action: str, reviewer_id, review_note: Optional[str] = None) -> dict:
    """
    Review many submissions. Each id is its own transaction; one failure
    does not affect the others.
    """
    if action not in ACTIONS:
        raise ValidationError({"action": f"Must be one of: {', '.join(ACTIONS)}"})

    processed = 0
    errors = []

    for submission_id in submission_ids:
        try:
            review(submission_id, action, reviewer_id, review_note=review_note)
        except EngineError as exc:
            errors.append({"submission_id": submission_id, "code": exc.code, "error": str(exc.detail)})
            continue
        except DatabaseError:
            logger.exception("Bulk review failed: submission=%s", submission_id)
            errors.append({"submission_id": submission_id, "code": "DATABASE_ERROR", "error": "Database error"})
            continue
        processed += 1

    logger.info(
        "Bulk review: action=%s reviewer=%s processed=%d failed=%d",
        action, reviewer_id, processed, len(errors),
    )
    return {"processed": processed, "failed": len(errors), "errors": errors}


# -----------------------------
# Revoke
# -----------------------------
def _awarded_points(submission) -> int:
    """Net points the ledger holds for this submission's award."""
    keys = Q(external_source=EXTERNAL_SOURCE_ADMIN_APPROVAL, external_event_id=approval_event_id(submission.pk))
    provider_event_id = (submission.payload or {}).get("kajabi_event_id")
    if provider_event_id:
        keys |= Q(external_source=EXTERNAL_SOURCE_KAJABI, external_event_id=str(provider_event_id))
    total = PointsLedgerEntry.objects.filter(keys).aggregate(total=Sum("delta_points"))["total"]
    return total or 0


def revoke(submission_id, actor_id, reason: Optional[str] = None) -> ReviewResult:
    """
    Reverse an approval. The original ledger rows stay; one compensating
    entry cancels them. Earned badges are kept.
    """
    reason = sanitize_note(reason)

    with transaction.atomic():
        submission = _get_submission(submission_id, lock=True)
        if submission.status != Submission.STATUS_APPROVED:
            raise ConflictError("Only approved submissions can be revoked")

        awarded = _awarded_points(submission)

        submission.status = Submission.STATUS_REVOKED
        submission.save(update_fields=["status", "updated_at"])

        try:
            entry = ledger.append_entry(
                user=submission.user,
                activity_code=submission.activity_id,
                delta_points=-awarded,
                source=LEDGER_SOURCE_MANUAL,
                external_source=EXTERNAL_SOURCE_ADMIN_REVOCATION,
                external_event_id=revocation_event_id(submission.pk),
                meta={"submission_id": submission.pk, "actor_id": actor_id, "reason": reason},
            )
        except DuplicateLedgerEntry:
            raise ConflictError("Submission already revoked")

        AuditService.log(
            actor_id=actor_id,
            action=AUDIT_REVOKE_SUBMISSION,
            target_id=submission.pk,
            meta={
                "submission_user_id": submission.user_id,
                "activity_code": submission.activity_id,
                "reversed_points": awarded,
                "reason": reason,
            },
        )

    logger.info(
        "Submission revoked: id=%s user=%s reversed=%d actor=%s",
        submission.pk, submission.user_id, awarded, actor_id,
    )
    return ReviewResult(submission=submission, delta_points=-awarded, ledger_entry_id=entry.pk)
