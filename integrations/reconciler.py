"""
Reconciles provider course-completion events into LEARN awards.

One reconciliation = one transaction: course tag grant, ledger entry,
auto-approved LEARN submission, event bookkeeping, audit entry and badge
evaluation commit together. The ledger's (external_source,
external_event_id) constraint is what makes a second delivery of the same
event harmless.
"""
from dataclasses import dataclass, field
from typing import List, Optional
import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction

from core.constants import (
    ACTIVITY_LEARN,
    AUDIT_KAJABI_EVENT_RECONCILED,
    EXTERNAL_SOURCE_KAJABI,
    LEDGER_SOURCE_MANUAL,
    SYSTEM_ACTOR,
)
from core.datetime_utils import now
from core.exceptions import ConflictError, DuplicateLedgerEntry, NotFoundError, UnsupportedEvent
from core.models import Activity
from core.sanitizers import normalize_email
from core.services import AuditService
from gamification import ledger
from gamification.engine import BadgeService
from submissions.models import Submission
from .models import ExternalCompletionEvent

logger = logging.getLogger("leaps.integrations")


@dataclass
class ReconcileResult:
    event_id: str
    user_id: int
    already_recorded: bool = False
    points_awarded: int = 0
    submission_id: Optional[int] = None
    badges_awarded: List[str] = field(default_factory=list)


def is_learn_completion_tag(tag_name: Optional[str]) -> bool:
    return (tag_name or "").strip().lower() in settings.LEARN_COMPLETION_TAGS


def resolve_user(contact_id: Optional[str], contact_email: Optional[str]):
    """
    Match by provider contact id first, then by email (case-insensitive).
    An email match with no contact id on file gets linked.
    """
    User = get_user_model()

    if contact_id:
        user = User.objects.filter(kajabi_contact_id=contact_id).first()
        if user:
            return user

    email = normalize_email(contact_email)
    if not email:
        return None

    user = User.objects.filter(email__iexact=email).first()
    if user and contact_id and not user.kajabi_contact_id:
        user.kajabi_contact_id = contact_id
        user.save(update_fields=["kajabi_contact_id"])
        logger.info("Linked provider contact %s to user %s", contact_id, user.pk)
    return user


def _mark_processed(event, user):
    event.processed_at = now()
    event.user_match = user
    event.save(update_fields=["processed_at", "user_match"])


def reconcile(event_id, source: str = LEDGER_SOURCE_MANUAL, actor_id=SYSTEM_ACTOR) -> ReconcileResult:
    """
    Award LEARN points for a stored completion event.

    Raises NotFoundError (unknown event or no matching user), ConflictError
    (already processed) and UnsupportedEvent (tag is not a LEARN completion).
    """
    with transaction.atomic():
        try:
            event = ExternalCompletionEvent.objects.select_for_update().get(pk=event_id)
        except ExternalCompletionEvent.DoesNotExist:
            raise NotFoundError("Event not found")

        if event.processed_at is not None:
            raise ConflictError("Event already processed")

        if not is_learn_completion_tag(event.tag_name):
            logger.info("Completion event %s ignored: tag=%s", event.pk, event.tag_name)
            raise UnsupportedEvent(extra={"tag_name": event.tag_name})

        user = resolve_user(event.contact_id, event.contact_email)
        if user is None:
            logger.warning(
                "Completion event %s unmatched: contact=%s email=%s",
                event.pk, event.contact_id, event.contact_email,
            )
            raise NotFoundError("No user matches this contact")

        granted_at = event.received_at or now()
        BadgeService.record_learn_tag(user, event.tag_name, granted_at=granted_at)

        if ledger.find_entry(EXTERNAL_SOURCE_KAJABI, event.pk):
            _mark_processed(event, user)
            logger.info("Completion event %s already recorded for user %s", event.pk, user.pk)
            return ReconcileResult(event_id=event.pk, user_id=user.pk, already_recorded=True)

        points = Activity.objects.get(code=ACTIVITY_LEARN).default_points

        try:
            with transaction.atomic():
                ledger.append_entry(
                    user=user,
                    activity_code=ACTIVITY_LEARN,
                    delta_points=points,
                    source=source,
                    external_source=EXTERNAL_SOURCE_KAJABI,
                    external_event_id=event.pk,
                    event_time=granted_at,
                    meta={"tag_name": event.tag_name, "contact_id": event.contact_id},
                )
                submission = Submission.objects.create(
                    user=user,
                    activity_id=ACTIVITY_LEARN,
                    status=Submission.STATUS_APPROVED,
                    visibility=Submission.VISIBILITY_PRIVATE,
                    payload={
                        "provider": EXTERNAL_SOURCE_KAJABI,
                        "kajabi_event_id": event.pk,
                        "tag_name": event.tag_name,
                        "contact_id": event.contact_id,
                        "auto_approved": True,
                    },
                    review_note="Auto-approved from course completion event",
                )
        except DuplicateLedgerEntry:
            # A concurrent reconciliation won the insert
            _mark_processed(event, user)
            logger.info("Completion event %s recorded concurrently for user %s", event.pk, user.pk)
            return ReconcileResult(event_id=event.pk, user_id=user.pk, already_recorded=True)

        _mark_processed(event, user)

        AuditService.log(
            actor_id=actor_id,
            action=AUDIT_KAJABI_EVENT_RECONCILED,
            target_id=event.pk,
            meta={
                "user_id": user.pk,
                "submission_id": submission.pk,
                "tag_name": event.tag_name,
                "points_awarded": points,
                "source": source,
            },
        )

        badges = BadgeService.grant_badges_for_user(user)

    logger.info(
        "Completion event reconciled: id=%s user=%s points=%d source=%s",
        event.pk, user.pk, points, source,
    )
    return ReconcileResult(
        event_id=event.pk,
        user_id=user.pk,
        points_awarded=points,
        submission_id=submission.pk,
        badges_awarded=badges,
    )
