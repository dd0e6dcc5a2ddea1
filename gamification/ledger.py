"""
Points ledger: append-only point deltas with an idempotency key.

There is deliberately no update or delete API. The caller wraps
`append_entry` in the same transaction as the state change it pairs with
(review, reconciliation). Callers on idempotent paths pre-check with
`find_entry`; a uniqueness violation still surfaces as DuplicateLedgerEntry.
"""
import logging

from django.db import IntegrityError, transaction
from django.db.models import Sum

from core.exceptions import DuplicateLedgerEntry
from .models import PointsLedgerEntry

logger = logging.getLogger("leaps.gamification")


def append_entry(
    user,
    activity_code,
    delta_points,
    source,
    external_source=None,
    external_event_id=None,
    event_time=None,
    meta=None,
):
    """
    Insert one ledger row.

    Runs in a savepoint so a uniqueness violation on
    (external_source, external_event_id) leaves the caller's outer
    transaction usable; the violation is raised as DuplicateLedgerEntry.
    """
    fields = {
        "user": user,
        "activity_id": activity_code,
        "delta_points": int(delta_points),
        "source": source,
        "external_source": external_source,
        "external_event_id": external_event_id,
        "meta": meta or {},
    }
    if event_time is not None:
        fields["event_time"] = event_time

    try:
        with transaction.atomic():
            entry = PointsLedgerEntry.objects.create(**fields)
    except IntegrityError:
        if external_source and external_event_id and find_entry(external_source, external_event_id):
            logger.info(
                "Ledger duplicate rejected: source=%s event=%s user=%s",
                external_source, external_event_id, getattr(user, "pk", user),
            )
            raise DuplicateLedgerEntry(external_source, external_event_id)
        raise

    logger.info(
        "Ledger append: user=%s activity=%s delta=%+d source=%s event=%s",
        getattr(user, "pk", user), activity_code, entry.delta_points, source, external_event_id,
    )
    return entry


def find_entry(external_source, external_event_id):
    """Existing row for an idempotency key, or None."""
    if not external_source or not external_event_id:
        return None
    return (
        PointsLedgerEntry.objects
        .filter(external_source=external_source, external_event_id=external_event_id)
        .first()
    )


def total_for_user(user) -> int:
    """Sum of all deltas. Computed fresh on every call."""
    total = PointsLedgerEntry.objects.filter(user=user).aggregate(total=Sum("delta_points"))["total"]
    return total or 0


def totals_by_activity(user) -> dict:
    """{activity_code: summed points} for the user's ledger rows."""
    rows = (
        PointsLedgerEntry.objects
        .filter(user=user)
        .values("activity_id")
        .annotate(total=Sum("delta_points"))
        .order_by("activity_id")
    )
    return {row["activity_id"]: row["total"] or 0 for row in rows}
