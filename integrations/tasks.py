# integrations/tasks.py

from celery import shared_task

from core.constants import LEDGER_SOURCE_WEBHOOK
from core.exceptions import EngineError
from .reconciler import reconcile


@shared_task
def reconcile_completion_event_task(event_id: str):
    """
    Async wrapper for reconciling a stored completion event.

    Engine outcomes (unsupported tag, unmatched user, already processed)
    are final for the event; the row stays in the admin for reprocessing.
    """
    try:
        result = reconcile(event_id, source=LEDGER_SOURCE_WEBHOOK)
    except EngineError as exc:
        return exc.code

    return "already_recorded" if result.already_recorded else "reconciled"
