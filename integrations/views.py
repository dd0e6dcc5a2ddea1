import logging

from django.conf import settings
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from rest_framework import status

from core.constants import LEDGER_SOURCE_MANUAL, LEDGER_SOURCE_WEBHOOK
from core.exceptions import ConflictError
from core.permissions import IsAdminRole
from .models import ExternalCompletionEvent
from .payloads import record_completion_event
from .reconciler import reconcile
from .tasks import reconcile_completion_event_task

logger = logging.getLogger("leaps.integrations")


def _result_payload(result):
    return {
        "event_id": result.event_id,
        "user_id": result.user_id,
        "already_recorded": result.already_recorded,
        "points_awarded": result.points_awarded,
        "submission_id": result.submission_id,
        "badges_awarded": result.badges_awarded,
    }


def _already_recorded(event):
    return Response({"event_id": event.pk, "already_recorded": True}, status=status.HTTP_200_OK)


class CompletionWebhookView(APIView):
    """
    POST /api/integrations/completions/webhook/

    Stores the delivery, then reconciles it inline (or queues it when
    COMPLETION_EVENTS_ASYNC is on). Redeliveries of an already processed
    event, including one that loses a race with a concurrent delivery,
    answer 200 without touching the ledger.
    """
    permission_classes = [IsAuthenticated]

    def post(self, request):
        event, created = record_completion_event(request.data)

        if event.is_processed:
            return _already_recorded(event)

        if settings.COMPLETION_EVENTS_ASYNC:
            reconcile_completion_event_task.delay(event.pk)
            return Response({"event_id": event.pk, "queued": True}, status=status.HTTP_202_ACCEPTED)

        try:
            result = reconcile(event.pk, source=LEDGER_SOURCE_WEBHOOK)
        except ConflictError:
            event = ExternalCompletionEvent.objects.get(pk=event.pk)
            if not event.is_processed:
                raise
            logger.info("Completion event %s reconciled by a concurrent delivery", event.pk)
            return _already_recorded(event)

        code = status.HTTP_201_CREATED if not result.already_recorded else status.HTTP_200_OK
        return Response(_result_payload(result), status=code)


class ReprocessCompletionEventView(APIView):
    """
    POST /api/integrations/completions/<event_id>/reprocess/
    Admin retry for an event that failed to reconcile (e.g. no user matched yet).
    """
    permission_classes = [IsAuthenticated, IsAdminRole]

    def post(self, request, event_id):
        result = reconcile(event_id, source=LEDGER_SOURCE_MANUAL, actor_id=request.user.pk)
        logger.info("Completion event %s reprocessed by %s", event_id, request.user.pk)
        return Response(_result_payload(result), status=status.HTTP_200_OK)
