from rest_framework.views import exception_handler as drf_exception_handler
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework import status
import logging

logger = logging.getLogger("leaps.api")


# -----------------------------
# Engine error taxonomy
# -----------------------------
class EngineError(APIException):
    """
    Base class for review/ledger/badge/reconciliation failures.

    Subclasses DRF's APIException so views can let them propagate and the
    project exception handler renders them. `code` is the stable machine
    code callers switch on; the message stays short and unformatted.
    """
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "ENGINE_ERROR"
    default_detail = "Engine error."

    def __init__(self, detail=None, extra=None):
        super().__init__(detail=detail or self.default_detail, code=self.default_code)
        self.extra = extra or {}

    @property
    def code(self):
        return self.default_code


class NotFoundError(EngineError):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = "NOT_FOUND"
    default_detail = "Not found."


class ConflictError(EngineError):
    status_code = status.HTTP_409_CONFLICT
    default_code = "CONFLICT"
    default_detail = "Conflict."


class PointAdjustmentOutOfBounds(EngineError):
    default_code = "POINT_ADJUSTMENT_OUT_OF_BOUNDS"
    default_detail = "Point adjustment out of bounds."

    def __init__(self, adjustment, max_adjustment, base_points):
        super().__init__(
            f"Point adjustment must be within +/-{max_adjustment} of base points ({base_points})",
            extra={
                "adjustment": adjustment,
                "max_adjustment": max_adjustment,
                "base_points": base_points,
            },
        )


class SubmissionLimitError(EngineError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_code = "SUBMISSION_LIMIT_EXCEEDED"
    default_detail = "Submission limit exceeded."

    def __init__(self, cap, current, max_allowed):
        super().__init__(
            f"{cap} limit exceeded. Current: {current}, Maximum allowed: {max_allowed}",
            extra={"cap": cap, "current": current, "max_allowed": max_allowed},
        )
        self.cap = cap
        self.current = current
        self.max_allowed = max_allowed


class UnsupportedEvent(EngineError):
    """Not a failure: the event is classified as non-actionable."""
    status_code = status.HTTP_202_ACCEPTED
    default_code = "UNSUPPORTED_EVENT"
    default_detail = "Event type is not processed."


class DuplicateLedgerEntry(EngineError):
    status_code = status.HTTP_409_CONFLICT
    default_code = "DUPLICATE"
    default_detail = "Already recorded."

    def __init__(self, external_source, external_event_id):
        super().__init__(
            extra={"external_source": external_source, "external_event_id": external_event_id},
        )
        self.external_source = external_source
        self.external_event_id = external_event_id


class InvalidEventPayload(EngineError):
    default_code = "INVALID_EVENT_PAYLOAD"
    default_detail = "Invalid completion event payload."


class InvalidSubmissionPayload(EngineError):
    default_code = "INVALID_SUBMISSION_PAYLOAD"
    default_detail = "Invalid submission payload."


def custom_exception_handler(exc, context):
    """
    Wrap DRF + Django exceptions into a consistent response format.

    Success responses (2xx) are not touched.
    Only errors come through here.
    """
    response = drf_exception_handler(exc, context)

    if isinstance(exc, EngineError) and response is not None:
        errors = {"code": exc.code, "detail": str(exc.detail)}
        if exc.extra:
            errors["meta"] = exc.extra
        return Response(
            {
                "success": False,
                "status_code": response.status_code,
                "errors": errors,
            },
            status=response.status_code,
        )

    # If DRF handled it, wrap it
    if response is not None:
        return Response(
            {
                "success": False,
                "status_code": response.status_code,
                "errors": response.data,
            },
            status=response.status_code,
        )

    # Unhandled exceptions -> 500
    logger.exception("Unhandled API exception", exc_info=exc)

    return Response(
        {
            "success": False,
            "status_code": status.HTTP_500_INTERNAL_SERVER_ERROR,
            "errors": {"detail": "Internal server error."},
        },
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
