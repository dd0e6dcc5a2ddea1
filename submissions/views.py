from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from rest_framework import status

from core.permissions import IsAdminRole, IsReviewer
from . import state_machine
from .serializers import (
    BulkReviewSerializer,
    ReviewSerializer,
    RevokeSerializer,
    SubmissionSerializer,
)


def _result_payload(result):
    return {
        "submission": SubmissionSerializer(result.submission).data,
        "delta_points": result.delta_points,
        "warnings": result.warnings,
        "badges_awarded": result.badges_awarded,
    }


class ReviewSubmissionView(APIView):
    """
    POST /api/submissions/<submission_id>/review/
    Body: {"action": "approve"|"reject", "review_note": "...", "point_adjustment": n}

    Engine errors (404/409/400/422) propagate to the project exception handler.
    """
    permission_classes = [IsAuthenticated, IsReviewer]

    def post(self, request, submission_id):
        serializer = ReviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = state_machine.review(
            submission_id=submission_id,
            action=data["action"],
            reviewer_id=request.user.pk,
            review_note=data.get("review_note"),
            point_adjustment=data.get("point_adjustment"),
        )
        return Response(_result_payload(result), status=status.HTTP_200_OK)


class BulkReviewView(APIView):
    """
    POST /api/submissions/bulk-review/
    Body: {"submission_ids": [..], "action": "approve"|"reject", "review_note": "..."}
    """
    permission_classes = [IsAuthenticated, IsReviewer]

    def post(self, request):
        serializer = BulkReviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        summary = state_machine.bulk_review(
            submission_ids=data["submission_ids"],
            action=data["action"],
            reviewer_id=request.user.pk,
            review_note=data.get("review_note"),
        )
        return Response(summary, status=status.HTTP_200_OK)


class RevokeSubmissionView(APIView):
    """
    POST /api/submissions/<submission_id>/revoke/
    Admin only.
    """
    permission_classes = [IsAuthenticated, IsAdminRole]

    def post(self, request, submission_id):
        serializer = RevokeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = state_machine.revoke(
            submission_id=submission_id,
            actor_id=request.user.pk,
            reason=serializer.validated_data.get("reason"),
        )
        return Response(_result_payload(result), status=status.HTTP_200_OK)
