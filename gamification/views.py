from django.contrib.auth import get_user_model
from django.shortcuts import get_object_or_404
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from rest_framework import status

from core.permissions import IsAdminRole, is_reviewer
from . import ledger
from .engine import BadgeService
from .models import EarnedBadge, PointsLedgerEntry
from .serializers import AssignBadgeSerializer, EarnedBadgeSerializer, LedgerEntrySerializer

User = get_user_model()

RECENT_LEDGER_LIMIT = 20


class UserProgressView(APIView):
    """
    GET /api/gamification/users/<user_id>/progress/

    Points total (always derived from the ledger), per-activity subtotals,
    earned badges and the most recent ledger rows.
    Visible to the user themselves and to reviewers.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, user_id):
        if request.user.pk != user_id and not is_reviewer(request.user):
            return Response({"error": "Not allowed"}, status=status.HTTP_403_FORBIDDEN)

        user = get_object_or_404(User, pk=user_id)
        progress = BadgeService.build_progress(user)

        badges = EarnedBadge.objects.filter(user=user).select_related("badge").order_by("earned_at")
        recent = (
            PointsLedgerEntry.objects
            .filter(user=user)
            .order_by("-event_time", "-id")[:RECENT_LEDGER_LIMIT]
        )

        return Response(
            {
                "user_id": user.pk,
                "total_points": progress.total_points,
                "points_by_activity": ledger.totals_by_activity(user),
                "approved_stages": sorted(progress.approved_stages),
                "badges": EarnedBadgeSerializer(badges, many=True).data,
                "recent_ledger": LedgerEntrySerializer(recent, many=True).data,
            }
        )


class AssignBadgeView(APIView):
    """
    POST /api/gamification/badges/<badge_code>/assign/
    Body: {"user_ids": [..], "reason": "..."}
    """
    permission_classes = [IsAuthenticated, IsAdminRole]

    def post(self, request, badge_code):
        serializer = AssignBadgeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = BadgeService.assign_badge(
            badge_code=badge_code,
            user_ids=serializer.validated_data["user_ids"],
            actor_id=request.user.pk,
            reason=serializer.validated_data.get("reason"),
        )
        return Response(result, status=status.HTTP_200_OK)
