from django.conf import settings
from django.db import DatabaseError
from rest_framework.views import APIView
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework import status

from .constants import STAGES
from .datetime_utils import get_org_timezone
from .models import Activity


class HealthCheckView(APIView):
    """
    GET /api/health/

    Public readiness check. Reports "ok" only when the database answers,
    every LEAPS stage has a catalog row and the org timezone resolves;
    anything else is "degraded" with a 503.
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request, *args, **kwargs):
        try:
            seeded = set(Activity.objects.filter(code__in=STAGES).values_list("code", flat=True))
            db_ok = True
        except DatabaseError:
            seeded, db_ok = set(), False

        try:
            tz_name = str(get_org_timezone())
        except ValueError:
            tz_name = None

        missing = [code for code in STAGES if code not in seeded]
        healthy = db_ok and not missing and tz_name is not None

        return Response(
            {
                "status": "ok" if healthy else "degraded",
                "db": db_ok,
                "missing_activities": missing,
                "org_timezone": tz_name,
                "env": getattr(settings, "ENV", "unknown"),
            },
            status=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        )
