import logging

from django.db import DatabaseError, connection
from django.utils import timezone
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

logger = logging.getLogger(__name__)


class HealthView(APIView):
    """Liveness/readiness probe confirming database connectivity."""

    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request, *args, **kwargs):
        database_ok = True
        try:
            with connection.cursor() as cursor:
                cursor.execute("SELECT 1")
                cursor.fetchone()
        except DatabaseError:
            logger.error("Health check could not reach the database", exc_info=True)
            database_ok = False
        return Response(
            {
                "status": "ok" if database_ok else "degraded",
                "database": database_ok,
                "timestamp": timezone.now().isoformat(),
            },
            status=200 if database_ok else 503,
        )
