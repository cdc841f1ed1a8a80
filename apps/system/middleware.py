from django.http import JsonResponse
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError

from apps.common.permissions import is_admin
from apps.system.models import get_or_create_settings

ALLOWED_PREFIXES = ("/api/v1/settings/", "/api/v1/auth/", "/health/", "/admin/")


class MaintenanceModeMiddleware:
    """Answers 503 to non-admin requests while maintenance mode is on."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        if request.path.startswith(ALLOWED_PREFIXES):
            return self.get_response(request)

        settings = get_or_create_settings()
        if settings.maintenance_mode and not self._is_admin(request):
            return JsonResponse(
                {"code": "maintenance", "detail": settings.maintenance_message, "fields": {}},
                status=503,
            )
        return self.get_response(request)

    def _is_admin(self, request):
        user = getattr(request, "user", None)
        if user is not None and user.is_authenticated:
            return is_admin(user)
        try:
            result = JWTAuthentication().authenticate(request)
        except (AuthenticationFailed, InvalidToken, TokenError):
            return False
        return bool(result) and is_admin(result[0])
