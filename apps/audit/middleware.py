import json
import logging
import time

from django.conf import settings
from django.http.request import RawPostDataException
from django.utils import timezone

from apps.audit.models import LogLevel, LogSource
from apps.audit.services import actor_of, get_client_ip, record_log_async, sanitize_payload

logger = logging.getLogger(__name__)

READ_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})
ANONYMOUS_ID = "anonymous"
ANONYMOUS_NAME = "Anonymer Benutzer"


class RequestLoggingMiddleware:
    """
    Mirrors every request and its response into the transport log and audits
    mutating API traffic and failed responses as ``SystemLog`` records.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        if self._is_excluded(request.path):
            return self.get_response(request)

        is_read = request.method in READ_METHODS
        body = {} if is_read else self._read_body(request)
        logger.log(logging.DEBUG if is_read else logging.INFO, "%s %s", request.method, request.path)

        requested_at = timezone.now()
        started = time.monotonic()
        response = self.get_response(request)
        duration_ms = int((time.monotonic() - started) * 1000)

        audited = self._is_audited(request.path)
        if audited and not is_read:
            self._record_request(request, body, requested_at)
        self._log_response(request, response, duration_ms, audited)
        return response

    def _is_excluded(self, path):
        if settings.STATIC_URL and path.startswith(settings.STATIC_URL):
            return True
        return any(path.startswith(prefix) for prefix in settings.AUDIT_EXCLUDED_PATHS)

    def _is_audited(self, path):
        return not path.startswith(settings.AUDIT_LOGS_API_PREFIX) and "/public" not in path

    def _read_body(self, request):
        if request.content_type != "application/json":
            return {}
        try:
            payload = json.loads(request.body or b"{}")
        except (RawPostDataException, UnicodeDecodeError, ValueError):
            return {}
        return sanitize_payload(payload)

    def _actor(self, request):
        actor_id, actor_name = actor_of(request)
        if actor_id is None:
            return ANONYMOUS_ID, ANONYMOUS_NAME
        return actor_id, actor_name

    def _module(self, request):
        segments = [segment for segment in request.path.split("/") if segment]
        if len(segments) >= 3 and segments[0] == "api":
            return segments[2]
        return segments[0] if segments else "general"

    def _record_request(self, request, body, requested_at):
        actor_id, actor_name = self._actor(request)
        record_log_async(
            level=LogLevel.INFO,
            message=f"{request.method} {request.path}",
            user_id=actor_id,
            user_name=actor_name,
            module=self._module(request),
            action=request.method.lower(),
            details={
                "method": request.method,
                "path": request.path,
                "query": request.GET.dict(),
                "body": body,
                "user_agent": request.META.get("HTTP_USER_AGENT", ""),
            },
            source=LogSource.API_REQUEST,
            ip_address=get_client_ip(request),
            timestamp=requested_at.isoformat(),
        )

    def _log_response(self, request, response, duration_ms, audited):
        status_code = response.status_code
        if status_code >= 500:
            level = logging.ERROR
        elif status_code >= 400:
            level = logging.WARNING
        elif request.method != "GET":
            level = logging.INFO
        else:
            level = logging.DEBUG
        logger.log(level, "%s %s -> %s (%sms)", request.method, request.path, status_code, duration_ms)

        if status_code < 400 or not audited:
            return
        actor_id, actor_name = self._actor(request)
        record_log_async(
            level=LogLevel.ERROR if status_code >= 500 else LogLevel.WARNING,
            message=f"{request.method} {request.path} - Status: {status_code}",
            user_id=actor_id,
            user_name=actor_name,
            module=self._module(request),
            action=request.method.lower(),
            details={
                "method": request.method,
                "path": request.path,
                "status_code": status_code,
                "duration_ms": duration_ms,
                "user_agent": request.META.get("HTTP_USER_AGENT", ""),
            },
            source=LogSource.API_RESPONSE,
            ip_address=get_client_ip(request),
        )
