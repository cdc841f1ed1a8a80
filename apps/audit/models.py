import uuid

from django.core.exceptions import PermissionDenied
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from django.utils import timezone

from apps.audit.querysets import SystemLogQuerySet


class LogLevel(models.TextChoices):
    INFO = "info", "Info"
    WARNING = "warning", "Warning"
    ERROR = "error", "Error"
    DEBUG = "debug", "Debug"


class LogSource(models.TextChoices):
    BUSINESS_EVENT = "business_event", "Business event"
    USER_ACTION = "user_action", "User action"
    DATA_OPERATION = "data_operation", "Data operation"
    ADMIN_ACTION = "admin_action", "Admin action"
    SYSTEM_STARTUP = "system_startup", "System startup"
    SYSTEM_MAINTENANCE = "system_maintenance", "System maintenance"
    API_REQUEST = "api_request", "API request"
    API_RESPONSE = "api_response", "API response"
    SYSTEM_ERROR = "system_error", "System error"
    SECURITY_EVENT = "security_event", "Security event"
    STATUS_CHANGE = "status_change", "Status change"
    ASSIGNMENT_CHANGE = "assignment_change", "Assignment change"
    PAYMENT = "payment", "Payment"
    AUTHORIZATION = "authorization", "Authorization"
    VALIDATION = "validation", "Validation"


BUSINESS_EVENT_SOURCES = (
    LogSource.BUSINESS_EVENT,
    LogSource.USER_ACTION,
    LogSource.DATA_OPERATION,
    LogSource.ADMIN_ACTION,
    LogSource.SYSTEM_STARTUP,
    LogSource.SYSTEM_MAINTENANCE,
)

SYSTEM_ACTOR = "System"


class SystemLog(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    timestamp = models.DateTimeField(default=timezone.now)
    level = models.CharField(max_length=16, choices=LogLevel.choices, default=LogLevel.INFO)
    message = models.TextField()
    user_id = models.CharField(max_length=80, default=SYSTEM_ACTOR)
    user_name = models.CharField(max_length=255, default=SYSTEM_ACTOR)
    module = models.CharField(max_length=80, default="general")
    action = models.CharField(max_length=80, default="general")
    entity = models.CharField(max_length=80, null=True, blank=True)
    entity_id = models.CharField(max_length=80, null=True, blank=True)
    changes = models.JSONField(default=dict, blank=True, encoder=DjangoJSONEncoder)
    details = models.JSONField(default=dict, blank=True, encoder=DjangoJSONEncoder)
    source = models.CharField(max_length=40, default=LogSource.BUSINESS_EVENT)
    ip_address = models.CharField(max_length=64, blank=True, default="")

    objects = SystemLogQuerySet.as_manager()

    class Meta:
        ordering = ["-timestamp"]
        indexes = [
            models.Index(fields=["-timestamp"], name="syslog_timestamp_idx"),
            models.Index(fields=["level", "-timestamp"], name="syslog_level_ts_idx"),
            models.Index(fields=["user_id"], name="syslog_user_idx"),
            models.Index(fields=["entity", "entity_id"], name="syslog_entity_idx"),
            models.Index(fields=["module", "action"], name="syslog_module_action_idx"),
            models.Index(fields=["source"], name="syslog_source_idx"),
        ]

    def __str__(self):
        return f"[{self.level}] {self.timestamp:%Y-%m-%d %H:%M:%S} {self.user_name}: {self.message}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise PermissionDenied("System logs are immutable and cannot be modified after creation.")
        if not (self.message or "").strip():
            raise ValueError("message is required")
        if self.level == LogLevel.DEBUG:
            raise ValueError("debug records are not persisted")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise PermissionDenied("System logs can only be removed through a confirmed bulk delete.")
