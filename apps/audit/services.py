import csv
import io
import logging
import math
from datetime import timedelta

from django.db import transaction
from django.db.models import Count
from django.db.models.functions import TruncDate
from django.utils import timezone
from kombu.exceptions import OperationalError

from apps.audit.models import SYSTEM_ACTOR, LogLevel, LogSource, SystemLog
from apps.common.exceptions import ConfirmationRequiredError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

TRANSPORT_LEVELS = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}

SENSITIVE_FIELDS = frozenset(
    {
        "password",
        "token",
        "resetPasswordToken",
        "activationToken",
        "currentPassword",
        "newPassword",
        "reset_password_token",
        "activation_token",
        "current_password",
        "new_password",
        "refresh",
        "access",
    }
)
MASK = "***"

CSV_HEADER = [
    "Zeitstempel",
    "Level",
    "Meldung",
    "Benutzer",
    "Modul",
    "Aktion",
    "Entität",
    "Entitäts-ID",
    "Quelle",
    "IP-Adresse",
]

STATS_TOP_LIMIT = 5

def sanitize_payload(payload):
    if isinstance(payload, dict):
        return {key: MASK if key in SENSITIVE_FIELDS else sanitize_payload(value) for key, value in payload.items()}
    if isinstance(payload, (list, tuple)):
        return [sanitize_payload(item) for item in payload]
    return payload


def get_client_ip(request):
    forwarded_for = request.META.get("HTTP_X_FORWARDED_FOR")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return request.META.get("REMOTE_ADDR", "")


def actor_of(request):
    user = getattr(request, "user", None)
    if user is not None and user.is_authenticated:
        return str(user.pk), getattr(user, "display_name", None) or user.get_username()
    return None, None


# ---------------------------------------------------------------------------
# Writing
# ---------------------------------------------------------------------------


def record_log(level=LogLevel.INFO, message="", **fields):
    """
    Write ``message`` to the transport log and persist it as a ``SystemLog``.
    Debug records stop at the transport log and return ``None``.
    """
    logger.log(TRANSPORT_LEVELS.get(level, logging.INFO), "%s", message)
    if level == LogLevel.DEBUG:
        return None
    fields = {key: value for key, value in fields.items() if value is not None}
    return SystemLog.objects.create(level=level, message=message, **fields)


def log_event(request, message, level=LogLevel.INFO, source=LogSource.DATA_OPERATION, **fields):
    actor_id, actor_name = actor_of(request)
    return record_log(
        level=level,
        message=message,
        user_id=actor_id,
        user_name=actor_name,
        source=source,
        ip_address=get_client_ip(request),
        **fields,
    )


def record_log_safely(fields):
    try:
        return record_log(**fields)
    except Exception:
        logger.error("Failed to write system log %r", fields.get("message"), exc_info=True)
        return None


def record_log_async(**fields):
    """
    Queue a record on the ``write_system_log`` task without waiting for it.
    Failures, including an unreachable broker, only reach the transport log.
    """
    from apps.audit.tasks import write_system_log

    fields.setdefault("timestamp", timezone.now().isoformat())
    try:
        return write_system_log.delay(fields)
    except OperationalError:
        logger.error("Failed to queue system log %r", fields.get("message"), exc_info=True)
        return None


# ---------------------------------------------------------------------------
# Reading
# ---------------------------------------------------------------------------


def filter_options():
    logs = SystemLog.objects.all()
    return {
        "modules": logs.distinct_values("module"),
        "actions": logs.distinct_values("action"),
        "entities": logs.distinct_values("entity"),
        "sources": logs.distinct_values("source"),
    }


def list_logs(filters, page=1, limit=100):
    queryset = SystemLog.objects.apply_filters(filters).order_by("-timestamp")
    total = queryset.count()
    offset = (page - 1) * limit
    return {
        "records": list(queryset[offset : offset + limit]),
        "total": total,
        "page": page,
        "total_pages": math.ceil(total / limit),
        "filters": filter_options(),
    }


def _top(queryset, field, limit=STATS_TOP_LIMIT):
    return list(queryset.values(field).annotate(count=Count("id")).order_by("-count", field)[:limit])


def get_stats(days=30):
    now = timezone.now()
    since = now - timedelta(days=days)
    logs = SystemLog.objects.business_events().filter(timestamp__gte=since)

    level_stats = {level: 0 for level in LogLevel.values}
    for row in logs.values("level").annotate(count=Count("id")):
        if row["level"] in level_stats:
            level_stats[row["level"]] = row["count"]

    per_day = {}
    daily_rows = (
        logs.annotate(day=TruncDate("timestamp"))
        .values("day", "level")
        .annotate(count=Count("id"))
        .order_by("day")
    )
    for row in daily_rows:
        per_day[(row["day"], row["level"])] = row["count"]

    chart_data = []
    day = timezone.localdate(since)
    last_day = timezone.localdate(now)
    while day <= last_day:
        entry = {"date": day.isoformat()}
        for level in LogLevel.values:
            entry[level] = per_day.get((day, level), 0)
        chart_data.append(entry)
        day += timedelta(days=1)

    return {
        "days": days,
        "level_stats": level_stats,
        "chart_data": chart_data,
        "top_modules": _top(logs, "module"),
        "top_actions": _top(logs, "action"),
        "top_errors": _top(logs.filter(level=LogLevel.ERROR), "message"),
    }


def format_timestamp(value):
    return timezone.localtime(value).strftime("%d.%m.%Y, %H:%M:%S")


def _export_record(log):
    return {
        "id": str(log.id),
        "timestamp": log.timestamp.isoformat(),
        "formatted_timestamp": format_timestamp(log.timestamp),
        "level": log.level,
        "message": log.message,
        "user_id": log.user_id,
        "user_name": log.user_name,
        "module": log.module,
        "action": log.action,
        "entity": log.entity,
        "entity_id": log.entity_id,
        "changes": log.changes,
        "details": log.details,
        "source": log.source,
        "ip_address": log.ip_address,
    }


def _echo_filters(filters):
    return {key: value.isoformat() if hasattr(value, "isoformat") else value for key, value in filters.items()}


def export_logs(filters, export_format="csv"):
    logs = SystemLog.objects.apply_filters(filters).order_by("-timestamp")
    if export_format == "json":
        records = [_export_record(log) for log in logs]
        return {
            "exported_at": timezone.now().isoformat(),
            "filters": _echo_filters(filters),
            "count": len(records),
            "logs": records,
        }

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for log in logs:
        writer.writerow(
            [
                log.timestamp.isoformat(),
                log.level,
                log.message,
                log.user_name or SYSTEM_ACTOR,
                log.module or "general",
                log.action or "general",
                log.entity or "",
                log.entity_id or "",
                log.source or LogSource.BUSINESS_EVENT,
                log.ip_address or "",
            ]
        )
    return buffer.getvalue()


# ---------------------------------------------------------------------------
# Bulk delete
# ---------------------------------------------------------------------------


def delete_logs(filters, confirm=None, actor_id=None, actor_name=None, ip_address=None):
    """
    Delete the logs matching ``filters`` once ``confirm == "true"``.

    A date range is mandatory. Without confirmation the matching count is
    reported through ``ConfirmationRequiredError`` and nothing is removed.
    """
    if not filters.get("startDate") and not filters.get("endDate"):
        raise ValidationError("Ein Datumsbereich (startDate und/oder endDate) ist für das Löschen erforderlich.")

    queryset = SystemLog.objects.apply_filters(filters, default_to_business_events=False)
    count = queryset.count()
    if count == 0:
        raise NotFoundError("Keine Logs für die angegebenen Filter gefunden.")
    if confirm != "true":
        raise ConfirmationRequiredError(
            f'{count} Logs würden gelöscht. Zum Ausführen confirm="true" senden.',
            count=count,
        )

    with transaction.atomic():
        queryset.delete()
        record_log(
            level=LogLevel.WARNING,
            message=f"{count} Systemlogs gelöscht",
            user_id=actor_id,
            user_name=actor_name,
            module="system",
            action="delete",
            entity="logs",
            details={"filter": _echo_filters(filters), "deleted_count": count},
            source=LogSource.ADMIN_ACTION,
            ip_address=ip_address,
        )
    return count
