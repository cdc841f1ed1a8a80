from celery import shared_task

from apps.audit.services import record_log_safely


@shared_task(ignore_result=True)
def write_system_log(fields):
    log = record_log_safely(fields)
    return str(log.pk) if log is not None else None
