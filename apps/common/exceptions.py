import logging

from django.db import DatabaseError
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class DomainError(APIException):
    """Base class for failures reported with a stable ``code`` and extra payload."""

    extra = None

    def __init__(self, detail=None, code=None, **extra):
        super().__init__(detail=detail, code=code)
        self.extra = extra


class ValidationError(DomainError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Ungültige Anfrage."
    default_code = "validation_error"


class NotFoundError(DomainError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Nicht gefunden."
    default_code = "not_found"


class ConfirmationRequiredError(DomainError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Bestätigung erforderlich."
    default_code = "confirmation_required"


class StorageError(DomainError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "Datenspeicher nicht verfügbar."
    default_code = "storage_error"


def api_exception_handler(exc, context):
    if isinstance(exc, DatabaseError):
        logger.error("Storage failure: %s", exc, exc_info=True)
        exc = StorageError()

    response = exception_handler(exc, context)
    if response is None:
        return response

    if isinstance(response.data, dict):
        detail = response.data.get("detail", "Request failed")
        fields = {k: v for k, v in response.data.items() if k != "detail"}
    else:
        detail = "Request failed"
        fields = {"non_field_errors": response.data}

    response.data = {
        "code": getattr(exc, "default_code", "error"),
        "detail": detail,
        "fields": fields,
    }
    if isinstance(exc, DomainError) and exc.extra:
        response.data.update(exc.extra)
    return response
