from django.db.models import Q
from rest_framework.exceptions import PermissionDenied

from apps.audit.diff import compute_changes, snapshot
from apps.audit.models import LogLevel, LogSource
from apps.audit.services import actor_of, get_client_ip, log_event
from apps.common.permissions import is_admin


class AuditedModelMixin:
    """
    Writes a ``SystemLog`` for every create, update and delete handled by a
    model viewset, and a warning when object permissions deny access.

    Views set ``entity_type`` (``"customer"``), ``entity_name`` (``"Kunde"``)
    and may override ``entity_label`` and ``audit_details``.
    """

    entity_type = None
    entity_name = None
    owner_field = "created_by"
    assignee_field = None
    snapshot_exclude = ("created_by", "created_at", "updated_at")

    @property
    def audit_module(self):
        return f"{self.entity_type}s"

    def entity_label(self, instance):
        return f"{self.entity_name} {instance}"

    def audit_details(self, instance):
        return {}

    def take_snapshot(self, instance):
        return snapshot(instance, exclude=self.snapshot_exclude)

    def scope_queryset(self, queryset):
        user = self.request.user
        if is_admin(user):
            return queryset
        condition = Q(**{self.owner_field: user})
        if self.assignee_field:
            condition |= Q(**{self.assignee_field: user})
        return queryset.filter(condition)

    def audit(self, instance, message, action, level=LogLevel.INFO, source=LogSource.DATA_OPERATION, **fields):
        fields.setdefault("details", self.audit_details(instance))
        return log_event(
            self.request,
            message,
            level=level,
            source=source,
            module=self.audit_module,
            action=action,
            entity=self.entity_type,
            entity_id=str(instance.pk),
            **fields,
        )

    def audit_update(self, instance, before, message=None):
        actor_id, actor_name = actor_of(self.request)
        return compute_changes(
            self.entity_type,
            instance.pk,
            self.entity_label(instance),
            before,
            self.take_snapshot(instance),
            actor_id,
            actor_name,
            message=message,
            ip_address=get_client_ip(self.request),
        )

    def check_object_permissions(self, request, obj):
        try:
            super().check_object_permissions(request, obj)
        except PermissionDenied:
            self.audit(
                obj,
                f"Nicht autorisierter Zugriff auf {self.entity_label(obj)}",
                action=self.action or request.method.lower(),
                level=LogLevel.WARNING,
                source=LogSource.AUTHORIZATION,
                details={"owner_id": str(getattr(obj, f"{self.owner_field}_id", ""))},
            )
            raise

    def perform_create(self, serializer):
        instance = serializer.save(**{self.owner_field: self.request.user})
        self.audit(instance, f"{self.entity_label(instance)} wurde erstellt", action="create")

    def perform_update(self, serializer):
        before = self.take_snapshot(serializer.instance)
        instance = serializer.save()
        self.audit_update(instance, before)
        return before

    def perform_destroy(self, instance):
        self.audit(instance, f"{self.entity_label(instance)} wurde gelöscht", action="delete")
        instance.delete()
