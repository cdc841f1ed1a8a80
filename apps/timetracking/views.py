from rest_framework import viewsets

from apps.audit.mixins import AuditedModelMixin
from apps.common.exceptions import ValidationError
from apps.common.permissions import IsOwnerOrAdmin, RolePermission
from apps.timetracking.models import TimeEntry
from apps.timetracking.serializers import TimeEntrySerializer


class TimeEntryViewSet(AuditedModelMixin, viewsets.ModelViewSet):
    queryset = TimeEntry.objects.select_related("user", "assigned_to", "order")
    serializer_class = TimeEntrySerializer
    permission_classes = [RolePermission, IsOwnerOrAdmin]
    capability_map = {
        "list": ["timetracking.view"],
        "retrieve": ["timetracking.view"],
        "create": ["timetracking.manage"],
        "partial_update": ["timetracking.manage"],
        "update": ["timetracking.manage"],
        "destroy": ["timetracking.manage"],
    }
    entity_type = "time_entry"
    entity_name = "Zeiteintrag"
    owner_field = "user"
    assignee_field = "assigned_to"
    assignee_actions = ("retrieve", "update", "partial_update")
    snapshot_exclude = ("user", "created_at", "updated_at")

    def get_queryset(self):
        queryset = super().get_queryset()
        if self.action != "list":
            return queryset
        queryset = self.scope_queryset(queryset)
        params = self.request.query_params
        if params.get("order"):
            queryset = queryset.filter(order_id=params["order"])
        if params.get("billed") in ("true", "false"):
            queryset = queryset.filter(billed=params["billed"] == "true")
        if params.get("date_from"):
            queryset = queryset.filter(start_time__date__gte=params["date_from"])
        if params.get("date_to"):
            queryset = queryset.filter(start_time__date__lte=params["date_to"])
        return queryset

    def entity_label(self, instance):
        return f"{self.entity_name} {instance.pk}"

    def audit_details(self, instance):
        return {
            "order_id": instance.order_id,
            "duration": instance.duration,
            "billable_duration": instance.billable_duration,
            "amount": str(instance.amount),
        }

    def perform_destroy(self, instance):
        if instance.billed:
            raise ValidationError("Abgerechnete Zeiteinträge können nicht gelöscht werden.")
        super().perform_destroy(instance)
