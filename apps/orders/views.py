from django.db.models import Q
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.audit.mixins import AuditedModelMixin
from apps.audit.models import LogSource
from apps.common.permissions import IsOwnerOrAdmin, RolePermission
from apps.orders.models import Order
from apps.orders.serializers import OrderAssignSerializer, OrderSerializer


class OrderViewSet(AuditedModelMixin, viewsets.ModelViewSet):
    queryset = Order.objects.select_related("customer", "created_by", "assigned_to")
    serializer_class = OrderSerializer
    permission_classes = [RolePermission, IsOwnerOrAdmin]
    capability_map = {
        "list": ["orders.view"],
        "retrieve": ["orders.view"],
        "create": ["orders.manage"],
        "partial_update": ["orders.manage"],
        "update": ["orders.manage"],
        "destroy": ["orders.manage"],
        "assign": ["orders.manage"],
    }
    entity_type = "order"
    entity_name = "Auftrag"
    assignee_field = "assigned_to"
    assignee_actions = ("retrieve", "update", "partial_update")

    def get_queryset(self):
        queryset = super().get_queryset()
        if self.action != "list":
            return queryset
        queryset = self.scope_queryset(queryset)
        params = self.request.query_params
        if params.get("status"):
            queryset = queryset.filter(status=params["status"])
        if params.get("customer"):
            queryset = queryset.filter(customer_id=params["customer"])
        query = params.get("q")
        if query:
            query = query.strip()
            queryset = queryset.filter(Q(order_number__icontains=query) | Q(description__icontains=query))
        return queryset

    def audit_details(self, instance):
        return {
            "order_number": instance.order_number,
            "customer_id": instance.customer_id,
            "total_amount": str(instance.total_amount),
        }

    def _record_status_change(self, instance, old_status):
        self.audit(
            instance,
            f"Status von {self.entity_label(instance)} geändert",
            action="status_change",
            source=LogSource.STATUS_CHANGE,
            changes={"status": {"old": old_status, "new": instance.status}},
        )

    def _record_assignment_change(self, instance, old_assignee_id):
        assignee = instance.assigned_to
        self.audit(
            instance,
            f"Zuständigkeit für {self.entity_label(instance)} geändert",
            action="assign",
            source=LogSource.ASSIGNMENT_CHANGE,
            changes={"assigned_to": {"old": old_assignee_id, "new": instance.assigned_to_id}},
            details={
                "order_number": instance.order_number,
                "assigned_to_name": assignee.display_name if assignee else None,
            },
        )

    def perform_update(self, serializer):
        old_status = serializer.instance.status
        old_assignee_id = serializer.instance.assigned_to_id
        super().perform_update(serializer)
        instance = serializer.instance
        if instance.status != old_status:
            self._record_status_change(instance, old_status)
        if instance.assigned_to_id != old_assignee_id:
            self._record_assignment_change(instance, old_assignee_id)

    @action(detail=True, methods=["post"])
    def assign(self, request, pk=None):
        order = self.get_object()
        serializer = OrderAssignSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        old_assignee_id = order.assigned_to_id
        order.assigned_to = serializer.validated_data["assigned_to"]
        order.save(update_fields=["assigned_to", "updated_at"])
        if order.assigned_to_id != old_assignee_id:
            self._record_assignment_change(order, old_assignee_id)
        return Response(OrderSerializer(order, context=self.get_serializer_context()).data)
