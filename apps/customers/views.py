from django.db.models import Q
from rest_framework import viewsets

from apps.audit.mixins import AuditedModelMixin
from apps.common.exceptions import ValidationError
from apps.common.permissions import IsOwnerOrAdmin, RolePermission
from apps.customers.models import Customer
from apps.customers.serializers import CustomerSerializer


class CustomerViewSet(AuditedModelMixin, viewsets.ModelViewSet):
    queryset = Customer.objects.select_related("created_by")
    serializer_class = CustomerSerializer
    permission_classes = [RolePermission, IsOwnerOrAdmin]
    capability_map = {
        "list": ["customers.view"],
        "retrieve": ["customers.view"],
        "create": ["customers.manage"],
        "partial_update": ["customers.manage"],
        "update": ["customers.manage"],
        "destroy": ["customers.manage"],
    }
    entity_type = "customer"
    entity_name = "Kunde"

    def get_queryset(self):
        queryset = super().get_queryset()
        if self.action != "list":
            return queryset
        queryset = self.scope_queryset(queryset)
        query = self.request.query_params.get("q")
        if query:
            query = query.strip()
            queryset = queryset.filter(
                Q(name__icontains=query) | Q(contact_person__icontains=query) | Q(email__icontains=query)
            )
        return queryset

    def audit_details(self, instance):
        return {"customer_name": instance.name, "customer_email": instance.email}

    def perform_destroy(self, instance):
        if instance.orders.exists() or instance.invoices.exists():
            raise ValidationError("Kunde hat noch Aufträge oder Rechnungen und kann nicht gelöscht werden.")
        super().perform_destroy(instance)
