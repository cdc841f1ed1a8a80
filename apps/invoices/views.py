from django.db.models import Q
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.audit.mixins import AuditedModelMixin
from apps.audit.models import LogSource
from apps.common.exceptions import ValidationError
from apps.common.permissions import IsOwnerOrAdmin, RolePermission
from apps.invoices.models import Invoice, InvoiceStatus, PaymentSchedule
from apps.invoices.serializers import InvoiceSerializer


class InvoiceViewSet(AuditedModelMixin, viewsets.ModelViewSet):
    queryset = Invoice.objects.select_related("customer", "order", "created_by").prefetch_related("time_entries")
    serializer_class = InvoiceSerializer
    permission_classes = [RolePermission, IsOwnerOrAdmin]
    capability_map = {
        "list": ["invoices.view"],
        "retrieve": ["invoices.view"],
        "create": ["invoices.manage"],
        "partial_update": ["invoices.manage"],
        "update": ["invoices.manage"],
        "destroy": ["invoices.manage"],
        "pay_installment": ["invoices.manage"],
    }
    entity_type = "invoice"
    entity_name = "Rechnung"

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
            queryset = queryset.filter(Q(invoice_number__icontains=query) | Q(customer__name__icontains=query))
        return queryset

    def audit_details(self, instance):
        return {
            "invoice_number": instance.invoice_number,
            "customer_id": instance.customer_id,
            "total_amount": str(instance.total_amount),
            "status": instance.status,
        }

    def _record_time_entry_billing(self, instance, entry_ids, billed):
        if not entry_ids:
            return
        state = "abgerechnet" if billed else "nicht abgerechnet"
        self.audit(
            instance,
            f"{len(entry_ids)} Zeiteinträge als {state} markiert",
            action="bill" if billed else "unbill",
            details={"invoice_number": instance.invoice_number, "time_entry_ids": sorted(entry_ids)},
        )

    def _record_status_change(self, instance, old_status):
        self.audit(
            instance,
            f"Status von {self.entity_label(instance)} geändert",
            action="status_change",
            source=LogSource.STATUS_CHANGE,
            changes={"status": {"old": old_status, "new": instance.status}},
        )
        if instance.status == InvoiceStatus.PAID:
            self.audit(
                instance,
                f"{self.entity_label(instance)} als bezahlt markiert, Betrag: {instance.total_amount}",
                action="pay",
                source=LogSource.PAYMENT,
            )

    def perform_create(self, serializer):
        super().perform_create(serializer)
        instance = serializer.instance
        self._record_time_entry_billing(instance, list(instance.time_entries.values_list("pk", flat=True)), True)

    def perform_update(self, serializer):
        old_status = serializer.instance.status
        old_entry_ids = set(serializer.instance.time_entries.values_list("pk", flat=True))
        super().perform_update(serializer)
        instance = serializer.instance
        entry_ids = set(instance.time_entries.values_list("pk", flat=True))
        self._record_time_entry_billing(instance, list(entry_ids - old_entry_ids), True)
        self._record_time_entry_billing(instance, list(old_entry_ids - entry_ids), False)
        if instance.status != old_status:
            self._record_status_change(instance, old_status)

    def perform_destroy(self, instance):
        if instance.status == InvoiceStatus.PAID:
            raise ValidationError("Bezahlte Rechnungen können nicht gelöscht werden.")
        entry_ids = list(instance.time_entries.values_list("pk", flat=True))
        instance.time_entries.update(billed=False)
        self._record_time_entry_billing(instance, entry_ids, False)
        super().perform_destroy(instance)

    @action(detail=True, methods=["post"], url_path=r"installments/(?P<index>\d+)/pay")
    def pay_installment(self, request, pk=None, index=None):
        invoice = self.get_object()
        index = int(index)
        if invoice.payment_schedule != PaymentSchedule.INSTALLMENTS:
            raise ValidationError("Rechnung hat keinen Ratenzahlungsplan.")
        if index >= len(invoice.installments):
            raise ValidationError(f"Rate {index} existiert nicht.")
        if invoice.installments[index].get("is_paid"):
            raise ValidationError(f"Rate {index} ist bereits bezahlt.")

        old_status = invoice.status
        invoice.mark_installment_paid(index)
        invoice.save()
        installment = invoice.installments[index]
        self.audit(
            invoice,
            f"Rate {index + 1} von {self.entity_label(invoice)} als bezahlt markiert, Betrag: {installment['amount']}",
            action="pay",
            source=LogSource.PAYMENT,
            details={
                "invoice_number": invoice.invoice_number,
                "installment": index,
                "amount": installment["amount"],
            },
        )
        if invoice.status != old_status:
            self._record_status_change(invoice, old_status)
        return Response(self.get_serializer(invoice).data)
