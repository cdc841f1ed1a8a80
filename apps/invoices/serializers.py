from rest_framework import serializers

from apps.common.items import ItemsWriteMixin, LineItemSerializer
from apps.common.permissions import is_admin
from apps.invoices.models import Invoice
from apps.timetracking.models import TimeEntry


class InstallmentSerializer(serializers.Serializer):
    description = serializers.CharField(read_only=True)
    percentage = serializers.DecimalField(max_digits=5, decimal_places=2, read_only=True)
    amount = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)
    due_date = serializers.DateField(read_only=True)
    is_paid = serializers.BooleanField(read_only=True)
    paid_date = serializers.DateField(read_only=True, allow_null=True)


class InvoiceSerializer(ItemsWriteMixin, serializers.ModelSerializer):
    items = LineItemSerializer(many=True, allow_empty=False)
    invoice_number = serializers.CharField(max_length=40, required=False, allow_blank=True)
    installments = InstallmentSerializer(many=True, read_only=True)
    time_entries = serializers.PrimaryKeyRelatedField(
        queryset=TimeEntry.objects.all(),
        many=True,
        required=False,
    )
    customer_name = serializers.CharField(source="customer.name", read_only=True)

    class Meta:
        model = Invoice
        fields = [
            "id",
            "invoice_number",
            "customer",
            "customer_name",
            "order",
            "items",
            "time_entries",
            "subtotal",
            "tax_rate",
            "tax_amount",
            "total_amount",
            "payment_schedule",
            "installments",
            "status",
            "issue_date",
            "due_date",
            "notes",
            "created_by",
            "created_at",
            "updated_at",
        ]
        read_only_fields = [
            "id",
            "subtotal",
            "tax_amount",
            "total_amount",
            "installments",
            "created_by",
            "created_at",
            "updated_at",
        ]

    def validate_invoice_number(self, value):
        value = value.strip()
        if value and Invoice.objects.filter(invoice_number=value).exclude(pk=getattr(self.instance, "pk", None)).exists():
            raise serializers.ValidationError("Rechnungsnummer ist bereits vergeben.")
        return value

    def validate_tax_rate(self, value):
        if value is not None and (value < 0 or value > 100):
            raise serializers.ValidationError("Steuersatz muss zwischen 0 und 100 liegen.")
        return value

    def validate_customer(self, value):
        user = self.context["request"].user
        if not is_admin(user) and value.created_by_id != user.id:
            raise serializers.ValidationError("Kunde gehört nicht zu Ihren Kunden.")
        return value

    def validate_time_entries(self, value):
        user = self.context["request"].user
        already_linked = set(self.instance.time_entries.values_list("pk", flat=True)) if self.instance else set()
        for entry in value:
            if not is_admin(user) and entry.user_id != user.id:
                raise serializers.ValidationError(f"Zeiteintrag {entry.pk} gehört nicht zu Ihnen.")
            if entry.billed and entry.pk not in already_linked:
                raise serializers.ValidationError(f"Zeiteintrag {entry.pk} wurde bereits abgerechnet.")
        return value

    def validate(self, attrs):
        issue_date = attrs.get("issue_date", getattr(self.instance, "issue_date", None))
        due_date = attrs.get("due_date", getattr(self.instance, "due_date", None))
        if issue_date and due_date and due_date < issue_date:
            raise serializers.ValidationError({"due_date": "Fälligkeitsdatum darf nicht vor dem Rechnungsdatum liegen."})
        return attrs

    def create(self, validated_data):
        time_entries = validated_data.pop("time_entries", [])
        invoice = super().create(validated_data)
        if time_entries:
            invoice.time_entries.set(time_entries)
            TimeEntry.objects.filter(pk__in=[entry.pk for entry in time_entries]).update(billed=True)
        return invoice

    def update(self, instance, validated_data):
        time_entries = validated_data.pop("time_entries", None)
        invoice = super().update(instance, validated_data)
        if time_entries is not None:
            previous = set(invoice.time_entries.values_list("pk", flat=True))
            current = {entry.pk for entry in time_entries}
            invoice.time_entries.set(time_entries)
            TimeEntry.objects.filter(pk__in=previous - current).update(billed=False)
            TimeEntry.objects.filter(pk__in=current).update(billed=True)
        return invoice
