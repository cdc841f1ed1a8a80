from django.contrib.auth import get_user_model
from rest_framework import serializers

from apps.common.items import ItemsWriteMixin, LineItemSerializer
from apps.common.permissions import is_admin
from apps.orders.models import Order

User = get_user_model()


class OrderSerializer(ItemsWriteMixin, serializers.ModelSerializer):
    items = LineItemSerializer(many=True, required=False)
    customer_name = serializers.CharField(source="customer.name", read_only=True)
    assigned_to = serializers.PrimaryKeyRelatedField(queryset=User.objects.all(), allow_null=True, required=False)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "customer",
            "customer_name",
            "description",
            "status",
            "items",
            "total_amount",
            "start_date",
            "due_date",
            "notes",
            "created_by",
            "assigned_to",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "total_amount", "created_by", "created_at", "updated_at"]

    def validate_order_number(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Bitte geben Sie eine Auftragsnummer an.")
        return value

    def validate_customer(self, value):
        user = self.context["request"].user
        if not is_admin(user) and value.created_by_id != user.id:
            raise serializers.ValidationError("Kunde gehört nicht zu Ihren Kunden.")
        return value

    def validate(self, attrs):
        start_date = attrs.get("start_date", getattr(self.instance, "start_date", None))
        due_date = attrs.get("due_date", getattr(self.instance, "due_date", None))
        if start_date and due_date and start_date > due_date:
            raise serializers.ValidationError({"due_date": "Fälligkeitsdatum muss nach dem Startdatum liegen."})
        return attrs


class OrderAssignSerializer(serializers.Serializer):
    assigned_to = serializers.PrimaryKeyRelatedField(queryset=User.objects.filter(is_active=True), allow_null=True)
