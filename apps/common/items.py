from decimal import Decimal

from rest_framework import serializers

CENT = Decimal("0.01")


def to_decimal(value):
    return Decimal(str(value if value not in (None, "") else 0))


def items_total(items):
    total = sum((to_decimal(item.get("quantity")) * to_decimal(item.get("unit_price")) for item in items or []), Decimal("0"))
    return total.quantize(CENT)


class LineItemSerializer(serializers.Serializer):
    description = serializers.CharField()
    quantity = serializers.IntegerField(min_value=1, error_messages={"min_value": "Menge muss mindestens 1 sein."})
    unit_price = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        min_value=Decimal("0"),
        error_messages={"min_value": "Preis kann nicht negativ sein."},
    )

    def validate_description(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("description is required")
        return value

    def to_internal_value(self, data):
        attrs = super().to_internal_value(data)
        attrs["unit_price"] = str(attrs["unit_price"])
        return attrs


class ItemsWriteMixin:
    """Stores nested line items straight into the model's JSON ``items`` field."""

    def create(self, validated_data):
        return self.Meta.model.objects.create(**validated_data)

    def update(self, instance, validated_data):
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        instance.save()
        return instance
