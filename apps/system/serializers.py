from decimal import Decimal, InvalidOperation

from rest_framework import serializers

from apps.system.models import INSTALLMENT_KEYS, INSTALLMENT_TOLERANCE, SystemSettings, installment_total


class SystemSettingsSerializer(serializers.ModelSerializer):
    updated_by = serializers.StringRelatedField(read_only=True)

    class Meta:
        model = SystemSettings
        fields = [
            "company_name",
            "company_logo",
            "currency",
            "currency_symbol",
            "tax_rate",
            "payment_terms",
            "hourly_rate",
            "billing_interval",
            "payment_installments",
            "terms_and_conditions",
            "privacy_policy",
            "invoice_footer",
            "allow_registration",
            "allow_password_reset",
            "maintenance_mode",
            "maintenance_message",
            "updated_by",
            "updated_at",
        ]
        read_only_fields = ["updated_by", "updated_at"]

    def validate_tax_rate(self, value):
        if value < 0 or value > 100:
            raise serializers.ValidationError("Steuersatz muss zwischen 0 und 100 liegen.")
        return value

    def validate_hourly_rate(self, value):
        if value < 0:
            raise serializers.ValidationError("Stundensatz kann nicht negativ sein.")
        return value

    def validate_billing_interval(self, value):
        if value < 1:
            raise serializers.ValidationError("Abrechnungsintervall muss mindestens 1 Minute betragen.")
        return value

    def validate_payment_installments(self, value):
        if not isinstance(value, dict):
            raise serializers.ValidationError("Zahlungsraten müssen als Objekt angegeben werden.")
        missing = [key for key in INSTALLMENT_KEYS if key not in value]
        if missing:
            raise serializers.ValidationError(f"Fehlende Zahlungsraten: {', '.join(missing)}.")
        try:
            rates = {key: Decimal(str(value[key])) for key in INSTALLMENT_KEYS}
        except (InvalidOperation, TypeError, ValueError):
            raise serializers.ValidationError("Zahlungsraten müssen Zahlen sein.")
        if any(rate < 0 or rate > 100 for rate in rates.values()):
            raise serializers.ValidationError("Jede Zahlungsrate muss zwischen 0 und 100 liegen.")
        total = installment_total(value)
        if abs(total - 100) > INSTALLMENT_TOLERANCE:
            raise serializers.ValidationError(f"Die Summe der Zahlungsraten muss 100% ergeben (aktuell {total}%).")
        return {key: value[key] for key in INSTALLMENT_KEYS}


class PublicSettingsSerializer(serializers.ModelSerializer):
    class Meta:
        model = SystemSettings
        fields = [
            "company_name",
            "currency",
            "currency_symbol",
            "allow_registration",
            "maintenance_mode",
            "maintenance_message",
        ]
        read_only_fields = fields
