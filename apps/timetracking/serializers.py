from django.contrib.auth import get_user_model
from rest_framework import serializers

from apps.common.permissions import is_admin
from apps.timetracking.models import TimeEntry

User = get_user_model()


class TimeEntrySerializer(serializers.ModelSerializer):
    assigned_to = serializers.PrimaryKeyRelatedField(queryset=User.objects.all(), allow_null=True, required=False)
    order_number = serializers.CharField(source="order.order_number", read_only=True, default=None)

    class Meta:
        model = TimeEntry
        fields = [
            "id",
            "user",
            "assigned_to",
            "order",
            "order_number",
            "description",
            "start_time",
            "end_time",
            "duration",
            "billable_duration",
            "hourly_rate",
            "amount",
            "billed",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "user", "duration", "billable_duration", "amount", "created_at", "updated_at"]

    def validate_description(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Bitte geben Sie eine Beschreibung an.")
        return value

    def validate_hourly_rate(self, value):
        if value is not None and value < 0:
            raise serializers.ValidationError("Stundensatz kann nicht negativ sein.")
        return value

    def validate_order(self, value):
        user = self.context["request"].user
        if value is not None and not is_admin(user) and user.id not in (value.created_by_id, value.assigned_to_id):
            raise serializers.ValidationError("Auftrag gehört nicht zu Ihren Aufträgen.")
        return value

    def validate(self, attrs):
        start_time = attrs.get("start_time", getattr(self.instance, "start_time", None))
        end_time = attrs.get("end_time", getattr(self.instance, "end_time", None))
        if start_time and end_time and end_time <= start_time:
            raise serializers.ValidationError({"end_time": "Endzeit muss nach der Startzeit liegen."})
        return attrs
