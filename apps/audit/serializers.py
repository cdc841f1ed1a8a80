from datetime import datetime, time

from django.utils import timezone
from django.utils.dateparse import parse_date
from rest_framework import serializers

from apps.audit.models import LogLevel, LogSource, SystemLog
from apps.audit.rendering import render


class FlexibleDateTimeField(serializers.DateTimeField):
    """
    Accepts a full timestamp or a plain ``YYYY-MM-DD`` date. A plain date is
    widened to the start of that day, or to its end with ``end_of_day=True``.
    """

    def __init__(self, *args, end_of_day=False, **kwargs):
        self.end_of_day = end_of_day
        super().__init__(*args, **kwargs)

    def to_internal_value(self, value):
        if isinstance(value, str) and len(value.strip()) == 10:
            day = parse_date(value.strip())
            if day is not None:
                moment = datetime.combine(day, time.max if self.end_of_day else time.min)
                return timezone.make_aware(moment, timezone.get_current_timezone())
        return super().to_internal_value(value)


class LogFilterSerializer(serializers.Serializer):
    source = serializers.ChoiceField(choices=LogSource.choices, required=False)
    level = serializers.ChoiceField(choices=LogLevel.choices, required=False)
    user = serializers.CharField(required=False)
    module = serializers.CharField(required=False)
    action = serializers.CharField(required=False)
    entity = serializers.CharField(required=False)
    search = serializers.CharField(required=False)
    startDate = FlexibleDateTimeField(required=False)
    endDate = FlexibleDateTimeField(required=False, end_of_day=True)

    def validate(self, attrs):
        start, end = attrs.get("startDate"), attrs.get("endDate")
        if start and end and start > end:
            raise serializers.ValidationError({"startDate": "startDate muss vor oder gleich endDate liegen."})
        return attrs


class LogListQuerySerializer(LogFilterSerializer):
    page = serializers.IntegerField(required=False, min_value=1, default=1)
    limit = serializers.IntegerField(required=False, min_value=1, max_value=1000, default=100)


class LogExportQuerySerializer(LogFilterSerializer):
    format = serializers.ChoiceField(choices=["csv", "json"], required=False, default="csv")


class LogStatsQuerySerializer(serializers.Serializer):
    days = serializers.IntegerField(required=False, min_value=1, max_value=365, default=30)


class LogDeleteSerializer(serializers.Serializer):
    startDate = FlexibleDateTimeField(required=False)
    endDate = FlexibleDateTimeField(required=False, end_of_day=True)
    level = serializers.ChoiceField(choices=LogLevel.choices, required=False)
    user = serializers.CharField(required=False)
    module = serializers.CharField(required=False)
    source = serializers.ChoiceField(choices=LogSource.choices, required=False)


class LogFileQuerySerializer(serializers.Serializer):
    lines = serializers.IntegerField(required=False, min_value=1, max_value=100000)


class SystemLogSerializer(serializers.ModelSerializer):
    readable = serializers.SerializerMethodField()

    class Meta:
        model = SystemLog
        fields = [
            "id",
            "timestamp",
            "level",
            "message",
            "user_id",
            "user_name",
            "module",
            "action",
            "entity",
            "entity_id",
            "changes",
            "details",
            "source",
            "ip_address",
            "readable",
        ]
        read_only_fields = fields

    def get_readable(self, obj):
        return render(obj)


class SystemLogCreateSerializer(serializers.Serializer):
    level = serializers.ChoiceField(choices=LogLevel.choices, required=False, default=LogLevel.INFO)
    message = serializers.CharField()
    module = serializers.CharField(required=False, default="general")
    action = serializers.CharField(required=False, default="general")
    entity = serializers.CharField(required=False, allow_null=True, default=None)
    entity_id = serializers.CharField(required=False, allow_null=True, default=None)
    changes = serializers.DictField(required=False, default=dict)
    details = serializers.DictField(required=False, default=dict)
    source = serializers.ChoiceField(choices=LogSource.choices, required=False, default=LogSource.BUSINESS_EVENT)

    def validate_message(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("message is required")
        return value

    def validate_changes(self, value):
        for field, change in value.items():
            if not isinstance(change, dict) or "old" not in change or "new" not in change:
                raise serializers.ValidationError(f"{field}: expected an object with old and new")
        return value
