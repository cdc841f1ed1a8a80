import uuid

import django.core.serializers.json
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="SystemLog",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("timestamp", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "level",
                    models.CharField(
                        choices=[("info", "Info"), ("warning", "Warning"), ("error", "Error"), ("debug", "Debug")],
                        default="info",
                        max_length=16,
                    ),
                ),
                ("message", models.TextField()),
                ("user_id", models.CharField(default="System", max_length=80)),
                ("user_name", models.CharField(default="System", max_length=255)),
                ("module", models.CharField(default="general", max_length=80)),
                ("action", models.CharField(default="general", max_length=80)),
                ("entity", models.CharField(blank=True, max_length=80, null=True)),
                ("entity_id", models.CharField(blank=True, max_length=80, null=True)),
                (
                    "changes",
                    models.JSONField(blank=True, default=dict, encoder=django.core.serializers.json.DjangoJSONEncoder),
                ),
                (
                    "details",
                    models.JSONField(blank=True, default=dict, encoder=django.core.serializers.json.DjangoJSONEncoder),
                ),
                ("source", models.CharField(default="business_event", max_length=40)),
                ("ip_address", models.CharField(blank=True, default="", max_length=64)),
            ],
            options={
                "ordering": ["-timestamp"],
                "indexes": [
                    models.Index(fields=["-timestamp"], name="syslog_timestamp_idx"),
                    models.Index(fields=["level", "-timestamp"], name="syslog_level_ts_idx"),
                    models.Index(fields=["user_id"], name="syslog_user_idx"),
                    models.Index(fields=["entity", "entity_id"], name="syslog_entity_idx"),
                    models.Index(fields=["module", "action"], name="syslog_module_action_idx"),
                    models.Index(fields=["source"], name="syslog_source_idx"),
                ],
            },
        ),
    ]
