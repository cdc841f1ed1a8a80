from datetime import datetime, timedelta

from django.contrib.auth import get_user_model
from django.test import SimpleTestCase
from django.utils import timezone
from rest_framework.test import APITestCase

from apps.audit.models import SystemLog
from apps.system.models import get_or_create_settings
from apps.timetracking.models import TimeEntry, round_to_interval

User = get_user_model()


class RoundToIntervalTests(SimpleTestCase):
    def test_rounds_up_to_full_interval(self):
        self.assertEqual(round_to_interval(50, 15), 60)
        self.assertEqual(round_to_interval(1, 15), 15)
        self.assertEqual(round_to_interval(45, 15), 45)
        self.assertEqual(round_to_interval(0, 15), 0)

    def test_non_positive_interval_keeps_minutes(self):
        self.assertEqual(round_to_interval(7, 0), 7)


class TimeEntryApiTests(APITestCase):
    def setUp(self):
        self.user = User.objects.create_user(username="user", password="user123")
        self.other = User.objects.create_user(username="other", password="other123")
        self.start = timezone.make_aware(datetime(2024, 5, 6, 9, 0))
        self.client.force_authenticate(user=self.user)

    def create_entry(self, minutes=50, **overrides):
        payload = {
            "description": "Konzeption",
            "start_time": self.start.isoformat(),
            "end_time": (self.start + timedelta(minutes=minutes)).isoformat(),
        }
        payload.update(overrides)
        return self.client.post("/api/v1/time-entries/", payload, format="json")

    def test_billing_uses_settings_defaults(self):
        response = self.create_entry()

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["user"], self.user.id)
        self.assertEqual(response.data["duration"], 50)
        self.assertEqual(response.data["billable_duration"], 60)
        self.assertEqual(response.data["hourly_rate"], "100.00")
        self.assertEqual(response.data["amount"], "100.00")

    def test_explicit_rate_and_changed_interval(self):
        settings = get_or_create_settings()
        settings.billing_interval = 30
        settings.save()

        response = self.create_entry(minutes=20, hourly_rate="90.00")

        self.assertEqual(response.data["billable_duration"], 30)
        self.assertEqual(response.data["amount"], "45.00")

    def test_end_must_follow_start(self):
        response = self.create_entry(minutes=0)

        self.assertEqual(response.status_code, 400)
        self.assertIn("end_time", response.data["fields"])
        self.assertFalse(TimeEntry.objects.exists())

    def test_update_recomputes_and_logs(self):
        entry_id = self.create_entry().data["id"]

        response = self.client.patch(
            f"/api/v1/time-entries/{entry_id}/",
            {"end_time": (self.start + timedelta(minutes=95)).isoformat()},
            format="json",
        )

        self.assertEqual(response.data["duration"], 95)
        self.assertEqual(response.data["billable_duration"], 105)
        self.assertEqual(response.data["amount"], "175.00")
        log = SystemLog.objects.get(action="update", entity="time_entry")
        self.assertEqual(log.changes["duration"], {"old": 50, "new": 95})

    def test_list_filters(self):
        self.create_entry()
        TimeEntry.objects.create(
            user=self.other,
            description="Fremd",
            start_time=self.start,
            end_time=self.start + timedelta(minutes=30),
        )
        billed = TimeEntry.objects.create(
            user=self.user,
            description="Alt",
            start_time=self.start - timedelta(days=10),
            end_time=self.start - timedelta(days=10) + timedelta(minutes=30),
            billed=True,
        )

        all_entries = self.client.get("/api/v1/time-entries/")
        self.assertEqual(all_entries.data["count"], 2)

        unbilled = self.client.get("/api/v1/time-entries/", {"billed": "false"})
        self.assertEqual([item["description"] for item in unbilled.data["results"]], ["Konzeption"])

        recent = self.client.get("/api/v1/time-entries/", {"date_to": "2024-05-01"})
        self.assertEqual([item["id"] for item in recent.data["results"]], [billed.id])

    def test_billed_entry_cannot_be_deleted(self):
        entry = TimeEntry.objects.create(
            user=self.user,
            description="Abgerechnet",
            start_time=self.start,
            end_time=self.start + timedelta(minutes=30),
            billed=True,
        )

        response = self.client.delete(f"/api/v1/time-entries/{entry.id}/")

        self.assertEqual(response.status_code, 400)
        self.assertTrue(TimeEntry.objects.filter(pk=entry.id).exists())

    def test_unbilled_entry_delete_is_logged(self):
        entry_id = self.create_entry().data["id"]

        response = self.client.delete(f"/api/v1/time-entries/{entry_id}/")

        self.assertEqual(response.status_code, 204)
        log = SystemLog.objects.get(action="delete", entity="time_entry")
        self.assertEqual(log.message, f"Zeiteintrag {entry_id} wurde gelöscht")
