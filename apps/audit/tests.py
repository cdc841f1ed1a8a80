import copy
import json
import tempfile
from datetime import timedelta
from pathlib import Path
from unittest import mock

from django.contrib.auth import get_user_model
from django.core.exceptions import PermissionDenied
from django.db import DatabaseError
from django.test import SimpleTestCase, TestCase, override_settings
from django.utils import timezone
from kombu.exceptions import OperationalError
from rest_framework.test import APITestCase

from apps.audit.diff import compute_changes, diff_snapshots, snapshot
from apps.audit.models import LogLevel, LogSource, SystemLog
from apps.audit.rendering import describe_change, readable_message, render
from apps.audit.services import record_log, record_log_async, sanitize_payload
from apps.audit.tasks import write_system_log
from apps.customers.models import Customer

User = get_user_model()


class RenderingTests(SimpleTestCase):
    def log(self, changes, message="Auftrag A-1 wurde aktualisiert"):
        return SystemLog(
            timestamp=timezone.now(),
            level=LogLevel.INFO,
            message=message,
            user_name="Admin",
            changes=changes,
        )

    def test_status_clause(self):
        log = self.log({"status": {"old": "neu", "new": "abgeschlossen"}})
        self.assertEqual(
            readable_message(log),
            'Auftrag A-1 wurde aktualisiert: Status von "neu" zu "abgeschlossen" geändert',
        )

    def test_assignment_clauses(self):
        self.assertEqual(describe_change("assigned_to", {"old": None, "new": 4}), "Zuständigkeit hinzugefügt")
        self.assertEqual(describe_change("assigned_to", {"old": 4, "new": None}), "Zuständigkeit entfernt")
        self.assertEqual(describe_change("assignedTo", {"old": 4, "new": 5}), "Zuständigkeit geändert")

    def test_money_clause(self):
        self.assertEqual(
            describe_change("total_amount", {"old": "20.00", "new": "30.00"}),
            "Gesamtbetrag von 20.00 € auf 30.00 € geändert",
        )
        self.assertEqual(
            describe_change("taxAmount", {"old": 1, "new": 2}),
            "Steuerbetrag von 1 € auf 2 € geändert",
        )

    def test_list_length_change_uses_count_clause(self):
        clause = describe_change("items", {"old": ["a"], "new": ["a", "b"]})
        self.assertEqual(clause, "Anzahl der items von 1 auf 2 geändert")

    def test_same_length_list_change_falls_back_to_default_clause(self):
        clause = describe_change("items", {"old": ["a", "b"], "new": ["x", "y"]})
        self.assertNotIn("Anzahl der", clause)
        self.assertEqual(clause, "items geändert")

    def test_clauses_are_joined_in_order(self):
        log = self.log(
            {
                "status": {"old": "neu", "new": "in Bearbeitung"},
                "description": {"old": "alt", "new": "neu"},
            }
        )
        self.assertEqual(
            readable_message(log),
            'Auftrag A-1 wurde aktualisiert: Status von "neu" zu "in Bearbeitung" geändert, description geändert',
        )

    def test_message_without_changes_is_unchanged(self):
        self.assertEqual(readable_message(self.log({}, message="Kunde angelegt")), "Kunde angelegt")

    def test_render_is_pure(self):
        changes = {"items": {"old": [{"quantity": 1}], "new": [{"quantity": 1}, {"quantity": 2}]}}
        log = self.log(changes)
        stored = copy.deepcopy(log.changes)

        first = render(log)
        second = render(log)

        self.assertEqual(first, second)
        self.assertEqual(log.changes, stored)
        self.assertEqual(
            set(first),
            {"id", "timestamp", "level", "message", "user_name", "source", "module", "action", "entity"},
        )


class DiffTests(TestCase):
    def test_single_field_difference_yields_single_key(self):
        old = {"name": "Alpha", "city": "Berlin", "notes": ""}
        new = {"name": "Alpha", "city": "Hamburg", "notes": ""}

        log = compute_changes("customer", 7, "Kunde Alpha", old, new, 1, "Admin")

        self.assertEqual(log.changes, {"city": {"old": "Berlin", "new": "Hamburg"}})
        self.assertEqual(log.module, "customers")
        self.assertEqual(log.action, "update")
        self.assertEqual(log.entity, "customer")
        self.assertEqual(log.entity_id, "7")
        self.assertEqual(log.message, "Kunde Alpha wurde aktualisiert")
        self.assertEqual(log.source, LogSource.DATA_OPERATION)

    def test_identical_snapshots_write_nothing(self):
        data = {"name": "Alpha", "items": [{"quantity": 1}]}
        self.assertIsNone(compute_changes("order", 1, "Auftrag", data, copy.deepcopy(data), 1, "Admin"))
        self.assertEqual(SystemLog.objects.count(), 0)

    def test_bookkeeping_keys_are_ignored(self):
        old = {"id": 1, "updated_at": "2024-01-01", "name": "A"}
        new = {"id": 2, "updated_at": "2024-02-01", "name": "A"}
        self.assertEqual(diff_snapshots(old, new), {})

    def test_reordered_list_counts_as_change(self):
        changes = diff_snapshots({"tags": ["a", "b"]}, {"tags": ["b", "a"]})
        self.assertEqual(changes, {"tags": {"old": ["a", "b"], "new": ["b", "a"]}})

    def test_key_order_inside_values_is_not_a_change(self):
        self.assertEqual(diff_snapshots({"meta": {"a": 1, "b": 2}}, {"meta": {"b": 2, "a": 1}}), {})

    def test_snapshot_of_model_instance(self):
        owner = User.objects.create_user(username="owner", password="pw123456")
        customer = Customer.objects.create(name="Alpha GmbH", city="Berlin", created_by=owner)

        data = snapshot(customer, exclude=["created_by"])

        self.assertEqual(data["name"], "Alpha GmbH")
        self.assertEqual(data["city"], "Berlin")
        self.assertNotIn("created_by", data)


class SystemLogStoreTests(TestCase):
    def test_debug_records_reach_transport_only(self):
        with self.assertLogs("apps.audit.services", level="DEBUG") as captured:
            result = record_log(level=LogLevel.DEBUG, message="Debug-Detail")

        self.assertIsNone(result)
        self.assertTrue(any("Debug-Detail" in line for line in captured.output))
        self.assertFalse(SystemLog.objects.exists())

    def test_records_are_immutable(self):
        log = record_log(message="Kunde angelegt")
        log.message = "geändert"
        with self.assertRaises(PermissionDenied):
            log.save()
        with self.assertRaises(PermissionDenied):
            log.delete()
        self.assertEqual(SystemLog.objects.get(pk=log.pk).message, "Kunde angelegt")

    def test_message_is_required(self):
        with self.assertRaises(ValueError):
            SystemLog.objects.create(message="  ")

    def test_defaults(self):
        log = record_log(message="Hallo")
        self.assertEqual(log.source, LogSource.BUSINESS_EVENT)
        self.assertEqual(log.user_name, "System")
        self.assertEqual(log.module, "general")
        self.assertEqual(log.changes, {})

    def test_queued_write_failure_is_logged_not_raised(self):
        with self.assertLogs("apps.audit.services", level="ERROR") as captured:
            record_log_async(message="")
        self.assertIn("Failed to write system log", captured.output[0])
        self.assertFalse(SystemLog.objects.exists())


class AuditTaskDispatchTests(TestCase):
    def test_records_are_queued_on_the_task(self):
        with mock.patch.object(write_system_log, "delay") as delay:
            record_log_async(message="Hintergrund", module="customers")

        delay.assert_called_once()
        fields = delay.call_args.args[0]
        self.assertEqual(fields["message"], "Hintergrund")
        self.assertEqual(fields["module"], "customers")
        self.assertIn("timestamp", fields)

    def test_broker_outage_stays_in_transport_log(self):
        with mock.patch.object(write_system_log, "delay", side_effect=OperationalError("broker down")):
            with self.assertLogs("apps.audit.services", level="ERROR") as captured:
                self.assertIsNone(record_log_async(message="Hintergrund"))

        self.assertIn("Failed to queue system log", captured.output[0])
        self.assertFalse(SystemLog.objects.exists())

    def test_task_persists_record_with_given_timestamp(self):
        moment = timezone.now() - timedelta(minutes=5)

        write_system_log.delay({"message": "Verzögert", "timestamp": moment.isoformat()})

        log = SystemLog.objects.get(message="Verzögert")
        self.assertEqual(log.timestamp, moment)

    def test_task_failures_are_logged(self):
        with mock.patch("apps.audit.services.record_log", side_effect=DatabaseError("down")):
            with self.assertLogs("apps.audit.services", level="ERROR"):
                write_system_log.delay({"message": "Hintergrund"})


class SanitizeTests(SimpleTestCase):
    def test_sensitive_keys_are_masked_recursively(self):
        payload = {
            "username": "anna",
            "password": "geheim",
            "profile": {"currentPassword": "a", "new_password": "b", "city": "Köln"},
            "tokens": [{"token": "abc"}],
        }
        self.assertEqual(
            sanitize_payload(payload),
            {
                "username": "anna",
                "password": "***",
                "profile": {"currentPassword": "***", "new_password": "***", "city": "Köln"},
                "tokens": [{"token": "***"}],
            },
        )


class SystemLogApiTests(APITestCase):
    def setUp(self):
        self.admin = User.objects.create_user(username="admin", password="admin123", role="admin")
        self.user = User.objects.create_user(username="user", password="user123", role="user")
        self.client.force_authenticate(user=self.admin)

    def make_log(self, message="Kunde angelegt", **fields):
        return SystemLog.objects.create(message=message, **fields)

    def test_logs_are_admin_only(self):
        self.client.force_authenticate(user=self.user)
        self.assertEqual(self.client.get("/api/v1/logs/").status_code, 403)
        self.assertEqual(self.client.post("/api/v1/logs/delete/", {}, format="json").status_code, 403)

    def test_list_defaults_to_business_events(self):
        self.make_log("Kunde angelegt", source=LogSource.DATA_OPERATION)
        self.make_log("POST /api/v1/customers/", source=LogSource.API_REQUEST)
        self.make_log("GET /api/v1/x/ - Status: 404", source=LogSource.API_RESPONSE, level=LogLevel.WARNING)

        response = self.client.get("/api/v1/logs/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["total"], 1)
        sources = {item["source"] for item in response.data["results"]}
        self.assertEqual(sources, {LogSource.DATA_OPERATION})

        explicit = self.client.get("/api/v1/logs/", {"source": LogSource.API_REQUEST})
        self.assertEqual(explicit.data["total"], 1)
        self.assertEqual(explicit.data["results"][0]["source"], LogSource.API_REQUEST)

    def test_list_filters_and_pagination(self):
        for index in range(5):
            self.make_log(f"Auftrag {index} angelegt", module="orders", action="create", user_id=str(self.admin.pk))
        self.make_log("Kunde angelegt", module="customers", action="create", entity="null")

        response = self.client.get("/api/v1/logs/", {"module": "orders", "page": 2, "limit": 2})

        self.assertEqual(response.data["total"], 5)
        self.assertEqual(response.data["page"], 2)
        self.assertEqual(response.data["total_pages"], 3)
        self.assertEqual(response.data["count"], 2)
        self.assertEqual(response.data["filters"]["modules"], ["customers", "orders"])
        self.assertNotIn("null", response.data["filters"]["entities"])

        searched = self.client.get("/api/v1/logs/", {"search": "KUNDE"})
        self.assertEqual(searched.data["total"], 1)

        by_user = self.client.get("/api/v1/logs/", {"user": str(self.admin.pk)})
        self.assertEqual(by_user.data["total"], 5)

    def test_list_date_range_accepts_plain_dates(self):
        old = self.make_log("Alt", timestamp=timezone.now() - timedelta(days=10))
        recent = self.make_log("Neu")
        today = timezone.localdate().isoformat()

        response = self.client.get("/api/v1/logs/", {"startDate": today, "endDate": today})

        ids = {item["id"] for item in response.data["results"]}
        self.assertIn(str(recent.pk), ids)
        self.assertNotIn(str(old.pk), ids)

    def test_list_renders_readable_messages(self):
        self.make_log(
            "Auftrag A-1 wurde aktualisiert",
            changes={"status": {"old": "neu", "new": "abgeschlossen"}},
            source=LogSource.DATA_OPERATION,
        )
        response = self.client.get("/api/v1/logs/")
        self.assertEqual(
            response.data["results"][0]["message"],
            'Auftrag A-1 wurde aktualisiert: Status von "neu" zu "abgeschlossen" geändert',
        )

    def test_detail_includes_stored_record_and_rendering(self):
        log = self.make_log("Kunde aktualisiert", changes={"city": {"old": "A", "new": "B"}})

        response = self.client.get(f"/api/v1/logs/{log.pk}/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["message"], "Kunde aktualisiert")
        self.assertEqual(response.data["changes"], {"city": {"old": "A", "new": "B"}})
        self.assertEqual(response.data["readable"]["message"], "Kunde aktualisiert: city geändert")

    def test_manual_create(self):
        response = self.client.post(
            "/api/v1/logs/",
            {"message": "Wartung gestartet", "source": LogSource.SYSTEM_MAINTENANCE, "module": "system"},
            format="json",
        )

        self.assertEqual(response.status_code, 201)
        log = SystemLog.objects.get(pk=response.data["id"])
        self.assertEqual(log.user_id, str(self.admin.pk))
        self.assertEqual(log.level, LogLevel.INFO)
        self.assertEqual(log.source, LogSource.SYSTEM_MAINTENANCE)

    def test_manual_create_requires_message(self):
        response = self.client.post("/api/v1/logs/", {"level": "info"}, format="json")
        self.assertEqual(response.status_code, 400)
        self.assertIn("message", response.data["fields"])

    def test_manual_debug_record_is_not_persisted(self):
        with self.assertLogs("apps.audit.services", level="DEBUG") as captured:
            response = self.client.post("/api/v1/logs/", {"message": "Nur Debug", "level": "debug"}, format="json")

        self.assertEqual(response.status_code, 202)
        self.assertEqual(response.data, {"persisted": False})
        self.assertTrue(any("Nur Debug" in line for line in captured.output))
        self.assertFalse(SystemLog.objects.filter(message="Nur Debug").exists())
        listing = self.client.get("/api/v1/logs/", {"search": "Nur Debug"})
        self.assertEqual(listing.data["total"], 0)

    def test_stats(self):
        self.make_log("Kunde angelegt", module="customers", action="create", source=LogSource.DATA_OPERATION)
        self.make_log("Kunde gelöscht", module="customers", action="delete", source=LogSource.DATA_OPERATION)
        self.make_log("Boom", level=LogLevel.ERROR, module="orders", action="create")
        self.make_log("POST /x/", source=LogSource.API_REQUEST)
        self.make_log("Uralt", timestamp=timezone.now() - timedelta(days=40))

        response = self.client.get("/api/v1/logs/stats/", {"days": 7})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["level_stats"], {"info": 2, "warning": 0, "error": 1, "debug": 0})
        chart = response.data["chart_data"]
        self.assertEqual(len(chart), 8)
        self.assertEqual(chart[-1]["date"], timezone.localdate().isoformat())
        self.assertEqual(chart[-1]["info"], 2)
        self.assertEqual(chart[0]["info"], 0)
        self.assertEqual(response.data["top_modules"][0], {"module": "customers", "count": 2})
        self.assertEqual(response.data["top_errors"], [{"message": "Boom", "count": 1}])

    def test_export_csv(self):
        self.make_log('Kunde "Müller" angelegt', user_name="Anna", module="customers", ip_address="10.0.0.1")

        response = self.client.get("/api/v1/logs/export/", {"format": "csv"})

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response["Content-Type"].startswith("text/csv"))
        self.assertRegex(response["Content-Disposition"], r"^attachment; filename=systemlogs_\d{4}-\d{2}-\d{2}\.csv$")
        lines = response.content.decode("utf-8").splitlines()
        self.assertEqual(
            lines[0],
            "Zeitstempel,Level,Meldung,Benutzer,Modul,Aktion,Entität,Entitäts-ID,Quelle,IP-Adresse",
        )
        self.assertIn('"Kunde ""Müller"" angelegt"', lines[1])
        self.assertTrue(lines[1].endswith(",business_event,10.0.0.1"))

    def test_export_json(self):
        self.make_log("Kunde angelegt")

        response = self.client.get("/api/v1/logs/export/", {"format": "json", "search": "kunde"})

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response["Content-Disposition"].endswith(".json"))
        payload = json.loads(response.content)
        self.assertEqual(payload["count"], 1)
        self.assertEqual(payload["filters"], {"search": "kunde"})
        self.assertRegex(payload["logs"][0]["formatted_timestamp"], r"^\d{2}\.\d{2}\.\d{4}, \d{2}:\d{2}:\d{2}$")
        self.assertIn("exported_at", payload)

    def test_bulk_delete_requires_date_range(self):
        self.make_log("Kunde angelegt")

        response = self.client.post("/api/v1/logs/delete/", {"level": "info", "confirm": "true"}, format="json")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["code"], "validation_error")
        self.assertEqual(SystemLog.objects.count(), 1)

    def test_bulk_delete_without_confirmation_reports_count(self):
        self.make_log("Eins", timestamp=timezone.now() - timedelta(days=5))
        self.make_log("Zwei", timestamp=timezone.now() - timedelta(days=4))
        self.make_log("Heute")
        end = (timezone.localdate() - timedelta(days=2)).isoformat()

        response = self.client.post("/api/v1/logs/delete/", {"endDate": end}, format="json")

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.data["code"], "confirmation_required")
        self.assertEqual(response.data["count"], 2)
        self.assertEqual(SystemLog.objects.count(), 3)

        not_literal = self.client.post("/api/v1/logs/delete/", {"endDate": end, "confirm": "yes"}, format="json")
        self.assertEqual(not_literal.status_code, 409)
        self.assertEqual(SystemLog.objects.count(), 3)

    def test_bulk_delete_with_no_matches(self):
        start = (timezone.localdate() - timedelta(days=30)).isoformat()
        end = (timezone.localdate() - timedelta(days=20)).isoformat()

        response = self.client.post(
            "/api/v1/logs/delete/",
            {"startDate": start, "endDate": end, "confirm": "true"},
            format="json",
        )

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data["code"], "not_found")

    def test_confirmed_bulk_delete_appends_one_record(self):
        self.make_log("Eins", timestamp=timezone.now() - timedelta(days=5))
        self.make_log("Request", source=LogSource.API_REQUEST, timestamp=timezone.now() - timedelta(days=5))
        kept = self.make_log("Heute")
        end = (timezone.localdate() - timedelta(days=2)).isoformat()

        response = self.client.post("/api/v1/logs/delete/", {"endDate": end, "confirm": "true"}, format="json")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["deleted_count"], 2)
        remaining = SystemLog.objects.all()
        self.assertEqual(remaining.count(), 2)
        self.assertTrue(remaining.filter(pk=kept.pk).exists())
        record = remaining.exclude(pk=kept.pk).get()
        self.assertEqual(record.level, LogLevel.WARNING)
        self.assertEqual(record.source, LogSource.ADMIN_ACTION)
        self.assertEqual((record.module, record.action, record.entity), ("system", "delete", "logs"))
        self.assertEqual(record.details["deleted_count"], 2)
        self.assertIn("endDate", record.details["filter"])


class LogFileApiTests(APITestCase):
    def setUp(self):
        self.admin = User.objects.create_user(username="admin", password="admin123", role="admin")
        self.client.force_authenticate(user=self.admin)
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        directory = Path(self.tmp.name)
        (directory / "application.log").write_text("\n".join(f"Zeile {i}" for i in range(1, 21)) + "\n")
        (directory / "notes.txt").write_text("kein Log")
        override = override_settings(LOG_DIR=directory)
        override.enable()
        self.addCleanup(override.disable)

    def test_list_files(self):
        response = self.client.get("/api/v1/logs/files/")

        self.assertEqual(response.status_code, 200)
        names = [item["name"] for item in response.data["files"]]
        self.assertEqual(names, ["application.log"])
        self.assertGreater(response.data["files"][0]["size"], 0)

    def test_read_tail(self):
        response = self.client.get("/api/v1/logs/files/application.log/", {"lines": 3})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["lines"], ["Zeile 18", "Zeile 19", "Zeile 20"])

    def test_rejects_non_log_names(self):
        response = self.client.get("/api/v1/logs/files/notes.txt/")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["code"], "validation_error")

        traversal = self.client.get("/api/v1/logs/files/..secret.log/")
        self.assertEqual(traversal.status_code, 400)

    def test_missing_file(self):
        response = self.client.get("/api/v1/logs/files/error.log/")
        self.assertEqual(response.status_code, 404)


class RequestLoggingMiddlewareTests(APITestCase):
    def setUp(self):
        self.user = User.objects.create_user(username="anna", password="anna12345", role="user")
        self.client.force_authenticate(user=self.user)

    def test_mutating_request_is_audited_with_masked_body(self):
        response = self.client.post(
            "/api/v1/customers/",
            {"name": "Alpha GmbH", "password": "geheim", "nested": {"token": "abc"}},
            format="json",
        )

        self.assertEqual(response.status_code, 201)
        record = SystemLog.objects.get(source=LogSource.API_REQUEST)
        self.assertEqual(record.message, "POST /api/v1/customers/")
        self.assertEqual(record.user_id, str(self.user.pk))
        self.assertEqual(record.module, "customers")
        self.assertEqual(record.details["body"]["password"], "***")
        self.assertEqual(record.details["body"]["nested"]["token"], "***")
        self.assertEqual(record.details["body"]["name"], "Alpha GmbH")

    def test_read_requests_are_not_audited(self):
        self.client.get("/api/v1/customers/")
        self.assertFalse(SystemLog.objects.filter(source=LogSource.API_REQUEST).exists())

    def test_failed_response_is_audited(self):
        response = self.client.get("/api/v1/customers/999999/")

        self.assertEqual(response.status_code, 404)
        record = SystemLog.objects.get(source=LogSource.API_RESPONSE)
        self.assertEqual(record.level, LogLevel.WARNING)
        self.assertEqual(record.message, "GET /api/v1/customers/999999/ - Status: 404")
        self.assertEqual(record.details["status_code"], 404)

    def test_anonymous_failures_are_attributed(self):
        self.client.force_authenticate(user=None)
        response = self.client.post("/api/v1/customers/", {"name": "X"}, format="json")

        self.assertEqual(response.status_code, 401)
        record = SystemLog.objects.get(source=LogSource.API_RESPONSE)
        self.assertEqual(record.user_id, "anonymous")

    def test_excluded_paths_leave_no_records(self):
        self.assertEqual(self.client.get("/health/").status_code, 200)
        self.client.get("/api/v1/settings/public/")
        self.client.post("/api/v1/settings/public/", {}, format="json")
        self.assertFalse(SystemLog.objects.exists())

    def test_logs_api_is_not_audited(self):
        self.client.post("/api/v1/logs/", {"message": "Manuell"}, format="json")
        self.assertFalse(SystemLog.objects.filter(source__in=[LogSource.API_REQUEST, LogSource.API_RESPONSE]).exists())

    def test_request_id_header(self):
        response = self.client.get("/health/", HTTP_X_REQUEST_ID="abc123")
        self.assertEqual(response["X-Request-ID"], "abc123")

    def test_request_record_precedes_the_records_written_by_the_view(self):
        self.client.post("/api/v1/customers/", {"name": "Alpha GmbH"}, format="json")

        request_record = SystemLog.objects.get(source=LogSource.API_REQUEST)
        created = SystemLog.objects.get(source=LogSource.DATA_OPERATION, action="create")
        self.assertLess(request_record.timestamp, created.timestamp)


class TransportLevelTests(APITestCase):
    def setUp(self):
        self.user = User.objects.create_user(username="anna", password="anna12345", role="user")
        self.client.force_authenticate(user=self.user)

    def transport(self, method, path, **kwargs):
        with self.assertLogs("apps.audit.middleware", level="DEBUG") as captured:
            response = getattr(self.client, method)(path, **kwargs)
        return response, [(record.levelname, record.getMessage()) for record in captured.records]

    def test_get_lines_are_debug(self):
        response, lines = self.transport("get", "/api/v1/customers/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(lines[0], ("DEBUG", "GET /api/v1/customers/"))
        self.assertEqual(lines[1][0], "DEBUG")
        self.assertTrue(lines[1][1].startswith("GET /api/v1/customers/ -> 200"))

    def test_mutating_lines_are_info(self):
        response, lines = self.transport("post", "/api/v1/customers/", data={"name": "Alpha GmbH"}, format="json")

        self.assertEqual(response.status_code, 201)
        self.assertEqual(lines[0], ("INFO", "POST /api/v1/customers/"))
        self.assertEqual(lines[1][0], "INFO")
        self.assertTrue(lines[1][1].startswith("POST /api/v1/customers/ -> 201"))

    def test_client_errors_are_warnings(self):
        response, lines = self.transport("get", "/api/v1/customers/999999/")

        self.assertEqual(response.status_code, 404)
        self.assertEqual(lines[-1][0], "WARNING")
        self.assertTrue(lines[-1][1].startswith("GET /api/v1/customers/999999/ -> 404"))

    def test_server_errors_are_errors_in_both_sinks(self):
        with mock.patch("apps.customers.views.CustomerViewSet.get_queryset", side_effect=DatabaseError("down")):
            response, lines = self.transport("get", "/api/v1/customers/")

        self.assertEqual(response.status_code, 503)
        self.assertEqual(lines[-1][0], "ERROR")
        self.assertTrue(lines[-1][1].startswith("GET /api/v1/customers/ -> 503"))
        record = SystemLog.objects.get(source=LogSource.API_RESPONSE)
        self.assertEqual(record.level, LogLevel.ERROR)
        self.assertEqual(record.message, "GET /api/v1/customers/ - Status: 503")
