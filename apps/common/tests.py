import importlib.util
import logging
import logging.config
import os
import tempfile
import time
from unittest import mock

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import DatabaseError
from django.test import SimpleTestCase
from rest_framework.test import APITestCase

from apps.common.items import items_total
from apps.common.logging import SizedTimedRotatingFileHandler
from apps.common.permissions import is_admin, resolve_role

User = get_user_model()


class RotatingFileHandlerTests(SimpleTestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.path = os.path.join(self.tmp.name, "application.log")

    def make_handler(self, **kwargs):
        handler = SizedTimedRotatingFileHandler(self.path, encoding="utf-8", **kwargs)
        handler.setFormatter(logging.Formatter("%(message)s"))
        self.addCleanup(handler.close)
        return handler

    def emit(self, handler, message):
        handler.emit(logging.LogRecord("apps", logging.INFO, __file__, 1, message, None, None))

    def test_rolls_over_by_size_with_dated_names(self):
        handler = self.make_handler(maxBytes=50, backupCount=5)
        for index in range(6):
            self.emit(handler, f"Eintrag {index:02d} " + "x" * 20)

        today = time.strftime("%Y-%m-%d")
        names = sorted(os.listdir(self.tmp.name))
        self.assertIn("application.log", names)
        self.assertIn(f"application-{today}.log", names)
        self.assertIn(f"application-{today}.1.log", names)

    def test_no_size_rollover_without_cap(self):
        handler = self.make_handler()
        for index in range(20):
            self.emit(handler, f"Eintrag {index}")
        self.assertEqual(os.listdir(self.tmp.name), ["application.log"])

    def test_keeps_newest_days_only(self):
        for name in (
            "application-2024-01-01.log",
            "application-2024-01-02.log",
            "application-2024-01-02.1.log",
            "application-2024-01-03.log",
            "error-2024-01-01.log",
        ):
            open(os.path.join(self.tmp.name, name), "w").close()
        handler = self.make_handler(backupCount=2)

        expired = sorted(os.path.basename(path) for path in handler.getFilesToDelete())

        self.assertEqual(expired, ["application-2024-01-01.log"])


class ProductionLoggingTests(SimpleTestCase):
    def load_production_settings(self):
        path = settings.BASE_DIR / "config" / "settings.py"
        spec = importlib.util.spec_from_file_location("erp_production_settings", path)
        module = importlib.util.module_from_spec(spec)
        environment = {
            "DJANGO_DEBUG": "False",
            "DJANGO_SECRET_KEY": "production-" + "x" * 40,
            "LOG_DIR": str(settings.LOG_DIR),
        }
        with mock.patch.dict(os.environ, environment):
            os.environ.pop("LOG_LEVEL", None)
            spec.loader.exec_module(module)
        return module

    def test_debug_lines_reach_the_console_without_debug_mode(self):
        production = self.load_production_settings()
        self.assertFalse(production.DEBUG)
        self.assertEqual(production.LOGGING["handlers"]["console"]["level"], "DEBUG")

        self.addCleanup(logging.config.dictConfig, settings.LOGGING)
        logging.config.dictConfig(production.LOGGING)

        self.assertTrue(logging.getLogger("apps.audit.middleware").isEnabledFor(logging.DEBUG))
        self.assertTrue(logging.getLogger("apps.audit.services").isEnabledFor(logging.DEBUG))


class ItemsTotalTests(SimpleTestCase):
    def test_sum_of_quantity_times_price(self):
        items = [
            {"description": "A", "quantity": 2, "unit_price": "10.00"},
            {"description": "B", "quantity": 3, "unit_price": 0.5},
        ]
        self.assertEqual(str(items_total(items)), "21.50")

    def test_empty(self):
        self.assertEqual(str(items_total([])), "0.00")


class RoleTests(APITestCase):
    def test_role_resolution(self):
        admin = User.objects.create_user(username="admin", password="pw123456", role="admin")
        user = User.objects.create_user(username="user", password="pw123456")
        superuser = User.objects.create_superuser(username="root", password="pw123456")

        self.assertTrue(is_admin(admin))
        self.assertFalse(is_admin(user))
        self.assertEqual(resolve_role(superuser), "admin")


class ExceptionHandlerTests(APITestCase):
    def setUp(self):
        self.user = User.objects.create_user(username="user", password="pw123456")
        self.client.force_authenticate(user=self.user)

    def test_validation_payload_shape(self):
        response = self.client.post("/api/v1/customers/", {"name": ""}, format="json")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(set(response.data), {"code", "detail", "fields"})
        self.assertIn("name", response.data["fields"])

    def test_database_errors_become_storage_errors(self):
        with mock.patch("apps.customers.views.CustomerViewSet.get_queryset", side_effect=DatabaseError("down")):
            with self.assertLogs("apps.common.exceptions", level="ERROR"):
                response = self.client.get("/api/v1/customers/")

        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.data["code"], "storage_error")
