from unittest import mock

from django.db import OperationalError
from rest_framework.test import APITestCase


class HealthTests(APITestCase):
    def test_ok(self):
        response = self.client.get("/health/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["status"], "ok")
        self.assertTrue(response.data["database"])

    def test_degraded_when_database_is_unreachable(self):
        with mock.patch("apps.health.views.connection") as connection:
            connection.cursor.side_effect = OperationalError("down")
            with self.assertLogs("apps.health.views", level="ERROR"):
                response = self.client.get("/health/")

        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.data["status"], "degraded")
