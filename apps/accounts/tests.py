from django.contrib.auth import get_user_model
from rest_framework.test import APITestCase

from apps.audit.models import LogSource, SystemLog

User = get_user_model()


class AuthApiTests(APITestCase):
    def setUp(self):
        self.user = User.objects.create_user(
            username="maria",
            password="geheim123",
            first_name="Maria",
            last_name="Muster",
            email="maria@example.de",
        )

    def test_token_login_and_current_user(self):
        response = self.client.post(
            "/api/v1/auth/token/",
            {"username": "maria", "password": "geheim123"},
            format="json",
        )
        self.assertEqual(response.status_code, 200)
        self.assertIn("access", response.data)
        self.assertIn("refresh", response.data)

        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['access']}")
        me = self.client.get("/api/v1/auth/me/")

        self.assertEqual(me.status_code, 200)
        self.assertEqual(me.data["name"], "Maria Muster")
        self.assertEqual(me.data["role"], "user")

    def test_login_request_is_audited_without_password(self):
        self.client.post("/api/v1/auth/token/", {"username": "maria", "password": "geheim123"}, format="json")

        log = SystemLog.objects.get(source=LogSource.API_REQUEST)
        self.assertEqual(log.details["body"], {"username": "maria", "password": "***"})
        self.assertEqual(log.user_id, "anonymous")

    def test_wrong_password_is_rejected(self):
        response = self.client.post(
            "/api/v1/auth/token/",
            {"username": "maria", "password": "falsch"},
            format="json",
        )
        self.assertEqual(response.status_code, 401)
        self.assertTrue(SystemLog.objects.filter(source=LogSource.API_RESPONSE, level="warning").exists())

    def test_current_user_requires_login(self):
        self.assertEqual(self.client.get("/api/v1/auth/me/").status_code, 401)
