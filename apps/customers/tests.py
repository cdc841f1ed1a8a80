from django.contrib.auth import get_user_model
from rest_framework.test import APITestCase

from apps.audit.models import LogLevel, LogSource, SystemLog
from apps.customers.models import Customer

User = get_user_model()


class CustomerApiTests(APITestCase):
    def setUp(self):
        self.admin = User.objects.create_user(username="admin", password="admin123", role="admin")
        self.owner = User.objects.create_user(username="owner", password="owner123", first_name="Olga", last_name="Owner")
        self.other = User.objects.create_user(username="other", password="other123")
        self.customer = Customer.objects.create(name="Alpha GmbH", city="Berlin", created_by=self.owner)

    def business_logs(self):
        return SystemLog.objects.exclude(source__in=[LogSource.API_REQUEST, LogSource.API_RESPONSE])

    def test_create_sets_owner_and_logs(self):
        self.client.force_authenticate(user=self.owner)

        response = self.client.post("/api/v1/customers/", {"name": "Beta AG", "email": "info@beta.de"}, format="json")

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["created_by"], self.owner.id)
        log = self.business_logs().get(action="create")
        self.assertEqual(log.level, LogLevel.INFO)
        self.assertEqual(log.source, LogSource.DATA_OPERATION)
        self.assertEqual(log.module, "customers")
        self.assertEqual(log.entity, "customer")
        self.assertEqual(log.entity_id, str(response.data["id"]))
        self.assertEqual(log.user_name, "Olga Owner")
        self.assertEqual(log.message, "Kunde Beta AG wurde erstellt")

    def test_list_is_scoped_to_owner(self):
        Customer.objects.create(name="Fremd KG", created_by=self.other)

        self.client.force_authenticate(user=self.owner)
        owner_view = self.client.get("/api/v1/customers/")
        self.assertEqual([item["name"] for item in owner_view.data["results"]], ["Alpha GmbH"])

        self.client.force_authenticate(user=self.admin)
        admin_view = self.client.get("/api/v1/customers/")
        self.assertEqual(admin_view.data["count"], 2)

    def test_update_writes_diff_record(self):
        self.client.force_authenticate(user=self.owner)

        response = self.client.patch(f"/api/v1/customers/{self.customer.id}/", {"city": "Hamburg"}, format="json")

        self.assertEqual(response.status_code, 200)
        log = self.business_logs().get(action="update")
        self.assertEqual(log.changes, {"city": {"old": "Berlin", "new": "Hamburg"}})
        self.assertEqual(log.message, "Kunde Alpha GmbH wurde aktualisiert")

    def test_noop_update_writes_no_diff_record(self):
        self.client.force_authenticate(user=self.owner)
        self.client.patch(f"/api/v1/customers/{self.customer.id}/", {"city": "Berlin"}, format="json")
        self.assertFalse(self.business_logs().filter(action="update").exists())

    def test_foreign_access_is_forbidden_and_logged(self):
        self.client.force_authenticate(user=self.other)

        response = self.client.get(f"/api/v1/customers/{self.customer.id}/")

        self.assertEqual(response.status_code, 403)
        log = SystemLog.objects.get(source=LogSource.AUTHORIZATION)
        self.assertEqual(log.level, LogLevel.WARNING)
        self.assertEqual(log.entity_id, str(self.customer.id))
        self.assertEqual(log.user_id, str(self.other.id))

    def test_admin_can_access_any_customer(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.get(f"/api/v1/customers/{self.customer.id}/")
        self.assertEqual(response.status_code, 200)

    def test_delete_logs_and_removes(self):
        self.client.force_authenticate(user=self.owner)

        response = self.client.delete(f"/api/v1/customers/{self.customer.id}/")

        self.assertEqual(response.status_code, 204)
        self.assertFalse(Customer.objects.filter(pk=self.customer.id).exists())
        log = self.business_logs().get(action="delete")
        self.assertEqual(log.details["customer_name"], "Alpha GmbH")

    def test_requires_authentication(self):
        response = self.client.get("/api/v1/customers/")
        self.assertEqual(response.status_code, 401)
