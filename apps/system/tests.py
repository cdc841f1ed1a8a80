from datetime import date
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from rest_framework.test import APITestCase
from rest_framework_simplejwt.tokens import RefreshToken

from apps.audit.models import LogSource, SystemLog
from apps.customers.models import Customer
from apps.invoices.models import Invoice, InvoiceStatus
from apps.system.models import SystemSettings, get_or_create_settings

User = get_user_model()


class SystemSettingsModelTests(APITestCase):
    def test_singleton_is_created_with_defaults(self):
        settings = get_or_create_settings()

        self.assertEqual(get_or_create_settings().pk, settings.pk)
        self.assertEqual(SystemSettings.objects.count(), 1)
        self.assertEqual(settings.tax_rate, Decimal("19.00"))
        self.assertEqual(settings.payment_installments, {"first_rate": 30, "second_rate": 40, "final_rate": 30})

    def test_save_rejects_installments_not_summing_to_100(self):
        settings = get_or_create_settings()
        settings.payment_installments = {"first_rate": 50, "second_rate": 40, "final_rate": 30}

        with self.assertRaises(ValidationError):
            settings.save()

    def test_fractional_rates_are_accepted(self):
        settings = get_or_create_settings()
        settings.payment_installments = {"first_rate": 33.33, "second_rate": 33.33, "final_rate": 33.34}
        settings.save()


class SystemSettingsApiTests(APITestCase):
    def setUp(self):
        self.admin = User.objects.create_user(username="admin", password="admin123", role="admin")
        self.user = User.objects.create_user(username="user", password="user123")

    def test_users_can_read_but_not_write(self):
        self.client.force_authenticate(user=self.user)

        self.assertEqual(self.client.get("/api/v1/settings/").status_code, 200)
        response = self.client.patch("/api/v1/settings/", {"tax_rate": "7.00"}, format="json")
        self.assertEqual(response.status_code, 403)

    def test_admin_update_writes_admin_action_record(self):
        self.client.force_authenticate(user=self.admin)

        response = self.client.patch("/api/v1/settings/", {"tax_rate": "7.00", "company_name": "Muster GmbH"}, format="json")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["tax_rate"], "7.00")
        self.assertEqual(response.data["updated_by"], "admin")
        log = SystemLog.objects.get(source=LogSource.ADMIN_ACTION)
        self.assertEqual(log.module, "settings")
        self.assertEqual(log.action, "update")
        self.assertEqual(log.message, "Systemeinstellungen wurden aktualisiert")
        self.assertEqual(log.changes["tax_rate"], {"old": "19.00", "new": "7.00"})
        self.assertEqual(log.changes["company_name"]["new"], "Muster GmbH")
        self.assertNotIn("updated_at", log.changes)

    def test_invalid_installment_sum_is_rejected_without_write(self):
        self.client.force_authenticate(user=self.admin)

        response = self.client.patch(
            "/api/v1/settings/",
            {"payment_installments": {"first_rate": 50, "second_rate": 40, "final_rate": 30}},
            format="json",
        )

        self.assertEqual(response.status_code, 400)
        self.assertIn("payment_installments", response.data["fields"])
        self.assertEqual(get_or_create_settings().payment_installments["first_rate"], 30)
        self.assertFalse(SystemLog.objects.filter(source=LogSource.ADMIN_ACTION).exists())

    def test_missing_installment_key_is_rejected(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.patch(
            "/api/v1/settings/",
            {"payment_installments": {"first_rate": 60, "second_rate": 40}},
            format="json",
        )
        self.assertEqual(response.status_code, 400)

    def test_out_of_range_values_are_rejected(self):
        self.client.force_authenticate(user=self.admin)
        self.assertEqual(self.client.patch("/api/v1/settings/", {"tax_rate": "101"}, format="json").status_code, 400)
        self.assertEqual(self.client.patch("/api/v1/settings/", {"billing_interval": 0}, format="json").status_code, 400)

    def test_public_endpoints_need_no_login(self):
        public = self.client.get("/api/v1/settings/public/")
        self.assertEqual(public.status_code, 200)
        self.assertEqual(public.data["company_name"], "Mein Unternehmen")
        self.assertNotIn("tax_rate", public.data)

        terms = self.client.get("/api/v1/settings/terms/")
        self.assertIn("terms_and_conditions", terms.data)

        privacy = self.client.get("/api/v1/settings/privacy/")
        self.assertIn("privacy_policy", privacy.data)


class MaintenanceModeTests(APITestCase):
    def setUp(self):
        self.admin = User.objects.create_user(username="admin", password="admin123", role="admin")
        self.user = User.objects.create_user(username="user", password="user123")
        settings = get_or_create_settings()
        settings.maintenance_mode = True
        settings.maintenance_message = "Wartung bis 18 Uhr"
        settings.save()

    def authenticate(self, user):
        token = RefreshToken.for_user(user).access_token
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")

    def test_non_admin_requests_get_503(self):
        self.authenticate(self.user)

        response = self.client.get("/api/v1/customers/")

        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json()["detail"], "Wartung bis 18 Uhr")
        self.assertEqual(response.json()["code"], "maintenance")

    def test_admin_passes(self):
        self.authenticate(self.admin)
        self.assertEqual(self.client.get("/api/v1/customers/").status_code, 200)

    def test_allowed_paths_stay_open(self):
        self.assertEqual(self.client.get("/api/v1/settings/public/").status_code, 200)
        self.assertEqual(self.client.get("/health/").status_code, 200)


class DashboardStatsTests(APITestCase):
    def setUp(self):
        self.admin = User.objects.create_user(username="admin", password="admin123", role="admin")
        self.user = User.objects.create_user(username="user", password="user123")
        customer = Customer.objects.create(name="Alpha GmbH", created_by=self.user)
        items = [{"description": "Beratung", "quantity": 1, "unit_price": "100.00"}]
        Invoice.objects.create(
            customer=customer,
            items=items,
            created_by=self.user,
            issue_date=date(2024, 3, 5),
            status=InvoiceStatus.PAID,
        )
        Invoice.objects.create(customer=customer, items=items, created_by=self.user, issue_date=date(2024, 3, 20))

    def test_stats_are_admin_only(self):
        self.client.force_authenticate(user=self.user)
        self.assertEqual(self.client.get("/api/v1/stats/").status_code, 403)
        self.assertEqual(self.client.get("/api/v1/stats/monthly-revenue/").status_code, 403)

    def test_dashboard_counts(self):
        self.client.force_authenticate(user=self.admin)

        response = self.client.get("/api/v1/stats/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["users"], 2)
        self.assertEqual(response.data["customers"], 1)
        self.assertEqual(response.data["invoices"], 2)
        self.assertEqual(response.data["revenue"], Decimal("119.00"))
        self.assertEqual(response.data["open_amount"], Decimal("119.00"))

    def test_monthly_revenue(self):
        self.client.force_authenticate(user=self.admin)

        response = self.client.get("/api/v1/stats/monthly-revenue/", {"year": 2024})

        self.assertEqual(response.data["year"], 2024)
        self.assertEqual(len(response.data["months"]), 12)
        march = response.data["months"][2]
        self.assertEqual(march["month_name"], "Mär")
        self.assertEqual(march["total"], Decimal("238.00"))
        self.assertEqual(march["paid"], Decimal("119.00"))
        self.assertEqual(march["unpaid"], Decimal("119.00"))
        self.assertEqual(march["invoices"], 2)
        self.assertEqual(response.data["months"][0]["total"], Decimal("0.00"))
