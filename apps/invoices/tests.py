from datetime import date, datetime, timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import SimpleTestCase
from django.utils import timezone
from rest_framework.test import APITestCase

from apps.audit.models import LogSource, SystemLog
from apps.customers.models import Customer
from apps.invoices.models import Invoice, InvoiceStatus, build_installments, generate_invoice_number
from apps.timetracking.models import TimeEntry

User = get_user_model()


class InstallmentPlanTests(SimpleTestCase):
    def test_final_installment_takes_remainder(self):
        plan = build_installments(
            Decimal("100.01"),
            date(2024, 5, 1),
            date(2024, 5, 31),
            {"first_rate": 30, "second_rate": 40, "final_rate": 30},
        )

        self.assertEqual([item["amount"] for item in plan], ["30.00", "40.00", "30.01"])
        self.assertEqual([item["due_date"] for item in plan], ["2024-05-01", "2024-05-15", "2024-05-31"])
        self.assertTrue(all(item["is_paid"] is False and item["paid_date"] is None for item in plan))

    def test_invoice_number_format(self):
        number = generate_invoice_number(date(2024, 3, 9))
        self.assertRegex(number, r"^R202403-\d{4}$")


class InvoiceApiTests(APITestCase):
    def setUp(self):
        self.user = User.objects.create_user(username="user", password="user123")
        self.other = User.objects.create_user(username="other", password="other123")
        self.customer = Customer.objects.create(name="Alpha GmbH", created_by=self.user)
        self.client.force_authenticate(user=self.user)

    def create_invoice(self, **overrides):
        payload = {
            "customer": self.customer.id,
            "items": [{"description": "Beratung", "quantity": 1, "unit_price": "100.00"}],
            "issue_date": "2024-05-01",
        }
        payload.update(overrides)
        return self.client.post("/api/v1/invoices/", payload, format="json")

    def make_entry(self, **overrides):
        start = timezone.make_aware(datetime(2024, 4, 2, 9, 0))
        fields = {
            "user": self.user,
            "description": "Umsetzung",
            "start_time": start,
            "end_time": start + timedelta(minutes=60),
        }
        fields.update(overrides)
        return TimeEntry.objects.create(**fields)

    def test_totals_tax_and_due_date_defaults(self):
        response = self.create_invoice()

        self.assertEqual(response.status_code, 201)
        self.assertRegex(response.data["invoice_number"], r"^R\d{6}-\d{4}$")
        self.assertEqual(response.data["subtotal"], "100.00")
        self.assertEqual(response.data["tax_rate"], "19.00")
        self.assertEqual(response.data["tax_amount"], "19.00")
        self.assertEqual(response.data["total_amount"], "119.00")
        self.assertEqual(response.data["due_date"], "2024-05-31")
        self.assertEqual(response.data["status"], "erstellt")
        self.assertEqual(response.data["installments"], [])

    def test_items_are_required(self):
        response = self.create_invoice(items=[])
        self.assertEqual(response.status_code, 400)
        self.assertIn("items", response.data["fields"])

    def test_duplicate_invoice_number_is_rejected(self):
        self.create_invoice(invoice_number="R202405-0001")
        response = self.create_invoice(invoice_number="R202405-0001")
        self.assertEqual(response.status_code, 400)
        self.assertIn("invoice_number", response.data["fields"])

    def test_installment_schedule(self):
        response = self.create_invoice(payment_schedule="installments")

        installments = response.data["installments"]
        self.assertEqual([item["amount"] for item in installments], ["35.70", "47.60", "35.70"])
        self.assertEqual([item["percentage"] for item in installments], ["30.00", "40.00", "30.00"])
        self.assertEqual(installments[2]["due_date"], "2024-05-31")

    def test_paying_installments_moves_status(self):
        invoice_id = self.create_invoice(payment_schedule="installments").data["id"]

        first = self.client.post(f"/api/v1/invoices/{invoice_id}/installments/0/pay/")
        self.assertEqual(first.status_code, 200)
        self.assertEqual(first.data["status"], "teilweise bezahlt")
        self.assertTrue(first.data["installments"][0]["is_paid"])

        again = self.client.post(f"/api/v1/invoices/{invoice_id}/installments/0/pay/")
        self.assertEqual(again.status_code, 400)

        self.client.post(f"/api/v1/invoices/{invoice_id}/installments/1/pay/")
        last = self.client.post(f"/api/v1/invoices/{invoice_id}/installments/2/pay/")
        self.assertEqual(last.data["status"], "bezahlt")

        payments = SystemLog.objects.filter(source=LogSource.PAYMENT)
        self.assertEqual(payments.filter(action="pay").count(), 4)
        status_changes = SystemLog.objects.filter(source=LogSource.STATUS_CHANGE).order_by("timestamp")
        self.assertEqual(
            [log.changes["status"]["new"] for log in status_changes],
            ["teilweise bezahlt", "bezahlt"],
        )

    def test_pay_unknown_installment(self):
        invoice_id = self.create_invoice(payment_schedule="installments").data["id"]
        response = self.client.post(f"/api/v1/invoices/{invoice_id}/installments/3/pay/")
        self.assertEqual(response.status_code, 400)

    def test_pay_installment_requires_installment_schedule(self):
        invoice_id = self.create_invoice().data["id"]
        response = self.client.post(f"/api/v1/invoices/{invoice_id}/installments/0/pay/")
        self.assertEqual(response.status_code, 400)

    def test_manual_status_paid_writes_payment_record(self):
        invoice_id = self.create_invoice().data["id"]

        self.client.patch(f"/api/v1/invoices/{invoice_id}/", {"status": "bezahlt"}, format="json")

        payment = SystemLog.objects.get(source=LogSource.PAYMENT)
        self.assertIn("als bezahlt markiert, Betrag: 119.00", payment.message)

    def test_time_entries_are_billed_and_unbilled(self):
        first = self.make_entry()
        second = self.make_entry(description="Test")

        response = self.create_invoice(time_entries=[first.id, second.id])
        invoice_id = response.data["id"]
        self.assertEqual(TimeEntry.objects.filter(billed=True).count(), 2)
        billing = SystemLog.objects.get(action="bill")
        self.assertEqual(billing.details["time_entry_ids"], sorted([first.id, second.id]))

        self.client.patch(f"/api/v1/invoices/{invoice_id}/", {"time_entries": [first.id]}, format="json")
        second.refresh_from_db()
        self.assertFalse(second.billed)
        unbilling = SystemLog.objects.get(action="unbill")
        self.assertEqual(unbilling.details["time_entry_ids"], [second.id])
        self.assertEqual(SystemLog.objects.filter(action="bill").count(), 1)

        third = self.make_entry(description="Nachtrag")
        self.client.patch(f"/api/v1/invoices/{invoice_id}/", {"time_entries": [first.id, third.id]}, format="json")
        rebilling = SystemLog.objects.filter(action="bill").exclude(pk=billing.pk).get()
        self.assertEqual(rebilling.details["time_entry_ids"], [third.id])

        self.client.delete(f"/api/v1/invoices/{invoice_id}/")
        first.refresh_from_db()
        self.assertFalse(first.billed)
        self.assertEqual(SystemLog.objects.filter(action="unbill").count(), 2)

    def test_billed_entry_cannot_be_reused(self):
        entry = self.make_entry(billed=True)
        response = self.create_invoice(time_entries=[entry.id])
        self.assertEqual(response.status_code, 400)
        self.assertIn("time_entries", response.data["fields"])

    def test_paid_invoice_cannot_be_deleted(self):
        invoice_id = self.create_invoice().data["id"]
        Invoice.objects.filter(pk=invoice_id).update(status=InvoiceStatus.PAID)

        response = self.client.delete(f"/api/v1/invoices/{invoice_id}/")

        self.assertEqual(response.status_code, 400)
        self.assertTrue(Invoice.objects.filter(pk=invoice_id).exists())

    def test_foreign_invoice_is_forbidden(self):
        invoice_id = self.create_invoice().data["id"]
        self.client.force_authenticate(user=self.other)

        self.assertEqual(self.client.get(f"/api/v1/invoices/{invoice_id}/").status_code, 403)
        self.assertEqual(self.client.get("/api/v1/invoices/").data["count"], 0)
