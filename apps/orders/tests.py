from django.contrib.auth import get_user_model
from rest_framework.test import APITestCase

from apps.audit.models import LogSource, SystemLog
from apps.audit.rendering import readable_message
from apps.customers.models import Customer
from apps.orders.models import Order

User = get_user_model()


class OrderApiTests(APITestCase):
    def setUp(self):
        self.admin = User.objects.create_user(username="admin", password="admin123", role="admin")
        self.owner = User.objects.create_user(username="owner", password="owner123")
        self.worker = User.objects.create_user(username="worker", password="worker123", first_name="Wim", last_name="Worker")
        self.other = User.objects.create_user(username="other", password="other123")
        self.customer = Customer.objects.create(name="Alpha GmbH", created_by=self.owner)
        self.client.force_authenticate(user=self.owner)

    def create_order(self, **overrides):
        payload = {
            "order_number": "A-1",
            "customer": self.customer.id,
            "description": "Webseite",
            "items": [{"description": "A", "quantity": 2, "unit_price": 10}],
        }
        payload.update(overrides)
        return self.client.post("/api/v1/orders/", payload, format="json")

    def test_create_computes_total(self):
        response = self.create_order()

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["total_amount"], "20.00")
        self.assertEqual(response.data["status"], "neu")
        self.assertEqual(response.data["items"][0]["unit_price"], "10.00")
        log = SystemLog.objects.get(action="create", entity="order")
        self.assertEqual(log.module, "orders")
        self.assertEqual(log.details["total_amount"], "20.00")

    def test_item_quantity_change_is_logged_as_items_change(self):
        order_id = self.create_order().data["id"]

        response = self.client.patch(
            f"/api/v1/orders/{order_id}/",
            {"items": [{"description": "A", "quantity": 3, "unit_price": 10}]},
            format="json",
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["total_amount"], "30.00")
        log = SystemLog.objects.get(action="update", entity="order")
        self.assertIn("items", log.changes)
        self.assertEqual(log.changes["total_amount"], {"old": "20.00", "new": "30.00"})
        message = readable_message(log)
        self.assertIn("items geändert", message)
        self.assertNotIn("Anzahl der", message)
        self.assertIn("Gesamtbetrag von 20.00 € auf 30.00 € geändert", message)

    def test_adding_an_item_reports_count(self):
        order_id = self.create_order().data["id"]

        self.client.patch(
            f"/api/v1/orders/{order_id}/",
            {
                "items": [
                    {"description": "A", "quantity": 2, "unit_price": 10},
                    {"description": "B", "quantity": 1, "unit_price": 5},
                ]
            },
            format="json",
        )

        log = SystemLog.objects.get(action="update", entity="order")
        self.assertIn("Anzahl der items von 1 auf 2 geändert", readable_message(log))

    def test_invalid_items_are_rejected(self):
        response = self.create_order(items=[{"description": "A", "quantity": 0, "unit_price": 10}])
        self.assertEqual(response.status_code, 400)
        self.assertFalse(Order.objects.exists())

        response = self.create_order(items=[{"description": "A", "quantity": 1, "unit_price": -1}])
        self.assertEqual(response.status_code, 400)

    def test_due_date_before_start_is_rejected(self):
        response = self.create_order(start_date="2024-05-10", due_date="2024-05-01")
        self.assertEqual(response.status_code, 400)
        self.assertIn("due_date", response.data["fields"])

    def test_cannot_use_foreign_customer(self):
        foreign = Customer.objects.create(name="Fremd KG", created_by=self.other)
        response = self.create_order(customer=foreign.id)
        self.assertEqual(response.status_code, 400)
        self.assertIn("customer", response.data["fields"])

    def test_status_change_writes_status_record(self):
        order_id = self.create_order().data["id"]

        self.client.patch(f"/api/v1/orders/{order_id}/", {"status": "in Bearbeitung"}, format="json")

        log = SystemLog.objects.get(source=LogSource.STATUS_CHANGE)
        self.assertEqual(log.action, "status_change")
        self.assertEqual(log.changes, {"status": {"old": "neu", "new": "in Bearbeitung"}})
        self.assertIn('Status von "neu" zu "in Bearbeitung" geändert', readable_message(log))

    def test_assign_action(self):
        order_id = self.create_order().data["id"]

        response = self.client.post(f"/api/v1/orders/{order_id}/assign/", {"assigned_to": self.worker.id}, format="json")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["assigned_to"], self.worker.id)
        log = SystemLog.objects.get(source=LogSource.ASSIGNMENT_CHANGE)
        self.assertEqual(log.changes, {"assigned_to": {"old": None, "new": self.worker.id}})
        self.assertEqual(log.details["assigned_to_name"], "Wim Worker")
        self.assertIn("Zuständigkeit hinzugefügt", readable_message(log))

    def test_assignee_can_read_and_update_but_not_delete(self):
        order_id = self.create_order(assigned_to=self.worker.id).data["id"]
        self.client.force_authenticate(user=self.worker)

        self.assertEqual(self.client.get(f"/api/v1/orders/{order_id}/").status_code, 200)
        update = self.client.patch(f"/api/v1/orders/{order_id}/", {"notes": "Begonnen"}, format="json")
        self.assertEqual(update.status_code, 200)
        self.assertEqual(self.client.delete(f"/api/v1/orders/{order_id}/").status_code, 403)

        listing = self.client.get("/api/v1/orders/")
        self.assertEqual(listing.data["count"], 1)

    def test_stranger_is_forbidden(self):
        order_id = self.create_order().data["id"]
        self.client.force_authenticate(user=self.other)

        response = self.client.get(f"/api/v1/orders/{order_id}/")

        self.assertEqual(response.status_code, 403)
        self.assertTrue(SystemLog.objects.filter(source=LogSource.AUTHORIZATION, entity="order").exists())

    def test_filter_by_status(self):
        self.create_order()
        self.create_order(order_number="A-2", status="abgeschlossen")

        response = self.client.get("/api/v1/orders/", {"status": "abgeschlossen"})

        self.assertEqual([item["order_number"] for item in response.data["results"]], ["A-2"])

    def test_delete_logs(self):
        order_id = self.create_order().data["id"]

        response = self.client.delete(f"/api/v1/orders/{order_id}/")

        self.assertEqual(response.status_code, 204)
        log = SystemLog.objects.get(action="delete", entity="order")
        self.assertEqual(log.message, "Auftrag A-1 wurde gelöscht")
