from decimal import Decimal

from django.core.serializers.json import DjangoJSONEncoder
from django.db import models

from apps.common.items import items_total


class OrderStatus(models.TextChoices):
    NEW = "neu", "Neu"
    IN_PROGRESS = "in Bearbeitung", "In Bearbeitung"
    COMPLETED = "abgeschlossen", "Abgeschlossen"
    CANCELLED = "storniert", "Storniert"


class Order(models.Model):
    order_number = models.CharField(max_length=40, unique=True)
    customer = models.ForeignKey("customers.Customer", on_delete=models.PROTECT, related_name="orders")
    description = models.TextField()
    status = models.CharField(max_length=20, choices=OrderStatus.choices, default=OrderStatus.NEW)
    items = models.JSONField(default=list, blank=True, encoder=DjangoJSONEncoder)
    total_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    start_date = models.DateField(null=True, blank=True)
    due_date = models.DateField(null=True, blank=True)
    notes = models.TextField(blank=True, default="")
    created_by = models.ForeignKey("accounts.User", on_delete=models.PROTECT, related_name="orders_created")
    assigned_to = models.ForeignKey(
        "accounts.User",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="orders_assigned",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["status", "-created_at"], name="order_status_created_idx"),
            models.Index(fields=["created_by"], name="order_owner_idx"),
            models.Index(fields=["assigned_to"], name="order_assignee_idx"),
        ]
        constraints = [
            models.CheckConstraint(check=models.Q(total_amount__gte=0), name="order_total_gte_zero"),
        ]

    def __str__(self):
        return self.order_number

    def save(self, *args, **kwargs):
        self.total_amount = items_total(self.items)
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and "items" in update_fields:
            kwargs["update_fields"] = {*update_fields, "total_amount"}
        super().save(*args, **kwargs)
