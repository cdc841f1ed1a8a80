import math
from decimal import Decimal

from django.db import models

from apps.common.items import CENT
from apps.system.models import get_or_create_settings


def round_to_interval(minutes, interval):
    """Round ``minutes`` up to the next full billing ``interval``."""
    if interval <= 0:
        return minutes
    return math.ceil(minutes / interval) * interval


class TimeEntry(models.Model):
    user = models.ForeignKey("accounts.User", on_delete=models.PROTECT, related_name="time_entries")
    assigned_to = models.ForeignKey(
        "accounts.User",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="assigned_time_entries",
    )
    order = models.ForeignKey(
        "orders.Order",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="time_entries",
    )
    description = models.TextField()
    start_time = models.DateTimeField()
    end_time = models.DateTimeField()
    duration = models.PositiveIntegerField(default=0)
    billable_duration = models.PositiveIntegerField(default=0)
    hourly_rate = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    billed = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-start_time", "-id"]
        indexes = [
            models.Index(fields=["user", "-start_time"], name="timeentry_user_start_idx"),
            models.Index(fields=["order"], name="timeentry_order_idx"),
            models.Index(fields=["billed"], name="timeentry_billed_idx"),
        ]
        constraints = [
            models.CheckConstraint(check=models.Q(end_time__gt=models.F("start_time")), name="timeentry_end_after_start"),
        ]

    def __str__(self):
        return f"{self.description[:40]} ({self.duration} min)"

    def compute_billing(self):
        settings = get_or_create_settings()
        self.duration = max(0, round((self.end_time - self.start_time).total_seconds() / 60))
        if not self.hourly_rate:
            self.hourly_rate = settings.hourly_rate
        self.billable_duration = round_to_interval(self.duration, settings.billing_interval)
        self.amount = (Decimal(self.billable_duration) / Decimal(60) * self.hourly_rate).quantize(CENT)

    def save(self, *args, **kwargs):
        if self.start_time and self.end_time:
            self.compute_billing()
        super().save(*args, **kwargs)
