import secrets
from datetime import timedelta
from decimal import Decimal

from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from django.utils import timezone

from apps.common.items import CENT, items_total, to_decimal
from apps.system.models import get_or_create_settings

SECOND_INSTALLMENT_OFFSET_DAYS = 14


class InvoiceStatus(models.TextChoices):
    CREATED = "erstellt", "Erstellt"
    SENT = "versendet", "Versendet"
    PARTIALLY_PAID = "teilweise bezahlt", "Teilweise bezahlt"
    PAID = "bezahlt", "Bezahlt"
    CANCELLED = "storniert", "Storniert"


class PaymentSchedule(models.TextChoices):
    FULL = "full", "Vollständige Zahlung"
    INSTALLMENTS = "installments", "Ratenzahlung"


def generate_invoice_number(today=None):
    today = today or timezone.localdate()
    return f"R{today:%Y%m}-{secrets.randbelow(10000):04d}"


def build_installments(total_amount, issue_date, due_date, rates):
    """
    Split ``total_amount`` by the configured rates. The final installment
    takes the rounding remainder so the amounts always add up to the total.
    """
    first = (total_amount * to_decimal(rates["first_rate"]) / 100).quantize(CENT)
    second = (total_amount * to_decimal(rates["second_rate"]) / 100).quantize(CENT)
    plan = [
        ("Anzahlung nach Auftragsbestätigung", rates["first_rate"], first, issue_date),
        (
            "Teilzahlung nach Materiallieferung",
            rates["second_rate"],
            second,
            issue_date + timedelta(days=SECOND_INSTALLMENT_OFFSET_DAYS),
        ),
        ("Restzahlung nach Abnahme", rates["final_rate"], total_amount - first - second, due_date),
    ]
    return [
        {
            "description": description,
            "percentage": percentage,
            "amount": str(amount),
            "due_date": due.isoformat(),
            "is_paid": False,
            "paid_date": None,
        }
        for description, percentage, amount, due in plan
    ]


class Invoice(models.Model):
    invoice_number = models.CharField(max_length=40, unique=True)
    customer = models.ForeignKey("customers.Customer", on_delete=models.PROTECT, related_name="invoices")
    order = models.ForeignKey("orders.Order", null=True, blank=True, on_delete=models.SET_NULL, related_name="invoices")
    items = models.JSONField(default=list, blank=True, encoder=DjangoJSONEncoder)
    time_entries = models.ManyToManyField("timetracking.TimeEntry", blank=True, related_name="invoices")
    subtotal = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    tax_rate = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    tax_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    total_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    payment_schedule = models.CharField(max_length=20, choices=PaymentSchedule.choices, default=PaymentSchedule.FULL)
    installments = models.JSONField(default=list, blank=True, encoder=DjangoJSONEncoder)
    status = models.CharField(max_length=20, choices=InvoiceStatus.choices, default=InvoiceStatus.CREATED)
    issue_date = models.DateField(default=timezone.localdate)
    due_date = models.DateField(null=True, blank=True)
    notes = models.TextField(blank=True, default="")
    created_by = models.ForeignKey("accounts.User", on_delete=models.PROTECT, related_name="invoices")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-issue_date", "-id"]
        indexes = [
            models.Index(fields=["status", "-issue_date"], name="invoice_status_issue_idx"),
            models.Index(fields=["customer"], name="invoice_customer_idx"),
            models.Index(fields=["created_by"], name="invoice_owner_idx"),
        ]

    def __str__(self):
        return self.invoice_number

    def _stored_terms(self):
        if self._state.adding or self.pk is None:
            return None
        return Invoice.objects.filter(pk=self.pk).values("total_amount", "payment_schedule").first()

    def compute_totals(self, settings):
        if self.tax_rate is None:
            self.tax_rate = settings.tax_rate
        self.subtotal = items_total(self.items)
        self.tax_amount = (self.subtotal * to_decimal(self.tax_rate) / 100).quantize(CENT)
        self.total_amount = self.subtotal + self.tax_amount
        if not self.due_date:
            self.due_date = self.issue_date + timedelta(days=settings.payment_terms)

    def refresh_installments(self, settings, stored):
        if self.payment_schedule != PaymentSchedule.INSTALLMENTS:
            self.installments = []
            return
        terms_changed = stored is None or (
            stored["total_amount"] != self.total_amount or stored["payment_schedule"] != self.payment_schedule
        )
        if not self.installments or terms_changed:
            self.installments = build_installments(
                self.total_amount, self.issue_date, self.due_date, settings.payment_installments
            )

    def update_payment_status(self):
        if self.payment_schedule == PaymentSchedule.FULL or not self.installments:
            return
        paid = sum(1 for installment in self.installments if installment.get("is_paid"))
        if paid == 0:
            self.status = InvoiceStatus.SENT if self.status == InvoiceStatus.SENT else InvoiceStatus.CREATED
        elif paid < len(self.installments):
            self.status = InvoiceStatus.PARTIALLY_PAID
        else:
            self.status = InvoiceStatus.PAID

    def mark_installment_paid(self, index, paid_date=None):
        installment = self.installments[index]
        installment["is_paid"] = True
        installment["paid_date"] = (paid_date or timezone.localdate()).isoformat()
        self.update_payment_status()

    def save(self, *args, **kwargs):
        if not self.invoice_number:
            self.invoice_number = generate_invoice_number()
        settings = get_or_create_settings()
        stored = self._stored_terms()
        self.compute_totals(settings)
        self.refresh_installments(settings, stored)
        super().save(*args, **kwargs)
