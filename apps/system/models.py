from decimal import ROUND_HALF_UP, Decimal

from django.core.exceptions import ValidationError
from django.db import models

INSTALLMENT_KEYS = ("first_rate", "second_rate", "final_rate")
INSTALLMENT_TOLERANCE = Decimal("0.01")


def default_installments():
    return {"first_rate": 30, "second_rate": 40, "final_rate": 30}


def installment_total(installments):
    return sum((Decimal(str((installments or {}).get(key, 0))) for key in INSTALLMENT_KEYS), Decimal("0"))


class Currency(models.TextChoices):
    EUR = "EUR", "Euro"
    USD = "USD", "US-Dollar"
    GBP = "GBP", "Britisches Pfund"
    CHF = "CHF", "Schweizer Franken"


class SystemSettings(models.Model):
    company_name = models.CharField(max_length=255, default="Mein Unternehmen")
    company_logo = models.CharField(max_length=500, blank=True, default="")

    currency = models.CharField(max_length=3, choices=Currency.choices, default=Currency.EUR)
    currency_symbol = models.CharField(max_length=8, default="€")
    tax_rate = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("19.00"))
    payment_terms = models.PositiveIntegerField(default=30)
    hourly_rate = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("100.00"))
    billing_interval = models.PositiveIntegerField(default=15)
    payment_installments = models.JSONField(default=default_installments)

    terms_and_conditions = models.TextField(default="Standardmäßige AGB-Texte hier einfügen...")
    privacy_policy = models.TextField(default="Standardmäßige Datenschutzerklärung hier einfügen...")
    invoice_footer = models.TextField(
        default=(
            "Vielen Dank für Ihr Vertrauen. Bitte überweisen Sie den Rechnungsbetrag "
            "innerhalb der angegebenen Zahlungsfrist."
        )
    )

    allow_registration = models.BooleanField(default=False)
    allow_password_reset = models.BooleanField(default=True)

    maintenance_mode = models.BooleanField(default=False)
    maintenance_message = models.TextField(
        default="Das System wird aktuell gewartet. Bitte versuchen Sie es später noch einmal."
    )

    updated_by = models.ForeignKey("accounts.User", null=True, blank=True, on_delete=models.SET_NULL, related_name="+")
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "system settings"
        verbose_name_plural = "system settings"

    def __str__(self):
        return self.company_name

    def installment_rate(self, key):
        return Decimal(str(self.payment_installments.get(key, 0)))

    def save(self, *args, **kwargs):
        total = installment_total(self.payment_installments).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
        if total != Decimal("100.00"):
            raise ValidationError(f"Die Summe der Zahlungsraten muss 100% ergeben (aktuell {total}%).")
        super().save(*args, **kwargs)


def get_or_create_settings():
    """
    Return the settings singleton, creating it with defaults on first access.
    Two concurrent first calls may both create a row; the oldest one wins.
    """
    settings = SystemSettings.objects.order_by("pk").first()
    if settings is None:
        settings = SystemSettings.objects.create()
    return settings
