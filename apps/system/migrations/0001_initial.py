from decimal import Decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

import apps.system.models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="SystemSettings",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("company_name", models.CharField(default="Mein Unternehmen", max_length=255)),
                ("company_logo", models.CharField(blank=True, default="", max_length=500)),
                (
                    "currency",
                    models.CharField(
                        choices=[
                            ("EUR", "Euro"),
                            ("USD", "US-Dollar"),
                            ("GBP", "Britisches Pfund"),
                            ("CHF", "Schweizer Franken"),
                        ],
                        default="EUR",
                        max_length=3,
                    ),
                ),
                ("currency_symbol", models.CharField(default="€", max_length=8)),
                ("tax_rate", models.DecimalField(decimal_places=2, default=Decimal("19.00"), max_digits=5)),
                ("payment_terms", models.PositiveIntegerField(default=30)),
                ("hourly_rate", models.DecimalField(decimal_places=2, default=Decimal("100.00"), max_digits=10)),
                ("billing_interval", models.PositiveIntegerField(default=15)),
                ("payment_installments", models.JSONField(default=apps.system.models.default_installments)),
                ("terms_and_conditions", models.TextField(default="Standardmäßige AGB-Texte hier einfügen...")),
                ("privacy_policy", models.TextField(default="Standardmäßige Datenschutzerklärung hier einfügen...")),
                (
                    "invoice_footer",
                    models.TextField(
                        default=(
                            "Vielen Dank für Ihr Vertrauen. Bitte überweisen Sie den Rechnungsbetrag "
                            "innerhalb der angegebenen Zahlungsfrist."
                        )
                    ),
                ),
                ("allow_registration", models.BooleanField(default=False)),
                ("allow_password_reset", models.BooleanField(default=True)),
                ("maintenance_mode", models.BooleanField(default=False)),
                (
                    "maintenance_message",
                    models.TextField(
                        default="Das System wird aktuell gewartet. Bitte versuchen Sie es später noch einmal."
                    ),
                ),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "updated_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "system settings",
                "verbose_name_plural": "system settings",
            },
        ),
    ]
