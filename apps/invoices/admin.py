from django.contrib import admin

from apps.invoices.models import Invoice


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = ("invoice_number", "customer", "status", "total_amount", "issue_date", "due_date", "created_by")
    list_filter = ("status", "payment_schedule", "issue_date")
    search_fields = ("invoice_number", "customer__name")
    readonly_fields = ("subtotal", "tax_amount", "total_amount", "installments")
    filter_horizontal = ("time_entries",)
