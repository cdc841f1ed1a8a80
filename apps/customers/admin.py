from django.contrib import admin

from apps.customers.models import Customer


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ("name", "contact_person", "email", "city", "created_by", "created_at")
    list_filter = ("country", "created_by")
    search_fields = ("name", "contact_person", "email", "tax_id")
    autocomplete_fields = ("created_by",)
