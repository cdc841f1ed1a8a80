from django.contrib import admin

from apps.orders.models import Order


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("order_number", "customer", "status", "total_amount", "assigned_to", "created_by", "created_at")
    list_filter = ("status", "assigned_to")
    search_fields = ("order_number", "description", "customer__name")
    readonly_fields = ("total_amount",)
    autocomplete_fields = ("created_by", "assigned_to")
