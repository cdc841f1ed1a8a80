from django.contrib import admin

from apps.timetracking.models import TimeEntry


@admin.register(TimeEntry)
class TimeEntryAdmin(admin.ModelAdmin):
    list_display = ("user", "order", "start_time", "duration", "billable_duration", "amount", "billed")
    list_filter = ("billed", "user")
    search_fields = ("description", "order__order_number")
    readonly_fields = ("duration", "billable_duration", "amount")
