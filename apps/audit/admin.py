from django.contrib import admin

from apps.audit.models import SystemLog


@admin.register(SystemLog)
class SystemLogAdmin(admin.ModelAdmin):
    list_display = ("timestamp", "level", "source", "module", "action", "user_name", "message")
    list_filter = ("level", "source", "module")
    search_fields = ("message", "user_name", "entity_id")
    date_hierarchy = "timestamp"

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
