from django.contrib import admin
from .models import Activity, AuditLogEntry

@admin.register(Activity)
class ActivityAdmin(admin.ModelAdmin):
    list_display = ('code', 'name', 'default_points', 'payload_schema_id')
    search_fields = ('code', 'name')

    def has_delete_permission(self, request, obj=None):
        return False

@admin.register(AuditLogEntry)
class AuditLogEntryAdmin(admin.ModelAdmin):
    list_display = ('action', 'actor_id', 'target_id', 'created_at')
    list_filter = ('action', 'created_at')
    search_fields = ('actor_id', 'target_id')
    readonly_fields = ('actor_id', 'action', 'target_id', 'meta', 'created_at')

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
