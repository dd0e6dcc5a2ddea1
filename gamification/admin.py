from django.contrib import admin
from .models import Badge, EarnedBadge, LearnTagGrant, PointsLedgerEntry


@admin.register(PointsLedgerEntry)
class PointsLedgerEntryAdmin(admin.ModelAdmin):
    list_display = ('user', 'activity', 'delta_points', 'source', 'external_source', 'event_time')
    list_filter = ('source', 'activity', 'external_source')
    search_fields = ('user__username', 'user__email', 'external_event_id')
    readonly_fields = (
        'user', 'activity', 'source', 'delta_points',
        'external_source', 'external_event_id', 'event_time', 'meta', 'created_at',
    )

    # Corrections go through compensating entries, never edits
    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Badge)
class BadgeAdmin(admin.ModelAdmin):
    list_display = ('code', 'name', 'created_at')
    search_fields = ('code', 'name')


@admin.register(EarnedBadge)
class EarnedBadgeAdmin(admin.ModelAdmin):
    list_display = ('user', 'badge', 'earned_at')
    list_filter = ('badge',)
    search_fields = ('user__username', 'user__email')


@admin.register(LearnTagGrant)
class LearnTagGrantAdmin(admin.ModelAdmin):
    list_display = ('user', 'tag_name', 'granted_at')
    list_filter = ('tag_name',)
    search_fields = ('user__username', 'user__email')
