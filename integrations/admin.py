from django.contrib import admin
from .models import ExternalCompletionEvent


@admin.register(ExternalCompletionEvent)
class ExternalCompletionEventAdmin(admin.ModelAdmin):
    list_display = ('id', 'tag_name', 'contact_email', 'user_match', 'received_at', 'processed_at')
    list_filter = ('tag_name', 'event_type')
    search_fields = ('id', 'contact_email', 'contact_id')
    readonly_fields = (
        'id', 'event_type', 'tag_name', 'contact_email', 'contact_id',
        'payload', 'received_at', 'processed_at', 'user_match',
    )
