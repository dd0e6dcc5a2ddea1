from django.contrib import admin
from .models import Submission


@admin.register(Submission)
class SubmissionAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'activity', 'status', 'visibility', 'reviewer', 'created_at')
    list_filter = ('status', 'activity', 'visibility')
    search_fields = ('user__username', 'user__email')
    # Status changes must go through the review endpoints so the ledger stays in step
    readonly_fields = ('status', 'reviewer', 'review_note', 'approval_org_timezone', 'created_at', 'updated_at')
