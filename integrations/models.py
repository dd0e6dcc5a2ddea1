from django.db import models
from django.conf import settings


class ExternalCompletionEvent(models.Model):
    """
    Course-completion event delivered by the learning provider.

    Stored as received (keyed by the provider's event id) before any
    processing, so a failed reconciliation can be retried from the admin.
    `processed_at` is set exactly once, by the reconciling transaction.
    """
    id = models.CharField(max_length=255, primary_key=True)
    event_type = models.CharField(max_length=64, blank=True)
    tag_name = models.CharField(max_length=255, blank=True)
    contact_email = models.EmailField(blank=True, null=True)
    contact_id = models.CharField(max_length=64, blank=True, null=True)
    payload = models.JSONField(default=dict, blank=True)

    received_at = models.DateTimeField(auto_now_add=True)
    processed_at = models.DateTimeField(null=True, blank=True)
    user_match = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="completion_events",
    )

    class Meta:
        ordering = ["-received_at"]
        indexes = [
            models.Index(fields=["processed_at", "received_at"], name="completion_event_pending_idx"),
        ]

    @property
    def is_processed(self) -> bool:
        return self.processed_at is not None

    def __str__(self):
        return f"{self.id} ({self.tag_name or self.event_type})"
