from django.db import models
from django.conf import settings
from django.utils import timezone


class Submission(models.Model):
    """
    Evidence an educator submits for one LEAPS activity.

    Status lifecycle:
      PENDING -> APPROVED | REJECTED  (reviewer decision, exactly once)
      APPROVED -> REVOKED             (admin correction, compensating ledger entry)
    """
    STATUS_PENDING = "PENDING"
    STATUS_APPROVED = "APPROVED"
    STATUS_REJECTED = "REJECTED"
    STATUS_REVOKED = "REVOKED"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_APPROVED, "Approved"),
        (STATUS_REJECTED, "Rejected"),
        (STATUS_REVOKED, "Revoked"),
    ]

    VISIBILITY_PUBLIC = "PUBLIC"
    VISIBILITY_PRIVATE = "PRIVATE"

    VISIBILITY_CHOICES = [
        (VISIBILITY_PUBLIC, "Public"),
        (VISIBILITY_PRIVATE, "Private"),
    ]

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="submissions",
    )
    activity = models.ForeignKey(
        "core.Activity",
        on_delete=models.PROTECT,
        related_name="submissions",
    )
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING)
    visibility = models.CharField(max_length=16, choices=VISIBILITY_CHOICES, default=VISIBILITY_PRIVATE)

    # Activity-specific evidence (see Activity.payload_schema_id)
    payload = models.JSONField(default=dict, blank=True)

    reviewer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="reviewed_submissions",
    )
    review_note = models.TextField(blank=True, null=True)

    # Timezone the rolling-window checks were evaluated in at approval time
    approval_org_timezone = models.CharField(max_length=64, blank=True, null=True)

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["user", "activity", "status"], name="submission_user_activity_idx"),
            models.Index(fields=["status", "created_at"], name="submission_status_created_idx"),
        ]

    def __str__(self):
        return f"{self.user} - {self.activity_id} ({self.status})"
