from django.db import models
from django.conf import settings
from django.utils import timezone

from core.constants import (
    LEDGER_SOURCE_FORM,
    LEDGER_SOURCE_MANUAL,
    LEDGER_SOURCE_WEBHOOK,
)


class PointsLedgerEntry(models.Model):
    """
    Immutable ledger of point changes.
    A user's total is always the sum of their rows; corrections are made by
    appending a compensating entry, never by editing history.
    """
    SOURCE_CHOICES = [
        (LEDGER_SOURCE_MANUAL, "Manual"),
        (LEDGER_SOURCE_WEBHOOK, "Webhook"),
        (LEDGER_SOURCE_FORM, "Form"),
    ]

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="ledger_entries",
    )
    activity = models.ForeignKey(
        "core.Activity",
        on_delete=models.PROTECT,
        related_name="ledger_entries",
    )
    source = models.CharField(max_length=16, choices=SOURCE_CHOICES)
    delta_points = models.IntegerField(help_text="Positive or negative point value")

    # Idempotency key: at most one row per (external_source, external_event_id)
    external_source = models.CharField(max_length=64, null=True, blank=True)
    external_event_id = models.CharField(max_length=255, null=True, blank=True)

    event_time = models.DateTimeField(default=timezone.now)
    meta = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name_plural = "Points ledger entries"
        constraints = [
            models.UniqueConstraint(
                fields=["external_source", "external_event_id"],
                name="ledger_external_event_unique",
            ),
        ]
        indexes = [
            models.Index(fields=["user", "-event_time"], name="ledger_user_time_idx"),
            models.Index(fields=["external_event_id"], name="ledger_external_event_idx"),
        ]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Ledger entries are append-only")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Ledger entries are append-only")

    def __str__(self):
        return f"{self.user} ({self.delta_points:+d}) {self.activity_id}: {self.source}"


class Badge(models.Model):
    """
    Badge catalog (reference data).

    criteria = {"type": points|submissions|activities|streak, "threshold": n,
                "activity_codes": [...]?, "conditions": {...}?}
    """
    code = models.CharField(max_length=50, primary_key=True)
    name = models.CharField(max_length=100)
    description = models.TextField(blank=True)
    criteria = models.JSONField(default=dict, blank=True)
    icon_url = models.URLField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["code"]

    def __str__(self):
        return f"{self.code}: {self.name}"


class EarnedBadge(models.Model):
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="earned_badges",
    )
    badge = models.ForeignKey(
        Badge,
        on_delete=models.PROTECT,
        related_name="earned_badges",
    )
    earned_at = models.DateTimeField(default=timezone.now)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["user", "badge"], name="earned_badge_user_badge_unique"),
        ]
        indexes = [
            models.Index(fields=["badge", "-earned_at"], name="earned_badge_recent_idx"),
        ]

    def __str__(self):
        return f"{self.user} earned {self.badge_id}"


class LearnTagGrant(models.Model):
    """
    One row per course-completion tag the provider has granted a user.
    Tag names are stored lower-cased and trimmed.
    """
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="learn_tag_grants",
    )
    tag_name = models.CharField(max_length=255)
    granted_at = models.DateTimeField(default=timezone.now)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["user", "tag_name"], name="learn_tag_grant_user_tag_unique"),
        ]

    def __str__(self):
        return f"{self.user} granted {self.tag_name}"
