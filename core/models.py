#  core/models.py
from django.db import models


class Activity(models.Model):
    """
    Activity catalog entry (one per LEAPS stage).
    Reference data: seeded by migration, never mutated by the engine.
    """
    code = models.CharField(max_length=32, primary_key=True)
    name = models.CharField(max_length=100)
    default_points = models.IntegerField(default=0)
    payload_schema_id = models.CharField(
        max_length=64,
        blank=True,
        help_text="Identifier of the payload shape submissions for this activity carry",
    )

    class Meta:
        verbose_name_plural = "Activities"
        ordering = ["code"]

    def __str__(self):
        return f"{self.code} ({self.default_points} pts)"


class AuditLogEntry(models.Model):
    """
    Append-only audit trail. Written in the same transaction as every
    ledger write and every review decision.
    """
    # Actor ids are trusted as given by the caller (user pk or "system")
    actor_id = models.CharField(max_length=64, db_index=True)
    action = models.CharField(max_length=64, db_index=True)
    target_id = models.CharField(max_length=64, db_index=True)
    meta = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        verbose_name_plural = "Audit log entries"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["target_id", "-created_at"], name="audit_target_created_idx"),
        ]

    def save(self, *args, **kwargs):
        if self.pk is not None and not self._state.adding:
            raise ValueError("Audit log entries are append-only")
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.actor_id} - {self.action} - {self.target_id}"
