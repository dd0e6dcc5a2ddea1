# users/models.py
from django.contrib.auth.models import AbstractUser
from django.db import models
from django.db.models.functions import Lower


class User(AbstractUser):
    ROLE_PARTICIPANT = "participant"
    ROLE_REVIEWER = "reviewer"
    ROLE_ADMIN = "admin"

    ROLE_CHOICES = (
        (ROLE_PARTICIPANT, 'Participant'),
        (ROLE_REVIEWER, 'Reviewer'),
        (ROLE_ADMIN, 'Admin'),
    )

    role = models.CharField(
        max_length=30,
        choices=ROLE_CHOICES,
        default=ROLE_PARTICIPANT,
    )

    # Educator profile
    school = models.CharField(max_length=255, blank=True, null=True)
    cohort = models.CharField(max_length=100, blank=True, null=True)

    # Link to the course provider's contact record (set on first matched completion event)
    kajabi_contact_id = models.CharField(
        max_length=64,
        unique=True,
        blank=True,
        null=True,
        help_text="Contact id at the course completion provider",
    )

    # NOTE: no points column. Totals are always derived from the points ledger.

    class Meta(AbstractUser.Meta):
        constraints = [
            models.UniqueConstraint(
                Lower("email"),
                name="user_email_ci_unique",
                condition=~models.Q(email=""),
            ),
        ]

    @property
    def is_reviewer(self) -> bool:
        return self.role in (self.ROLE_REVIEWER, self.ROLE_ADMIN) or self.is_superuser

    @property
    def is_admin_role(self) -> bool:
        return self.role == self.ROLE_ADMIN or self.is_superuser

    def __str__(self):
        return self.username
