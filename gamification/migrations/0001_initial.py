import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("core", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Badge",
            fields=[
                ("code", models.CharField(max_length=50, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=100)),
                ("description", models.TextField(blank=True)),
                ("criteria", models.JSONField(blank=True, default=dict)),
                ("icon_url", models.URLField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["code"],
            },
        ),
        migrations.CreateModel(
            name="PointsLedgerEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "source",
                    models.CharField(
                        choices=[("MANUAL", "Manual"), ("WEBHOOK", "Webhook"), ("FORM", "Form")],
                        max_length=16,
                    ),
                ),
                ("delta_points", models.IntegerField(help_text="Positive or negative point value")),
                ("external_source", models.CharField(blank=True, max_length=64, null=True)),
                ("external_event_id", models.CharField(blank=True, max_length=255, null=True)),
                ("event_time", models.DateTimeField(default=django.utils.timezone.now)),
                ("meta", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "activity",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="ledger_entries",
                        to="core.activity",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="ledger_entries",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name_plural": "Points ledger entries",
                "indexes": [
                    models.Index(fields=["user", "-event_time"], name="ledger_user_time_idx"),
                    models.Index(fields=["external_event_id"], name="ledger_external_event_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("external_source", "external_event_id"),
                        name="ledger_external_event_unique",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="EarnedBadge",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("earned_at", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "badge",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="earned_badges",
                        to="gamification.badge",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="earned_badges",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "indexes": [
                    models.Index(fields=["badge", "-earned_at"], name="earned_badge_recent_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("user", "badge"), name="earned_badge_user_badge_unique"),
                ],
            },
        ),
    ]
