from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Activity",
            fields=[
                ("code", models.CharField(max_length=32, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=100)),
                ("default_points", models.IntegerField(default=0)),
                (
                    "payload_schema_id",
                    models.CharField(
                        blank=True,
                        help_text="Identifier of the payload shape submissions for this activity carry",
                        max_length=64,
                    ),
                ),
            ],
            options={
                "verbose_name_plural": "Activities",
                "ordering": ["code"],
            },
        ),
        migrations.CreateModel(
            name="AuditLogEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("actor_id", models.CharField(db_index=True, max_length=64)),
                ("action", models.CharField(db_index=True, max_length=64)),
                ("target_id", models.CharField(db_index=True, max_length=64)),
                ("meta", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
            ],
            options={
                "verbose_name_plural": "Audit log entries",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["target_id", "-created_at"], name="audit_target_created_idx"),
                ],
            },
        ),
    ]
