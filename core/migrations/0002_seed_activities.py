from django.db import migrations

# code -> (name, default points, payload schema id); Amplify is scored per person trained
ACTIVITIES = {
    "LEARN": ("Learn", 20, "learn.v1"),
    "EXPLORE": ("Explore", 50, "explore.v1"),
    "AMPLIFY": ("Amplify", 2, "amplify.v1"),
    "PRESENT": ("Present", 20, "present.v1"),
    "SHINE": ("Shine", 0, "shine.v1"),
}


def seed_activities(apps, schema_editor):
    Activity = apps.get_model("core", "Activity")
    for code, (name, default_points, schema_id) in ACTIVITIES.items():
        Activity.objects.update_or_create(
            code=code,
            defaults={
                "name": name,
                "default_points": default_points,
                "payload_schema_id": schema_id,
            },
        )


def unseed_activities(apps, schema_editor):
    Activity = apps.get_model("core", "Activity")
    Activity.objects.filter(code__in=list(ACTIVITIES)).delete()


class Migration(migrations.Migration):

    dependencies = [
        ("core", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(seed_activities, unseed_activities),
    ]
