from django.db import migrations

# code -> (name, description, criteria)
BADGES = {
    # Stage completion
    "STARTER": (
        "Starter",
        "First LEARN submission approved.",
        {"type": "activities", "threshold": 1, "activity_codes": ["LEARN"]},
    ),
    "IN_CLASS_INNOVATOR": (
        "In-Class Innovator",
        "First EXPLORE submission approved.",
        {"type": "activities", "threshold": 1, "activity_codes": ["EXPLORE"]},
    ),
    "AMPLIFIER": (
        "Amplifier",
        "First AMPLIFY submission approved.",
        {"type": "activities", "threshold": 1, "activity_codes": ["AMPLIFY"]},
    ),
    "COMMUNITY_VOICE": (
        "Community Voice",
        "First PRESENT submission approved.",
        {"type": "activities", "threshold": 1, "activity_codes": ["PRESENT"]},
    ),
    "SHINING_LIGHT": (
        "Shining Light",
        "First SHINE submission approved.",
        {"type": "activities", "threshold": 1, "activity_codes": ["SHINE"]},
    ),
    # Point milestones
    "RISING_STAR": ("Rising Star", "Reached 50 points.", {"type": "points", "threshold": 50}),
    "TOP_SCORER": ("Top Scorer", "Reached 100 points.", {"type": "points", "threshold": 100}),
    "LEAPS_CHAMPION": ("LEAPS Champion", "Reached 200 points.", {"type": "points", "threshold": 200}),
    # Catalog criteria
    "EXPLORER": (
        "Explorer",
        "Completed both LEARN and EXPLORE.",
        {"type": "activities", "threshold": 2, "activity_codes": ["LEARN", "EXPLORE"]},
    ),
    "FULL_JOURNEY": (
        "Full Journey",
        "An approved submission in every LEAPS stage.",
        {"type": "activities", "threshold": 5},
    ),
    "PROLIFIC_AMPLIFIER": (
        "Prolific Amplifier",
        "Ten approved AMPLIFY sessions.",
        {"type": "submissions", "threshold": 10, "activity_codes": ["AMPLIFY"]},
    ),
    "CONSISTENT": (
        "Consistent",
        "Approved work in three consecutive weeks.",
        {"type": "streak", "threshold": 3, "conditions": {"period": "week"}},
    ),
}


def seed_badges(apps, schema_editor):
    Badge = apps.get_model("gamification", "Badge")
    for code, (name, description, criteria) in BADGES.items():
        Badge.objects.update_or_create(
            code=code,
            defaults={"name": name, "description": description, "criteria": criteria},
        )


def unseed_badges(apps, schema_editor):
    Badge = apps.get_model("gamification", "Badge")
    Badge.objects.filter(code__in=list(BADGES)).delete()


class Migration(migrations.Migration):

    dependencies = [
        ("gamification", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(seed_badges, unseed_badges),
    ]
