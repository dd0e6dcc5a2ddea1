from unittest import mock

from django.test import TestCase, override_settings

from core.constants import ACTIVITY_LEARN, AUDIT_ASSIGN_BADGE, LEDGER_SOURCE_MANUAL
from core.exceptions import NotFoundError
from core.models import AuditLogEntry
from gamification import ledger
from gamification.engine import BadgeService
from gamification.models import EarnedBadge, LearnTagGrant
from submissions.models import Submission
from users.models import User


class BadgeServiceTestCase(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(username="badge_user", password="pass")
        self.admin = User.objects.create_user(username="badge_admin", password="pass", role=User.ROLE_ADMIN)

    def approve_learn(self, points=20):
        Submission.objects.create(
            user=self.user,
            activity_id=ACTIVITY_LEARN,
            status=Submission.STATUS_APPROVED,
        )
        ledger.append_entry(self.user, ACTIVITY_LEARN, points, LEDGER_SOURCE_MANUAL)
        self.grant_courses("elevate-ai-1-completed", "elevate-ai-2-completed")

    def grant_courses(self, *tags):
        for tag in tags:
            BadgeService.record_learn_tag(self.user, tag)

    def test_grants_stage_and_milestone_badges(self):
        self.approve_learn(points=60)

        awarded = BadgeService.grant_badges_for_user(self.user)

        self.assertEqual(awarded, ["STARTER", "RISING_STAR"])
        self.assertEqual(
            set(EarnedBadge.objects.filter(user=self.user).values_list("badge_id", flat=True)),
            {"STARTER", "RISING_STAR"},
        )

    def test_second_evaluation_awards_nothing(self):
        self.approve_learn()
        BadgeService.grant_badges_for_user(self.user)

        self.assertEqual(BadgeService.grant_badges_for_user(self.user), [])
        self.assertEqual(EarnedBadge.objects.filter(user=self.user).count(), 1)

    def test_rejected_submissions_do_not_count(self):
        Submission.objects.create(user=self.user, activity_id=ACTIVITY_LEARN, status=Submission.STATUS_REJECTED)
        self.assertEqual(BadgeService.grant_badges_for_user(self.user), [])

    def test_progress_snapshot(self):
        self.approve_learn()
        progress = BadgeService.build_progress(self.user)

        self.assertEqual(progress.total_points, 20)
        self.assertEqual(progress.approved_stages, {ACTIVITY_LEARN: True})
        self.assertEqual(progress.learn_tags, {"elevate-ai-1-completed", "elevate-ai-2-completed"})
        self.assertEqual(progress.approved_counts, {ACTIVITY_LEARN: 1})
        self.assertEqual(len(progress.evidence_dates), 1)
        self.assertEqual(progress.already_earned, set())

    def test_one_course_is_not_enough_for_learn_badge(self):
        Submission.objects.create(user=self.user, activity_id=ACTIVITY_LEARN, status=Submission.STATUS_APPROVED)
        self.grant_courses("elevate-ai-1-completed")

        progress = BadgeService.build_progress(self.user)

        self.assertNotIn(ACTIVITY_LEARN, progress.approved_stages)
        self.assertEqual(BadgeService.grant_badges_for_user(self.user), [])

    def test_both_courses_award_learn_badge(self):
        self.grant_courses(" Elevate-AI-1-Completed", "elevate-ai-2-completed")
        self.assertEqual(BadgeService.grant_badges_for_user(self.user), ["STARTER"])

    @override_settings(LEARN_REQUIRED_COURSE_TAGS=[])
    def test_without_required_courses_an_approval_completes_learn(self):
        Submission.objects.create(user=self.user, activity_id=ACTIVITY_LEARN, status=Submission.STATUS_APPROVED)
        self.assertEqual(BadgeService.grant_badges_for_user(self.user), ["STARTER"])

    def test_record_learn_tag_is_idempotent(self):
        self.assertTrue(BadgeService.record_learn_tag(self.user, "Elevate-AI-1-Completed "))
        self.assertFalse(BadgeService.record_learn_tag(self.user, "elevate-ai-1-completed"))
        self.assertEqual(
            list(LearnTagGrant.objects.filter(user=self.user).values_list("tag_name", flat=True)),
            ["elevate-ai-1-completed"],
        )

    def test_badge_awarded_concurrently_is_skipped(self):
        self.approve_learn(points=60)
        real_build = BadgeService.build_progress

        def build_then_race(user):
            progress = real_build(user)
            # Another transaction commits STARTER after our snapshot was taken
            EarnedBadge.objects.create(user=user, badge_id="STARTER")
            return progress

        with mock.patch.object(BadgeService, "build_progress", side_effect=build_then_race):
            awarded = BadgeService.grant_badges_for_user(self.user)

        self.assertEqual(awarded, ["RISING_STAR"])
        self.assertEqual(EarnedBadge.objects.filter(user=self.user, badge_id="STARTER").count(), 1)
        self.assertTrue(EarnedBadge.objects.filter(user=self.user, badge_id="RISING_STAR").exists())

    def test_assign_badge(self):
        other = User.objects.create_user(username="other", password="pass")
        EarnedBadge.objects.create(user=other, badge_id="SHINING_LIGHT")

        result = BadgeService.assign_badge(
            "SHINING_LIGHT", [self.user.pk, other.pk, 999999], actor_id=self.admin.pk, reason="<b>Keynote</b>",
        )

        self.assertEqual(result, {"assigned": [self.user.pk], "skipped": [other.pk], "missing": [999999]})
        entry = AuditLogEntry.objects.get(action=AUDIT_ASSIGN_BADGE)
        self.assertEqual(entry.target_id, str(self.user.pk))
        self.assertEqual(entry.actor_id, str(self.admin.pk))
        self.assertEqual(entry.meta["reason"], "Keynote")

    def test_assign_unknown_badge(self):
        with self.assertRaises(NotFoundError):
            BadgeService.assign_badge("NOPE", [self.user.pk], actor_id=self.admin.pk)
