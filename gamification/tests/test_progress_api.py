from django.test import TestCase
from rest_framework.test import APIClient
from rest_framework import status

from core.constants import ACTIVITY_EXPLORE, ACTIVITY_LEARN, LEDGER_SOURCE_MANUAL
from gamification import ledger
from gamification.engine import BadgeService
from gamification.models import EarnedBadge
from submissions.models import Submission
from users.models import User


class ProgressApiTestCase(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.educator = User.objects.create_user(username="progress_user", password="pass")
        self.other = User.objects.create_user(username="progress_other", password="pass")
        self.reviewer = User.objects.create_user(
            username="progress_reviewer", password="pass", role=User.ROLE_REVIEWER,
        )
        self.admin = User.objects.create_user(username="progress_admin", password="pass", role=User.ROLE_ADMIN)

        Submission.objects.create(user=self.educator, activity_id=ACTIVITY_LEARN, status=Submission.STATUS_APPROVED)
        Submission.objects.create(user=self.educator, activity_id=ACTIVITY_EXPLORE, status=Submission.STATUS_APPROVED)
        ledger.append_entry(self.educator, ACTIVITY_LEARN, 20, LEDGER_SOURCE_MANUAL)
        ledger.append_entry(self.educator, ACTIVITY_EXPLORE, 50, LEDGER_SOURCE_MANUAL)
        BadgeService.record_learn_tag(self.educator, "elevate-ai-1-completed")
        BadgeService.record_learn_tag(self.educator, "elevate-ai-2-completed")
        BadgeService.grant_badges_for_user(self.educator)

    def auth(self, user):
        self.client.force_authenticate(user=user)

    def url(self, user):
        return f"/api/gamification/users/{user.pk}/progress/"

    def test_own_progress(self):
        self.auth(self.educator)
        resp = self.client.get(self.url(self.educator))

        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        data = resp.json()
        self.assertEqual(data["total_points"], 70)
        self.assertEqual(data["points_by_activity"], {"EXPLORE": 50, "LEARN": 20})
        self.assertEqual(data["approved_stages"], ["EXPLORE", "LEARN"])
        codes = {b["code"] for b in data["badges"]}
        self.assertEqual(codes, {"STARTER", "IN_CLASS_INNOVATOR", "RISING_STAR", "EXPLORER"})
        self.assertEqual(len(data["recent_ledger"]), 2)

    def test_other_participant_is_forbidden(self):
        self.auth(self.other)
        resp = self.client.get(self.url(self.educator))
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_reviewer_can_view(self):
        self.auth(self.reviewer)
        resp = self.client.get(self.url(self.educator))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)

    def test_unknown_user(self):
        self.auth(self.reviewer)
        resp = self.client.get("/api/gamification/users/999999/progress/")
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)


class AssignBadgeApiTestCase(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.educator = User.objects.create_user(username="assign_user", password="pass")
        self.reviewer = User.objects.create_user(
            username="assign_reviewer", password="pass", role=User.ROLE_REVIEWER,
        )
        self.admin = User.objects.create_user(username="assign_admin", password="pass", role=User.ROLE_ADMIN)

    def test_admin_assigns(self):
        self.client.force_authenticate(user=self.admin)
        resp = self.client.post(
            "/api/gamification/badges/SHINING_LIGHT/assign/",
            {"user_ids": [self.educator.pk], "reason": "Conference keynote"},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.json()["assigned"], [self.educator.pk])
        self.assertTrue(EarnedBadge.objects.filter(user=self.educator, badge_id="SHINING_LIGHT").exists())

    def test_reviewer_cannot_assign(self):
        self.client.force_authenticate(user=self.reviewer)
        resp = self.client.post(
            "/api/gamification/badges/SHINING_LIGHT/assign/",
            {"user_ids": [self.educator.pk]},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_unknown_badge(self):
        self.client.force_authenticate(user=self.admin)
        resp = self.client.post(
            "/api/gamification/badges/NOT_A_BADGE/assign/",
            {"user_ids": [self.educator.pk]},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(resp.json()["errors"]["code"], "NOT_FOUND")

    def test_empty_user_list_is_invalid(self):
        self.client.force_authenticate(user=self.admin)
        resp = self.client.post("/api/gamification/badges/SHINING_LIGHT/assign/", {"user_ids": []}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
