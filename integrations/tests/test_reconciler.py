from unittest import mock

from django.test import TestCase

from core.constants import (
    ACTIVITY_LEARN,
    AUDIT_KAJABI_EVENT_RECONCILED,
    EXTERNAL_SOURCE_KAJABI,
    LEDGER_SOURCE_MANUAL,
    LEDGER_SOURCE_WEBHOOK,
)
from core.exceptions import ConflictError, NotFoundError, UnsupportedEvent
from core.models import AuditLogEntry
from gamification import ledger
from gamification.models import EarnedBadge, LearnTagGrant, PointsLedgerEntry
from integrations.models import ExternalCompletionEvent
from integrations.reconciler import reconcile
from submissions.models import Submission
from users.models import User


class ReconcilerTestCase(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(
            username="kajabi_user", email="guru@school.id", password="pass",
        )

    def store(self, event_id="evt_1", tag="learn_completed", email="Guru@School.id ", contact_id="555"):
        return ExternalCompletionEvent.objects.create(
            id=event_id,
            event_type="contact.tagged",
            tag_name=tag,
            contact_email=email,
            contact_id=contact_id,
            payload={},
        )

    def test_awards_learn_points(self):
        event = self.store()

        result = reconcile(event.pk, source=LEDGER_SOURCE_WEBHOOK)

        self.assertFalse(result.already_recorded)
        self.assertEqual(result.user_id, self.user.pk)
        self.assertEqual(result.points_awarded, 20)
        self.assertEqual(result.badges_awarded, [])

        entry = PointsLedgerEntry.objects.get(user=self.user)
        self.assertEqual(entry.source, LEDGER_SOURCE_WEBHOOK)
        self.assertEqual(entry.external_source, EXTERNAL_SOURCE_KAJABI)
        self.assertEqual(entry.external_event_id, "evt_1")
        self.assertEqual(entry.event_time, event.received_at)
        self.assertTrue(LearnTagGrant.objects.filter(user=self.user, tag_name="learn_completed").exists())

        submission = Submission.objects.get(pk=result.submission_id)
        self.assertEqual(submission.activity_id, ACTIVITY_LEARN)
        self.assertEqual(submission.status, Submission.STATUS_APPROVED)
        self.assertEqual(submission.visibility, Submission.VISIBILITY_PRIVATE)
        self.assertEqual(submission.payload["kajabi_event_id"], "evt_1")

        event.refresh_from_db()
        self.assertIsNotNone(event.processed_at)
        self.assertEqual(event.user_match, self.user)

        self.user.refresh_from_db()
        self.assertEqual(self.user.kajabi_contact_id, "555")

        audit = AuditLogEntry.objects.get(action=AUDIT_KAJABI_EVENT_RECONCILED)
        self.assertEqual(audit.actor_id, "system")
        self.assertEqual(audit.target_id, "evt_1")

    def test_second_course_completes_learn_stage(self):
        first = reconcile(self.store(event_id="evt_ai_1", tag="Elevate-AI-1-Completed").pk)
        second = reconcile(self.store(event_id="evt_ai_2", tag="elevate-ai-2-completed").pk)

        self.assertEqual(first.badges_awarded, [])
        self.assertEqual(second.badges_awarded, ["STARTER"])
        self.assertEqual(
            set(LearnTagGrant.objects.filter(user=self.user).values_list("tag_name", flat=True)),
            {"elevate-ai-1-completed", "elevate-ai-2-completed"},
        )
        self.assertEqual(ledger.total_for_user(self.user), 40)

    def test_ledger_row_written_concurrently_is_treated_as_recorded(self):
        event = self.store()
        real_find = ledger.find_entry
        calls = []

        def find_then_race(external_source, external_event_id):
            if not calls:
                calls.append(external_event_id)
                # Another delivery inserts the row after our pre-check
                PointsLedgerEntry.objects.create(
                    user=self.user, activity_id=ACTIVITY_LEARN, delta_points=20,
                    source=LEDGER_SOURCE_WEBHOOK, external_source=external_source,
                    external_event_id=external_event_id,
                )
                return None
            return real_find(external_source, external_event_id)

        with mock.patch("gamification.ledger.find_entry", side_effect=find_then_race):
            result = reconcile(event.pk)

        self.assertTrue(result.already_recorded)
        self.assertEqual(result.user_id, self.user.pk)
        self.assertEqual(PointsLedgerEntry.objects.filter(external_event_id="evt_1").count(), 1)
        self.assertEqual(ledger.total_for_user(self.user), 20)
        self.assertFalse(Submission.objects.exists())
        event.refresh_from_db()
        self.assertIsNotNone(event.processed_at)
        self.assertEqual(event.user_match, self.user)

    def test_default_source_is_manual(self):
        event = self.store()
        reconcile(event.pk)
        self.assertEqual(PointsLedgerEntry.objects.get().source, LEDGER_SOURCE_MANUAL)

    def test_reconcile_twice_conflicts_and_awards_once(self):
        event = self.store()
        reconcile(event.pk)

        with self.assertRaises(ConflictError):
            reconcile(event.pk)

        self.assertEqual(ledger.total_for_user(self.user), 20)

    def test_existing_ledger_entry_is_treated_as_recorded(self):
        ledger.append_entry(
            self.user, ACTIVITY_LEARN, 20, LEDGER_SOURCE_WEBHOOK,
            external_source=EXTERNAL_SOURCE_KAJABI, external_event_id="evt_1",
        )
        event = self.store()

        result = reconcile(event.pk)

        self.assertTrue(result.already_recorded)
        self.assertEqual(ledger.total_for_user(self.user), 20)
        self.assertFalse(Submission.objects.exists())
        event.refresh_from_db()
        self.assertIsNotNone(event.processed_at)

    def test_unsupported_tag(self):
        event = self.store(tag="newsletter")

        with self.assertRaises(UnsupportedEvent):
            reconcile(event.pk)

        event.refresh_from_db()
        self.assertIsNone(event.processed_at)
        self.assertFalse(PointsLedgerEntry.objects.exists())

    def test_tag_match_ignores_case(self):
        event = self.store(tag=" Elevate-AI-2-Completed ")
        self.assertEqual(reconcile(event.pk).points_awarded, 20)

    def test_contact_id_takes_precedence_over_email(self):
        linked = User.objects.create_user(username="linked", email="linked@school.id", password="pass")
        linked.kajabi_contact_id = "555"
        linked.save()
        event = self.store()

        result = reconcile(event.pk)

        self.assertEqual(result.user_id, linked.pk)

    def test_unmatched_contact_can_be_reprocessed(self):
        event = self.store(event_id="evt_2", email="newcomer@school.id", contact_id="888")

        with self.assertRaises(NotFoundError):
            reconcile(event.pk)
        event.refresh_from_db()
        self.assertIsNone(event.processed_at)

        newcomer = User.objects.create_user(username="newcomer", email="newcomer@school.id", password="pass")
        result = reconcile(event.pk, actor_id=newcomer.pk)
        self.assertEqual(result.user_id, newcomer.pk)

    def test_unknown_event(self):
        with self.assertRaises(NotFoundError):
            reconcile("evt_missing")

    def test_badges_from_reconciliation(self):
        EarnedBadge.objects.create(user=self.user, badge_id="STARTER")
        event = self.store()
        self.assertEqual(reconcile(event.pk).badges_awarded, [])
