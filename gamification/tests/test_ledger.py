from django.test import TestCase

from core.constants import (
    ACTIVITY_EXPLORE,
    ACTIVITY_LEARN,
    EXTERNAL_SOURCE_KAJABI,
    LEDGER_SOURCE_MANUAL,
    LEDGER_SOURCE_WEBHOOK,
)
from core.exceptions import DuplicateLedgerEntry
from gamification import ledger
from gamification.models import PointsLedgerEntry
from users.models import User


class PointsLedgerTestCase(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(username="ledger_user", password="pass")

    def test_total_is_sum_of_entries(self):
        ledger.append_entry(self.user, ACTIVITY_LEARN, 20, LEDGER_SOURCE_MANUAL)
        ledger.append_entry(self.user, ACTIVITY_EXPLORE, 50, LEDGER_SOURCE_MANUAL)
        ledger.append_entry(self.user, ACTIVITY_EXPLORE, -5, LEDGER_SOURCE_MANUAL)

        self.assertEqual(ledger.total_for_user(self.user), 65)

    def test_total_is_zero_without_entries(self):
        self.assertEqual(ledger.total_for_user(self.user), 0)

    def test_duplicate_external_event_is_rejected(self):
        ledger.append_entry(
            self.user, ACTIVITY_LEARN, 20, LEDGER_SOURCE_WEBHOOK,
            external_source=EXTERNAL_SOURCE_KAJABI, external_event_id="evt_1",
        )

        with self.assertRaises(DuplicateLedgerEntry) as ctx:
            ledger.append_entry(
                self.user, ACTIVITY_LEARN, 20, LEDGER_SOURCE_WEBHOOK,
                external_source=EXTERNAL_SOURCE_KAJABI, external_event_id="evt_1",
            )

        self.assertEqual(ctx.exception.code, "DUPLICATE")
        self.assertEqual(ctx.exception.external_event_id, "evt_1")
        self.assertEqual(ledger.total_for_user(self.user), 20)
        self.assertEqual(PointsLedgerEntry.objects.filter(user=self.user).count(), 1)

    def test_same_event_id_from_other_source_is_allowed(self):
        ledger.append_entry(
            self.user, ACTIVITY_LEARN, 20, LEDGER_SOURCE_WEBHOOK,
            external_source=EXTERNAL_SOURCE_KAJABI, external_event_id="evt_2",
        )
        ledger.append_entry(
            self.user, ACTIVITY_LEARN, 20, LEDGER_SOURCE_MANUAL,
            external_source="admin_approval", external_event_id="evt_2",
        )
        self.assertEqual(ledger.total_for_user(self.user), 40)

    def test_entries_without_idempotency_key_are_independent(self):
        ledger.append_entry(self.user, ACTIVITY_LEARN, 20, LEDGER_SOURCE_MANUAL)
        ledger.append_entry(self.user, ACTIVITY_LEARN, 20, LEDGER_SOURCE_MANUAL)
        self.assertEqual(ledger.total_for_user(self.user), 40)

    def test_find_entry(self):
        entry = ledger.append_entry(
            self.user, ACTIVITY_LEARN, 20, LEDGER_SOURCE_WEBHOOK,
            external_source=EXTERNAL_SOURCE_KAJABI, external_event_id="evt_3",
        )
        self.assertEqual(ledger.find_entry(EXTERNAL_SOURCE_KAJABI, "evt_3"), entry)
        self.assertIsNone(ledger.find_entry(EXTERNAL_SOURCE_KAJABI, "evt_missing"))
        self.assertIsNone(ledger.find_entry(None, "evt_3"))

    def test_entries_are_append_only(self):
        entry = ledger.append_entry(self.user, ACTIVITY_LEARN, 20, LEDGER_SOURCE_MANUAL)

        entry.delta_points = 999
        with self.assertRaises(ValueError):
            entry.save()
        with self.assertRaises(ValueError):
            entry.delete()

        entry.refresh_from_db()
        self.assertEqual(entry.delta_points, 20)

    def test_totals_by_activity(self):
        ledger.append_entry(self.user, ACTIVITY_LEARN, 20, LEDGER_SOURCE_MANUAL)
        ledger.append_entry(self.user, ACTIVITY_EXPLORE, 50, LEDGER_SOURCE_MANUAL)
        ledger.append_entry(self.user, ACTIVITY_EXPLORE, 10, LEDGER_SOURCE_MANUAL)

        self.assertEqual(
            ledger.totals_by_activity(self.user),
            {ACTIVITY_EXPLORE: 60, ACTIVITY_LEARN: 20},
        )
