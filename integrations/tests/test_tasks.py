from django.test import TestCase

from integrations.models import ExternalCompletionEvent
from integrations.tasks import reconcile_completion_event_task
from users.models import User


class ReconcileTaskTestCase(TestCase):
    def setUp(self):
        User.objects.create_user(username="task_user", email="task@school.id", password="pass")

    def store(self, event_id, tag="learn_completed", email="task@school.id"):
        return ExternalCompletionEvent.objects.create(
            id=event_id, event_type="contact.tagged", tag_name=tag, contact_email=email,
        )

    def test_reconciles(self):
        self.store("evt_task_1")
        self.assertEqual(reconcile_completion_event_task("evt_task_1"), "reconciled")

    def test_engine_outcomes_are_returned_as_codes(self):
        self.store("evt_task_2", tag="other")
        self.assertEqual(reconcile_completion_event_task("evt_task_2"), "UNSUPPORTED_EVENT")
        self.assertEqual(reconcile_completion_event_task("evt_task_missing"), "NOT_FOUND")
