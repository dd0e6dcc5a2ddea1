from django.db import IntegrityError
from django.test import TestCase

from core.permissions import is_admin_role, is_reviewer
from users.models import User


class UserRoleTestCase(TestCase):
    def test_roles(self):
        participant = User.objects.create_user(username="p", password="pass")
        reviewer = User.objects.create_user(username="r", password="pass", role=User.ROLE_REVIEWER)
        admin = User.objects.create_user(username="a", password="pass", role=User.ROLE_ADMIN)

        self.assertEqual(participant.role, User.ROLE_PARTICIPANT)
        self.assertFalse(is_reviewer(participant))
        self.assertTrue(is_reviewer(reviewer))
        self.assertFalse(is_admin_role(reviewer))
        self.assertTrue(is_reviewer(admin))
        self.assertTrue(is_admin_role(admin))

    def test_superuser_counts_as_admin(self):
        root = User.objects.create_superuser(username="root", email="root@example.com", password="pass")
        self.assertTrue(root.is_admin_role)

    def test_email_unique_ignoring_case(self):
        User.objects.create_user(username="one", email="same@school.id", password="pass")
        with self.assertRaises(IntegrityError):
            User.objects.create_user(username="two", email="SAME@school.id", password="pass")

    def test_blank_emails_do_not_collide(self):
        User.objects.create_user(username="blank1", password="pass")
        User.objects.create_user(username="blank2", password="pass")
        self.assertEqual(User.objects.filter(email="").count(), 2)
