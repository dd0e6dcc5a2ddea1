from django.test import SimpleTestCase

from core.sanitizers import normalize_email, sanitize_note, sanitize_text


class SanitizersTestCase(SimpleTestCase):
    def test_note_strips_markup(self):
        self.assertEqual(sanitize_note("Good <b>job</b> <a href=\"x\">here</a>"), "Good job here")

    def test_empty_note_is_none(self):
        self.assertIsNone(sanitize_note(None))
        self.assertIsNone(sanitize_note("   "))
        self.assertIsNone(sanitize_note("<br>"))

    def test_note_length_limit(self):
        self.assertEqual(len(sanitize_note("x" * 5000)), 2000)

    def test_control_characters_removed(self):
        self.assertEqual(sanitize_text(" a\x00b\tc "), "ab\tc")

    def test_normalize_email(self):
        self.assertEqual(normalize_email("  Guru@School.ID "), "guru@school.id")
        self.assertEqual(normalize_email(None), "")
