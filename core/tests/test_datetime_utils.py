from datetime import date, datetime, time, timezone as dt_timezone

from django.test import SimpleTestCase

from core.datetime_utils import (
    get_org_timezone,
    local_instant,
    parse_clock_time,
    parse_iso,
    rolling_window,
    to_local_date,
)


class DatetimeUtilsTestCase(SimpleTestCase):
    def setUp(self):
        self.tz = get_org_timezone("Asia/Jakarta")

    def test_default_org_timezone_comes_from_settings(self):
        self.assertEqual(str(get_org_timezone()), "Asia/Jakarta")

    def test_unknown_timezone(self):
        with self.assertRaises(ValueError):
            get_org_timezone("Mars/Olympus_Mons")

    def test_plain_date_is_already_local(self):
        self.assertEqual(to_local_date("2025-03-10", self.tz), date(2025, 3, 10))

    def test_aware_datetime_is_converted(self):
        self.assertEqual(to_local_date("2025-03-09T20:00:00Z", self.tz), date(2025, 3, 10))
        aware = datetime(2025, 3, 9, 16, 0, tzinfo=dt_timezone.utc)
        self.assertEqual(to_local_date(aware, self.tz), date(2025, 3, 9))

    def test_garbage_dates(self):
        self.assertIsNone(to_local_date("yesterday", self.tz))
        self.assertIsNone(to_local_date("2025-13-40", self.tz))
        self.assertIsNone(to_local_date(None, self.tz))
        self.assertIsNone(parse_iso("not-a-date"))

    def test_clock_time(self):
        self.assertEqual(parse_clock_time("09:30"), time(9, 30))
        self.assertIsNone(parse_clock_time("half past nine"))
        self.assertIsNone(parse_clock_time(""))

    def test_rolling_window_covers_seven_local_days(self):
        start, end = rolling_window(date(2025, 3, 10), 7, self.tz)

        self.assertEqual(start, local_instant(date(2025, 3, 4), None, self.tz))
        self.assertEqual(end, local_instant(date(2025, 3, 11), None, self.tz))
        # Jakarta midnight is 17:00 UTC the previous day
        self.assertEqual(start.astimezone(dt_timezone.utc), datetime(2025, 3, 3, 17, 0, tzinfo=dt_timezone.utc))
