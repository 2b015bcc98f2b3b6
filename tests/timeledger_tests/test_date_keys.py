"""Tests for timeledger/date_utils.py."""

from __future__ import annotations

import datetime as dt
import unittest
from zoneinfo import ZoneInfo

from tests.fixtures import UTC, at
from timeledger.date_utils import (
    add_months,
    combine_date_and_time,
    day_range,
    duration_parts,
    end_of_day,
    hours_label,
    label_ym,
    month_range,
    normalize_weekday,
    parse_date_key,
    parse_instant,
    parse_ym,
    start_of_week,
    to_date_key,
    to_utc_iso,
    week_range,
    weekday_index,
    ym_key,
)


class TestDateKeys(unittest.TestCase):

    def test_to_date_key(self):
        self.assertEqual(to_date_key(dt.date(2024, 3, 4)), "2024-03-04")
        self.assertEqual(to_date_key(at(2024, 12, 31, 23)), "2024-12-31")

    def test_parse_date_key(self):
        self.assertEqual(parse_date_key("2024-03-04"), dt.date(2024, 3, 4))
        self.assertEqual(parse_date_key("2024-03-04T09:00:00Z"), dt.date(2024, 3, 4))
        self.assertIsNone(parse_date_key("March 4"))
        self.assertIsNone(parse_date_key(""))
        self.assertIsNone(parse_date_key(None))

    def test_weekday_index_sunday_first(self):
        self.assertEqual(weekday_index(dt.date(2024, 3, 3)), 0)  # Sunday
        self.assertEqual(weekday_index(dt.date(2024, 3, 4)), 1)  # Monday
        self.assertEqual(weekday_index(dt.date(2024, 3, 9)), 6)  # Saturday

    def test_start_of_week(self):
        self.assertEqual(start_of_week(dt.date(2024, 3, 3)), dt.date(2024, 3, 3))
        self.assertEqual(start_of_week(dt.date(2024, 3, 9)), dt.date(2024, 3, 3))
        self.assertEqual(start_of_week(dt.date(2024, 3, 10)), dt.date(2024, 3, 10))

    def test_normalize_weekday(self):
        self.assertEqual(normalize_weekday(0), 0)
        self.assertEqual(normalize_weekday("SU"), 0)
        self.assertEqual(normalize_weekday("Monday"), 1)
        self.assertEqual(normalize_weekday("thurs"), 4)
        self.assertEqual(normalize_weekday("6"), 6)
        self.assertIsNone(normalize_weekday(7))
        self.assertIsNone(normalize_weekday("someday"))
        self.assertIsNone(normalize_weekday(True))


class TestInstants(unittest.TestCase):

    def test_parse_instant_variants(self):
        self.assertEqual(parse_instant("2024-03-04T09:00Z", UTC), at(2024, 3, 4, 9))
        self.assertEqual(parse_instant("2024-03-04T18:00+09:00", UTC), at(2024, 3, 4, 9))
        self.assertEqual(parse_instant(dt.date(2024, 3, 4), UTC), at(2024, 3, 4))
        self.assertEqual(parse_instant(dt.datetime(2024, 3, 4, 9), UTC), at(2024, 3, 4, 9))

    def test_parse_instant_never_raises(self):
        for bad in ("", "   ", "2024-13-01T00:00", "tomorrow", object()):
            with self.subTest(value=bad):
                self.assertIsNone(parse_instant(bad, UTC))

    def test_end_of_day(self):
        eod = end_of_day("2024-03-11", UTC)
        self.assertEqual(eod.date(), dt.date(2024, 3, 11))
        self.assertLess(eod, at(2024, 3, 12))
        self.assertGreater(eod, at(2024, 3, 11, 23, 59))

    def test_combine_keeps_base_wall_clock(self):
        ny = ZoneInfo("America/New_York")
        base = dt.datetime(2024, 3, 4, 9, 15, tzinfo=ny)
        moved = combine_date_and_time(dt.date(2024, 3, 18), base, ny)
        self.assertEqual((moved.hour, moved.minute), (9, 15))
        self.assertEqual(moved.utcoffset(), dt.timedelta(hours=-4))

    def test_to_utc_iso(self):
        tz = dt.timezone(dt.timedelta(hours=9))
        self.assertEqual(to_utc_iso(dt.datetime(2024, 3, 4, 9, tzinfo=tz)), "2024-03-04T00:00:00.000Z")


class TestMonthsAndWindows(unittest.TestCase):

    def test_ym_helpers(self):
        self.assertEqual(ym_key(dt.date(2024, 3, 15)), "2024-03")
        self.assertEqual(parse_ym("2024-03"), (2024, 3))
        self.assertEqual(add_months("2024-12", 1), "2025-01")
        self.assertEqual(add_months("2024-01", -1), "2023-12")
        self.assertEqual(add_months("2024-03", -14), "2023-01")
        self.assertEqual(label_ym("2024-03"), "2024/3")

    def test_parse_ym_falls_back_to_today(self):
        today = dt.date.today()
        self.assertEqual(parse_ym("garbage"), (today.year, today.month))
        self.assertEqual(parse_ym("2024-13")[0], 2024)

    def test_month_range(self):
        start, end = month_range("2024-02", UTC)
        self.assertEqual((start, end), (at(2024, 2, 1), at(2024, 3, 1)))
        start, end = month_range("2024-12", UTC)
        self.assertEqual(end, at(2025, 1, 1))

    def test_day_and_week_range(self):
        self.assertEqual(day_range("2024-03-06", UTC), (at(2024, 3, 6), at(2024, 3, 7)))
        self.assertEqual(week_range(dt.date(2024, 3, 6), UTC), (at(2024, 3, 3), at(2024, 3, 10)))


class TestPresentation(unittest.TestCase):

    def test_hours_label(self):
        self.assertEqual(hours_label(1.25), "1.2h")
        self.assertEqual(hours_label(1234.5), "1,234.5h")
        self.assertEqual(hours_label(float("inf")), "0.0h")
        self.assertEqual(hours_label("x"), "0.0h")

    def test_duration_parts(self):
        self.assertEqual(duration_parts(at(2024, 3, 4, 9), at(2024, 3, 4, 10, 45)), (1, 45, 105))
        self.assertEqual(duration_parts(at(2024, 3, 4, 10), at(2024, 3, 4, 9)), (0, 0, 0))


if __name__ == "__main__":
    unittest.main()
