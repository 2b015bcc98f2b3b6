"""Tests for timeledger/model.py normalization."""

from __future__ import annotations

import datetime as dt
import unittest

from tests.fixtures import UTC, at
from timeledger.model import (
    END_COUNT,
    END_NONE,
    END_UNTIL,
    occurrence_to_dict,
    parse_record,
    parse_records,
    parse_rule,
    record_to_dict,
)
from timeledger.recurrence import expand


class TestParseRecord(unittest.TestCase):

    def test_camel_case_document(self):
        rec = parse_record({
            "id": "e1",
            "uid": "u1",
            "dealId": "d1",
            "customerId": "c1",
            "project": "Dev",
            "summary": "Standup",
            "start": "2024-03-04T00:00:00.000Z",
            "end": "2024-03-04T00:30:00.000Z",
        }, UTC)
        self.assertEqual(rec.owner_id, "u1")
        self.assertEqual(rec.group_key, "d1")
        self.assertEqual(rec.customer_id, "c1")
        self.assertEqual(rec.start, at(2024, 3, 4))
        self.assertEqual(rec.duration, dt.timedelta(minutes=30))
        self.assertIsNone(rec.repeat_rule)

    def test_snake_case_aliases(self):
        rec = parse_record({"id": "e2", "owner_id": "u9", "group_key": "g", "start": "2024-03-04T09:00", "end": "2024-03-04T10:00"}, UTC)
        self.assertEqual((rec.owner_id, rec.group_key), ("u9", "g"))

    def test_naive_timestamps_use_given_zone(self):
        tz = dt.timezone(dt.timedelta(hours=9))
        rec = parse_record({"id": "e", "start": "2024-03-04T09:00", "end": "2024-03-04T10:00"}, tz)
        self.assertEqual(rec.start.utcoffset(), dt.timedelta(hours=9))

    def test_unparseable_start(self):
        rec = parse_record({"id": "e", "start": "yesterday", "end": "2024-03-04T10:00"}, UTC)
        self.assertIsNone(rec.start)
        self.assertIsNone(rec.end)
        self.assertEqual(rec.duration, dt.timedelta(0))

    def test_end_before_start_is_zero_duration(self):
        rec = parse_record({"id": "e", "start": "2024-03-04T10:00", "end": "2024-03-04T09:00"}, UTC)
        self.assertEqual(rec.end, rec.start)

    def test_blank_strings_become_none(self):
        rec = parse_record({"id": "e", "uid": "  ", "dealId": "", "start": "2024-03-04T10:00", "end": "2024-03-04T11:00"}, UTC)
        self.assertIsNone(rec.owner_id)
        self.assertIsNone(rec.group_key)

    def test_parse_records_skips_non_mappings(self):
        recs = parse_records([{"id": "a", "start": "2024-03-04T10:00"}, None, "junk", 3], UTC)
        self.assertEqual([r.id for r in recs], ["a"])


class TestParseRule(unittest.TestCase):

    def test_no_rule(self):
        self.assertIsNone(parse_rule(None))
        self.assertIsNone(parse_rule({}))
        self.assertIsNone(parse_rule("weekly"))

    def test_full_rule(self):
        rule = parse_rule({
            "freq": "WEEKLY",
            "interval": 2,
            "byWeekday": [5, 1, 1],
            "end": {"type": "UNTIL", "until": "2024-06-30"},
            "exdates": ["2024-03-11", "", "bogus", "2024-03-18T09:00:00"],
        })
        self.assertEqual(rule.frequency, "weekly")
        self.assertEqual(rule.interval, 2)
        self.assertEqual(rule.by_weekday, (1, 5))
        self.assertEqual(rule.end.kind, END_UNTIL)
        self.assertEqual(rule.end.until, dt.date(2024, 6, 30))
        self.assertEqual(rule.exception_dates, frozenset({"2024-03-11", "2024-03-18"}))

    def test_weekday_names_and_codes(self):
        rule = parse_rule({"byday": "MO, wed;Friday"})
        self.assertEqual(rule.by_weekday, (1, 3, 5))

    def test_bad_interval_defaults_to_one(self):
        for bad in (0, -3, "x", None, float("nan")):
            with self.subTest(interval=bad):
                self.assertEqual(parse_rule({"freq": "WEEKLY", "interval": bad}).interval, 1)

    def test_count_end_floored_min_one(self):
        self.assertEqual(parse_rule({"end": {"type": "count", "count": 2.7}}).end.count, 2)
        self.assertEqual(parse_rule({"end": {"type": "COUNT", "count": 0}}).end.count, 1)
        self.assertEqual(parse_rule({"end": {"type": "COUNT"}}).end.kind, END_COUNT)

    def test_top_level_end_keys(self):
        self.assertEqual(parse_rule({"freq": "weekly", "count": 3}).end.count, 3)
        self.assertEqual(parse_rule({"freq": "weekly", "until": "2024-04-01"}).end.kind, END_UNTIL)

    def test_unparseable_until_means_no_end(self):
        self.assertEqual(parse_rule({"end": {"type": "UNTIL", "until": "soon"}}).end.kind, END_NONE)

    def test_unknown_frequency_preserved(self):
        self.assertEqual(parse_rule({"freq": "DAILY"}).frequency, "daily")


class TestSerialization(unittest.TestCase):

    def test_record_round_trip_shape(self):
        raw = {
            "id": "w",
            "uid": "u1",
            "dealId": "d1",
            "start": "2024-03-04T09:00",
            "end": "2024-03-04T10:00",
            "repeat": {"freq": "WEEKLY", "interval": 1, "byWeekday": [1], "end": {"type": "COUNT", "count": 2}},
        }
        out = record_to_dict(parse_record(raw, UTC))
        self.assertEqual(out["ownerId"], "u1")
        self.assertEqual(out["repeat"]["end"], {"type": "COUNT", "count": 2})
        self.assertNotIn("summary", out)

    def test_occurrence_dict(self):
        rec = parse_record({"id": "a", "uid": "u1", "start": "2024-03-04T09:00", "end": "2024-03-04T10:00",
                            "repeat": {"byWeekday": [1]}}, UTC)
        occ = expand([rec], at(2024, 3, 1), at(2024, 3, 8))
        d = occurrence_to_dict(occ[0])
        self.assertEqual(d["baseId"], "a")
        self.assertTrue(d["isGenerated"])
        self.assertEqual(d["startUtc"], "2024-03-04T09:00:00.000Z")
        self.assertNotIn("groupKey", d)


if __name__ == "__main__":
    unittest.main()
