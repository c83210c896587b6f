"""Tests for schedule entry parsing and matching."""
import unittest
from datetime import datetime, timedelta, timezone

from shutdown_schedule import (
    MatchStatus,
    ResolvedWindow,
    ScheduleSyntaxError,
    Weekday,
    match_entry,
    match_schedule,
    parse_timestamp,
    resolve_window,
    split_schedule,
)

UTC = timezone.utc


def at(hour, minute=0, second=0, day=14):
    """An instant in October 2026; the 14th is a Wednesday, the 17th a Saturday."""
    return datetime(2026, 10, day, hour, minute, second, tzinfo=UTC)


class TestParseTimestamp(unittest.TestCase):

    def test_bare_time_is_today(self):
        self.assertEqual(parse_timestamp("10PM", at(9)), at(22))
        self.assertEqual(parse_timestamp("06:30", at(9)), at(6, 30))

    def test_date_keeps_its_own_day(self):
        self.assertEqual(parse_timestamp("December 25", at(9)), datetime(2026, 12, 25, tzinfo=UTC))

    def test_offset_is_converted_to_utc(self):
        self.assertEqual(parse_timestamp("10:00 +02:00", at(9)), at(8))

    def test_garbage_raises(self):
        with self.assertRaises(ScheduleSyntaxError):
            parse_timestamp("not a time", at(9))


class TestResolveWindow(unittest.TestCase):

    def test_same_day_range(self):
        self.assertEqual(resolve_window("08:00 -> 17:00", at(12)), ResolvedWindow(at(8), at(17)))

    def test_midnight_crossing_before_midnight(self):
        window = resolve_window("22:00 -> 06:00", at(23))
        self.assertEqual(window, ResolvedWindow(at(22), at(6, day=15)))

    def test_midnight_crossing_after_midnight(self):
        window = resolve_window("22:00 -> 06:00", at(5))
        self.assertEqual(window, ResolvedWindow(at(22, day=13), at(6)))

    def test_midnight_crossing_between_end_and_start(self):
        window = resolve_window("22:00 -> 06:00", at(7))
        self.assertEqual(window, ResolvedWindow(at(22, day=13), at(6)))

    def test_resolved_window_is_ordered(self):
        for hour in range(24):
            window = resolve_window("10PM -> 6AM", at(hour))
            self.assertLessEqual(window.start, window.end)

    def test_weekday_today_is_full_day(self):
        self.assertEqual(resolve_window("Wednesday", at(12)), ResolvedWindow(at(0), at(23, 59, 59)))

    def test_other_weekday_has_no_window(self):
        self.assertIsNone(resolve_window("Thursday", at(12)))

    def test_date_is_full_day(self):
        window = resolve_window("December 25", at(12))
        self.assertEqual(window.start, datetime(2026, 12, 25, 0, 0, 0, tzinfo=UTC))
        self.assertEqual(window.end, datetime(2026, 12, 25, 23, 59, 59, tzinfo=UTC))

    def test_extra_delimiter_raises(self):
        with self.assertRaises(ScheduleSyntaxError):
            resolve_window("10PM -> 6AM -> extra", at(12))

    def test_missing_end_raises(self):
        with self.assertRaises(ScheduleSyntaxError):
            resolve_window("10PM ->", at(12))

    def test_dated_range_spans_days(self):
        window = resolve_window("October 13 18:00 -> October 16 08:00", at(12))
        self.assertEqual(window, ResolvedWindow(at(18, day=13), at(8, day=16)))

    def test_range_still_inverted_after_adjustment_raises(self):
        with self.assertRaises(ScheduleSyntaxError):
            resolve_window("9999-12-31T23:59:59 -> 00:00", at(12))

    def test_range_at_datetime_limit_raises(self):
        with self.assertRaises(ScheduleSyntaxError):
            resolve_window("0001-01-01T05:00 -> 0001-01-01T01:00", at(12))


class TestMatchEntry(unittest.TestCase):

    def test_inside_and_outside_plain_range(self):
        self.assertTrue(match_entry("08:00 -> 17:00", at(12)))
        self.assertFalse(match_entry("08:00 -> 17:00", at(18)))
        self.assertFalse(match_entry("08:00 -> 17:00", at(7, 59, 59)))

    def test_boundaries_are_inclusive(self):
        self.assertTrue(match_entry("08:00 -> 17:00", at(8)))
        self.assertTrue(match_entry("08:00 -> 17:00", at(17)))

    def test_midnight_crossing(self):
        self.assertTrue(match_entry("22:00 -> 06:00", at(23)))
        self.assertTrue(match_entry("22:00 -> 06:00", at(5)))
        self.assertFalse(match_entry("22:00 -> 06:00", at(7)))

    def test_weekday(self):
        for hour in (0, 12, 23):
            self.assertTrue(match_entry("wednesday", at(hour)))
            self.assertFalse(match_entry("Monday", at(hour)))

    def test_other_weekday_is_not_malformed(self):
        result = match_entry("Friday", at(12))
        self.assertEqual(result.status, MatchStatus.NOT_MATCHED)
        self.assertIsNone(result.window)

    def test_date_entry(self):
        self.assertTrue(match_entry("October 14", at(15)))
        self.assertFalse(match_entry("October 15", at(15)))

    def test_malformed_range_does_not_raise(self):
        with self.assertLogs("autoshutdown", level="WARNING") as logs:
            result = match_entry("10PM -> 6AM -> extra", at(23))
        self.assertFalse(result)
        self.assertEqual(result.status, MatchStatus.MALFORMED)
        self.assertIn("expected", logs.output[0])

    def test_unparseable_token_is_malformed(self):
        with self.assertLogs("autoshutdown", level="WARNING"):
            result = match_entry("Caturday", at(12))
        self.assertEqual(result.status, MatchStatus.MALFORMED)
        self.assertIsNotNone(result.reason)

    def test_dated_range_inside_and_outside(self):
        entry = "October 13 18:00 -> October 16 08:00"
        self.assertTrue(match_entry(entry, at(12)))
        self.assertTrue(match_entry(entry, at(18, day=13)))
        self.assertFalse(match_entry(entry, at(17, 59, day=13)))
        self.assertFalse(match_entry(entry, at(9, day=16)))

    def test_out_of_range_offset_is_malformed(self):
        with self.assertLogs("autoshutdown", level="WARNING"):
            result = match_entry("12:00 +99:00 -> 13:00", at(12))
        self.assertEqual(result.status, MatchStatus.MALFORMED)

    def test_unknown_time_zone_is_malformed(self):
        with self.assertLogs("autoshutdown", level="WARNING"):
            result = match_entry("10:00 XYZ -> 11:00", at(10, 30))
        self.assertEqual(result.status, MatchStatus.MALFORMED)
        self.assertIn("XYZ", result.reason)

    def test_naive_now_is_utc(self):
        self.assertTrue(match_entry("08:00 -> 17:00", datetime(2026, 10, 14, 12, 0)))

    def test_aware_now_in_other_zone(self):
        plus_two = timezone(timedelta(hours=2))
        # 18:30 at +02:00 is 16:30 UTC
        self.assertTrue(match_entry("08:00 -> 17:00", datetime(2026, 10, 14, 18, 30, tzinfo=plus_two)))


class TestSchedule(unittest.TestCase):

    def test_split_trims_and_drops_empty(self):
        self.assertEqual(split_schedule(" 18:00->09:00 , Saturday,,Sunday "),
                         ["18:00->09:00", "Saturday", "Sunday"])
        self.assertEqual(split_schedule(""), [])
        self.assertEqual(split_schedule(None), [])

    def test_weekend_entry_matches_all_saturday(self):
        for hour in (0, 10, 12, 17, 23):
            result = match_schedule("18:00->09:00,Saturday,Sunday", at(hour, day=17))
            self.assertTrue(result, hour)

    def test_first_match_wins(self):
        result = match_schedule("Wednesday, 08:00 -> 17:00", at(12))
        self.assertEqual(result.entry, "Wednesday")

    def test_malformed_entry_does_not_hide_later_match(self):
        with self.assertLogs("autoshutdown", level="WARNING"):
            result = match_schedule("bogus -> entry -> here, Wednesday", at(12))
        self.assertEqual(result.entry, "Wednesday")

    def test_no_match(self):
        result = match_schedule("18:00->09:00,Saturday,Sunday", at(12))
        self.assertEqual(result.status, MatchStatus.NOT_MATCHED)

    def test_weekday_enum(self):
        self.assertIs(Weekday.from_name(" SATURDAY "), Weekday.SATURDAY)
        self.assertIsNone(Weekday.from_name("Sat"))
        self.assertIs(Weekday.of(at(12)), Weekday.WEDNESDAY)


if __name__ == "__main__":
    unittest.main()
