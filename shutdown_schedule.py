"""Shutdown schedule parsing and matching.

A schedule is a comma-separated list of entries. Each entry is either a range
such as "22:00 -> 06:00" or "December 24 18:00 -> December 26 08:00", or a
single token naming a weekday ("Saturday") or a calendar date ("December 25")
that covers the whole day. All times are interpreted in UTC.
"""

import logging
import warnings
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

from dateutil import parser as date_parser
from dateutil.parser import UnknownTimezoneWarning

from logger import log

REFERENCE_TZ = timezone.utc
RANGE_DELIMITER = "->"
EXPECTED_SYNTAX = (
    "expected '<start> -> <end>' (e.g. '10PM -> 6AM'), a weekday name "
    "(e.g. 'Saturday') or a date (e.g. 'December 25')"
)


class ScheduleSyntaxError(ValueError):
    """Raised when a schedule entry cannot be parsed."""


class Weekday(Enum):
    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6

    @classmethod
    def from_name(cls, token):
        """Full English weekday name, any case; None otherwise."""
        try:
            return cls[token.strip().upper()]
        except KeyError:
            return None

    @classmethod
    def of(cls, instant):
        return cls(instant.weekday())


@dataclass(frozen=True)
class ResolvedWindow:
    start: datetime
    end: datetime

    def contains(self, now):
        return self.start <= now <= self.end  # inclusive at both ends


class MatchStatus(Enum):
    MATCHED = "matched"
    NOT_MATCHED = "not_matched"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class MatchResult:
    entry: str
    status: MatchStatus
    window: Optional[ResolvedWindow] = None
    reason: Optional[str] = None

    @property
    def matched(self):
        return self.status is MatchStatus.MATCHED

    def __bool__(self):
        return self.matched


def _as_reference(instant):
    if instant.tzinfo is None:
        return instant.replace(tzinfo=REFERENCE_TZ)
    return instant.astimezone(REFERENCE_TZ)


def _start_of_day(instant):
    return instant.replace(hour=0, minute=0, second=0, microsecond=0)


def _full_day(day):
    start = _start_of_day(day)
    return ResolvedWindow(start, start.replace(hour=23, minute=59, second=59))


def parse_timestamp(token, now):
    """Parse a free-form date/time into UTC; missing parts default to today."""
    today = _start_of_day(_as_reference(now)).replace(tzinfo=None)
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("error", UnknownTimezoneWarning)
            parsed = date_parser.parse(token, default=today)
        return _as_reference(parsed)
    except UnknownTimezoneWarning as e:
        raise ScheduleSyntaxError(f"unknown time zone in '{token}': {e}") from e
    except (ValueError, OverflowError) as e:
        raise ScheduleSyntaxError(f"cannot parse '{token}' as a date/time: {e}") from e


def resolve_window(entry, now):
    """Resolve one entry to its occurrence nearest `now`.

    Returns None for a weekday other than today's. Malformed entries raise
    ScheduleSyntaxError.
    """
    now = _as_reference(now)
    entry = entry.strip()
    if not entry:
        raise ScheduleSyntaxError("empty schedule entry")

    if RANGE_DELIMITER in entry:
        parts = [p.strip() for p in entry.split(RANGE_DELIMITER)]
        if len(parts) != 2 or not all(parts):
            raise ScheduleSyntaxError(
                f"range '{entry}' must have exactly one '{RANGE_DELIMITER}' between two timestamps"
            )
        range_start = parse_timestamp(parts[0], now)
        range_end = parse_timestamp(parts[1], now)

        # Crosses midnight, e.g. "10PM -> 6AM"
        if range_start > range_end:
            midnight = _start_of_day(now) + timedelta(days=1)
            try:
                if range_start <= now < midnight:
                    range_end += timedelta(days=1)
                else:
                    range_start -= timedelta(days=1)
            except OverflowError as e:
                raise ScheduleSyntaxError(f"range '{entry}' is out of range: {e}") from e
        if range_start > range_end:
            raise ScheduleSyntaxError(f"range '{entry}' ends before it starts")
        return ResolvedWindow(range_start, range_end)

    weekday = Weekday.from_name(entry)
    if weekday is not None:
        if weekday is Weekday.of(now):
            return _full_day(now)
        return None

    return _full_day(parse_timestamp(entry, now))


def match_entry(entry, now):
    """Check whether `now` falls inside `entry`; malformed entries are logged, never raised."""
    now = _as_reference(now)
    try:
        window = resolve_window(entry, now)
    except ScheduleSyntaxError as e:
        log(f"[!] Invalid schedule entry '{entry}': {e}; {EXPECTED_SYNTAX}", level=logging.WARNING)
        return MatchResult(entry, MatchStatus.MALFORMED, reason=str(e))

    if window is None:
        return MatchResult(entry, MatchStatus.NOT_MATCHED, reason="different weekday")
    if window.contains(now):
        return MatchResult(entry, MatchStatus.MATCHED, window=window)
    return MatchResult(entry, MatchStatus.NOT_MATCHED, window=window)


def split_schedule(schedule):
    return [part.strip() for part in (schedule or "").split(",") if part.strip()]


def match_schedule(schedule, now):
    """First matching entry in textual order; overlaps are not checked."""
    for entry in split_schedule(schedule):
        result = match_entry(entry, now)
        if result.matched:
            return result
    return MatchResult(schedule, MatchStatus.NOT_MATCHED, reason="no entry matched")
