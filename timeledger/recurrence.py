"""Recurring time-entry expansion.

Turns stored records into the concrete occurrences that intersect a window.
Only weekly rules are supported; the walk is done on local calendar weeks
(Sunday first) so repeats keep the base record's wall-clock time across
daylight-saving changes.
"""
from __future__ import annotations

import datetime as _dt
import logging
from typing import Iterable, Iterator, List, Optional, Tuple

from .date_utils import (
    UTC,
    combine_date_and_time,
    end_of_day,
    start_of_week,
    to_date_key,
    to_utc_iso,
    weekday_index,
)
from .model import END_COUNT, END_UNTIL, WEEKLY, Occurrence, TimeRecord, WeeklyRecurrenceRule

__all__ = ["expand", "iter_occurrences", "nth_occurrence_date", "series_end"]

LOG = logging.getLogger(__name__)


def _weekdays(base_start: _dt.datetime, rule: WeeklyRecurrenceRule, tz: _dt.tzinfo) -> Tuple[int, ...]:
    if rule.by_weekday:
        return tuple(sorted(set(rule.by_weekday)))
    return (weekday_index(base_start.astimezone(tz).date()),)


def nth_occurrence_date(base_start: _dt.datetime, rule: WeeklyRecurrenceRule, tz: _dt.tzinfo) -> _dt.date:
    """Return the local date of the rule's last occurrence under a count end.

    Counts in the same order the expansion walk emits (ascending week, then
    weekday), starting from the base record's own week and ignoring
    candidates earlier than the base start. Exception dates still count.
    """
    by = _weekdays(base_start, rule, tz)
    count = rule.end.count if rule.end.kind == END_COUNT and rule.end.count else 1
    step = _dt.timedelta(weeks=max(1, rule.interval))
    week = start_of_week(base_start.astimezone(tz).date())
    seen = 0
    while True:
        for wd in by:
            day = week + _dt.timedelta(days=wd)
            if combine_date_and_time(day, base_start, tz) < base_start:
                continue
            seen += 1
            if seen >= count:
                return day
        week += step


def series_end(base_start: _dt.datetime, rule: WeeklyRecurrenceRule, tz: _dt.tzinfo) -> Optional[_dt.datetime]:
    """Terminal instant of a rule; None when the series never ends."""
    if rule.end.kind == END_UNTIL and rule.end.until is not None:
        return end_of_day(rule.end.until, tz)
    if rule.end.kind == END_COUNT:
        return end_of_day(nth_occurrence_date(base_start, rule, tz), tz)
    return None


def _single(record: TimeRecord, range_start: _dt.datetime, range_end: _dt.datetime) -> Iterator[Occurrence]:
    # Entries may cross a window boundary, so test overlap rather than start.
    if record.start is None or record.end is None:
        return
    if record.end > range_start and record.start < range_end:
        yield Occurrence(
            id=record.id,
            base_id=record.id,
            owner_id=record.owner_id,
            group_key=record.group_key,
            start=record.start,
            end=record.end,
            is_generated=False,
            record=record,
        )


def _first_walk_week(
    base_week: _dt.date, effective_start: _dt.datetime, interval: int, tz: _dt.tzinfo
) -> _dt.date:
    week = max(start_of_week(effective_start.astimezone(tz).date()), base_week)
    behind = ((week - base_week).days // 7) % interval
    return week - _dt.timedelta(weeks=behind)


def iter_occurrences(
    record: TimeRecord,
    range_start: _dt.datetime,
    range_end: _dt.datetime,
    tz: Optional[_dt.tzinfo] = None,
) -> Iterator[Occurrence]:
    """Yield the occurrences of one record that fall inside [range_start, range_end)."""
    rule = record.repeat_rule
    if rule is None:
        yield from _single(record, range_start, range_end)
        return
    if record.start is None or record.end is None:
        return
    if rule.frequency != WEEKLY:
        LOG.debug("record %s: unsupported repeat frequency %r", record.id, rule.frequency)
        return

    base_start = record.start
    zone = tz or base_start.tzinfo or UTC
    duration = record.duration
    interval = max(1, rule.interval)
    by = _weekdays(base_start, rule, zone)
    terminal = series_end(base_start, rule, zone)

    range_start = range_start.astimezone(UTC)
    range_end = range_end.astimezone(UTC)
    effective_start = max(range_start, base_start.astimezone(UTC))
    base_week = start_of_week(base_start.astimezone(zone).date())
    week = _first_walk_week(base_week, effective_start, interval, zone)

    last_day = range_end.astimezone(zone).date()
    if terminal is not None:
        last_day = min(last_day, terminal.date())
    step = _dt.timedelta(weeks=interval)

    while week <= last_day:
        for wd in by:
            day = week + _dt.timedelta(days=wd)
            if to_date_key(day) in rule.exception_dates:
                continue
            occ_start = combine_date_and_time(day, base_start, zone)
            occ_utc = occ_start.astimezone(UTC)
            if occ_utc < effective_start or occ_utc >= range_end:
                continue
            if terminal is not None and occ_utc > terminal:
                continue
            # Add the duration in UTC so the absolute length survives DST.
            occ_end = (occ_utc + duration).astimezone(zone)
            yield Occurrence(
                id=f"{record.id}__{to_utc_iso(occ_start)}",
                base_id=record.id,
                owner_id=record.owner_id,
                group_key=record.group_key,
                start=occ_start,
                end=occ_end,
                is_generated=True,
                record=record,
            )
        week += step


def expand(
    records: Iterable[TimeRecord],
    range_start: _dt.datetime,
    range_end: _dt.datetime,
    tz: Optional[_dt.tzinfo] = None,
) -> List[Occurrence]:
    """Expand records into concrete occurrences overlapping the window.

    Args:
        records: Typed records (see ``model.parse_records``).
        range_start: Inclusive window start (aware datetime).
        range_end: Exclusive window end (aware datetime).
        tz: Zone whose calendar weeks and wall-clock the rules follow;
            defaults to each record's own start offset.

    Returns:
        Occurrences in record order, each record's repeats in ascending order.
        Inputs are left untouched.
    """
    if range_end <= range_start:
        return []
    out: List[Occurrence] = []
    for record in records:
        out.extend(iter_occurrences(record, range_start, range_end, tz))
    return out
