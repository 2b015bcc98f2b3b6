"""Time record normalization.

Helpers to coerce loose, persistence-shaped dicts (camelCase documents as
they come back from the store, or snake_case YAML written by hand) into the
typed records the expander and aggregator work on. Bad fields degrade to
"absent" or zero-duration instead of raising.
"""
from __future__ import annotations

import datetime as _dt
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple

from .date_utils import UTC, normalize_weekday, parse_date_key, parse_instant, to_date_key, to_utc_iso

LOG = logging.getLogger(__name__)

WEEKLY = "weekly"

END_NONE = "none"
END_UNTIL = "until"
END_COUNT = "count"


@dataclass(frozen=True)
class RecurrenceEnd:
    kind: str = END_NONE
    until: Optional[_dt.date] = None
    count: Optional[int] = None


@dataclass(frozen=True)
class WeeklyRecurrenceRule:
    frequency: str = WEEKLY
    interval: int = 1
    by_weekday: Tuple[int, ...] = ()
    end: RecurrenceEnd = field(default_factory=RecurrenceEnd)
    exception_dates: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class TimeRecord:
    id: str
    owner_id: Optional[str]
    group_key: Optional[str] = None
    start: Optional[_dt.datetime] = None
    end: Optional[_dt.datetime] = None
    repeat_rule: Optional[WeeklyRecurrenceRule] = None
    customer_id: Optional[str] = None
    project: Optional[str] = None
    summary: Optional[str] = None

    @property
    def duration(self) -> _dt.timedelta:
        if self.start is None or self.end is None:
            return _dt.timedelta(0)
        return self.end.astimezone(UTC) - self.start.astimezone(UTC)


@dataclass(frozen=True)
class Occurrence:
    """One concrete repetition of a TimeRecord."""

    id: str
    base_id: str
    owner_id: Optional[str]
    group_key: Optional[str]
    start: _dt.datetime
    end: _dt.datetime
    is_generated: bool
    record: TimeRecord

    @property
    def duration(self) -> _dt.timedelta:
        return self.end.astimezone(UTC) - self.start.astimezone(UTC)


def _coerce_str(v: Any) -> Optional[str]:
    if v is None:
        return None
    s = str(v).strip()
    return s if s else None


def _first(raw: Mapping[str, Any], *keys: str) -> Any:
    for k in keys:
        if k in raw and raw[k] is not None:
            return raw[k]
    return None


def _coerce_positive_int(v: Any, default: int = 1) -> int:
    try:
        n = float(v)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(n):
        return default
    return max(1, int(math.floor(n)))


def _normalize_weekdays(v: Any) -> Tuple[int, ...]:
    if v is None:
        return ()
    if isinstance(v, str):
        toks: Iterable[Any] = [t for t in v.replace(";", ",").replace(" ", ",").split(",") if t.strip()]
    elif isinstance(v, (list, tuple, set, frozenset)):
        toks = v
    else:
        toks = [v]
    out = {idx for idx in (normalize_weekday(t) for t in toks) if idx is not None}
    return tuple(sorted(out))


def _normalize_exdates(v: Any) -> FrozenSet[str]:
    if not v:
        return frozenset()
    if isinstance(v, str):
        items: Iterable[Any] = v.split(",")
    elif isinstance(v, (list, tuple, set, frozenset)):
        items = v
    else:
        return frozenset()
    out = set()
    for x in items:
        d = parse_date_key(x)
        if d is not None:
            out.add(to_date_key(d))
    return frozenset(out)


def _normalize_end(rule: Mapping[str, Any]) -> RecurrenceEnd:
    end = rule.get("end")
    if isinstance(end, Mapping):
        kind = (_coerce_str(end.get("type") or end.get("kind")) or END_NONE).lower()
        until_raw = end.get("until")
        count_raw = end.get("count")
    else:
        until_raw = rule.get("until")
        count_raw = rule.get("count")
        kind = END_UNTIL if until_raw is not None else END_COUNT if count_raw is not None else END_NONE
    if kind == END_UNTIL:
        until = parse_date_key(until_raw)
        if until is None:
            LOG.debug("ignoring unparseable repeat end date %r", until_raw)
            return RecurrenceEnd()
        return RecurrenceEnd(kind=END_UNTIL, until=until)
    if kind == END_COUNT:
        return RecurrenceEnd(kind=END_COUNT, count=_coerce_positive_int(count_raw))
    return RecurrenceEnd()


def parse_rule(raw: Any) -> Optional[WeeklyRecurrenceRule]:
    """Build a repeat rule from a loose mapping; None when no rule is present."""
    if not isinstance(raw, Mapping) or not raw:
        return None
    freq = (_coerce_str(_first(raw, "freq", "frequency", "repeat")) or WEEKLY).lower()
    return WeeklyRecurrenceRule(
        frequency=freq,
        interval=_coerce_positive_int(raw.get("interval")),
        by_weekday=_normalize_weekdays(_first(raw, "byWeekday", "by_weekday", "byday", "byDay")),
        end=_normalize_end(raw),
        exception_dates=_normalize_exdates(_first(raw, "exdates", "exceptionDates", "exception_dates", "exceptions")),
    )


def parse_record(raw: Mapping[str, Any], tz: _dt.tzinfo) -> TimeRecord:
    """Return a typed TimeRecord for one stored entry.

    Accepted aliases:
      - owner: ownerId | owner_id | uid
      - group: groupKey | group_key | dealId | deal_id
      - rule:  repeat | repeatRule | repeat_rule
    An unparseable start leaves ``start`` None; an unparseable end, or an end
    not after the start, yields a zero-duration record.
    """
    rec_id = _coerce_str(raw.get("id")) or ""
    start = parse_instant(raw.get("start"), tz)
    end = parse_instant(raw.get("end"), tz)
    if start is None:
        LOG.debug("record %s has no usable start (%r)", rec_id, raw.get("start"))
        end = None
    elif end is None or end <= start:
        end = start
    return TimeRecord(
        id=rec_id,
        owner_id=_coerce_str(_first(raw, "ownerId", "owner_id", "uid")),
        group_key=_coerce_str(_first(raw, "groupKey", "group_key", "dealId", "deal_id")),
        start=start,
        end=end,
        repeat_rule=parse_rule(_first(raw, "repeat", "repeatRule", "repeat_rule")),
        customer_id=_coerce_str(_first(raw, "customerId", "customer_id")),
        project=_coerce_str(raw.get("project")),
        summary=_coerce_str(raw.get("summary")),
    )


def parse_records(raws: Iterable[Any], tz: _dt.tzinfo) -> List[TimeRecord]:
    out: List[TimeRecord] = []
    for i, raw in enumerate(raws or []):
        if not isinstance(raw, Mapping):
            LOG.debug("skipping record #%d: not a mapping", i)
            continue
        out.append(parse_record(raw, tz))
    return out


def _iso(dt: Optional[_dt.datetime]) -> Optional[str]:
    return dt.isoformat() if dt is not None else None


def rule_to_dict(rule: WeeklyRecurrenceRule) -> Dict[str, Any]:
    end: Dict[str, Any] = {"type": rule.end.kind.upper()}
    if rule.end.until is not None:
        end["until"] = to_date_key(rule.end.until)
    if rule.end.count is not None:
        end["count"] = rule.end.count
    return {
        "freq": rule.frequency.upper(),
        "interval": rule.interval,
        "byWeekday": list(rule.by_weekday),
        "end": end,
        "exdates": sorted(rule.exception_dates),
    }


def record_to_dict(record: TimeRecord) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "id": record.id,
        "ownerId": record.owner_id,
        "groupKey": record.group_key,
        "start": _iso(record.start),
        "end": _iso(record.end),
        "repeat": rule_to_dict(record.repeat_rule) if record.repeat_rule else None,
        "customerId": record.customer_id,
        "project": record.project,
        "summary": record.summary,
    }
    # Drop Nones to keep YAML clean when re-serializing
    return {k: v for k, v in out.items() if v is not None}


def occurrence_to_dict(occ: Occurrence) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "id": occ.id,
        "baseId": occ.base_id,
        "ownerId": occ.owner_id,
        "groupKey": occ.group_key,
        "start": occ.start.isoformat(),
        "end": occ.end.isoformat(),
        "startUtc": to_utc_iso(occ.start),
        "isGenerated": occ.is_generated,
        "summary": occ.record.summary,
    }
    return {k: v for k, v in out.items() if v is not None}
