"""Hour aggregation over expanded occurrences.

Clips each occurrence to the reporting window, sums the overlap per owner
and group (project/deal), and shapes the totals for presentation. The
active-owner allow-list is applied as its own step after aggregation.
"""
from __future__ import annotations

import datetime as _dt
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set

from .model import Occurrence, TimeRecord
from .recurrence import expand

__all__ = [
    "ALL_GROUPS",
    "GroupHours",
    "HoursReport",
    "OwnerSummary",
    "aggregate",
    "build_report",
    "collect_active_owners",
    "filter_active_owners",
    "grand_total",
    "overlap_hours",
    "summarize",
]

LOG = logging.getLogger(__name__)

ALL_GROUPS = "ALL"

Totals = Dict[str, Dict[str, float]]


@dataclass
class GroupHours:
    group_key: str
    title: str
    hours: float


@dataclass
class OwnerSummary:
    owner_id: str
    name: str
    groups: List[GroupHours] = field(default_factory=list)
    total: float = 0.0


@dataclass
class HoursReport:
    range_start: _dt.datetime
    range_end: _dt.datetime
    owners: List[OwnerSummary]
    total: float

    def owner_count(self) -> int:
        return len(self.owners)


def _id_set(ids: Optional[Iterable[str]]) -> Set[str]:
    # A bare string is one id, not a sequence of characters
    if isinstance(ids, str):
        return {ids} if ids else set()
    return {str(i) for i in ids or [] if i}


def overlap_hours(
    start: Optional[_dt.datetime],
    end: Optional[_dt.datetime],
    range_start: _dt.datetime,
    range_end: _dt.datetime,
) -> float:
    """Fractional hours of [start, end) that fall inside [range_start, range_end)."""
    if start is None or end is None:
        return 0.0
    try:
        lo = max(start, range_start)
        hi = min(end, range_end)
    except TypeError:
        # naive vs aware mix
        LOG.debug("cannot compare %r..%r with the window", start, end)
        return 0.0
    seconds = (hi.astimezone(_dt.timezone.utc) - lo.astimezone(_dt.timezone.utc)).total_seconds()
    return max(0.0, seconds) / 3600.0


def aggregate(
    occurrences: Iterable[Occurrence],
    range_start: _dt.datetime,
    range_end: _dt.datetime,
    *,
    owners: Optional[Iterable[str]] = None,
    group_key: Optional[str] = None,
) -> Totals:
    """Sum overlap hours into ``{owner_id: {group_key: hours}}``.

    Occurrences without an owner or a group are left out: effort totals are
    only meaningful against a project. ``owners`` and ``group_key`` narrow the
    result to a selection; empty/None (or ``ALL`` for the group) keeps all.
    """
    selected = _id_set(owners)
    only_group = None if group_key in (None, "", ALL_GROUPS) else group_key
    agg: Dict[str, Dict[str, float]] = defaultdict(lambda: defaultdict(float))
    for occ in occurrences:
        if not occ.owner_id or not occ.group_key:
            continue
        if selected and occ.owner_id not in selected:
            continue
        if only_group is not None and occ.group_key != only_group:
            continue
        hours = overlap_hours(occ.start, occ.end, range_start, range_end)
        if hours <= 0:
            continue
        agg[occ.owner_id][occ.group_key] += hours
    return {owner: dict(groups) for owner, groups in agg.items()}


def filter_active_owners(totals: Mapping[str, Mapping[str, float]], active_owners: Iterable[str]) -> Totals:
    """Keep only owners on the allow-list; returns a new mapping."""
    allowed = _id_set(active_owners)
    return {owner: dict(groups) for owner, groups in totals.items() if owner in allowed}


def collect_active_owners(staff: Iterable[Mapping[str, Any]], requesting_owner: Optional[str] = None) -> Set[str]:
    """Derive the allow-list: the requesting owner plus every active staff member.

    A staff entry counts unless ``isActive`` is explicitly False; entries with
    no linked owner id (``authUid``/``ownerId``/``owner_id``) are ignored.
    """
    out: Set[str] = set()
    if requesting_owner:
        out.add(requesting_owner)
    for member in staff or []:
        if not isinstance(member, Mapping):
            continue
        active = member.get("isActive", member.get("is_active"))
        if active is False:
            continue
        owner_id = member.get("authUid") or member.get("ownerId") or member.get("owner_id")
        if owner_id:
            out.add(str(owner_id))
    return out


def summarize(
    totals: Mapping[str, Mapping[str, float]],
    *,
    owner_names: Optional[Mapping[str, str]] = None,
    group_titles: Optional[Mapping[str, str]] = None,
) -> List[OwnerSummary]:
    """Order totals for display.

    Owners sort by display name (case-insensitive, id when unnamed); each
    owner's groups sort by descending hours, ties keeping insertion order.
    Owners without a name and groups without a title show their raw id/key.
    """
    names = owner_names or {}
    titles = group_titles or {}

    def _sort_name(owner_id: str) -> str:
        return (names.get(owner_id) or owner_id).lower()

    out: List[OwnerSummary] = []
    for owner_id in sorted(totals, key=_sort_name):
        per_group = totals[owner_id] or {}
        if not per_group:
            continue
        keys = sorted(per_group, key=lambda k: per_group[k], reverse=True)
        groups = [GroupHours(k, titles.get(k) or k, per_group[k]) for k in keys]
        out.append(
            OwnerSummary(
                owner_id=owner_id,
                name=names.get(owner_id) or owner_id,
                groups=groups,
                total=sum(g.hours for g in groups),
            )
        )
    return out


def grand_total(summaries: Iterable[OwnerSummary]) -> float:
    return sum(s.total for s in summaries)


def build_report(
    records: Iterable[TimeRecord],
    range_start: _dt.datetime,
    range_end: _dt.datetime,
    *,
    active_owners: Iterable[str],
    owners: Optional[Iterable[str]] = None,
    group_key: Optional[str] = None,
    owner_names: Optional[Mapping[str, str]] = None,
    group_titles: Optional[Mapping[str, str]] = None,
    tz: Optional[_dt.tzinfo] = None,
) -> HoursReport:
    """Expand, aggregate, apply the allow-list and summarize in one call."""
    occurrences = expand(records, range_start, range_end, tz)
    totals = aggregate(occurrences, range_start, range_end, owners=owners, group_key=group_key)
    totals = filter_active_owners(totals, active_owners)
    summaries = summarize(totals, owner_names=owner_names, group_titles=group_titles)
    return HoursReport(
        range_start=range_start,
        range_end=range_end,
        owners=summaries,
        total=grand_total(summaries),
    )
