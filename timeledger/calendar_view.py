"""Day bucketing and per-project time summaries for calendar-style listings."""
from __future__ import annotations

import datetime as _dt
from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from .date_utils import duration_parts, to_date_key
from .model import Occurrence

NO_PROJECT = "(no project)"


@dataclass
class ProjectTime:
    project: str
    hours: int
    minutes: int
    total_minutes: int


@dataclass
class ProjectSummary:
    """Listed time per project, largest first, plus the overall total."""
    projects: List[ProjectTime] = field(default_factory=list)
    total_minutes: int = 0

    @property
    def hours(self) -> int:
        return self.total_minutes // 60

    @property
    def minutes(self) -> int:
        return self.total_minutes % 60


def group_by_day(occurrences: Iterable[Occurrence], tz: _dt.tzinfo) -> Dict[str, List[Occurrence]]:
    """Map local 'YYYY-MM-DD' (of each start) to occurrences sorted by start."""
    buckets: Dict[str, List[Occurrence]] = {}
    for occ in occurrences:
        buckets.setdefault(to_date_key(occ.start.astimezone(tz)), []).append(occ)
    return {key: sorted(buckets[key], key=lambda o: o.start) for key in sorted(buckets)}


def occurrences_for_owner(occurrences: Iterable[Occurrence], owner_id: str) -> List[Occurrence]:
    return [o for o in occurrences if o.owner_id == owner_id]


def project_summary(occurrences: Iterable[Occurrence]) -> ProjectSummary:
    """Sum whole minutes per ``record.project`` across the listed occurrences.

    Occurrences are counted in full (no window clipping); projects with equal
    time keep first-seen order.
    """
    per_project: Dict[str, int] = {}
    for occ in occurrences:
        _, _, minutes = duration_parts(occ.start, occ.end)
        key = occ.record.project or NO_PROJECT
        per_project[key] = per_project.get(key, 0) + minutes
    ordered = sorted(per_project.items(), key=lambda kv: kv[1], reverse=True)
    return ProjectSummary(
        projects=[ProjectTime(name, total // 60, total % 60, total) for name, total in ordered],
        total_minutes=sum(per_project.values()),
    )
