"""Recurring time-entry expansion and effort-hour aggregation."""
from __future__ import annotations

__version__ = "0.1.0"

from .aggregation import (  # noqa: E402
    GroupHours,
    HoursReport,
    OwnerSummary,
    aggregate,
    build_report,
    collect_active_owners,
    filter_active_owners,
    grand_total,
    overlap_hours,
    summarize,
)
from .calendar_view import ProjectSummary, project_summary  # noqa: E402
from .model import (  # noqa: E402
    Occurrence,
    RecurrenceEnd,
    TimeRecord,
    WeeklyRecurrenceRule,
    parse_record,
    parse_records,
)
from .recurrence import expand, nth_occurrence_date, series_end  # noqa: E402

__all__ = [
    "GroupHours",
    "HoursReport",
    "Occurrence",
    "OwnerSummary",
    "ProjectSummary",
    "RecurrenceEnd",
    "TimeRecord",
    "WeeklyRecurrenceRule",
    "__version__",
    "aggregate",
    "build_report",
    "collect_active_owners",
    "expand",
    "filter_active_owners",
    "grand_total",
    "nth_occurrence_date",
    "overlap_hours",
    "parse_record",
    "parse_records",
    "project_summary",
    "series_end",
    "summarize",
]
