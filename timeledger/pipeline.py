"""Request/processor/producer plumbing behind the CLI commands.

Processors never raise: load and shape problems come back as an error
envelope carrying a message and an exit code.
"""
from __future__ import annotations

import datetime as _dt
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

import yaml

from .aggregation import HoursReport, build_report, collect_active_owners
from .calendar_view import ProjectSummary, group_by_day, occurrences_for_owner, project_summary
from .cli_errors import CLIError, ExitCode
from .cli_output import OutputWriter
from .date_utils import hours_label, label_ym, month_range, to_date_key, ym_key
from .model import Occurrence, occurrence_to_dict, parse_records, record_to_dict
from .recurrence import expand
from .yamlio import RecordsDocument, load_records_document

LOG = logging.getLogger(__name__)

ResultT = TypeVar("ResultT")

Loader = Callable[[str], RecordsDocument]


@dataclass
class ResultEnvelope(Generic[ResultT]):
    status: str
    payload: Optional[ResultT] = None
    diagnostics: Optional[Dict[str, Any]] = None

    def ok(self) -> bool:
        return self.status.lower() == "success"

    def unwrap(self) -> ResultT:
        """Return payload or raise ValueError. Use after ok() check."""
        if self.payload is None:
            msg = (self.diagnostics or {}).get("message", "No payload")
            raise ValueError(msg)
        return self.payload


def _error(message: str, code: int) -> ResultEnvelope:
    return ResultEnvelope(status="error", diagnostics={"message": message, "code": int(code)})


def _load(loader: Loader, path: str) -> RecordsDocument:
    try:
        return loader(path)
    except yaml.YAMLError as exc:
        raise CLIError(f"Failed to parse records file {path}: {exc}", ExitCode.DATA_ERROR) from exc


@dataclass
class Window:
    start: _dt.datetime
    end: _dt.datetime


# -----------------------------------------------------------------------------
# expand
# -----------------------------------------------------------------------------

@dataclass
class ExpandRequest:
    records_path: str
    window: Window
    tz: _dt.tzinfo
    owner: Optional[str] = None


@dataclass
class ExpandResult:
    window: Window
    occurrences: List[Occurrence]
    tz: _dt.tzinfo
    summary: ProjectSummary = field(default_factory=ProjectSummary)


class ExpandProcessor:
    def __init__(self, loader: Loader = load_records_document) -> None:
        self._loader = loader

    def process(self, payload: ExpandRequest) -> ResultEnvelope[ExpandResult]:
        try:
            doc = _load(self._loader, payload.records_path)
        except CLIError as exc:
            return _error(exc.message, exc.code)
        records = parse_records(doc.records, payload.tz)
        occurrences = expand(records, payload.window.start, payload.window.end, payload.tz)
        if payload.owner:
            occurrences = occurrences_for_owner(occurrences, payload.owner)
        LOG.debug("expanded %d records into %d occurrences", len(records), len(occurrences))
        return ResultEnvelope(
            status="success",
            payload=ExpandResult(
                window=payload.window,
                occurrences=occurrences,
                tz=payload.tz,
                summary=project_summary(occurrences),
            ),
        )


def _summary_to_dict(summary: ProjectSummary) -> Dict[str, Any]:
    return {
        "projects": [
            {"project": p.project, "hours": p.hours, "minutes": p.minutes, "totalMinutes": p.total_minutes}
            for p in summary.projects
        ],
        "total": {"hours": summary.hours, "minutes": summary.minutes, "totalMinutes": summary.total_minutes},
    }


def _base_records(occurrences: List[Occurrence]) -> List[Dict[str, Any]]:
    seen: Dict[str, Dict[str, Any]] = {}
    for occ in occurrences:
        if occ.base_id not in seen:
            seen[occ.base_id] = record_to_dict(occ.record)
    return list(seen.values())


class ExpandProducer:
    def __init__(self, out: Optional[OutputWriter] = None) -> None:
        self.out = out or OutputWriter()

    def produce(self, result: ResultEnvelope[ExpandResult]) -> None:
        if not result.ok():
            msg = (result.diagnostics or {}).get("message")
            if msg:
                self.out.print_error(msg)
            return
        payload = result.unwrap()
        if self.out.structured:
            self.out.print_data({
                "occurrences": [occurrence_to_dict(o) for o in payload.occurrences],
                "records": _base_records(payload.occurrences),
                **_summary_to_dict(payload.summary),
            })
            return
        days = group_by_day(payload.occurrences, payload.tz)
        for day, items in days.items():
            self.out.print(day)
            for occ in items:
                start = occ.start.astimezone(payload.tz).strftime("%H:%M")
                end = occ.end.astimezone(payload.tz).strftime("%H:%M")
                label = occ.record.summary or occ.record.project or occ.base_id
                flag = " (repeat)" if occ.is_generated else ""
                self.out.print(f"  {start}-{end} {occ.owner_id or '-'} {label}{flag}")
        summary = payload.summary
        if summary.projects:
            self.out.print("By project:")
            for p in summary.projects:
                self.out.print(f"  {p.project}: {p.hours}h {p.minutes}m")
            self.out.print(f"Listed total: {summary.hours}h {summary.minutes}m")
        self.out.print(f"{len(payload.occurrences)} occurrence(s)")


# -----------------------------------------------------------------------------
# report
# -----------------------------------------------------------------------------

@dataclass
class ReportRequest:
    records_path: str
    window: Window
    tz: _dt.tzinfo
    owners: List[str] = field(default_factory=list)
    group_key: Optional[str] = None
    # None means no allow-list was supplied anywhere: every owner is eligible
    active_owners: Optional[List[str]] = None
    requesting_owner: Optional[str] = None
    owner_names: Dict[str, str] = field(default_factory=dict)
    group_titles: Dict[str, str] = field(default_factory=dict)


@dataclass
class ReportResult:
    report: HoursReport


def _allow_list(payload: ReportRequest, doc: RecordsDocument, owner_ids: List[str]) -> List[str]:
    derived = collect_active_owners(doc.staff, payload.requesting_owner) if doc.staff else set()
    if payload.active_owners is None and not doc.staff and not payload.requesting_owner:
        return owner_ids
    allowed = set(payload.active_owners or []) | derived
    if payload.requesting_owner:
        allowed.add(payload.requesting_owner)
    return sorted(allowed)


class ReportProcessor:
    def __init__(self, loader: Loader = load_records_document) -> None:
        self._loader = loader

    def process(self, payload: ReportRequest) -> ResultEnvelope[ReportResult]:
        try:
            doc = _load(self._loader, payload.records_path)
        except CLIError as exc:
            return _error(exc.message, exc.code)
        records = parse_records(doc.records, payload.tz)
        seen_owners = sorted({r.owner_id for r in records if r.owner_id})
        report = build_report(
            records,
            payload.window.start,
            payload.window.end,
            active_owners=_allow_list(payload, doc, seen_owners),
            owners=payload.owners,
            group_key=payload.group_key,
            owner_names={**doc.owners, **payload.owner_names},
            group_titles={**doc.groups, **payload.group_titles},
            tz=payload.tz,
        )
        return ResultEnvelope(status="success", payload=ReportResult(report=report))


def report_to_dict(report: HoursReport) -> Dict[str, Any]:
    return {
        "from": report.range_start.isoformat(),
        "to": report.range_end.isoformat(),
        "total_hours": round(report.total, 4),
        "owners": [
            {
                "owner_id": s.owner_id,
                "name": s.name,
                "total_hours": round(s.total, 4),
                "groups": [
                    {"group_key": g.group_key, "title": g.title, "hours": round(g.hours, 4)}
                    for g in s.groups
                ],
            }
            for s in report.owners
        ],
    }


def _report_heading(report: HoursReport) -> str:
    """'Effort 2024/3 (2024-03-01 .. 2024-03-31)' for whole months, else just the dates."""
    last_day = report.range_end - _dt.timedelta(microseconds=1)
    span = f"{to_date_key(report.range_start)} .. {to_date_key(last_day)}"
    key = ym_key(report.range_start)
    tz = report.range_start.tzinfo
    if tz is not None and (report.range_start, report.range_end) == month_range(key, tz):
        return f"Effort {label_ym(key)} ({span})"
    return f"Effort {span}"


class ReportProducer:
    def __init__(self, out: Optional[OutputWriter] = None) -> None:
        self.out = out or OutputWriter()

    def produce(self, result: ResultEnvelope[ReportResult]) -> None:
        if not result.ok():
            msg = (result.diagnostics or {}).get("message")
            if msg:
                self.out.print_error(msg)
            return
        report = result.unwrap().report
        if self.out.structured:
            self.out.print_data(report_to_dict(report))
            return
        self.out.print(_report_heading(report))
        rows = []
        for s in report.owners:
            for i, g in enumerate(s.groups):
                rows.append([
                    s.name if i == 0 else "",
                    g.title,
                    hours_label(g.hours),
                    hours_label(s.total) if i == 0 else "",
                ])
        if rows:
            self.out.print_table(["Owner", "Project", "Hours", "Owner total"], rows)
        self.out.print(f"Total: {hours_label(report.total)} ({report.owner_count()} owner(s))")


def run_pipeline(request: Any, processor: Any, producer: Any) -> int:
    """Process, produce, and return the CLI exit code (error code defaults to 1)."""
    envelope = processor.process(request)
    producer.produce(envelope)
    return 0 if envelope.ok() else int((envelope.diagnostics or {}).get("code", ExitCode.ERROR))
