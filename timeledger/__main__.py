"""timeledger CLI

Expand recurring time entries and total effort hours per person and project
over a day, week, month, or explicit window. Records come from a YAML file
shaped like the stored documents (see timeledger.yamlio).
"""
from __future__ import annotations

import argparse
import datetime as _dt
from typing import List, Optional, Tuple

from . import __version__
from .cli_errors import UsageError
from .cli_framework import CLIApp
from .config import Settings, load_settings
from .date_utils import day_range, month_range, parse_date_key, parse_instant, week_range, ym_key
from .pipeline import (
    ExpandProcessor,
    ExpandProducer,
    ExpandRequest,
    ReportProcessor,
    ReportProducer,
    ReportRequest,
    Window,
    run_pipeline,
)

app = CLIApp(
    "timeledger",
    "Recurring time-entry expansion and effort totals.",
    version=__version__,
)


def _window_arguments(func):
    func = app.argument("--week", metavar="DATE", help="Sunday-start week containing DATE")(func)
    func = app.argument("--day", metavar="DATE", help="Single day YYYY-MM-DD")(func)
    func = app.argument("--month", metavar="YYYY-MM", help="Calendar month (default: current month)")(func)
    func = app.argument("--to", dest="to_date", help="End date YYYY-MM-DD (inclusive) or ISO instant (exclusive)")(func)
    func = app.argument("--from", dest="from_date", help="Start date YYYY-MM-DD or ISO instant")(func)
    return func


def _bound(value: str, tz: _dt.tzinfo, *, is_end: bool) -> _dt.datetime:
    if "T" in value:
        instant = parse_instant(value, tz)
        if instant is None:
            raise UsageError(f"Invalid timestamp: {value}")
        return instant
    day = parse_date_key(value)
    if day is None:
        raise UsageError(f"Invalid date: {value}", hint="Expected YYYY-MM-DD")
    if is_end:
        day += _dt.timedelta(days=1)
    return _dt.datetime.combine(day, _dt.time.min, tzinfo=tz)


def resolve_window(args: argparse.Namespace, tz: _dt.tzinfo, today: Optional[_dt.date] = None) -> Window:
    """Pick the reporting window from --from/--to, --day, --week or --month."""
    from_date = getattr(args, "from_date", None)
    to_date = getattr(args, "to_date", None)
    chosen = [n for n in ("day", "week", "month") if getattr(args, n, None)]
    if from_date or to_date:
        if not (from_date and to_date):
            raise UsageError("--from and --to must be given together")
        if chosen:
            raise UsageError("--from/--to cannot be combined with --day/--week/--month")
        window = Window(_bound(from_date, tz, is_end=False), _bound(to_date, tz, is_end=True))
        if window.end <= window.start:
            raise UsageError("--to must be after --from")
        return window
    if len(chosen) > 1:
        raise UsageError("Use only one of --day, --week, --month")

    bounds: Tuple[_dt.datetime, _dt.datetime]
    if getattr(args, "day", None):
        bounds = day_range(_require_date(args.day), tz)
    elif getattr(args, "week", None):
        bounds = week_range(_require_date(args.week), tz)
    else:
        bounds = month_range(getattr(args, "month", None) or ym_key(today or _dt.datetime.now(tz).date()), tz)
    return Window(*bounds)


def _require_date(value: str) -> _dt.date:
    day = parse_date_key(value)
    if day is None:
        raise UsageError(f"Invalid date: {value}", hint="Expected YYYY-MM-DD")
    return day


def _settings(args: argparse.Namespace) -> Settings:
    return load_settings(getattr(args, "config", None), getattr(args, "tz", None))


@app.command("expand", help="List concrete occurrences inside a window")
@app.argument("--records", required=True, help="Records YAML path")
@app.argument("--owner", help="Only occurrences of this owner id")
@_window_arguments
def cmd_expand(args: argparse.Namespace) -> int:
    settings = _settings(args)
    tz = settings.tz
    request = ExpandRequest(
        records_path=args.records,
        window=resolve_window(args, tz),
        tz=tz,
        owner=getattr(args, "owner", None),
    )
    return run_pipeline(request, ExpandProcessor(), ExpandProducer(args._output))


@app.command("report", help="Total hours per owner and project inside a window")
@app.argument("--records", required=True, help="Records YAML path")
@app.argument("--owner", action="append", default=[], help="Restrict to owner id (repeatable)")
@app.argument("--group", help="Restrict to one project/deal key (ALL for every group)")
@app.argument("--active-owner", action="append", default=[], help="Allow-listed owner id (repeatable)")
@app.argument("--me", help="Requesting owner id; always allow-listed")
@_window_arguments
def cmd_report(args: argparse.Namespace) -> int:
    settings = _settings(args)
    tz = settings.tz
    active: Optional[List[str]] = None
    explicit = list(getattr(args, "active_owner", []) or []) + list(settings.active_owners)
    if explicit:
        active = explicit
    request = ReportRequest(
        records_path=args.records,
        window=resolve_window(args, tz),
        tz=tz,
        owners=list(getattr(args, "owner", []) or []),
        group_key=getattr(args, "group", None),
        active_owners=active,
        requesting_owner=getattr(args, "me", None),
        owner_names=dict(settings.owner_names),
        group_titles=dict(settings.group_titles),
    )
    return run_pipeline(request, ReportProcessor(), ReportProducer(args._output))


def main(argv: Optional[List[str]] = None) -> int:
    """Run the CLI."""
    return app.run(argv)


if __name__ == "__main__":
    raise SystemExit(main())
