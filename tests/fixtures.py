"""Shared test fixtures and utilities."""

from __future__ import annotations

import datetime as dt
import io
import os
import tempfile
from contextlib import contextmanager, redirect_stderr, redirect_stdout
from typing import Any, Dict, List, Optional

import yaml

UTC = dt.timezone.utc


def at(y: int, m: int, d: int, hh: int = 0, mm: int = 0, tz: dt.tzinfo = UTC) -> dt.datetime:
    """Aware datetime shorthand."""
    return dt.datetime(y, m, d, hh, mm, tzinfo=tz)


def weekly_record(
    rec_id: str = "r1",
    *,
    start: str = "2024-03-04T09:00",
    end: str = "2024-03-04T10:00",
    owner: Optional[str] = "u1",
    group: Optional[str] = "deal-1",
    repeat_end: Optional[Dict[str, Any]] = None,
    **rule: Any,
) -> Dict[str, Any]:
    """A stored-document shaped weekly entry (Monday 09:00-10:00 by default)."""
    repeat: Dict[str, Any] = {"freq": "WEEKLY", "interval": 1, "byWeekday": [1]}
    repeat.update(rule)
    if repeat_end is not None:
        repeat["end"] = repeat_end
    doc: Dict[str, Any] = {"id": rec_id, "uid": owner, "dealId": group, "start": start, "end": end, "repeat": repeat}
    return {k: v for k, v in doc.items() if v is not None}


# -----------------------------------------------------------------------------
# YAML helpers
# -----------------------------------------------------------------------------


def write_yaml(data: dict, dir: Optional[str] = None, filename: str = "records.yaml") -> str:
    """Write a dict to a temporary YAML file, return the path."""
    td = dir or tempfile.mkdtemp()
    p = os.path.join(td, filename)
    with open(p, "w", encoding="utf-8") as fh:
        yaml.safe_dump(data, fh, sort_keys=False)
    return p


# -----------------------------------------------------------------------------
# Output capture helpers
# -----------------------------------------------------------------------------


@contextmanager
def capture_output():
    """Capture stdout and stderr; yields (out, err) buffers."""
    out, err = io.StringIO(), io.StringIO()
    with redirect_stdout(out), redirect_stderr(err):
        yield out, err


def starts(occurrences: List[Any]) -> List[dt.datetime]:
    return [o.start for o in occurrences]
