"""YAML read/write helpers for records and config files."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .cli_errors import NotFoundError, RecordsFileError

__all__ = ["RecordsDocument", "load_records_document", "load_yaml"]


def load_yaml(path: Optional[str]) -> Dict[str, Any]:
    """Load a YAML file into a dict; returns {} if missing/empty."""
    if not path:
        return {}
    p = Path(path)
    if not p.exists():
        return {}
    text = p.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    data = yaml.safe_load(text)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise RecordsFileError(f"Top-level YAML in {p} must be a mapping (dict)")
    return data


@dataclass
class RecordsDocument:
    """Raw contents of a records file, as the store would hand them over."""
    records: List[Any] = field(default_factory=list)
    staff: List[Any] = field(default_factory=list)
    owners: Dict[str, str] = field(default_factory=dict)
    groups: Dict[str, str] = field(default_factory=dict)


def _as_name_map(v: Any, what: str) -> Dict[str, str]:
    if v is None:
        return {}
    if not isinstance(v, dict):
        raise RecordsFileError(f"'{what}' must be a mapping of id -> name")
    return {str(k): str(val) for k, val in v.items() if val is not None}


def load_records_document(path: str) -> RecordsDocument:
    """Read a records file.

    Expected shape::

        records: [{id, ownerId, groupKey, start, end, repeat?}, ...]
        staff:   [{authUid, name, isActive}, ...]   # optional
        owners:  {ownerId: display name}            # optional
        groups:  {groupKey: title}                  # optional
    """
    p = Path(path)
    if not p.exists():
        raise NotFoundError(f"Records file not found: {p}")
    data = load_yaml(str(p))
    records = data.get("records") or []
    staff = data.get("staff") or []
    if not isinstance(records, list):
        raise RecordsFileError("Invalid records file: 'records' must be a list")
    if not isinstance(staff, list):
        raise RecordsFileError("Invalid records file: 'staff' must be a list")
    owners = _as_name_map(data.get("owners"), "owners")
    # Staff entries double as a name directory
    for member in staff:
        if isinstance(member, dict):
            uid = member.get("authUid") or member.get("ownerId") or member.get("owner_id")
            if uid and member.get("name") and str(uid) not in owners:
                owners[str(uid)] = str(member["name"])
    return RecordsDocument(
        records=records,
        staff=staff,
        owners=owners,
        groups=_as_name_map(data.get("groups"), "groups"),
    )
