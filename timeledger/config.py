"""Settings resolution.

Config is a small YAML mapping::

    timezone: Asia/Tokyo
    active_owners: [u1, u2]
    owner_names: {u1: Aiko}
    group_titles: {deal-1: Website rebuild}

Search order: explicit path, $TIMELEDGER_CONFIG, $XDG_CONFIG_HOME/timeledger,
~/.config/timeledger. $TIMELEDGER_TZ overrides the file's timezone and an
explicit tz argument overrides both.
"""
from __future__ import annotations

import datetime as _dt
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from .cli_errors import ConfigError, NotFoundError, RecordsFileError
from .yamlio import load_yaml

LOG = logging.getLogger(__name__)

ENV_CONFIG = "TIMELEDGER_CONFIG"
ENV_TZ = "TIMELEDGER_TZ"
CONFIG_FILENAME = "config.yaml"
DEFAULT_TIMEZONE = "UTC"


@dataclass
class Settings:
    timezone: str = DEFAULT_TIMEZONE
    active_owners: List[str] = field(default_factory=list)
    owner_names: Dict[str, str] = field(default_factory=dict)
    group_titles: Dict[str, str] = field(default_factory=dict)
    source: Optional[str] = None

    @property
    def tz(self) -> _dt.tzinfo:
        return resolve_timezone(self.timezone)


def _config_roots() -> List[str]:
    """Return ordered list of config root directories."""
    roots: List[str] = []
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        roots.append(os.path.expanduser(xdg))
    roots.append(os.path.expanduser("~/.config"))
    return roots


def config_paths() -> List[str]:
    """Candidate config file paths, most specific first."""
    paths: List[str] = []
    env_path = os.environ.get(ENV_CONFIG)
    if env_path:
        paths.append(os.path.expanduser(env_path))
    for root in _config_roots():
        paths.append(os.path.join(root, "timeledger", CONFIG_FILENAME))
    seen: set[str] = set()
    unique: List[str] = []
    for p in paths:
        if p not in seen:
            seen.add(p)
            unique.append(p)
    return unique


def resolve_timezone(name: Optional[str]) -> _dt.tzinfo:
    """Map an IANA name (or 'UTC') to a tzinfo."""
    key = (name or DEFAULT_TIMEZONE).strip()
    if key.upper() in ("UTC", "Z"):
        return _dt.timezone.utc
    try:
        return ZoneInfo(key)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigError(f"Unknown timezone: {key}", hint="Use an IANA name like 'Asia/Tokyo'") from exc


def _str_list(v: Any, key: str) -> List[str]:
    if v is None:
        return []
    if not isinstance(v, (list, tuple)):
        raise ConfigError(f"'{key}' must be a list")
    return [str(x) for x in v if x is not None and str(x).strip()]


def _str_map(v: Any, key: str) -> Dict[str, str]:
    if v is None:
        return {}
    if not isinstance(v, dict):
        raise ConfigError(f"'{key}' must be a mapping")
    return {str(k): str(val) for k, val in v.items() if val is not None}


def load_settings(path: Optional[str] = None, tz: Optional[str] = None) -> Settings:
    """Load settings from the first config file found.

    An explicit ``path`` must exist; the implicit locations are optional.
    """
    source: Optional[str] = None
    data: Dict[str, Any] = {}
    if path:
        if not os.path.exists(path):
            raise NotFoundError(f"Config file not found: {path}")
        source = path
    else:
        source = next((p for p in config_paths() if os.path.exists(p)), None)
    if source:
        LOG.debug("loading config from %s", source)
        try:
            data = load_yaml(source)
        except (RecordsFileError, yaml.YAMLError) as exc:
            raise ConfigError(f"Invalid config file {source}: {exc}") from exc

    timezone = tz or os.environ.get(ENV_TZ) or data.get("timezone") or DEFAULT_TIMEZONE
    settings = Settings(
        timezone=str(timezone),
        active_owners=_str_list(data.get("active_owners"), "active_owners"),
        owner_names=_str_map(data.get("owner_names"), "owner_names"),
        group_titles=_str_map(data.get("group_titles"), "group_titles"),
        source=source,
    )
    # Fail early on a bad zone name
    resolve_timezone(settings.timezone)
    return settings
