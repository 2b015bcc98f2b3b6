"""Rendering for command results.

Text mode prints aligned tables and listings; json and yaml modes emit the
same content as data so totals can be piped into other tools.
"""
from __future__ import annotations

import datetime as _dt
import json
import sys
from dataclasses import asdict, dataclass, is_dataclass
from enum import Enum
from typing import Any, List, Optional, Sequence, TextIO

import yaml


class OutputFormat(str, Enum):
    TEXT = "text"
    JSON = "json"
    YAML = "yaml"


@dataclass
class OutputConfig:
    format: OutputFormat = OutputFormat.TEXT
    quiet: bool = False
    # None means sys.stdout at write time
    file: Optional[TextIO] = None


def normalize(data: Any) -> Any:
    """Reduce dataclasses, dates and enums to plain JSON/YAML values."""
    if is_dataclass(data) and not isinstance(data, type):
        data = asdict(data)
    if isinstance(data, dict):
        return {str(k): normalize(v) for k, v in data.items()}
    if isinstance(data, (list, tuple, set, frozenset)):
        return [normalize(v) for v in data]
    if isinstance(data, (_dt.date, _dt.datetime)):
        return data.isoformat()
    return data.value if isinstance(data, Enum) else data


class OutputWriter:
    def __init__(self, config: Optional[OutputConfig] = None):
        self.config = config or OutputConfig()

    @property
    def structured(self) -> bool:
        return self.config.format is not OutputFormat.TEXT

    def print(self, *parts: Any, end: str = "\n") -> None:
        if not self.config.quiet:
            print(*parts, end=end, file=self.config.file or sys.stdout)

    def print_error(self, message: str) -> None:
        # Errors are shown even with --quiet
        sys.stderr.write(f"Error: {message}\n")

    def print_data(self, data: Any) -> None:
        plain = normalize(data)
        if self.config.format is OutputFormat.JSON:
            self.print(json.dumps(plain, indent=2, ensure_ascii=False, default=str))
        elif self.config.format is OutputFormat.YAML:
            self.print(yaml.safe_dump(plain, sort_keys=False, allow_unicode=True), end="")
        else:
            self.print(plain)

    def print_table(self, headers: Sequence[str], rows: Sequence[Sequence[Any]]) -> None:
        """Left-aligned columns joined with ' | ' under a dashed rule."""
        cells: List[List[str]] = [list(headers)] + [[str(v) for v in row] for row in rows]
        widths = [max(len(r[i]) for r in cells if i < len(r)) for i in range(len(headers))]

        def line(row: List[str]) -> str:
            return " | ".join(v.ljust(widths[i]) if i < len(widths) else v for i, v in enumerate(row)).rstrip()

        head = line(cells[0])
        self.print(head)
        self.print("-" * len(head))
        for row in cells[1:]:
            self.print(line(row))
