"""Exit statuses and the errors that map onto them.

Expansion and aggregation never raise for bad record data. These errors
come from the edges: config, command-line arguments and the records file.
"""
from __future__ import annotations

import sys
import traceback
from enum import IntEnum
from typing import Optional


class ExitCode(IntEnum):
    SUCCESS = 0
    ERROR = 1
    USAGE = 2          # bad flags or window
    CONFIG_ERROR = 3   # config file or timezone
    DATA_ERROR = 4     # records file shape or YAML syntax
    NOT_FOUND = 6      # records or config path missing
    INTERRUPTED = 130  # Ctrl+C


class CLIError(Exception):
    """An error that ends a command with a known exit status."""

    default_code = ExitCode.ERROR

    def __init__(self, message: str, code: Optional[int] = None, hint: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = ExitCode(self.default_code if code is None else code)
        self.hint = hint

    def __str__(self) -> str:
        return self.message


class UsageError(CLIError):
    default_code = ExitCode.USAGE


class ConfigError(CLIError):
    default_code = ExitCode.CONFIG_ERROR


class RecordsFileError(CLIError):
    """Records file exists but is not shaped like a records document."""
    default_code = ExitCode.DATA_ERROR


class NotFoundError(CLIError):
    default_code = ExitCode.NOT_FOUND


def handle_error(error: BaseException, verbose: bool = False) -> int:
    """Report ``error`` on stderr and return the exit status for it.

    Unexpected exceptions get a traceback only with ``verbose``.
    """
    if isinstance(error, KeyboardInterrupt):
        sys.stderr.write("\nInterrupted.\n")
        return int(ExitCode.INTERRUPTED)
    if not isinstance(error, CLIError):
        sys.stderr.write(f"Error: unexpected {type(error).__name__}: {error}\n")
        if verbose:
            traceback.print_exception(type(error), error, error.__traceback__)
        return int(ExitCode.ERROR)
    sys.stderr.write(f"Error: {error.message}\n")
    if error.hint:
        sys.stderr.write(f"Hint: {error.hint}\n")
    return int(error.code)
