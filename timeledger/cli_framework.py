"""Decorator-based command registry on top of argparse.

Stack ``@app.argument`` lines under ``@app.command`` and the command picks
them up in source order. ``CLIApp.run`` owns the shared flags, logging
setup, the output writer and the exception-to-exit-status mapping.
"""
from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .cli_errors import CLIError, ExitCode, handle_error
from .cli_output import OutputConfig, OutputFormat, OutputWriter

Handler = Callable[[argparse.Namespace], int]

LOG = logging.getLogger(__name__)
LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


@dataclass
class Option:
    flags: Tuple[str, ...]
    options: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Command:
    name: str
    handler: Handler
    help: str = ""
    options: List[Option] = field(default_factory=list)


class CLIApp:
    """Collects commands and builds the argparse tree for them.

        app = CLIApp("timeledger", "Effort totals")

        @app.command("report", help="Hours per owner")
        @app.argument("--records", required=True)
        def cmd_report(args):
            ...
    """

    def __init__(self, name: str, description: str = "", *, version: Optional[str] = None):
        self.name = name
        self.description = description
        self.version = version
        self.commands: Dict[str, Command] = {}
        self._staged: List[Option] = []

    def argument(self, *flags: str, **options: Any) -> Callable[[Handler], Handler]:
        def stage(handler: Handler) -> Handler:
            self._staged.append(Option(flags, options))
            return handler
        return stage

    def command(self, name: str, *, help: str = "") -> Callable[[Handler], Handler]:
        def register(handler: Handler) -> Handler:
            # Decorators apply bottom-up; flip back to source order
            staged, self._staged = self._staged[::-1], []
            self.commands[name] = Command(name, handler, help, staged)
            return handler
        return register

    def build_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog=self.name,
            description=self.description,
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )
        if self.version:
            parser.add_argument("--version", "-V", action="version", version=f"%(prog)s {self.version}")
        parser.add_argument("--config", "-c", help="Config YAML (default: $TIMELEDGER_CONFIG or ~/.config/timeledger/config.yaml)")
        parser.add_argument("--tz", help="IANA timezone for calendar weeks and naive timestamps")
        parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging on stderr")
        parser.add_argument("--quiet", "-q", action="store_true", help="Suppress normal output")
        parser.add_argument("--output", "-o", choices=[f.value for f in OutputFormat], default=OutputFormat.TEXT.value,
                            help="text, json or yaml (default: text)")
        sub = parser.add_subparsers(dest="command", metavar="<command>")
        for cmd in self.commands.values():
            cmd_parser = sub.add_parser(cmd.name, help=cmd.help, description=cmd.help)
            for opt in cmd.options:
                cmd_parser.add_argument(*opt.flags, **opt.options)
            cmd_parser.set_defaults(_handler=cmd.handler)
        return parser

    def run(self, argv: Optional[Sequence[str]] = None) -> int:
        """Parse ``argv``, dispatch, and return the exit status."""
        parser = self.build_parser()
        args = parser.parse_args(argv)
        logging.basicConfig(
            level=logging.DEBUG if args.verbose else logging.WARNING,
            format=LOG_FORMAT,
            stream=sys.stderr,
        )
        args._output = OutputWriter(OutputConfig(format=OutputFormat(args.output), quiet=args.quiet))

        handler = getattr(args, "_handler", None)
        if handler is None:
            parser.print_help()
            return int(ExitCode.USAGE)
        try:
            return int(handler(args))
        except CLIError as exc:
            LOG.debug("%s failed with exit status %d", args.command, exc.code)
            return handle_error(exc, verbose=args.verbose)
        except (Exception, KeyboardInterrupt) as exc:
            return handle_error(exc, verbose=args.verbose)
