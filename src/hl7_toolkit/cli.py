# src/hl7_toolkit/cli.py
"""
Command-line interface for hl7_toolkit.

Subcommands
-----------
parse
    Print the segments of an HL7 v2 message file (or stdin with "-"), one per
    line.

get
    Print the value at one or more field paths (e.g. MSH.9.2).

transform
    Print the structured form of a message as JSON.

build
    Re-encode a message, optionally applying PATH=VALUE assignments first.

new
    Create a message from PATH=VALUE assignments, creating segments as needed.

Exit codes
----------
0  success
1  handled, expected error (HL7ToolkitError or KeyboardInterrupt)
2  CLI usage error (argparse or validation failure)
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import yaml

from . import __version__
from .config import AppConfig, load_config, resolve_terminator
from .exceptions import HL7ToolkitError
from .message import Message, parse_message
from .paths import Coordinate, resolve
from .logging_utils import configure_logging

# ------------------------------------------------------------------------------
# globals
# ------------------------------------------------------------------------------

LOG = logging.getLogger("hl7_toolkit")

EXIT_OK = 0
EXIT_ERR = 1
EXIT_CLI = 2

# HL7 DTM precision used for MSH-7 of new messages.
TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"

# ------------------------------------------------------------------------------
# Parser construction
# ------------------------------------------------------------------------------


def _add_path_argument(sub: argparse.ArgumentParser) -> None:
    sub.add_argument(
        "path",
        type=Path,
        help='Path to HL7 v2 message file. Use "-" to read from stdin.',
    )


def _add_output_arguments(sub: argparse.ArgumentParser) -> None:
    sub.add_argument(
        "--set",
        dest="assignments",
        action="append",
        default=[],
        metavar="PATH=VALUE",
        help="Assign a value before building (repeatable), e.g. MSH.9.2=A08.",
    )
    sub.add_argument(
        "--terminator",
        choices=["cr", "lf", "crlf"],
        default=None,
        help="Segment terminator (defaults to config.segment_terminator).",
    )


def _build_parser() -> argparse.ArgumentParser:
    """
    Build and return the top-level argparse parser and subcommands.

    Returns
    -------
    argparse.ArgumentParser
        Configured parser with subcommands: parse, get, transform, build, new.
    """
    parser = argparse.ArgumentParser(
        prog="hl7-toolkit",
        description="Parse, inspect and build HL7 v2 (ER7) messages.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to YAML config file (overrides defaults).",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v, -vv, -vvv).",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"hl7-toolkit {__version__}",
    )

    sub = parser.add_subparsers(dest="cmd", required=True)

    s1 = sub.add_parser("parse", help="Print the segments of a message.")
    _add_path_argument(s1)

    s2 = sub.add_parser("get", help="Print values at field paths.")
    _add_path_argument(s2)
    s2.add_argument("fields", nargs="+", metavar="FIELD_PATH", help="e.g. MSH.9.2")

    s3 = sub.add_parser("transform", help="Print the structured message as JSON.")
    _add_path_argument(s3)
    s3.add_argument("--pretty", action="store_true", help="Pretty-print JSON output.")

    s4 = sub.add_parser("build", help="Re-encode a message.")
    _add_path_argument(s4)
    _add_output_arguments(s4)

    s5 = sub.add_parser("new", help="Create a message from assignments.")
    _add_output_arguments(s5)
    s5.add_argument(
        "--no-timestamp",
        action="store_true",
        help="Do not fill MSH-7 with the current time.",
    )

    return parser


# ------------------------------------------------------------------------------
# Validation helpers
# ------------------------------------------------------------------------------


def _validate_existing_file(path: Path, allow_stdin: bool = False) -> None:
    """
    Validate that a path exists and is a file, or is "-" if allow_stdin is True.

    Raises
    ------
    HL7ToolkitError
        If the path does not exist, is not a file, is not readable,
        or if "-" is used but allow_stdin is False.
    """
    if allow_stdin and str(path) == "-":
        return
    if not path.exists():
        raise HL7ToolkitError(f"File not found: {path}")
    if not path.is_file():
        raise HL7ToolkitError(f"Not a file: {path}")
    if not os.access(path, os.R_OK):
        raise HL7ToolkitError(f"File is not readable: {path}")


def _read_text_input(path: Path) -> str:
    """
    Read text either from a file or from stdin when path is "-".

    Raises
    ------
    HL7ToolkitError
        On missing files, permission errors, OS read failures, or input
        that is not valid UTF-8.
    """
    try:
        if str(path) == "-":
            return sys.stdin.read()
        # newline="" keeps CR segment terminators intact
        with path.open("r", encoding="utf-8", newline="") as fh:
            return fh.read()
    except FileNotFoundError:
        raise HL7ToolkitError(f"File not found: {path}")
    except PermissionError:
        raise HL7ToolkitError(f"Permission denied: {path}")
    except UnicodeDecodeError as e:
        raise HL7ToolkitError(f"{path} is not valid UTF-8: {e}") from e
    except OSError as e:
        raise HL7ToolkitError(f"Failed to read {path}: {e}") from e


def _parse_assignments(raw: Sequence[str]) -> List[Tuple[Coordinate, str]]:
    """
    Parse PATH=VALUE strings.

    Raises
    ------
    HL7ToolkitError
        If an item has no "=" or a malformed path.
    """
    out = []
    for item in raw:
        path, sep, value = item.partition("=")
        if not sep:
            raise HL7ToolkitError(f"Expected PATH=VALUE, got {item!r}")
        coord = resolve(path.strip())
        if coord.field is None:
            raise HL7ToolkitError(f"Assignment needs a field path, got {path!r}")
        out.append((coord, value))
    return out


def _segment_label(coord: Coordinate) -> str:
    return str(Coordinate(coord.segment, occurrence=coord.occurrence))


def _apply_assignments(
    msg: Message, assignments: Sequence[Tuple[Coordinate, str]], create: bool
) -> None:
    """Apply assignments in order; with create=True, missing segments are appended."""
    for coord, value in assignments:
        if create:
            wanted = coord.occurrence or 1
            while len(msg.get_segments(coord.segment)) < wanted:
                LOG.debug("Creating segment %s", coord.segment)
                msg.create_segment(coord.segment)
        msg.set(_segment_label(coord), {str(coord): value})


def _terminator(choice: Optional[str], cfg: AppConfig) -> str:
    if choice is None:
        return cfg.segment_terminator
    return resolve_terminator(choice)


def _write_message(text: str, terminator: str) -> None:
    sys.stdout.write(text + terminator)
    sys.stdout.flush()


# ------------------------------------------------------------------------------
# Command handlers
# ------------------------------------------------------------------------------


def _load_message(path: Path) -> Message:
    _validate_existing_file(path, allow_stdin=True)
    return parse_message(_read_text_input(path))


def _cmd_parse(path: Path) -> int:
    msg = _load_message(path)
    for seg in msg.get_segments():
        print(seg.to_er7())
    return EXIT_OK


def _cmd_get(path: Path, fields: Sequence[str]) -> int:
    msg = _load_message(path)
    for field_path in fields:
        print(msg.get(field_path))
    return EXIT_OK


def _cmd_transform(path: Path, pretty: bool) -> int:
    """
    Transform: parse a message and print its structured form.

    Raises
    ------
    HL7ToolkitError
        If the file is unreadable or the message cannot be parsed.
    """
    _validate_existing_file(path, allow_stdin=True)
    msg = Message(_read_text_input(path))
    result = msg.transform()
    if not result.ok:
        raise result.error
    print(json.dumps(result.transformed, indent=2 if pretty else None))
    return EXIT_OK


def _cmd_build(path: Path, assignments: Sequence[str], terminator: str) -> int:
    msg = _load_message(path)
    _apply_assignments(msg, _parse_assignments(assignments), create=False)
    _write_message(msg.build(terminator), terminator)
    return EXIT_OK


def _cmd_new(
    assignments: Sequence[str], terminator: str, cfg: AppConfig, stamp: bool
) -> int:
    """
    New: create an MSH-led message from assignments.

    MSH-7 is set to the current local time unless stamp is False or an
    assignment supplies it.
    """
    msg = Message(delimiters=cfg.delimiters())
    msg.create_segment("MSH")
    if stamp:
        msg.set("MSH", {"MSH.7": datetime.now().strftime(TIMESTAMP_FORMAT)})
    _apply_assignments(msg, _parse_assignments(assignments), create=True)
    _write_message(msg.build(terminator), terminator)
    return EXIT_OK


# ------------------------------------------------------------------------------
# Entrypoint
# ------------------------------------------------------------------------------


def main(argv: Optional[List[str]] = None) -> int:
    """
    CLI entrypoint.

    Parameters
    ----------
    argv : list[str] or None, default None
        Argument list for testing; None uses sys.argv[1:].

    Returns
    -------
    int
        Process exit code (EXIT_OK, EXIT_ERR, or EXIT_CLI).
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.verbose)

    try:
        cfg = load_config(args.config)
    except (OSError, TypeError, ValueError, yaml.YAMLError) as e:
        LOG.error("Invalid config: %s", e)
        return EXIT_CLI

    try:
        if args.cmd == "parse":
            return _cmd_parse(args.path)
        if args.cmd == "get":
            return _cmd_get(args.path, args.fields)
        if args.cmd == "transform":
            return _cmd_transform(args.path, bool(args.pretty))
        if args.cmd == "build":
            return _cmd_build(
                args.path, args.assignments, _terminator(args.terminator, cfg)
            )
        if args.cmd == "new":
            return _cmd_new(
                args.assignments,
                _terminator(args.terminator, cfg),
                cfg,
                stamp=not args.no_timestamp,
            )
        parser.error("Unknown command")
        return EXIT_CLI

    except HL7ToolkitError as e:
        LOG.error("%s", e)
        return EXIT_ERR
    except KeyboardInterrupt:
        LOG.error("Interrupted")
        return EXIT_ERR


if __name__ == "__main__":
    raise SystemExit(main())
