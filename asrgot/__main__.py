"""Command-line entrypoint: run a script of graph operations against a fresh session."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from asrgot.core.errors import GraphError, ValidationError
from asrgot.core.logging_config import setup_logging
from asrgot.engine import ReasoningSession
from asrgot.graph.export import SUPPORTED_FORMATS

__all__ = [
    "main",
    "_main",
    "_read_script",
    "_parse_args",
    "sys",
]

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="asrgot",
        description="Run a JSON list of reasoning graph operations.",
    )
    parser.add_argument(
        "--script",
        type=Path,
        help='UTF-8 JSON file holding [{"op": ..., "args": {...}}, ...] (default: stdin)',
    )
    parser.add_argument(
        "--export",
        choices=SUPPORTED_FORMATS,
        help="Print a snapshot of the final graph in this format",
    )
    parser.add_argument("--log-level", choices=LOG_LEVELS, default="WARNING")
    return parser.parse_args(argv)


def _read_script(path: Path | None) -> list[dict[str, Any]]:
    text = path.read_text(encoding="utf-8") if path is not None else sys.stdin.read()
    operations = json.loads(text)
    if not isinstance(operations, list):
        raise ValidationError("script must be a JSON list of operations", field="script")
    for index, item in enumerate(operations):
        if not isinstance(item, dict) or not isinstance(item.get("op"), str):
            raise ValidationError(
                f"operation {index} must be an object with a string 'op'", field="script"
            )
    return operations


def _main(argv: list[str]) -> None:
    args = _parse_args(argv)
    setup_logging(getattr(logging, args.log_level))

    operations = _read_script(args.script)
    session = ReasoningSession()
    for item in operations:
        result = session.call(item["op"], item.get("args"))
        sys.stdout.write(json.dumps({"op": item["op"], "result": result}, default=str) + "\n")

    if args.export:
        sys.stdout.write(session.export_snapshot(args.export) + "\n")


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments, run the script and map failures to exit codes."""

    argv = sys.argv[1:] if argv is None else argv

    try:
        _main(argv)
    except GraphError as exc:
        sys.stderr.write(json.dumps(exc.to_dict(), default=str) + "\n")
        raise SystemExit(2) from exc
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        sys.stderr.write(f"{exc}\n")
        raise SystemExit(3) from exc
    except SystemExit:
        raise
    except Exception as exc:  # noqa: BLE001
        sys.stderr.write(f"{exc}\n")
        raise SystemExit(5) from exc


if __name__ == "__main__":
    main()
