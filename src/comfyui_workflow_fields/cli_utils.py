"""Shared CLI utilities: exit codes, output helpers, input parsing."""

import json
import os
import sys
from pathlib import Path
from typing import Any, Optional

# Exit codes
EXIT_OK = 0
EXIT_ERROR = 1
EXIT_VALIDATION = 3
EXIT_CONNECTION = 5
EXIT_NOT_FOUND = 6


def _exit_code_for_error(result: dict) -> int:
    """Map an error result's code to an exit code."""
    return {
        "CONNECTION_ERROR": EXIT_CONNECTION,
        "NOT_FOUND": EXIT_NOT_FOUND,
        "VALIDATION_ERROR": EXIT_VALIDATION,
        "INVALID_PARAMS": EXIT_VALIDATION,
        "STRUCTURAL_ERROR": EXIT_VALIDATION,
    }.get(result.get("code", ""), EXIT_ERROR)


def _output(data: Any, pretty: bool = False) -> None:
    """Write JSON data to stdout (results/data only)."""
    if pretty:
        json.dump(data, sys.stdout, indent=2, default=str)
    else:
        json.dump(data, sys.stdout, default=str)
    sys.stdout.write("\n")
    sys.stdout.flush()


def _msg(text: str) -> None:
    """Write a status/progress message to stderr."""
    sys.stderr.write(text)
    if not text.endswith("\n"):
        sys.stderr.write("\n")
    sys.stderr.flush()


def _error(message: str, code: str = "CLI_ERROR") -> dict:
    return {"error": message, "code": code}


def _is_pretty() -> bool:
    return os.environ.get("FIELDS_PRETTY", "").lower() in ("1", "true", "yes")


def _parse_json_arg(value: str) -> Any:
    """Parse a JSON string argument, supporting both raw JSON and @file references."""
    if value.startswith("@"):
        path = Path(value[1:])
        if not path.exists():
            _msg(json.dumps(_error(f"File not found: {path}", "INVALID_PARAMS")))
            sys.exit(EXIT_VALIDATION)
        return json.loads(path.read_text())
    return json.loads(value)


def _parse_value(text: str) -> Any:
    """Command-line value: JSON when it parses (42, true, "x"), else the raw string."""
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


def _read_json_file(path: str) -> Any:
    p = Path(path)
    if not p.exists():
        _msg(json.dumps(_error(f"Workflow file not found: {path}", "INVALID_PARAMS")))
        sys.exit(EXIT_VALIDATION)
    return json.loads(p.read_text())


def _read_workflow(args) -> Optional[Any]:
    """Read workflow from --workflow file or stdin."""
    path = getattr(args, "workflow", None)
    if path and path != "-":
        return _read_json_file(path)
    if not sys.stdin.isatty():
        return json.loads(sys.stdin.read())
    return None
