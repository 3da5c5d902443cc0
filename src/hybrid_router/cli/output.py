"""JSON envelope output for CLI commands.

Every command prints exactly one JSON object to stdout:

    {"success": true, "data": {...}, "error": null}
    {"success": false, "data": null, "error": {...}}
"""

import json
from typing import Any, Dict, NoReturn, Optional

import click


def _dump(envelope: Dict[str, Any], pretty: bool) -> str:
    if pretty:
        return json.dumps(envelope, indent=2, default=str, ensure_ascii=False)
    return json.dumps(envelope, separators=(",", ":"), default=str, ensure_ascii=False)


def emit_success(data: Any, *, pretty: bool = True) -> None:
    """Print a success envelope."""
    click.echo(_dump({"success": True, "data": data, "error": None}, pretty))


def emit_error(
    message: str,
    *,
    code: str,
    error_type: str,
    remediation: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    exit_code: int = 1,
) -> NoReturn:
    """Print an error envelope and exit with ``exit_code``."""
    error: Dict[str, Any] = {"code": code, "type": error_type, "message": message}
    if remediation:
        error["remediation"] = remediation
    if details:
        error["details"] = details
    click.echo(_dump({"success": False, "data": None, "error": error}, pretty=True))
    raise SystemExit(exit_code)


def emit_envelope(envelope: Dict[str, Any], *, exit_code: int = 1) -> NoReturn:
    """Print a prebuilt error envelope (see ``error_to_response``) and exit."""
    click.echo(_dump(envelope, pretty=True))
    raise SystemExit(exit_code)
