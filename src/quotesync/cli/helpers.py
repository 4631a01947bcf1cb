"""Shared CLI helpers, decorators, and output utilities."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import NoReturn

import click

from quotesync.storage.fs import QUOTESYNC_DIR, QuotesyncRootError, find_root
from quotesync.storage.locks import LockTimeout
from quotesync.storage.operations import open_store
from quotesync.storage.records import RecordStore

DEBUG_ENV = "QUOTESYNC_DEBUG"


# ---------------------------------------------------------------------------
# Root & logging
# ---------------------------------------------------------------------------


def require_root(is_json: bool = False) -> Path:
    """Find the .quotesync/ directory or exit with error."""
    try:
        root = find_root()
    except QuotesyncRootError as e:
        output_error(str(e), "NOT_INITIALIZED", is_json)
    if root is None:
        output_error(
            "Not a quotesync project (no .quotesync/ found). Run 'quotesync init' first.",
            "NOT_INITIALIZED",
            is_json,
        )
    return root / QUOTESYNC_DIR


def read_store(data_dir: Path, is_json: bool = False) -> RecordStore:
    """Load the store for a read-only command, or exit if it is locked.

    Only a store that has to be re-seeded waits for the lock.
    """
    try:
        return open_store(data_dir)
    except LockTimeout as e:
        output_error(str(e), "LOCKED", is_json)


def configure_logging(verbose: bool) -> None:
    """Route diagnostics to stderr; DEBUG with --verbose or QUOTESYNC_DEBUG=1."""
    debug = verbose or os.environ.get(DEBUG_ENV) == "1"
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(levelname)s: %(message)s",
        force=True,
    )


# ---------------------------------------------------------------------------
# Output helpers
# ---------------------------------------------------------------------------


def json_envelope(ok: bool, *, data: object = None, error: object = None) -> str:
    """Build a structured JSON output envelope."""
    result: dict = {"ok": ok}
    if data is not None:
        result["data"] = data
    if error is not None:
        result["error"] = error
    return json.dumps(result, sort_keys=True, indent=2, ensure_ascii=False) + "\n"


def json_error_obj(code: str, message: str) -> dict:
    """Build an error object for the JSON envelope."""
    return {"code": code, "message": message}


def output_error(message: str, code: str, is_json: bool, exit_code: int = 1) -> NoReturn:
    """Print error and exit. JSON errors go to stdout; human errors to stderr."""
    if is_json:
        click.echo(json_envelope(False, error=json_error_obj(code, message)))
    else:
        click.echo(f"Error: {message}", err=True)
    raise SystemExit(exit_code)


def output_result(
    *,
    data: object,
    human_message: str,
    quiet_value: str,
    is_json: bool,
    is_quiet: bool = False,
) -> None:
    """Print success result in the appropriate format."""
    if is_json:
        click.echo(json_envelope(True, data=data))
    elif is_quiet:
        click.echo(quiet_value)
    else:
        click.echo(human_message)


# ---------------------------------------------------------------------------
# Click decorator
# ---------------------------------------------------------------------------


def output_options(f):  # noqa: ANN001, ANN201
    """Decorator adding ``--json`` and ``--quiet`` output flags."""
    f = click.option("--quiet", is_flag=True, help="Print only the primary value.")(f)
    f = click.option("--json", "output_json", is_flag=True, help="Output structured JSON.")(f)
    return f
