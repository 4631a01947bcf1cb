"""CLI entry point and project-level commands."""

from __future__ import annotations

from pathlib import Path

import click

from quotesync.cli.helpers import (
    configure_logging,
    json_envelope,
    json_error_obj,
    output_error,
    output_options,
    output_result,
    read_store,
    require_root,
)
from quotesync.core.config import default_config, serialize_config, validate_config
from quotesync.storage.fs import CONFIG_FILE, QUOTESYNC_DIR, atomic_write, ensure_data_dirs


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Log diagnostics to stderr.")
def cli(verbose: bool) -> None:
    """quotesync: local quote collection reconciled against a remote snapshot."""
    configure_logging(verbose)


@cli.command()
@click.option(
    "--path",
    "target_path",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    default=".",
    help="Directory to initialize quotesync in (defaults to current directory).",
)
@click.option("--remote-url", default=None, help="Endpoint serving the remote snapshot.")
@output_options
def init(target_path: str, remote_url: str | None, output_json: bool, quiet: bool) -> None:
    """Initialize a quote collection with the seed quotes."""
    from quotesync.storage.operations import open_ledger, open_store

    root = Path(target_path)
    data_dir = root / QUOTESYNC_DIR

    if data_dir.is_dir():
        output_result(
            data={"path": str(data_dir), "created": False},
            human_message=f"quotesync already initialized in {QUOTESYNC_DIR}/",
            quiet_value=str(data_dir),
            is_json=output_json,
            is_quiet=quiet,
        )
        return

    if data_dir.exists():
        output_error(
            f"Cannot initialize: '{QUOTESYNC_DIR}' exists but is not a directory. "
            "Remove it and try again.",
            "INIT_FAILED",
            output_json,
        )

    try:
        ensure_data_dirs(root)

        config: dict = dict(default_config())
        if remote_url:
            config["remote"]["url"] = remote_url
        atomic_write(data_dir / CONFIG_FILE, serialize_config(config))

        store = open_store(data_dir)
        open_ledger(data_dir).save()
    except PermissionError:
        output_error(
            f"Permission denied: cannot create {QUOTESYNC_DIR}/ in {root}",
            "INIT_FAILED",
            output_json,
        )
    except OSError as e:
        output_error(f"Failed to initialize quotesync: {e}", "INIT_FAILED", output_json)

    output_result(
        data={"path": str(data_dir), "created": True, "quotes": len(store)},
        human_message=f"quotesync initialized in {QUOTESYNC_DIR}/ with {len(store)} seed quotes.",
        quiet_value=str(data_dir),
        is_json=output_json,
        is_quiet=quiet,
    )


@cli.command()
@output_options
def doctor(output_json: bool, quiet: bool) -> None:
    """Check config, store identity invariants, and ledger references."""
    from quotesync.storage.operations import open_ledger, read_config

    data_dir = require_root(output_json)
    try:
        config = read_config(data_dir)
    except ValueError as e:
        output_error(f"config.json is not valid JSON: {e}", "INVALID_CONFIG", output_json)

    problems = [f"config: {p}" for p in validate_config(config)]

    store = read_store(data_dir, output_json)
    problems.extend(f"store: {p}" for p in store.check_invariants())

    for entry in open_ledger(data_dir).list():
        if store.find_by_local_id(entry["record_id"]) is None:
            problems.append(
                f"ledger: conflict {entry['index']} points at missing record {entry['record_id']}"
            )

    if problems:
        if output_json:
            error = json_error_obj("PROBLEMS_FOUND", f"{len(problems)} problem(s) found.")
            click.echo(json_envelope(False, data={"problems": problems}, error=error))
        else:
            for problem in problems:
                click.echo(problem)
        raise SystemExit(1)

    output_result(
        data={"problems": [], "quotes": len(store)},
        human_message=f"OK: {len(store)} quotes, no problems found.",
        quiet_value="ok",
        is_json=output_json,
        is_quiet=quiet,
    )


# ---------------------------------------------------------------------------
# Register command modules (must be after cli group is defined)
# ---------------------------------------------------------------------------
from quotesync.cli import quote_cmds as _quote_cmds  # noqa: E402, F401
from quotesync.cli import transfer_cmds as _transfer_cmds  # noqa: E402, F401
from quotesync.cli import sync_cmds as _sync_cmds  # noqa: E402, F401
from quotesync.cli import conflict_cmds as _conflict_cmds  # noqa: E402, F401

if __name__ == "__main__":
    cli()
