"""Conflict ledger commands: list, keep-local, accept-remote, clear."""

from __future__ import annotations

import click

from quotesync.cli.helpers import output_error, output_options, output_result, require_root
from quotesync.cli.main import cli
from quotesync.core.quotes import format_quote
from quotesync.storage.ledger import ConflictNotFound
from quotesync.storage.locks import LockTimeout
from quotesync.storage.operations import clear_conflicts, open_ledger, resolve_conflict


@cli.group()
def conflicts() -> None:
    """Review and override conflicts recorded by sync."""


@conflicts.command("list")
@output_options
def conflicts_list(output_json: bool, quiet: bool) -> None:
    """Show recorded conflicts with local and remote versions."""
    data_dir = require_root(output_json)
    entries = open_ledger(data_dir).list()

    if output_json:
        output_result(data=entries, human_message="", quiet_value="", is_json=True)
        return
    if quiet:
        click.echo(str(len(entries)))
        return
    if not entries:
        click.echo("No conflicts.")
        return
    for entry in entries:
        click.echo(f"[{entry['index']}] {entry['record_id']}  (detected {entry['detected_at']})")
        click.echo(f"    local:  {format_quote(entry['local'])}")
        click.echo(f"    remote: {format_quote(entry['remote'])}")


def _resolve(index: int, keep: str, output_json: bool, quiet: bool) -> None:
    data_dir = require_root(output_json)
    try:
        resolved = resolve_conflict(data_dir, index, keep=keep)
    except ConflictNotFound as e:
        output_error(str(e), "NOT_FOUND", output_json)
    except LockTimeout as e:
        output_error(str(e), "LOCKED", output_json)

    if keep == "local":
        message = f"Conflict {index} resolved: restored {format_quote(resolved)}"
    else:
        message = f"Conflict {index} resolved: kept remote version."
    output_result(
        data=resolved,
        human_message=message,
        quiet_value=str(index),
        is_json=output_json,
        is_quiet=quiet,
    )


@conflicts.command("keep-local")
@click.argument("index", type=int)
@output_options
def conflicts_keep_local(index: int, output_json: bool, quiet: bool) -> None:
    """Restore the local version of conflict INDEX."""
    _resolve(index, "local", output_json, quiet)


@conflicts.command("accept-remote")
@click.argument("index", type=int)
@output_options
def conflicts_accept_remote(index: int, output_json: bool, quiet: bool) -> None:
    """Accept the remote version of conflict INDEX and drop the entry."""
    _resolve(index, "remote", output_json, quiet)


@conflicts.command("clear")
@output_options
def conflicts_clear(output_json: bool, quiet: bool) -> None:
    """Drop every recorded conflict without changing any quote."""
    data_dir = require_root(output_json)
    try:
        count = clear_conflicts(data_dir)
    except LockTimeout as e:
        output_error(str(e), "LOCKED", output_json)
    output_result(
        data={"cleared": count},
        human_message=f"Cleared {count} conflicts.",
        quiet_value=str(count),
        is_json=output_json,
        is_quiet=quiet,
    )
