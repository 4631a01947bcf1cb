"""Bulk import/export commands."""

from __future__ import annotations

import json
from pathlib import Path

import click

from quotesync.cli.helpers import (
    output_error,
    output_options,
    output_result,
    read_store,
    require_root,
)
from quotesync.cli.main import cli
from quotesync.storage.locks import LockTimeout
from quotesync.storage.operations import import_quotes
from quotesync.storage.transfer import (
    ImportFileError,
    export_entries,
    read_import_file,
    write_export_file,
)


@cli.command("import")
@click.argument("path", type=click.Path(dir_okay=False, path_type=Path))
@output_options
def import_cmd(path: Path, output_json: bool, quiet: bool) -> None:
    """Import quotes from a JSON array of {text, category} objects."""
    data_dir = require_root(output_json)
    try:
        entries = read_import_file(path)
        imported, skipped = import_quotes(data_dir, entries)
    except ImportFileError as e:
        output_error(str(e), "INVALID_IMPORT", output_json)
    except LockTimeout as e:
        output_error(str(e), "LOCKED", output_json)

    message = f"Imported {imported} quotes."
    if skipped:
        message += f" Skipped {skipped} malformed entries."
    output_result(
        data={"imported": imported, "skipped": skipped},
        human_message=message,
        quiet_value=str(imported),
        is_json=output_json,
        is_quiet=quiet,
    )


@cli.command("export")
@click.argument("path", required=False, type=click.Path(dir_okay=False, path_type=Path))
@output_options
def export_cmd(path: Path | None, output_json: bool, quiet: bool) -> None:
    """Export quotes as {text, category} pairs to PATH (or stdout)."""
    data_dir = require_root(output_json)
    store = read_store(data_dir, output_json)

    if path is None:
        if output_json:
            output_result(data=export_entries(store), human_message="", quiet_value="",
                          is_json=True)
        else:
            click.echo(json.dumps(export_entries(store), ensure_ascii=False, indent=2))
        return

    try:
        count = write_export_file(store, path)
    except OSError as e:
        output_error(f"Cannot write {path}: {e}", "EXPORT_FAILED", output_json)

    output_result(
        data={"exported": count, "path": str(path)},
        human_message=f"Exported {count} quotes to {path}.",
        quiet_value=str(count),
        is_json=output_json,
        is_quiet=quiet,
    )
