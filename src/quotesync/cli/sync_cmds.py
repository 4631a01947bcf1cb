"""CLI command for reconciling against the remote snapshot."""

from __future__ import annotations

import asyncio
import json

import click

from quotesync.cli.helpers import json_envelope, output_error, output_options, require_root
from quotesync.cli.main import cli


def _describe(result: dict) -> str:
    status = result["status"]
    if status == "busy":
        return "Sync skipped: a pass is already running."
    if status == "failed":
        return f"Sync failed: {result['error']}"
    outcome = result["outcome"]
    line = (
        f"Synced with server: {outcome['added']} added, {outcome['updated']} updated, "
        f"{len(outcome['conflicts'])} conflicts."
    )
    if outcome["conflicts"]:
        line += " Run 'quotesync conflicts list' to review."
    return line


@cli.command()
@click.option("--watch", is_flag=True, help="Keep running and sync on an interval.")
@click.option(
    "--interval",
    type=float,
    default=None,
    help="Seconds between scheduled passes with --watch (default: sync.interval_seconds).",
)
@output_options
def sync(watch: bool, interval: float | None, output_json: bool, quiet: bool) -> None:
    """Fetch the remote snapshot and reconcile it into the local collection."""
    from quotesync.sync import bus
    from quotesync.sync.driver import SyncDriver

    data_dir = require_root(output_json)
    try:
        driver = SyncDriver(data_dir)
    except json.JSONDecodeError as e:
        output_error(f"config.json is not valid JSON: {e}", "INVALID_CONFIG", output_json)
    except ValueError as e:
        output_error(f"Invalid config: {e}", "INVALID_CONFIG", output_json)

    if not watch:
        result = asyncio.run(driver.run_once("manual")).to_dict()
        if output_json:
            click.echo(json_envelope(result["status"] == "ok", data=result))
        elif not quiet or result["status"] != "ok":
            click.echo(_describe(result))
        if result["status"] == "failed":
            raise SystemExit(1)
        return

    def _print(result: dict) -> None:
        if output_json:
            click.echo(json_envelope(result["status"] == "ok", data=result))
        elif not quiet:
            click.echo(_describe(result))

    async def _watch() -> None:
        task = driver.schedule(interval)
        try:
            await task
        finally:
            await driver.stop()

    bus.register_listener(_print)
    try:
        asyncio.run(_watch())
    except KeyboardInterrupt:
        click.echo("\nquotesync sync: stopped.", err=True)
    finally:
        bus.unregister_listener(_print)
