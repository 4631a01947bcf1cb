"""Quote commands: add, list, show, categories."""

from __future__ import annotations

import json

import click

from quotesync.cli.helpers import (
    output_error,
    output_options,
    output_result,
    read_store,
    require_root,
)
from quotesync.cli.main import cli
from quotesync.core.quotes import (
    filter_by_category,
    format_quote,
    list_categories,
    pick_random,
)
from quotesync.storage.locks import LockTimeout
from quotesync.storage.operations import add_quote, read_state, write_state


@cli.command()
@click.argument("text")
@click.option("--category", "-c", default=None, help="Category label (default: uncategorized).")
@output_options
def add(text: str, category: str | None, output_json: bool, quiet: bool) -> None:
    """Add a quote to the local collection."""
    data_dir = require_root(output_json)
    try:
        quote = add_quote(data_dir, text, category)
    except json.JSONDecodeError as e:
        output_error(f"config.json is not valid JSON: {e}", "INVALID_CONFIG", output_json)
    except ValueError as e:
        output_error(str(e), "VALIDATION_ERROR", output_json)
    except LockTimeout as e:
        output_error(str(e), "LOCKED", output_json)

    output_result(
        data=quote,
        human_message=f"Quote added: {format_quote(quote)}",
        quiet_value=quote["local_id"],
        is_json=output_json,
        is_quiet=quiet,
    )


@cli.command("list")
@click.option("--category", "-c", default=None, help="Only quotes in this category.")
@output_options
def list_cmd(category: str | None, output_json: bool, quiet: bool) -> None:
    """List quotes, optionally filtered by category."""
    data_dir = require_root(output_json)
    quotes = filter_by_category(read_store(data_dir, output_json).quotes, category)

    if output_json:
        output_result(data=quotes, human_message="", quiet_value="", is_json=True)
        return
    if not quotes:
        click.echo("No quotes in this category." if category else "No quotes available.")
        return
    for quote in quotes:
        if quiet:
            click.echo(quote["local_id"])
            continue
        linked = f" [remote {quote['remote_id']}]" if quote.get("remote_id") else ""
        click.echo(f"{quote['local_id']}  {format_quote(quote)}{linked}")


@cli.command()
@click.option(
    "--category",
    "-c",
    default=None,
    help="Filter by category ('all' for every quote). Remembered for next time.",
)
@output_options
def show(category: str | None, output_json: bool, quiet: bool) -> None:
    """Show a random quote."""
    data_dir = require_root(output_json)
    if category is None:
        category = read_state(data_dir).get("last_category", "all")
    else:
        write_state(data_dir, last_category=category)

    quotes = filter_by_category(read_store(data_dir, output_json).quotes, category)
    quote = pick_random(quotes)
    if quote is None:
        message = "No quotes in this category." if category != "all" else "No quotes available."
        output_result(data=None, human_message=message, quiet_value="", is_json=output_json)
        return

    output_result(
        data=quote,
        human_message=format_quote(quote),
        quiet_value=quote["text"],
        is_json=output_json,
        is_quiet=quiet,
    )


@cli.command()
@output_options
def categories(output_json: bool, quiet: bool) -> None:
    """List the distinct categories in the collection."""
    data_dir = require_root(output_json)
    names = list_categories(read_store(data_dir, output_json).quotes)
    output_result(
        data=names,
        human_message="\n".join(names) if names else "No categories.",
        quiet_value="\n".join(names),
        is_json=output_json,
        is_quiet=quiet,
    )
