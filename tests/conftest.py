"""Shared test fixtures."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner


@pytest.fixture()
def quotesync_root(tmp_path: Path) -> Path:
    """Return a temporary directory suitable for initializing .quotesync/ in."""
    return tmp_path


@pytest.fixture()
def data_dir(quotesync_root: Path) -> Path:
    """Return an empty .quotesync/ directory (no quotes.json yet)."""
    from quotesync.storage.fs import ensure_data_dirs

    return ensure_data_dirs(quotesync_root)


@pytest.fixture()
def initialized_root(quotesync_root: Path) -> Path:
    """Return a temporary directory with .quotesync/ initialized and seeded."""
    from quotesync.core.config import default_config, serialize_config
    from quotesync.storage.fs import CONFIG_FILE, atomic_write, ensure_data_dirs
    from quotesync.storage.operations import open_store

    data = ensure_data_dirs(quotesync_root)
    atomic_write(data / CONFIG_FILE, serialize_config(default_config()))
    open_store(data)
    return quotesync_root


@pytest.fixture()
def make_store(data_dir: Path):
    """Factory fixture: write *quotes* to quotes.json and return a loaded store.

    Usage::

        store = make_store([{"text": "a", "category": "X", "local_id": "l1"}])
    """
    from quotesync.storage.fs import QUOTES_FILE
    from quotesync.storage.records import RecordStore

    def _make(quotes: list[dict]) -> RecordStore:
        full = [
            {"remote_id": None, "updated_at": "2024-01-01T00:00:00Z", **q} for q in quotes
        ]
        (data_dir / QUOTES_FILE).write_text(json.dumps(full), encoding="utf-8")
        store = RecordStore(data_dir)
        store.load()
        return store

    return _make


@pytest.fixture()
def cli_runner() -> CliRunner:
    """Return a Click CliRunner for invoking CLI commands."""
    return CliRunner()


@pytest.fixture()
def cli_env(initialized_root: Path) -> dict[str, str]:
    """Return env dict with QUOTESYNC_ROOT pointing to initialized_root."""
    return {"QUOTESYNC_ROOT": str(initialized_root)}


@pytest.fixture()
def invoke(cli_runner: CliRunner, cli_env: dict[str, str]):
    """Return a helper that invokes CLI commands with the right environment.

    Usage::

        result = invoke("add", "Some quote", "--category", "Life")
    """
    from quotesync.cli.main import cli

    def _invoke(*args: str, **kwargs):
        return cli_runner.invoke(cli, list(args), env=cli_env, **kwargs)

    return _invoke


@pytest.fixture()
def invoke_json(invoke):
    """Like invoke, but appends --json and parses the response.

    Returns (parsed_dict, exit_code) tuple.
    """

    def _invoke_json(*args: str) -> tuple[dict, int]:
        result = invoke(*args, "--json")
        parsed = json.loads(result.stdout)
        return parsed, result.exit_code

    return _invoke_json
