"""Tests for the locked write-path operations."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from filelock import FileLock

from quotesync.core.config import serialize_config
from quotesync.storage.fs import CONFIG_FILE, QUOTES_FILE, atomic_write
from quotesync.storage.ledger import ConflictNotFound
from quotesync.storage.locks import LockTimeout, store_lock
from quotesync.storage.operations import (
    add_quote,
    apply_remote_snapshot,
    clear_conflicts,
    import_quotes,
    open_ledger,
    open_store,
    read_config,
    read_state,
    resolve_conflict,
    write_state,
)

_LINKED = [{"text": "A", "category": "X", "local_id": "1", "remote_id": "r1"}]
_DIVERGED = [{"text": "A", "category": "Y", "remote_id": "r1"}]


class TestReadConfig:
    def test_defaults_when_absent(self, data_dir: Path) -> None:
        assert read_config(data_dir)["remote"]["limit"] == 5

    def test_merges_file(self, data_dir: Path) -> None:
        atomic_write(data_dir / CONFIG_FILE, serialize_config({"default_category": "Misc"}))
        config = read_config(data_dir)
        assert config["default_category"] == "Misc"
        assert config["sync"]["interval_seconds"] == 60


class TestOpenStore:
    @pytest.fixture()
    def blocked(self, data_dir: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setattr(
            "quotesync.storage.operations.store_lock",
            lambda d: store_lock(d, timeout=0.1),
        )
        blocker = FileLock(data_dir / "locks" / "store.lock")
        blocker.acquire()
        yield
        blocker.release()

    def test_readable_store_needs_no_lock(self, make_store, data_dir: Path, blocked) -> None:
        make_store(_LINKED)
        assert open_store(data_dir).find_by_local_id("1")["text"] == "A"

    def test_seeding_waits_for_lock(self, data_dir: Path, blocked) -> None:
        with pytest.raises(LockTimeout):
            open_store(data_dir)
        assert not (data_dir / QUOTES_FILE).exists()

    def test_corrupt_store_reseeded_under_lock(self, data_dir: Path, blocked) -> None:
        (data_dir / QUOTES_FILE).write_text("{not json")
        with pytest.raises(LockTimeout):
            open_store(data_dir)
        assert (data_dir / QUOTES_FILE).read_text() == "{not json"

    def test_seeds_when_lock_free(self, data_dir: Path) -> None:
        assert len(open_store(data_dir)) == 3
        assert len(json.loads((data_dir / QUOTES_FILE).read_text())) == 3


class TestAddQuote:
    def test_uses_configured_default_category(self, data_dir: Path) -> None:
        atomic_write(data_dir / CONFIG_FILE, serialize_config({"default_category": "Misc"}))
        quote = add_quote(data_dir, "Hello", "  ")
        assert quote["category"] == "Misc"
        assert open_store(data_dir).find_by_local_id(quote["local_id"]) is not None

    def test_explicit_category(self, data_dir: Path) -> None:
        assert add_quote(data_dir, "Hello", "Life")["category"] == "Life"

    def test_blank_text(self, data_dir: Path) -> None:
        with pytest.raises(ValueError):
            add_quote(data_dir, "")

    def test_lock_held(self, data_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(
            "quotesync.storage.operations.store_lock",
            lambda d: store_lock(d, timeout=0.1),
        )
        blocker = FileLock(data_dir / "locks" / "store.lock")
        blocker.acquire()
        try:
            with pytest.raises(LockTimeout):
                add_quote(data_dir, "Hello", "Life")
        finally:
            blocker.release()


def test_import_quotes(data_dir: Path) -> None:
    imported, skipped = import_quotes(data_dir, [{"text": "A", "category": "X"}, {}])
    assert (imported, skipped) == (1, 1)
    # seeds are created on first open
    assert len(open_store(data_dir)) == 4


class TestApplyRemoteSnapshot:
    def test_records_conflicts(self, make_store, data_dir: Path) -> None:
        make_store(_LINKED)
        outcome = apply_remote_snapshot(data_dir, _DIVERGED)
        assert outcome.updated == 1
        assert [e["record_id"] for e in open_ledger(data_dir).list()] == ["1"]

    def test_conflict_free_pass_keeps_ledger(self, make_store, data_dir: Path) -> None:
        make_store(_LINKED)
        apply_remote_snapshot(data_dir, _DIVERGED)
        apply_remote_snapshot(data_dir, _DIVERGED)
        assert len(open_ledger(data_dir)) == 1

    def test_replace_retention(self, make_store, data_dir: Path) -> None:
        make_store(_LINKED)
        apply_remote_snapshot(data_dir, _DIVERGED)
        apply_remote_snapshot(data_dir, [{"text": "B", "category": "Y", "remote_id": "r1"}])
        entries = open_ledger(data_dir).list()
        assert len(entries) == 1
        assert entries[0]["local"] == {"text": "A", "category": "Y"}

    def test_accumulate_retention(self, make_store, data_dir: Path) -> None:
        make_store(_LINKED)
        apply_remote_snapshot(data_dir, _DIVERGED, retention="accumulate")
        apply_remote_snapshot(
            data_dir,
            [{"text": "B", "category": "Y", "remote_id": "r1"}],
            retention="accumulate",
        )
        assert len(open_ledger(data_dir)) == 2


class TestResolveConflict:
    def test_keep_local(self, make_store, data_dir: Path) -> None:
        make_store(_LINKED)
        apply_remote_snapshot(data_dir, _DIVERGED)
        restored = resolve_conflict(data_dir, 0, keep="local")
        assert restored["category"] == "X"
        assert open_store(data_dir).find_by_local_id("1")["remote_id"] is None
        assert len(open_ledger(data_dir)) == 0

    def test_keep_remote(self, make_store, data_dir: Path) -> None:
        make_store(_LINKED)
        apply_remote_snapshot(data_dir, _DIVERGED)
        resolve_conflict(data_dir, 0, keep="remote")
        assert open_store(data_dir).find_by_local_id("1")["category"] == "Y"
        assert len(open_ledger(data_dir)) == 0

    def test_unknown_index(self, data_dir: Path) -> None:
        with pytest.raises(ConflictNotFound):
            resolve_conflict(data_dir, 0, keep="local")

    def test_bad_keep(self, data_dir: Path) -> None:
        with pytest.raises(ValueError, match="keep must be"):
            resolve_conflict(data_dir, 0, keep="both")

    def test_clear(self, make_store, data_dir: Path) -> None:
        make_store(_LINKED)
        apply_remote_snapshot(data_dir, _DIVERGED)
        assert clear_conflicts(data_dir) == 1
        assert open_store(data_dir).find_by_local_id("1")["category"] == "Y"


class TestState:
    def test_empty_when_absent(self, data_dir: Path) -> None:
        assert read_state(data_dir) == {}

    def test_write_merges(self, data_dir: Path) -> None:
        write_state(data_dir, last_category="Life")
        write_state(data_dir, other=1)
        assert read_state(data_dir) == {"last_category": "Life", "other": 1}

    def test_corrupt_state(self, data_dir: Path) -> None:
        (data_dir / "state.json").write_text("[1, 2")
        assert read_state(data_dir) == {}
        (data_dir / "state.json").write_text(json.dumps([1]))
        assert read_state(data_dir) == {}
