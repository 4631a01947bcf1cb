"""Shared write-path operations used by both the CLI and the sync driver.

Every function here takes the store lock for its whole read/compute/write
window, loads fresh state from disk, and persists before releasing.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from pathlib import Path

from quotesync.core.config import load_config, merged_config
from quotesync.core.merge import MergeOutcome, reconcile
from quotesync.core.quotes import Quote
from quotesync.storage.fs import CONFIG_FILE, STATE_FILE, atomic_write
from quotesync.storage.ledger import ConflictLedger
from quotesync.storage.locks import store_lock
from quotesync.storage.records import RecordStore
from quotesync.storage.transfer import import_entries

logger = logging.getLogger(__name__)


def read_config(data_dir: Path) -> dict:
    """Load config.json merged over the defaults (defaults if absent)."""
    path = data_dir / CONFIG_FILE
    if not path.exists():
        return merged_config(None)
    return load_config(path.read_text(encoding="utf-8"))


def _load_store(data_dir: Path) -> RecordStore:
    """Load the store; the caller already holds the store lock."""
    store = RecordStore(data_dir)
    store.load()
    return store


def open_store(data_dir: Path) -> RecordStore:
    """Return a freshly loaded store for read-only use.

    A readable store is loaded without locking.  A missing or corrupt one
    is replaced by the seed collection on load, which is a write, so that
    load happens under the store lock.

    Raises:
        LockTimeout: If seeding is needed and the lock is held elsewhere.
    """
    store = RecordStore(data_dir)
    if not store.needs_seed():
        store.load()
        return store
    with store_lock(data_dir):
        store.load()
    return store


def open_ledger(data_dir: Path) -> ConflictLedger:
    """Return a freshly loaded conflict ledger (read-only use; no lock taken)."""
    ledger = ConflictLedger(data_dir)
    ledger.load()
    return ledger


def add_quote(data_dir: Path, text: str, category: str | None = None) -> Quote:
    """Add a user-entered quote.

    Raises:
        ValueError: If *text* is blank.
    """
    if category is None or not category.strip():
        category = read_config(data_dir)["default_category"]
    with store_lock(data_dir):
        store = _load_store(data_dir)
        return store.add_local(text, category)


def import_quotes(data_dir: Path, entries: list) -> tuple[int, int]:
    """Append imported ``{text, category}`` pairs.  Returns ``(imported, skipped)``."""
    with store_lock(data_dir):
        store = _load_store(data_dir)
        return import_entries(store, entries)


def apply_remote_snapshot(
    data_dir: Path,
    remote_records: Iterable[object],
    *,
    retention: str = "replace",
) -> MergeOutcome:
    """Run one reconciliation pass against an already-fetched snapshot.

    Conflicts are written to the ledger only when the pass produced some;
    *retention* ``"replace"`` supersedes the previous pass's entries,
    ``"accumulate"`` appends to them.
    """
    with store_lock(data_dir):
        store = _load_store(data_dir)
        outcome = reconcile(store, remote_records)
        if outcome.conflicts:
            ledger = open_ledger(data_dir)
            ledger.record(outcome.conflicts, replace=retention != "accumulate")
            logger.info(
                "Recorded %d conflicts (%s); ledger now holds %d",
                len(outcome.conflicts),
                retention,
                len(ledger),
            )
    return outcome


def resolve_conflict(data_dir: Path, index: int, *, keep: str) -> dict:
    """Resolve ledger entry *index* by keeping ``"local"`` or ``"remote"`` content.

    Raises:
        ConflictNotFound: If the entry (or its record) does not exist.
        ValueError: If *keep* is not ``"local"`` or ``"remote"``.
    """
    if keep not in ("local", "remote"):
        raise ValueError(f"keep must be 'local' or 'remote', not {keep!r}")
    with store_lock(data_dir):
        ledger = open_ledger(data_dir)
        if keep == "remote":
            return ledger.resolve_accept_remote(index)
        store = _load_store(data_dir)
        return ledger.resolve_keep_local(index, store)


def clear_conflicts(data_dir: Path) -> int:
    """Drop every ledger entry.  Returns how many were removed."""
    with store_lock(data_dir):
        return open_ledger(data_dir).clear()


# ---------------------------------------------------------------------------
# UI state (last category filter)
# ---------------------------------------------------------------------------


def read_state(data_dir: Path) -> dict:
    """Load state.json; a missing or malformed file yields ``{}``."""
    path = data_dir / STATE_FILE
    if not path.exists():
        return {}
    try:
        state = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError):
        return {}
    return state if isinstance(state, dict) else {}


def write_state(data_dir: Path, **updates: object) -> dict:
    """Merge *updates* into state.json and persist."""
    state = read_state(data_dir)
    state.update(updates)
    atomic_write(data_dir / STATE_FILE, json.dumps(state, sort_keys=True, indent=2) + "\n")
    return state
