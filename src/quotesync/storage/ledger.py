"""Durable log of merge conflicts awaiting (or open to) user override.

The ledger lives in its own file next to the quote store and is advisory:
losing it never leaves the store inconsistent, it only forgets which
records were overwritten by the last sync.
"""

from __future__ import annotations

import copy
import json
import logging
from pathlib import Path

from quotesync.core.merge import ConflictEntry
from quotesync.storage.fs import CONFLICTS_FILE, atomic_write, serialize_json_list
from quotesync.storage.records import RecordStore

logger = logging.getLogger(__name__)


class ConflictNotFound(Exception):
    """Raised when a ledger index, or the record it points at, does not exist."""


class ConflictLedger:
    """Load, append/replace, resolve, and persist conflict entries."""

    def __init__(self, data_dir: Path) -> None:
        self.data_dir = data_dir
        self.path = data_dir / CONFLICTS_FILE
        self._entries: list[ConflictEntry] = []

    def load(self) -> list[dict]:
        """Read the ledger; a missing or malformed file yields an empty ledger."""
        self._entries = []
        if not self.path.exists():
            return self.list()
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as exc:
            logger.warning("Conflict ledger %s is unreadable (%s); starting empty", self.path, exc)
            return self.list()
        if not isinstance(raw, list):
            logger.warning("Conflict ledger %s is not a JSON array; starting empty", self.path)
            return self.list()

        for entry in raw:
            if _is_valid_entry(entry):
                self._entries.append(entry)
            else:
                logger.warning("Dropping malformed conflict entry: %r", entry)
        return self.list()

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        atomic_write(self.path, serialize_json_list(self._entries))

    def list(self) -> list[dict]:
        """Read-only snapshot of the entries, each tagged with its ``index``."""
        return [{**copy.deepcopy(entry), "index": i} for i, entry in enumerate(self._entries)]

    def __len__(self) -> int:
        return len(self._entries)

    def record(self, entries: list[ConflictEntry], *, replace: bool = True) -> None:
        """Store the conflicts of a reconciliation pass and persist.

        With *replace* (the default) the new entries supersede everything
        already in the ledger, bounding it to the conflicts of the latest
        pass.  Otherwise they are appended.
        """
        fresh = [copy.deepcopy(e) for e in entries]
        if replace:
            self._entries = fresh
        else:
            self._entries.extend(fresh)
        self.save()

    def resolve_keep_local(self, index: int, store: RecordStore) -> dict:
        """Restore the record's pre-sync content and drop the entry.

        The record is unlinked (``remote_id`` cleared) so a later pass may
        detect the divergence again.  Persists both the store and the ledger.

        Raises:
            ConflictNotFound: If *index* is out of range or the record no
                longer exists in *store*.
        """
        entry = self._get(index)
        record = store.find_by_local_id(entry["record_id"])
        if record is None:
            raise ConflictNotFound(
                f"Record {entry['record_id']} for conflict {index} no longer exists."
            )
        restored = store.update(
            entry["record_id"],
            text=entry["local"]["text"],
            category=entry["local"]["category"],
            remote_id=None,
        )
        store.save()
        del self._entries[index]
        self.save()
        logger.info("Conflict %d resolved: kept local content of %s", index, entry["record_id"])
        return copy.deepcopy(restored)

    def resolve_accept_remote(self, index: int) -> dict:
        """Drop the entry; the record already holds the remote values.

        Raises:
            ConflictNotFound: If *index* is out of range.
        """
        entry = self._entries.pop(self._check_index(index))
        self.save()
        logger.info(
            "Conflict %d resolved: accepted remote content of %s", index, entry["record_id"]
        )
        return copy.deepcopy(dict(entry))

    def clear(self) -> int:
        """Remove every entry and persist.  Returns how many were dropped."""
        count = len(self._entries)
        self._entries = []
        self.save()
        return count

    def _get(self, index: int) -> ConflictEntry:
        return self._entries[self._check_index(index)]

    def _check_index(self, index: int) -> int:
        if not 0 <= index < len(self._entries):
            raise ConflictNotFound(f"No conflict at index {index}.")
        return index


def _is_valid_entry(entry: object) -> bool:
    """Structural check for a persisted conflict entry."""
    if not isinstance(entry, dict):
        return False
    if not isinstance(entry.get("record_id"), str):
        return False
    local = entry.get("local")
    remote = entry.get("remote")
    if not isinstance(local, dict) or not isinstance(remote, dict):
        return False
    return all(isinstance(local.get(k), str) for k in ("text", "category")) and all(
        isinstance(remote.get(k), str) for k in ("text", "category", "remote_id")
    )
