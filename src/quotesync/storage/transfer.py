"""Bulk import/export of quotes as ``{text, category}`` pairs."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from quotesync.core.quotes import make_quote
from quotesync.storage.fs import atomic_write, serialize_json_list
from quotesync.storage.records import RecordStore

logger = logging.getLogger(__name__)


class ImportFileError(Exception):
    """Raised when an import file is unreadable or not a JSON array."""


def read_import_file(path: Path) -> list:
    """Parse an import file and return its top-level JSON array."""
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ImportFileError(f"Invalid JSON file: {path} ({exc})") from None
    except OSError as exc:
        raise ImportFileError(f"Cannot read {path}: {exc}") from None
    if not isinstance(raw, list):
        raise ImportFileError(f"Invalid JSON file: {path} (expected an array of quotes)")
    return raw


def import_entries(store: RecordStore, entries: list) -> tuple[int, int]:
    """Append valid entries as new local records and persist once.

    Each entry needs non-empty ``text`` and ``category`` strings; anything
    else is skipped.  Imported records always get a fresh ``local_id`` and
    no remote identity, whatever the file says.

    Returns ``(imported, skipped)``.
    """
    imported = 0
    skipped = 0
    for entry in entries:
        if not _is_valid_pair(entry):
            logger.debug("Skipping malformed import entry: %r", entry)
            skipped += 1
            continue
        store.append(make_quote(entry["text"].strip(), entry["category"].strip()))
        imported += 1

    if imported:
        store.save()
    logger.info("Imported %d quotes (%d skipped)", imported, skipped)
    return imported, skipped


def export_entries(store: RecordStore) -> list[dict]:
    """Return the collection as portable ``{text, category}`` pairs."""
    return [{"text": q["text"], "category": q["category"]} for q in store.quotes]


def write_export_file(store: RecordStore, path: Path) -> int:
    """Write ``export_entries()`` to *path*.  Returns the number of quotes."""
    entries = export_entries(store)
    atomic_write(path, serialize_json_list(entries))
    return len(entries)


def _is_valid_pair(entry: object) -> bool:
    if not isinstance(entry, dict):
        return False
    text = entry.get("text")
    category = entry.get("category")
    return (
        isinstance(text, str)
        and bool(text.strip())
        and isinstance(category, str)
        and bool(category.strip())
    )
