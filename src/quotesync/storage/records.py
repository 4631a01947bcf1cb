"""Durable quote collection with identity indexes.

The store exclusively owns the in-memory list of quotes.  Every mutation
goes through :meth:`RecordStore.append`, :meth:`RecordStore.update` or
:meth:`RecordStore.add_local` so the lookup indexes never drift from the
collection.  Indexes are rebuilt from scratch on every load/save boundary.
"""

from __future__ import annotations

import copy
import json
import logging
from collections import Counter
from pathlib import Path

from quotesync.core.ids import generate_quote_id, utc_now
from quotesync.core.quotes import (
    Quote,
    make_quote,
    normalize_category,
    normalize_remote_id,
    seed_quotes,
    validate_local_entry,
)
from quotesync.storage.fs import QUOTES_FILE, atomic_write, serialize_json_list

logger = logging.getLogger(__name__)

# Fields that update() may overwrite.  local_id is never reassigned.
_MUTABLE_FIELDS: frozenset[str] = frozenset({"text", "category", "remote_id"})


class RecordStore:
    """Load, index, mutate, and persist the local quote collection."""

    def __init__(self, data_dir: Path) -> None:
        self.data_dir = data_dir
        self.path = data_dir / QUOTES_FILE
        self._quotes: list[Quote] = []
        self._by_local_id: dict[str, Quote] = {}
        self._by_remote_id: dict[str, Quote] = {}
        self._by_text: dict[str, list[Quote]] = {}
        self._last_serialized: str | None = None

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _read_raw(self) -> tuple[list | None, str | None]:
        """Return ``(entries, text)`` from disk, or ``(None, ...)`` if unusable."""
        if not self.path.exists():
            return None, None
        try:
            on_disk = self.path.read_text(encoding="utf-8")
            raw = json.loads(on_disk)
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as exc:
            logger.warning("Quote store %s is unreadable (%s); using seed quotes", self.path, exc)
            return None, None
        if not isinstance(raw, list):
            logger.warning("Quote store %s is not a JSON array; using seed quotes", self.path)
            return None, None
        return raw, on_disk

    def needs_seed(self) -> bool:
        """True if :meth:`load` would fall back to (and write) the seed collection."""
        return self._read_raw()[0] is None

    def load(self) -> list[Quote]:
        """Read the durable collection.

        A missing or malformed file degrades to the seed collection, which
        is persisted immediately.  Individual bad entries are repaired or
        dropped (see ``_normalize_entries``).
        """
        raw, on_disk = self._read_raw()
        if raw is None:
            self._quotes = seed_quotes()
            self._rebuild_indexes()
            self._last_serialized = None
            self.save()
            return self.quotes

        self._quotes = _normalize_entries(raw)
        self._rebuild_indexes()
        # Repaired entries differ from the file, so the next save() rewrites it.
        self._last_serialized = on_disk
        return self.quotes

    def save(self, quotes: list[Quote] | None = None) -> None:
        """Persist the whole collection, replacing prior state.

        When *quotes* is given it replaces the in-memory collection first.
        Writing is skipped if the serialized content is unchanged since the
        last load/save, so repeated calls are harmless.
        """
        if quotes is not None:
            self._quotes = [copy.deepcopy(q) for q in quotes]
        self._rebuild_indexes()

        content = serialize_json_list(self._quotes)
        if content == self._last_serialized and self.path.exists():
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        atomic_write(self.path, content)
        self._last_serialized = content
        logger.debug("Saved %d quotes to %s", len(self._quotes), self.path)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    @property
    def quotes(self) -> list[Quote]:
        """A deep copy of the collection, safe to hand to display code."""
        return copy.deepcopy(self._quotes)

    def __len__(self) -> int:
        return len(self._quotes)

    def find_by_local_id(self, local_id: str) -> Quote | None:
        return self._by_local_id.get(local_id)

    def find_by_remote_id(self, remote_id: str) -> Quote | None:
        return self._by_remote_id.get(remote_id)

    def find_by_text(self, text: str, *, unlinked_only: bool = False) -> Quote | None:
        """First record (store order) with exactly this text.

        With *unlinked_only*, records that already carry a ``remote_id``
        are passed over.
        """
        for quote in self._by_text.get(text, ()):
            if unlinked_only and quote.get("remote_id"):
                continue
            return quote
        return None

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def append(self, quote: Quote) -> Quote:
        """Add a fully-formed record to the collection (not persisted)."""
        if quote["local_id"] in self._by_local_id:
            raise ValueError(f"Duplicate local_id: {quote['local_id']}")
        self._quotes.append(quote)
        self._index(quote)
        return quote

    def update(self, local_id: str, **fields: object) -> Quote:
        """Overwrite mutable fields of one record (not persisted).

        Raises:
            KeyError: If no record has *local_id*.
            ValueError: If a field is not mutable.
        """
        quote = self._by_local_id.get(local_id)
        if quote is None:
            raise KeyError(local_id)
        bad = set(fields) - _MUTABLE_FIELDS
        if bad:
            raise ValueError(f"Cannot update fields: {', '.join(sorted(bad))}")

        self._unindex(quote)
        for name, value in fields.items():
            quote[name] = value  # type: ignore[literal-required]
        quote["updated_at"] = utc_now()
        self._index(quote)

        # Re-indexing appends to the text bucket; restore store order.
        bucket = self._by_text[quote["text"]]
        if len(bucket) > 1:
            position = {id(q): i for i, q in enumerate(self._quotes)}
            bucket.sort(key=lambda q: position[id(q)])
        return quote

    def add_local(self, text: str, category: str | None = None) -> Quote:
        """Create and persist a user-entered quote (no remote identity).

        Raises:
            ValueError: If *text* is blank.
        """
        text, category = validate_local_entry(text, category)
        quote = self.append(make_quote(text, category))
        self.save()
        return copy.deepcopy(quote)

    # ------------------------------------------------------------------
    # Integrity
    # ------------------------------------------------------------------

    def check_invariants(self) -> list[str]:
        """Report identity invariant violations; empty when consistent."""
        problems: list[str] = []
        local_counts = Counter(q["local_id"] for q in self._quotes)
        for local_id, count in sorted(local_counts.items()):
            if count > 1:
                problems.append(f"local_id {local_id} is used by {count} records")
        remote_counts = Counter(q["remote_id"] for q in self._quotes if q.get("remote_id"))
        for remote_id, count in sorted(remote_counts.items()):
            if count > 1:
                problems.append(f"remote_id {remote_id} is claimed by {count} records")
        return problems

    # ------------------------------------------------------------------
    # Index maintenance
    # ------------------------------------------------------------------

    def _rebuild_indexes(self) -> None:
        self._by_local_id = {}
        self._by_remote_id = {}
        self._by_text = {}
        for quote in self._quotes:
            self._index(quote)

    def _index(self, quote: Quote) -> None:
        self._by_local_id[quote["local_id"]] = quote
        remote_id = quote.get("remote_id")
        if remote_id:
            self._by_remote_id.setdefault(remote_id, quote)
        self._by_text.setdefault(quote["text"], []).append(quote)

    def _unindex(self, quote: Quote) -> None:
        remote_id = quote.get("remote_id")
        if remote_id and self._by_remote_id.get(remote_id) is quote:
            del self._by_remote_id[remote_id]
            for other in self._quotes:
                if other is not quote and other.get("remote_id") == remote_id:
                    self._by_remote_id[remote_id] = other
                    break
        bucket = self._by_text.get(quote["text"], [])
        self._by_text[quote["text"]] = [q for q in bucket if q is not quote]
        if not self._by_text[quote["text"]]:
            del self._by_text[quote["text"]]


def _normalize_entries(raw: list) -> list[Quote]:
    """Repair a loaded payload entry by entry.

    - non-dict entries and entries without text are dropped
    - a missing or blank category becomes ``uncategorized``
    - a missing or duplicated ``local_id`` gets a fresh one
    - remote ids are coerced to ``str``
    """
    quotes: list[Quote] = []
    seen_ids: set[str] = set()
    for entry in raw:
        if not isinstance(entry, dict):
            logger.warning("Dropping non-object entry from quote store: %r", entry)
            continue
        text = entry.get("text")
        if not isinstance(text, str) or not text.strip():
            logger.warning("Dropping quote store entry without text: %r", entry)
            continue

        local_id = entry.get("local_id")
        if not isinstance(local_id, str) or not local_id:
            local_id = generate_quote_id()
        elif local_id in seen_ids:
            new_id = generate_quote_id()
            logger.warning(
                "Duplicate local_id %s in quote store; reassigned to %s", local_id, new_id
            )
            local_id = new_id
        seen_ids.add(local_id)

        updated_at = entry.get("updated_at")
        quotes.append(
            {
                "text": text,
                "category": normalize_category(entry.get("category")),
                "local_id": local_id,
                "remote_id": normalize_remote_id(entry.get("remote_id")),
                "updated_at": updated_at if isinstance(updated_at, str) else utc_now(),
            }
        )
    return quotes
