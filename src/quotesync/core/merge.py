"""Single-pass reconciliation of the local store against a remote snapshot.

Policy is **remote wins**: when a matched pair differs, the local record
takes the remote values and the pre-overwrite local content is captured
in a conflict entry so the user can later restore it.

``reconcile`` performs no network I/O; the remote snapshot is fetched by
the caller.  Its only side effect on disk is one ``store.save()`` at the
end of the pass, and only when something changed.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Protocol, TypedDict

from quotesync.core.identity import QuoteIndex, resolve_match
from quotesync.core.ids import utc_now
from quotesync.core.quotes import (
    Quote,
    QuoteContent,
    content_of,
    make_quote,
    normalize_remote,
    same_content,
)

logger = logging.getLogger(__name__)


class RemoteSnapshot(TypedDict):
    text: str
    category: str
    remote_id: str


class ConflictEntry(TypedDict):
    record_id: str
    local: QuoteContent
    remote: RemoteSnapshot
    detected_at: str


class MergeTarget(QuoteIndex, Protocol):
    """Store surface used by a merge pass (satisfied by ``RecordStore``)."""

    def append(self, quote: Quote) -> Quote: ...

    def update(self, local_id: str, **fields: object) -> Quote: ...

    def save(self) -> None: ...


@dataclass
class MergeOutcome:
    """Counts and conflicts produced by one reconciliation pass."""

    added: int = 0
    updated: int = 0
    linked: int = 0
    skipped: int = 0
    conflicts: list[ConflictEntry] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        """True when the pass mutated the store."""
        return self.added + self.updated + self.linked + len(self.conflicts) > 0

    def to_dict(self) -> dict:
        return {
            "added": self.added,
            "updated": self.updated,
            "linked": self.linked,
            "skipped": self.skipped,
            "conflicts": [dict(c) for c in self.conflicts],
        }


def reconcile(store: MergeTarget, remote_records: Iterable[object]) -> MergeOutcome:
    """Merge *remote_records* into *store* and persist once if anything changed.

    Per remote record:

    - malformed (no text or no remote id) or a repeat of a remote id already
      seen in this snapshot: skipped
    - no local match: appended as a new linked record (``added``)
    - match with equal text and category: unchanged; a weak match gets its
      ``remote_id`` backfilled (``linked``)
    - match with different content: conflict entry recorded, then the local
      record is overwritten with the remote values (``updated``)
    """
    outcome = MergeOutcome()
    seen_remote_ids: set[str] = set()

    for raw in remote_records:
        remote = normalize_remote(raw)
        if remote is None:
            logger.debug("Skipping malformed remote record: %r", raw)
            outcome.skipped += 1
            continue
        if remote["remote_id"] in seen_remote_ids:
            logger.warning(
                "Remote id %s appears more than once in snapshot; keeping the first",
                remote["remote_id"],
            )
            outcome.skipped += 1
            continue
        seen_remote_ids.add(remote["remote_id"])

        match = resolve_match(store, remote)

        if match is None:
            store.append(
                make_quote(remote["text"], remote["category"], remote_id=remote["remote_id"])
            )
            outcome.added += 1
            continue

        local = match.record
        if same_content(local, remote):
            if match.is_weak:
                store.update(local["local_id"], remote_id=remote["remote_id"])
                outcome.linked += 1
            continue

        outcome.conflicts.append(
            {
                "record_id": local["local_id"],
                "local": content_of(local),
                "remote": {
                    "text": remote["text"],
                    "category": remote["category"],
                    "remote_id": remote["remote_id"],
                },
                "detected_at": utc_now(),
            }
        )
        store.update(
            local["local_id"],
            text=remote["text"],
            category=remote["category"],
            remote_id=remote["remote_id"],
        )
        outcome.updated += 1

    if outcome.changed:
        store.save()

    logger.info(
        "Reconciled: %d added, %d updated, %d linked, %d skipped, %d conflicts",
        outcome.added,
        outcome.updated,
        outcome.linked,
        outcome.skipped,
        len(outcome.conflicts),
    )
    return outcome
