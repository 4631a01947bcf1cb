"""Map an incoming remote record to the local record it corresponds to."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Protocol

from quotesync.core.quotes import Quote, RemoteQuote

MatchKind = Literal["strong", "weak"]


class QuoteIndex(Protocol):
    """The lookups identity resolution needs (satisfied by ``RecordStore``)."""

    def find_by_remote_id(self, remote_id: str) -> Quote | None: ...

    def find_by_text(self, text: str, *, unlinked_only: bool = False) -> Quote | None: ...


@dataclass(frozen=True)
class Match:
    """A local record matched to a remote one, and how it was found."""

    record: Quote
    kind: MatchKind

    @property
    def is_weak(self) -> bool:
        return self.kind == "weak"


def resolve_match(index: QuoteIndex, remote: RemoteQuote) -> Match | None:
    """Return the local record *remote* corresponds to, or ``None``.

    Precedence (first hit wins):

    1. **strong**: a local record already linked to ``remote["remote_id"]``.
       This holds even when the local text has since diverged, so the pair
       is routed to conflict handling instead of being duplicated.
    2. **weak**: the first local record with exactly the same text that is
       not linked to any remote record yet.  Linked records are skipped so
       a text collision can never steal another remote record's identity.
    3. no match: *remote* is a new record.
    """
    record = index.find_by_remote_id(remote["remote_id"])
    if record is not None:
        return Match(record, "strong")

    record = index.find_by_text(remote["text"], unlinked_only=True)
    if record is not None:
        return Match(record, "weak")

    return None
