"""Quote records: construction, normalization, and read-side helpers.

Quotes are plain JSON-serializable dicts.  Construction and validation are
pure functions (no I/O); persistence lives in ``quotesync.storage.records``.
"""

from __future__ import annotations

import random
from typing import TypedDict

from quotesync.core.config import DEFAULT_CATEGORY
from quotesync.core.ids import generate_quote_id, utc_now

# Keys accepted for the remote identity of an incoming record, in priority order.
_REMOTE_ID_KEYS: tuple[str, ...] = ("remote_id", "remoteId", "serverId")

SEED_QUOTES: tuple[tuple[str, str], ...] = (
    ("Life is what happens when you're busy making other plans.", "Life"),
    ("The purpose of our lives is to be happy.", "Life"),
    ("Get busy living or get busy dying.", "Motivation"),
)


class Quote(TypedDict, total=False):
    text: str
    category: str
    local_id: str
    remote_id: str | None
    updated_at: str


class RemoteQuote(TypedDict):
    text: str
    category: str
    remote_id: str


class QuoteContent(TypedDict):
    text: str
    category: str


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


def make_quote(
    text: str,
    category: str | None = None,
    *,
    remote_id: str | None = None,
    local_id: str | None = None,
) -> Quote:
    """Build a new quote with a fresh ``local_id`` (unless one is supplied)."""
    quote: Quote = {
        "text": text,
        "category": normalize_category(category),
        "local_id": local_id if local_id is not None else generate_quote_id(),
        "remote_id": remote_id,
        "updated_at": utc_now(),
    }
    return quote


def seed_quotes() -> list[Quote]:
    """Return the fixed collection used when no valid store exists."""
    return [make_quote(text, category) for text, category in SEED_QUOTES]


def normalize_category(category: object) -> str:
    """Return a usable category, falling back to ``uncategorized``."""
    if isinstance(category, str) and category.strip():
        return category.strip()
    return DEFAULT_CATEGORY


def validate_local_entry(text: object, category: object) -> tuple[str, str]:
    """Validate user-supplied text/category and return them trimmed.

    Raises:
        ValueError: If *text* is missing or blank.
    """
    if not isinstance(text, str) or not text.strip():
        raise ValueError("Quote text must be a non-empty string.")
    return text.strip(), normalize_category(category)


def normalize_remote_id(value: object) -> str | None:
    """Coerce a remote identifier to ``str``; ``None`` if unusable."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def normalize_remote(raw: object) -> RemoteQuote | None:
    """Validate one incoming remote record.

    Returns ``None`` for records that cannot take part in a merge: not a
    dict, blank or missing text, or no usable remote identity.
    """
    if not isinstance(raw, dict):
        return None
    text = raw.get("text")
    if not isinstance(text, str) or not text.strip():
        return None

    remote_id = None
    for key in _REMOTE_ID_KEYS:
        if key in raw:
            remote_id = normalize_remote_id(raw[key])
            break
    if remote_id is None:
        return None

    return {
        "text": text,
        "category": normalize_category(raw.get("category")),
        "remote_id": remote_id,
    }


def content_of(record: dict) -> QuoteContent:
    """Return the user-visible content (text, category) of a record."""
    return {"text": record["text"], "category": record["category"]}


def same_content(local: dict, remote: dict) -> bool:
    """True when *local* and *remote* agree on both text and category."""
    return local["text"] == remote["text"] and local["category"] == remote["category"]


# ---------------------------------------------------------------------------
# Read-side helpers (browse / filter)
# ---------------------------------------------------------------------------


def list_categories(quotes: list[Quote]) -> list[str]:
    """Distinct categories in first-seen order."""
    seen: dict[str, None] = {}
    for quote in quotes:
        seen.setdefault(quote["category"], None)
    return list(seen)


def filter_by_category(quotes: list[Quote], category: str | None) -> list[Quote]:
    """Quotes in *category*; ``None`` or ``"all"`` returns everything."""
    if category is None or category == "all":
        return list(quotes)
    return [q for q in quotes if q["category"] == category]


def pick_random(quotes: list[Quote], rng: random.Random | None = None) -> Quote | None:
    """Pick one quote at random, or ``None`` when there are none."""
    if not quotes:
        return None
    return (rng or random).choice(quotes)


def format_quote(quote: Quote) -> str:
    """Render a quote the way the display surface shows it."""
    return f"\"{quote['text']}\" — {quote['category']}"
