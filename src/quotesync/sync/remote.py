"""HTTP source for the authoritative remote quote snapshot."""

from __future__ import annotations

import asyncio
import json
import logging
from http.client import HTTPException
from urllib.request import Request, urlopen

from quotesync.core.config import DEFAULT_REMOTE_URL

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10  # seconds
DEFAULT_LIMIT = 5
DEFAULT_REMOTE_CATEGORY = "Server"


class RemoteFetchError(Exception):
    """Raised when the remote snapshot cannot be fetched or parsed."""


class HttpRemoteSource:
    """Fetch the remote snapshot from a JSON endpoint.

    The endpoint returns a JSON array.  Items already in record shape
    (``text``/``category``/``remote_id``) pass through; post-shaped items
    (``title``/``id``, as served by the default upstream) are mapped to
    records in the configured remote *category*.  Only the first *limit*
    items are used (``None`` for all).
    """

    def __init__(
        self,
        url: str = DEFAULT_REMOTE_URL,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        limit: int | None = DEFAULT_LIMIT,
        category: str = DEFAULT_REMOTE_CATEGORY,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self.limit = limit
        self.category = category

    @classmethod
    def from_config(cls, config: dict) -> HttpRemoteSource:
        remote = config.get("remote", {})
        return cls(
            remote.get("url", DEFAULT_REMOTE_URL),
            timeout=remote.get("timeout_seconds", DEFAULT_TIMEOUT),
            limit=remote.get("limit", DEFAULT_LIMIT),
            category=remote.get("category", DEFAULT_REMOTE_CATEGORY),
        )

    async def fetch(self) -> list[object]:
        """Return the remote records without blocking the event loop.

        Raises:
            RemoteFetchError: On transport errors, timeouts, bad JSON, or a
                payload that is not a JSON array.
        """
        payload = await asyncio.to_thread(self._get_json)
        if not isinstance(payload, list):
            raise RemoteFetchError(f"Expected a JSON array from {self.url}")
        items = payload if self.limit is None else payload[: self.limit]
        logger.debug("Fetched %d items from %s (using %d)", len(payload), self.url, len(items))
        return [self._to_record(item) for item in items]

    def _get_json(self) -> object:
        try:
            req = Request(self.url, headers={"Accept": "application/json"})
            with urlopen(req, timeout=self.timeout) as resp:
                body = resp.read()
        except (OSError, HTTPException, ValueError) as exc:
            raise RemoteFetchError(f"Fetching {self.url} failed: {exc}") from exc
        try:
            return json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise RemoteFetchError(f"Invalid JSON from {self.url}: {exc}") from exc

    def _to_record(self, item: object) -> object:
        """Map one upstream item to record shape.

        Items that cannot be mapped are returned unchanged; the merge pass
        skips them as malformed.
        """
        if not isinstance(item, dict):
            return item
        if "text" in item:
            return item
        if "title" in item:
            return {
                "text": item.get("title"),
                "category": self.category,
                "remote_id": item.get("id"),
            }
        return item
