"""Remote snapshot sync: HTTP source, pass driver, and result notifications."""

from __future__ import annotations

from quotesync.sync.driver import SyncDriver, SyncResult
from quotesync.sync.remote import HttpRemoteSource, RemoteFetchError

__all__ = [
    "HttpRemoteSource",
    "RemoteFetchError",
    "SyncDriver",
    "SyncResult",
]
