"""Lightweight in-process bus for sync result notifications.

Listeners are fire-and-forget: failures are logged but never raise or
interrupt the sync pass.

Thread-safe: a lock protects the listener list so a CLI thread and the
event loop running the driver can register and notify concurrently.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

logger = logging.getLogger(__name__)

_lock = threading.Lock()
_listeners: list[Callable[[dict], None]] = []


def register_listener(fn: Callable[[dict], None]) -> None:
    """Register a callback invoked after every sync pass.

    The callback receives the pass result as a dict (``SyncResult.to_dict()``).
    """
    with _lock:
        _listeners.append(fn)


def unregister_listener(fn: Callable[[dict], None]) -> None:
    """Remove a previously registered listener."""
    with _lock:
        try:
            _listeners.remove(fn)
        except ValueError:
            pass


def notify(result: dict) -> None:
    """Fire all registered listeners.  Never raises."""
    with _lock:
        snapshot_listeners = list(_listeners)
    for fn in snapshot_listeners:
        try:
            fn(result)
        except Exception as exc:
            logger.warning("Sync listener error: %s", exc)
