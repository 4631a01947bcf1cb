"""File locking for exclusive access to the quote store."""

from __future__ import annotations

import contextlib
from collections.abc import Generator
from pathlib import Path

from filelock import FileLock, Timeout

STORE_LOCK_KEY = "store"
DEFAULT_LOCK_TIMEOUT = 10


class LockTimeout(Exception):
    """Raised when a lock cannot be acquired within the timeout period."""


@contextlib.contextmanager
def data_lock(
    locks_dir: Path,
    key: str,
    timeout: float = DEFAULT_LOCK_TIMEOUT,
) -> Generator[None, None, None]:
    """Acquire a single file lock at ``locks_dir/<key>.lock``.

    Raises:
        LockTimeout: If the lock cannot be acquired within *timeout* seconds.
    """
    locks_dir.mkdir(parents=True, exist_ok=True)
    lock = FileLock(locks_dir / f"{key}.lock", timeout=timeout)
    try:
        lock.acquire()
    except Timeout:
        raise LockTimeout(f"Could not acquire lock '{key}' within {timeout}s") from None
    try:
        yield
    finally:
        lock.release()


def store_lock(
    data_dir: Path, timeout: float = DEFAULT_LOCK_TIMEOUT
) -> contextlib.AbstractContextManager[None]:
    """Exclusive access to the quote store and the conflict ledger.

    Held for the read/compute/write window of a reconciliation pass and
    for every user mutation (add, import, conflict resolution).
    """
    return data_lock(data_dir / "locks", STORE_LOCK_KEY, timeout=timeout)
