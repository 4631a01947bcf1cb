"""Atomic file writes, data directory layout, and root discovery."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path

QUOTESYNC_DIR = ".quotesync"
QUOTESYNC_ROOT_ENV = "QUOTESYNC_ROOT"

QUOTES_FILE = "quotes.json"
CONFLICTS_FILE = "conflicts.json"
CONFIG_FILE = "config.json"
STATE_FILE = "state.json"


def _fsync_directory(path: Path) -> None:
    """Fsync a directory so a rename into it is durable.

    Some platforms (notably macOS HFS+) do not support fsync on directory
    file descriptors, so ``OSError`` is ignored.
    """
    try:
        fd = os.open(str(path), os.O_RDONLY)
        try:
            os.fsync(fd)
        finally:
            os.close(fd)
    except OSError:
        pass


def atomic_write(path: Path, content: str | bytes) -> None:
    """Write content to path atomically via temp file + fsync + rename.

    The temp file lives in the target's directory so ``os.replace()`` stays
    on one filesystem.

    Raises:
        FileNotFoundError: If the parent directory does not exist.
    """
    parent = path.parent
    if not parent.is_dir():
        raise FileNotFoundError(f"Parent directory does not exist: {parent}")

    data = content.encode("utf-8") if isinstance(content, str) else content

    fd, tmp_path = tempfile.mkstemp(dir=parent, prefix=".tmp.")
    closed = False
    try:
        # os.write() can short-write; loop until all bytes are flushed.
        mv = memoryview(data)
        while mv:
            written = os.write(fd, mv)
            mv = mv[written:]
        os.fsync(fd)
        os.close(fd)
        closed = True
        os.replace(tmp_path, path)
        _fsync_directory(parent)
    except BaseException:
        if not closed:
            os.close(fd)
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def serialize_json_list(items: list) -> str:
    """Serialize a list of records to the on-disk format (UTF-8, 2-space indent)."""
    return json.dumps(items, ensure_ascii=False, indent=2) + "\n"


def ensure_data_dirs(root: Path) -> Path:
    """Create ``.quotesync/`` and its ``locks/`` subdirectory under *root*.

    Returns the data directory path.
    """
    data_dir = root / QUOTESYNC_DIR
    (data_dir / "locks").mkdir(parents=True, exist_ok=True)
    return data_dir


def find_root(start: Path | None = None) -> Path | None:
    """Find the project root containing ``.quotesync/``.

    Checks the QUOTESYNC_ROOT env var first. If set, it is validated and
    returned, with no fallback to walking up.

    Otherwise walks up from *start* (defaults to cwd).

    Raises:
        QuotesyncRootError: If QUOTESYNC_ROOT is set but invalid.
    """
    env_root = os.environ.get(QUOTESYNC_ROOT_ENV)
    if env_root is not None:
        if not env_root:
            raise QuotesyncRootError("QUOTESYNC_ROOT is set but empty")
        env_path = Path(env_root)
        if not env_path.is_dir():
            raise QuotesyncRootError(
                f"QUOTESYNC_ROOT points to a path that does not exist: {env_root}"
            )
        if not (env_path / QUOTESYNC_DIR).is_dir():
            raise QuotesyncRootError(
                f"QUOTESYNC_ROOT points to a directory with no {QUOTESYNC_DIR}/ inside: {env_root}"
            )
        return env_path

    current = (start or Path.cwd()).resolve()
    while True:
        if (current / QUOTESYNC_DIR).is_dir():
            return current
        parent = current.parent
        if parent == current:
            return None
        current = parent


class QuotesyncRootError(Exception):
    """Raised when QUOTESYNC_ROOT env var is set but invalid."""
