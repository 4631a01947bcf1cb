"""Default config generation and validation."""

from __future__ import annotations

import copy
import json
from typing import TypedDict

DEFAULT_CATEGORY = "uncategorized"
DEFAULT_REMOTE_URL = "https://jsonplaceholder.typicode.com/posts"

CONFLICT_RETENTION_POLICIES: tuple[str, ...] = ("replace", "accumulate")


class RemoteConfig(TypedDict, total=False):
    url: str
    timeout_seconds: float
    limit: int
    category: str


class SyncConfig(TypedDict, total=False):
    interval_seconds: float
    conflict_retention: str


class HooksOnConfig(TypedDict, total=False):
    ok: str
    failed: str
    busy: str
    conflicts: str


class HooksConfig(TypedDict, total=False):
    post_sync: str
    on: HooksOnConfig


class QuotesyncConfig(TypedDict, total=False):
    schema_version: int
    default_category: str
    remote: RemoteConfig
    sync: SyncConfig
    hooks: HooksConfig


def default_config() -> QuotesyncConfig:
    """Return the default configuration.

    Serialized with ``serialize_config()`` this is the canonical
    config.json written by ``quotesync init``.
    """
    return {
        "schema_version": 1,
        "default_category": DEFAULT_CATEGORY,
        "remote": {
            "url": DEFAULT_REMOTE_URL,
            "timeout_seconds": 10,
            "limit": 5,
            "category": "Server",
        },
        "sync": {
            "interval_seconds": 60,
            "conflict_retention": "replace",
        },
    }


def serialize_config(config: QuotesyncConfig | dict[str, object]) -> str:
    """Serialize a config dict to the canonical JSON format."""
    return json.dumps(config, sort_keys=True, indent=2) + "\n"


def load_config(raw: str) -> dict:
    """Parse a JSON config string and return it merged over the defaults.

    This is a pure function (no I/O).  The caller reads the file and
    passes the raw string here.
    """
    return merged_config(json.loads(raw))


def merged_config(overrides: dict | None) -> dict:
    """Overlay *overrides* on ``default_config()`` one section deep."""
    config: dict = copy.deepcopy(dict(default_config()))
    for key, value in (overrides or {}).items():
        if isinstance(value, dict) and isinstance(config.get(key), dict):
            config[key].update(value)
        else:
            config[key] = value
    return config


def validate_conflict_retention(policy: str) -> bool:
    """Return ``True`` if *policy* is a known conflict ledger retention policy."""
    return policy in CONFLICT_RETENTION_POLICIES


def validate_config(config: dict) -> list[str]:
    """Return a list of problems with *config*; empty when it is usable."""
    problems: list[str] = []

    remote = config.get("remote", {})
    if not isinstance(remote, dict):
        problems.append("remote must be an object")
    else:
        if not isinstance(remote.get("url"), str) or not remote.get("url"):
            problems.append("remote.url must be a non-empty string")
        limit = remote.get("limit")
        if limit is not None and (not isinstance(limit, int) or limit < 0):
            problems.append("remote.limit must be a non-negative integer or null")
        timeout = remote.get("timeout_seconds")
        if not isinstance(timeout, (int, float)) or timeout <= 0:
            problems.append("remote.timeout_seconds must be a positive number")

    sync = config.get("sync", {})
    if not isinstance(sync, dict):
        problems.append("sync must be an object")
    else:
        interval = sync.get("interval_seconds")
        if not isinstance(interval, (int, float)) or interval <= 0:
            problems.append("sync.interval_seconds must be a positive number")
        if not validate_conflict_retention(sync.get("conflict_retention", "")):
            problems.append(
                "sync.conflict_retention must be one of: "
                + ", ".join(CONFLICT_RETENTION_POLICIES)
            )

    category = config.get("default_category")
    if not isinstance(category, str) or not category.strip():
        problems.append("default_category must be a non-empty string")

    return problems
