"""Tests for `quotesync sync`."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from quotesync.sync.driver import SyncDriver
from quotesync.sync.remote import HttpRemoteSource, RemoteFetchError

_SNAPSHOT = [
    {"text": "title 1", "category": "Server", "remote_id": 1},
    {"text": "Get busy living or get busy dying.", "category": "Server", "remote_id": 2},
]


@pytest.fixture()
def remote():
    """Patch the HTTP source to serve *records* (or raise them)."""

    def _serve(records):
        async def fetch(self):
            if isinstance(records, Exception):
                raise records
            return records

        return patch.object(HttpRemoteSource, "fetch", fetch)

    return _serve


class TestSyncOnce:
    def test_human_summary(self, invoke, remote) -> None:
        with remote(_SNAPSHOT):
            result = invoke("sync")
        assert result.exit_code == 0, result.output
        assert "Synced with server: 1 added, 1 updated, 1 conflicts." in result.output
        assert "quotesync conflicts list" in result.output

    def test_json(self, invoke_json, remote) -> None:
        with remote(_SNAPSHOT):
            parsed, code = invoke_json("sync")
        assert code == 0
        assert parsed["ok"] is True
        outcome = parsed["data"]["outcome"]
        assert (outcome["added"], outcome["updated"]) == (1, 1)
        assert outcome["conflicts"][0]["local"]["category"] == "Motivation"

    def test_second_sync_is_quiet(self, invoke, remote) -> None:
        with remote(_SNAPSHOT):
            invoke("sync")
            result = invoke("sync")
        assert "0 added, 0 updated, 0 conflicts." in result.output

    def test_failure_exit_code(self, invoke_json, remote) -> None:
        with remote(RemoteFetchError("Fetching http://x failed: unreachable")):
            parsed, code = invoke_json("sync")
        assert code == 1
        assert parsed["ok"] is False
        assert parsed["data"]["status"] == "failed"
        assert "unreachable" in parsed["data"]["error"]

    def test_failure_human(self, invoke, remote) -> None:
        with remote([]):
            result = invoke("sync")
        assert result.exit_code == 1
        assert "Sync failed: Remote returned an empty snapshot" in result.output


def test_invalid_config(invoke_json, initialized_root) -> None:
    (initialized_root / ".quotesync" / "config.json").write_text("{broken")
    parsed, code = invoke_json("sync")
    assert code == 1
    assert parsed["error"]["code"] == "INVALID_CONFIG"


def test_unusable_config(invoke_json, initialized_root) -> None:
    (initialized_root / ".quotesync" / "config.json").write_text('{"remote": "http://x"}')
    parsed, code = invoke_json("sync")
    assert code == 1
    assert parsed["error"]["code"] == "INVALID_CONFIG"
    assert "remote must be an object" in parsed["error"]["message"]


class TestSyncWatch:
    def test_prints_each_scheduled_pass(self, invoke, remote) -> None:
        async def two_passes(self, interval_seconds):
            await self.run_once("scheduled")
            await self.run_once("scheduled")

        with remote(_SNAPSHOT), patch.object(SyncDriver, "run_forever", two_passes):
            result = invoke("sync", "--watch", "--interval", "0.01")

        assert result.exit_code == 0, result.output
        lines = [line for line in result.stdout.splitlines() if line.startswith("Synced")]
        assert len(lines) == 2
        assert "1 added" in lines[0]
        assert "0 added" in lines[1]
