"""Tests for the in-process sync notification bus."""

from __future__ import annotations

from quotesync.sync import bus


class TestBus:
    def test_register_and_notify(self) -> None:
        seen: list[dict] = []
        bus.register_listener(seen.append)
        try:
            bus.notify({"status": "ok"})
        finally:
            bus.unregister_listener(seen.append)
        assert seen == [{"status": "ok"}]

    def test_unregister_stops_delivery(self) -> None:
        seen: list[dict] = []
        bus.register_listener(seen.append)
        bus.unregister_listener(seen.append)
        bus.notify({"status": "ok"})
        assert seen == []

    def test_unregister_unknown_is_noop(self) -> None:
        bus.unregister_listener(lambda result: None)

    def test_listener_error_does_not_propagate(self, caplog) -> None:
        seen: list[dict] = []

        def broken(result: dict) -> None:
            raise RuntimeError("listener broke")

        bus.register_listener(broken)
        bus.register_listener(seen.append)
        try:
            bus.notify({"status": "failed"})
        finally:
            bus.unregister_listener(broken)
            bus.unregister_listener(seen.append)
        assert seen == [{"status": "failed"}]
        assert "listener broke" in caplog.text
