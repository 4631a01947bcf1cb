"""Tests for remote-to-local identity resolution."""

from __future__ import annotations

from quotesync.core.identity import Match, resolve_match


def _remote(text: str, remote_id: str, category: str = "X") -> dict:
    return {"text": text, "category": category, "remote_id": remote_id}


class TestResolveMatch:
    def test_strong_match_by_remote_id(self, make_store) -> None:
        store = make_store([{"text": "A", "category": "X", "local_id": "1", "remote_id": "r1"}])
        match = resolve_match(store, _remote("A", "r1"))
        assert match is not None
        assert match.kind == "strong"
        assert not match.is_weak
        assert match.record["local_id"] == "1"

    def test_strong_match_survives_text_divergence(self, make_store) -> None:
        store = make_store(
            [{"text": "edited locally", "category": "X", "local_id": "1", "remote_id": "r1"}]
        )
        match = resolve_match(store, _remote("A", "r1"))
        assert match == Match(store.find_by_local_id("1"), "strong")

    def test_weak_match_by_text(self, make_store) -> None:
        store = make_store([{"text": "A", "category": "X", "local_id": "1"}])
        match = resolve_match(store, _remote("A", "r1", category="other"))
        assert match is not None
        assert match.is_weak
        assert match.record["local_id"] == "1"

    def test_strong_beats_weak(self, make_store) -> None:
        store = make_store(
            [
                {"text": "A", "category": "X", "local_id": "1"},
                {"text": "B", "category": "X", "local_id": "2", "remote_id": "r1"},
            ]
        )
        match = resolve_match(store, _remote("A", "r1"))
        assert match.kind == "strong"
        assert match.record["local_id"] == "2"

    def test_weak_match_skips_linked_records(self, make_store) -> None:
        store = make_store(
            [
                {"text": "A", "category": "X", "local_id": "1", "remote_id": "r9"},
                {"text": "A", "category": "X", "local_id": "2"},
            ]
        )
        match = resolve_match(store, _remote("A", "r1"))
        assert match.record["local_id"] == "2"

    def test_weak_match_first_in_store_order(self, make_store) -> None:
        store = make_store(
            [
                {"text": "A", "category": "X", "local_id": "1"},
                {"text": "A", "category": "Y", "local_id": "2"},
            ]
        )
        assert resolve_match(store, _remote("A", "r1")).record["local_id"] == "1"

    def test_text_match_is_exact(self, make_store) -> None:
        store = make_store([{"text": "A", "category": "X", "local_id": "1"}])
        assert resolve_match(store, _remote("a", "r1")) is None
        assert resolve_match(store, _remote("A ", "r1")) is None

    def test_no_match(self, make_store) -> None:
        store = make_store([{"text": "A", "category": "X", "local_id": "1", "remote_id": "r9"}])
        assert resolve_match(store, _remote("A", "r1")) is None
