"""Tests for `quotesync import` and `quotesync export`."""

from __future__ import annotations

import json
from pathlib import Path


class TestImport:
    def test_imports_valid_entries(self, invoke_json, tmp_path: Path) -> None:
        path = tmp_path / "in.json"
        path.write_text(
            json.dumps([{"text": "A", "category": "X"}, {"text": "no category"}, 7])
        )
        parsed, code = invoke_json("import", str(path))
        assert code == 0
        assert parsed["data"] == {"imported": 1, "skipped": 2}

        listed, _ = invoke_json("list", "-c", "X")
        assert [q["text"] for q in listed["data"]] == ["A"]

    def test_human_message(self, invoke, tmp_path: Path) -> None:
        path = tmp_path / "in.json"
        path.write_text(json.dumps([{"text": "A", "category": "X"}, {}]))
        result = invoke("import", str(path))
        assert "Imported 1 quotes. Skipped 1 malformed entries." in result.output

    def test_invalid_file(self, invoke_json, tmp_path: Path) -> None:
        path = tmp_path / "in.json"
        path.write_text("{broken")
        parsed, code = invoke_json("import", str(path))
        assert code == 1
        assert parsed["error"]["code"] == "INVALID_IMPORT"

    def test_missing_file(self, invoke, tmp_path: Path) -> None:
        result = invoke("import", str(tmp_path / "missing.json"))
        assert result.exit_code == 1
        assert "Cannot read" in result.output


class TestExport:
    def test_stdout(self, invoke) -> None:
        result = invoke("export")
        assert result.exit_code == 0
        entries = json.loads(result.stdout)
        assert len(entries) == 3
        assert set(entries[0]) == {"text", "category"}

    def test_to_file(self, invoke_json, tmp_path: Path) -> None:
        path = tmp_path / "out.json"
        parsed, code = invoke_json("export", str(path))
        assert code == 0
        assert parsed["data"]["exported"] == 3
        assert len(json.loads(path.read_text())) == 3

    def test_round_trip(self, invoke_json, tmp_path: Path) -> None:
        path = tmp_path / "out.json"
        invoke_json("export", str(path))
        parsed, _ = invoke_json("import", str(path))
        assert parsed["data"] == {"imported": 3, "skipped": 0}
        listed, _ = invoke_json("list")
        assert len(listed["data"]) == 6

    def test_unwritable_path(self, invoke_json, tmp_path: Path) -> None:
        parsed, code = invoke_json("export", str(tmp_path / "nope" / "out.json"))
        assert code == 1
        assert parsed["error"]["code"] == "EXPORT_FAILED"
