"""
Unit tests for the JSON record storage.
"""

import json

import pytest

from aixbuild.storage import JsonStorage


@pytest.mark.unit
class TestJsonStorage:
    """Test cases for JsonStorage."""

    def test_save_and_load(self, tmp_path):
        storage = JsonStorage()
        path = tmp_path / "history.json"
        records = [{"duration": 1, "success": True}, {"duration": 2, "success": False}]

        storage.save_records(records, path)

        assert storage.load_records(path) == records
        assert json.loads(path.read_text(encoding="utf-8")) == records

    def test_missing_file_is_empty(self, tmp_path):
        assert JsonStorage().load_records(tmp_path / "absent.json") == []

    def test_non_list_content_rejected(self, tmp_path):
        path = tmp_path / "history.json"
        path.write_text('{"not": "a list"}', encoding="utf-8")

        with pytest.raises(ValueError):
            JsonStorage().load_records(path)

    def test_malformed_json_rejected(self, tmp_path):
        path = tmp_path / "history.json"
        path.write_text("[{", encoding="utf-8")

        with pytest.raises(ValueError):
            JsonStorage().load_records(path)

    def test_save_leaves_no_temp_files(self, tmp_path):
        storage = JsonStorage()
        path = tmp_path / "history.json"
        storage.save_records([{"a": 1}], path)
        storage.save_records([{"a": 2}], path)

        assert [p.name for p in tmp_path.iterdir()] == ["history.json"]
        assert storage.load_records(path) == [{"a": 2}]
