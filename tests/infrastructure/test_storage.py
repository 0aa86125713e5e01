"""Tests for key/value stores."""

from pathlib import Path

from jewelctl.infrastructure.storage import FileStore, MemoryStore


class TestMemoryStore:
    def test_set_get_remove(self) -> None:
        store = MemoryStore()
        assert store.get("k") is None
        store.set("k", "v")
        assert store.get("k") == "v"
        assert store.keys() == ["k"]
        store.remove("k")
        store.remove("k")
        assert store.get("k") is None


class TestFileStore:
    def test_round_trip_unicode(self, tmp_path: Path) -> None:
        store = FileStore(tmp_path / "state")
        store.set("design", '{"text": "שלום"}')
        assert store.get("design") == '{"text": "שלום"}'
        assert (tmp_path / "state" / "design.json").is_file()

    def test_missing_key(self, tmp_path: Path) -> None:
        assert FileStore(tmp_path).get("absent") is None

    def test_overwrite_leaves_no_temp_files(self, tmp_path: Path) -> None:
        store = FileStore(tmp_path)
        store.set("k", "one")
        store.set("k", "two")
        assert store.get("k") == "two"
        assert [p.name for p in tmp_path.iterdir()] == ["k.json"]

    def test_unsafe_key_characters(self, tmp_path: Path) -> None:
        store = FileStore(tmp_path)
        store.set("../escape me", "x")
        assert (tmp_path / ".._escape_me.json").is_file()
        assert store.get("../escape me") == "x"

    def test_remove(self, tmp_path: Path) -> None:
        store = FileStore(tmp_path)
        store.set("k", "v")
        store.remove("k")
        store.remove("k")
        assert store.get("k") is None
