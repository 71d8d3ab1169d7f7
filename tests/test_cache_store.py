"""
File Store Tests
----------------
Tests for JSON data files and cached artifacts.

Tests cover:
- Save/load and miss semantics
- Snapshot shape validation
- Atomic writes (failure leaves the original intact)
- Full and scoped cache clearing
"""

import json

import aiofiles.os
import pytest
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

from cache.store import FileStore


@pytest.fixture
def store(tmp_path):
    return FileStore(tmp_path / "menu", extension="txt")


class TestDataFiles:
    """Tests for JSON data persistence."""

    @pytest.mark.asyncio
    async def test_save_and_load(self, store):
        data = [{"name": [{"name": "ping"}], "group": "system"}]
        await store.save("data", data, "zh-CN")

        assert store.data_path("data", "zh-CN").name == "data-zh-CN.json"
        assert await store.exists("data", "zh-CN")
        assert await store.load("data", "zh-CN") == data

    @pytest.mark.asyncio
    async def test_missing_is_none(self, store):
        assert await store.load("data", "en-US") is None
        assert not await store.exists("data", "en-US")

    @pytest.mark.asyncio
    async def test_invalid_json_is_none(self, store):
        path = store.data_path("data")
        path.parent.mkdir(parents=True)
        path.write_text("{not json", encoding="utf-8")
        assert await store.load("data") is None

    @pytest.mark.asyncio
    async def test_invalid_shape_is_none(self, store):
        await store.save("data", [], "en-US")
        assert await store.load("data", "en-US") is None

        await store.save("data", [{"unrelated": True}], "en-US")
        assert await store.load("data", "en-US") is None

    @pytest.mark.asyncio
    async def test_mapping_payload_passes(self, store):
        await store.save("meta", {"version": 1})
        assert await store.load("meta") == {"version": 1}

    @pytest.mark.asyncio
    async def test_delete(self, store):
        await store.save("data", [{"name": "x"}])
        assert await store.delete("data")
        assert not await store.delete("data")


class TestArtifacts:
    """Tests for cached artifacts."""

    @pytest.mark.asyncio
    async def test_round_trip(self, store):
        await store.save_cache("menu_abc", b"rendered")
        assert await store.has_cache("menu_abc")
        assert await store.get_cache("menu_abc") == b"rendered"
        assert store.cache_path("menu_abc").name == "menu_abc.txt"

    @pytest.mark.asyncio
    async def test_miss(self, store):
        assert await store.get_cache("menu_missing") is None

    @pytest.mark.asyncio
    async def test_empty_file_is_miss(self, store):
        path = store.cache_path("menu_empty")
        path.parent.mkdir(parents=True)
        path.write_bytes(b"")
        assert await store.get_cache("menu_empty") is None

    @pytest.mark.asyncio
    async def test_refuses_empty_artifact(self, store):
        with pytest.raises(ValueError):
            await store.save_cache("menu_x", b"")
        with pytest.raises(ValueError):
            await store.save_cache("menu_x", "text")

    @pytest.mark.asyncio
    async def test_no_temp_files_left(self, store):
        await store.save_cache("menu_a", b"one")
        await store.save_cache("menu_a", b"two")
        assert sorted(p.name for p in store.cache_dir.iterdir()) == ["menu_a.txt"]
        assert await store.get_cache("menu_a") == b"two"

    @pytest.mark.asyncio
    async def test_failed_write_keeps_original(self, store, monkeypatch):
        """An interrupted write never corrupts or removes the existing artifact."""
        await store.save_cache("menu_a", b"original")

        async def broken_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(aiofiles.os, "replace", broken_replace)

        with pytest.raises(OSError):
            await store.save_cache("menu_a", b"replacement")

        assert await store.get_cache("menu_a") == b"original"
        assert [p.name for p in store.cache_dir.iterdir()] == ["menu_a.txt"]


class TestClearCache:
    """Tests for clear_cache()."""

    @pytest.mark.asyncio
    async def test_clear_all(self, store):
        for key in ("menu_1", "ping_2", "info_user_3"):
            await store.save_cache(key, b"x")
        (store.cache_dir / ".stale.tmp").write_bytes(b"x")
        (store.cache_dir / "notes.md").write_bytes(b"x")

        assert await store.clear_cache() == 4
        assert [p.name for p in store.cache_dir.iterdir()] == ["notes.md"]

    @pytest.mark.asyncio
    async def test_clear_scoped(self, store):
        for key in ("menu_1", "info_2", "info_user_3", "infobox_4"):
            await store.save_cache(key, b"x")

        assert await store.clear_cache("info.user") == 1
        assert await store.clear_cache("info") == 1
        remaining = sorted(p.name for p in store.cache_dir.iterdir())
        assert remaining == ["infobox_4.txt", "menu_1.txt"]

    @pytest.mark.asyncio
    async def test_clear_without_cache_dir(self, store):
        assert await store.clear_cache() == 0

    @pytest.mark.asyncio
    async def test_data_files_survive(self, store):
        await store.save("data", [{"name": "x"}], "en-US")
        await store.save_cache("menu_1", b"x")
        await store.clear_cache()
        assert json.loads(store.data_path("data", "en-US").read_text(encoding="utf-8")) == [{"name": "x"}]
