"""Tests for the persisted storage adapters."""

import json

import pytest

from roamsync.adapters.storage import InMemoryStorage, JsonFileStorage
from roamsync.config import StorageConfig
from roamsync.domain.errors import StorageError


class TestInMemoryStorage:
    """Test suite for InMemoryStorage."""

    @pytest.mark.asyncio
    async def test_set_get_remove(self):
        storage = InMemoryStorage()
        await storage.set_item("auth_token", {"accessToken": "a"})

        assert await storage.get_item("auth_token") == {"accessToken": "a"}

        await storage.remove_item("auth_token")
        assert await storage.get_item("auth_token") is None

    @pytest.mark.asyncio
    async def test_values_are_copied(self):
        storage = InMemoryStorage()
        value = {"modes": ["cycling"]}
        await storage.set_item("k", value)
        value["modes"].append("walking")

        stored = await storage.get_item("k")
        stored["modes"].clear()

        assert await storage.get_item("k") == {"modes": ["cycling"]}

    @pytest.mark.asyncio
    async def test_removing_missing_key_is_ignored(self):
        storage = InMemoryStorage()
        await storage.remove_item("missing")
        assert storage.keys() == []


class TestJsonFileStorage:
    """Test suite for JsonFileStorage."""

    @pytest.fixture
    def path(self, tmp_path):
        return tmp_path / "nested" / "storage.json"

    @pytest.mark.asyncio
    async def test_missing_file_reads_as_empty(self, path):
        storage = JsonFileStorage(path=path)
        assert await storage.get_item("auth_token") is None

    @pytest.mark.asyncio
    async def test_round_trip_through_disk(self, path):
        storage = JsonFileStorage(path=path)
        await storage.set_item("auth_token", {"accessToken": "a"})
        await storage.set_item("auth_identity", {"id": "u1"})

        reopened = JsonFileStorage(path=path)
        assert await reopened.get_item("auth_token") == {"accessToken": "a"}
        assert json.loads(path.read_text(encoding="utf-8"))["auth_identity"] == {"id": "u1"}

    @pytest.mark.asyncio
    async def test_remove_item(self, path):
        storage = JsonFileStorage(path=path)
        await storage.set_item("a", 1)
        await storage.set_item("b", 2)

        await storage.remove_item("a")

        assert await storage.get_item("a") is None
        assert await storage.get_item("b") == 2
        assert not path.with_suffix(".json.tmp").exists()

    @pytest.mark.asyncio
    async def test_corrupt_file_raises_storage_error(self, path):
        path.parent.mkdir(parents=True)
        path.write_text("{not json", encoding="utf-8")
        storage = JsonFileStorage(path=path)

        with pytest.raises(StorageError):
            await storage.get_item("auth_token")

    @pytest.mark.asyncio
    async def test_non_object_file_raises_storage_error(self, path):
        path.parent.mkdir(parents=True)
        path.write_text("[1, 2]", encoding="utf-8")

        with pytest.raises(StorageError):
            await JsonFileStorage(path=path).get_item("x")

    @pytest.mark.asyncio
    async def test_unserializable_value_raises_storage_error(self, path):
        storage = JsonFileStorage(path=path)

        with pytest.raises(StorageError) as exc_info:
            await storage.set_item("k", object())
        assert exc_info.value.key == "k"

    def test_from_config(self, path):
        storage = JsonFileStorage.from_config(StorageConfig(path=path))
        assert storage.path == path
