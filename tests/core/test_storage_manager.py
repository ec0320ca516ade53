# tests/core/test_storage_manager.py
import json

import pytest

from devtoolkit.core.managers.storage_manager import (
    StorageManager,
    InMemoryStorageArea,
    JsonFileStorageArea,
    StorageError,
    StorageQuotaError,
)


@pytest.fixture
def file_area(tmp_path):
    return JsonFileStorageArea("local", tmp_path / "store" / "local.json")


def test_json_area_set_get_remove(file_area):
    assert file_area.get("missing", "default") == "default"

    file_area.set("codeSnippets", [{"id": 1}])
    file_area.set("other", {"a": 1})
    assert file_area.get("codeSnippets") == [{"id": 1}]

    file_area.remove("codeSnippets")
    assert file_area.get("codeSnippets") is None
    assert file_area.get("other") == {"a": 1}


def test_json_area_persists_across_instances(tmp_path):
    path = tmp_path / "sync.json"
    JsonFileStorageArea("sync", path).set("colorHistory", ["#fff"])

    assert JsonFileStorageArea("sync", path).get("colorHistory") == ["#fff"]
    assert json.loads(path.read_text(encoding="utf-8")) == {"colorHistory": ["#fff"]}
    # No temp files are left behind by the atomic rewrite
    assert [p.name for p in tmp_path.iterdir()] == ["sync.json"]


def test_json_area_clear(file_area):
    file_area.set("a", 1)
    file_area.clear()
    assert file_area.get("a") is None


def test_json_area_corrupt_file_raises_storage_error(tmp_path):
    path = tmp_path / "local.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(StorageError):
        JsonFileStorageArea("local", path).get("a")


def test_json_area_non_object_raises_storage_error(tmp_path):
    path = tmp_path / "local.json"
    path.write_text("[1, 2]", encoding="utf-8")

    with pytest.raises(StorageError):
        JsonFileStorageArea("local", path).get("a")


def test_quota_is_enforced_before_writing(tmp_path):
    area = JsonFileStorageArea("sync", tmp_path / "sync.json", quota_bytes_per_item=32)
    area.set("k", "small")

    with pytest.raises(StorageQuotaError):
        area.set("k", "x" * 100)
    assert area.get("k") == "small"


def test_in_memory_area_hands_out_copies():
    area = InMemoryStorageArea("session")
    value = [{"url": "a"}]
    area.set("recent", value)
    value.append({"url": "b"})

    loaded = area.get("recent")
    loaded.append({"url": "c"})
    assert area.get("recent") == [{"url": "a"}]
    assert area.keys() == ["recent"]


def test_storage_manager_tiers(tmp_path):
    storage = StorageManager.on_disk(tmp_path)

    assert storage.area("sync") is storage.sync
    assert storage.area("local") is storage.local
    assert isinstance(storage.session, InMemoryStorageArea)

    storage.sync.set("colorHistory", [])
    assert (tmp_path / "sync.json").exists()

    with pytest.raises(ValueError):
        storage.area("managed")


def test_in_memory_sync_tier_has_quota():
    storage = StorageManager.in_memory()
    with pytest.raises(StorageQuotaError):
        storage.sync.set("colorHistory", ["#ffffff"] * 2000)
