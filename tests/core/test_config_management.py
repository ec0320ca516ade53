# tests/core/test_config_management.py
import json

import pytest

from devtoolkit.core.managers.config_manager import ConfigManager, SETTINGS_FILE
from devtoolkit.core.managers.store_coordinator import StoreDefinition, COLOR_HISTORY
from devtoolkit.core.utils.path_utils import PathUtils

# A small, predictable configuration for the tests
MOCK_SETTINGS_CONTENT = {
    "debug": {
        "level": "WARNING"
    },
    "storage": {
        "dir": None
    },
    "stores": {
        "color_history": {
            "area": "sync",
            "key": "colorHistory",
            "capacity": 5
        }
    },
    "defaults": {
        "auto_format": True
    }
}


@pytest.fixture
def manager(tmp_path):
    """
    Points the ConfigManager singleton at a temporary settings.json and
    restores the packaged settings afterwards.
    """
    settings_file = tmp_path / "settings.json"
    settings_file.write_text(json.dumps(MOCK_SETTINGS_CONTENT))

    config_manager_instance = ConfigManager()
    config_manager_instance.reset(settings_path=settings_file)
    yield config_manager_instance
    config_manager_instance.reset(settings_path=SETTINGS_FILE)


def test_config_manager_is_singleton(manager):
    assert ConfigManager() is manager


def test_config_manager_load(manager):
    config = manager.get_all()
    assert config["debug"]["level"] == "WARNING"
    assert config["stores"]["color_history"]["capacity"] == 5


def test_config_manager_get_nested(manager):
    assert manager.get_nested("stores.color_history.key") == "colorHistory"
    assert manager.get_nested("non.existent.key", "default") == "default"
    assert manager.get_nested("debug.level.deeper", "default") == "default"
    assert manager.get_nested("storage.dir", "fallback") == "fallback"


def test_config_manager_set_nested(manager):
    manager.set_nested("debug.level", "INFO")
    assert manager.get_nested("debug.level") == "INFO"

    # New keys are stored as given
    manager.set_nested("new_feature.enabled", "True")
    assert manager.get_nested("new_feature.enabled") == "True"

    # Existing values keep their type
    manager.set_nested("stores.color_history.capacity", "20")
    assert manager.get_nested("stores.color_history.capacity") == 20

    manager.set_nested("defaults.auto_format", "off")
    assert manager.get_nested("defaults.auto_format") is False


def test_config_manager_set_nested_refuses_non_dict_path(manager):
    assert manager.set_nested("debug.level.deeper", 1) is False


def test_config_manager_reset(manager):
    manager.set_nested("debug.level", "DEBUG")
    manager.reset()
    assert manager.get_nested("debug.level") == "WARNING"


def test_missing_settings_file_gives_empty_config(manager, tmp_path):
    manager.reset(settings_path=tmp_path / "absent.json")
    assert manager.get_all() == {}


def test_store_definition_reads_configured_capacity(manager):
    assert StoreDefinition.from_config(COLOR_HISTORY).capacity == 5


def test_user_data_dir_follows_storage_setting(manager, tmp_path):
    manager.set_nested("storage.dir", str(tmp_path / "data"))
    assert PathUtils.get_user_data_dir() == tmp_path / "data"


def test_packaged_settings_file_exists():
    assert SETTINGS_FILE.exists()
    assert SETTINGS_FILE.parent == PathUtils.get_package_root()
