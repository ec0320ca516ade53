# src/devtoolkit/core/managers/storage_manager.py
import abc
import copy
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

SYNC = "sync"
LOCAL = "local"
SESSION = "session"
STORAGE_TIERS = (SYNC, LOCAL, SESSION)

# Per-item quota of the synced tier in the host runtime.
SYNC_QUOTA_BYTES_PER_ITEM = 8192


class StorageError(RuntimeError):
    """Raised when a storage area cannot read or write its data."""


class StorageQuotaError(StorageError):
    """Raised when a value exceeds the per-item quota of a storage area."""


class StorageArea(metaclass=abc.ABCMeta):
    """
    A key-value storage tier. Values are JSON-compatible; each bounded store
    is kept as one value (its whole ordered sequence) under its own key.
    """

    def __init__(self, name: str, quota_bytes_per_item: Optional[int] = None):
        self.name = name
        self.quota_bytes_per_item = quota_bytes_per_item

    @abc.abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        raise NotImplementedError

    @abc.abstractmethod
    def set(self, key: str, value: Any) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def remove(self, key: str) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def clear(self) -> None:
        raise NotImplementedError

    def _check_quota(self, key: str, value: Any) -> None:
        """Measures the serialized size of key + value against the per-item quota."""
        if self.quota_bytes_per_item is None:
            return
        size = len(key.encode("utf-8")) + len(json.dumps(value, ensure_ascii=False).encode("utf-8"))
        if size > self.quota_bytes_per_item:
            raise StorageQuotaError(
                f"Value for '{key}' in {self.name} storage is {size} bytes "
                f"(quota {self.quota_bytes_per_item})"
            )


class InMemoryStorageArea(StorageArea):
    """Process-local storage; used for the session tier and in tests."""

    def __init__(self, name: str, quota_bytes_per_item: Optional[int] = None):
        super().__init__(name, quota_bytes_per_item)
        self._data: Dict[str, Any] = {}
        self._lock = threading.Lock()

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            # Callers get a copy; mutating it must not leak into storage.
            return copy.deepcopy(self._data.get(key, default))

    def set(self, key: str, value: Any) -> None:
        self._check_quota(key, value)
        with self._lock:
            self._data[key] = copy.deepcopy(value)

    def remove(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def keys(self):
        with self._lock:
            return list(self._data.keys())


class JsonFileStorageArea(StorageArea):
    """
    Storage tier backed by a single JSON file.

    Every write rewrites the file through a temp file and an atomic replace,
    so a crash mid-write leaves the previous content intact.
    """

    def __init__(self, name: str, path: Path, quota_bytes_per_item: Optional[int] = None):
        super().__init__(name, quota_bytes_per_item)
        self.path = path
        self._lock = threading.Lock()

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Failed to read {self.name} storage at {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StorageError(f"{self.name} storage at {self.path} does not hold a JSON object")
        return data

    def _write(self, data: Dict[str, Any]) -> None:
        temp_path = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_path_str = tempfile.mkstemp(
                dir=self.path.parent,
                prefix=f"{self.path.name}.",
                suffix=".tmp"
            )
            temp_path = Path(temp_path_str)
            with os.fdopen(fd, "w", encoding="utf-8", newline='\n') as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(temp_path, self.path)
        except OSError as e:
            if temp_path is not None and temp_path.exists():
                try:
                    temp_path.unlink()
                except OSError:
                    logger.warning("Could not remove temp file %s", temp_path)
            raise StorageError(f"Failed to write {self.name} storage at {self.path}: {e}") from e

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._read().get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._check_quota(key, value)
        with self._lock:
            data = self._read()
            data[key] = value
            self._write(data)

    def remove(self, key: str) -> None:
        with self._lock:
            data = self._read()
            if key in data:
                del data[key]
                self._write(data)

    def clear(self) -> None:
        with self._lock:
            self._write({})


class StorageManager:
    """
    Groups the three storage tiers of the host runtime:
      - sync:    small cross-device data (color history, settings);
      - local:   larger device-local data (code snippets);
      - session: ephemeral data, gone when the browser session ends.
    """

    def __init__(self, sync: StorageArea, local: StorageArea, session: StorageArea):
        self._areas: Dict[str, StorageArea] = {SYNC: sync, LOCAL: local, SESSION: session}

    @classmethod
    def in_memory(cls) -> "StorageManager":
        return cls(
            sync=InMemoryStorageArea(SYNC, quota_bytes_per_item=SYNC_QUOTA_BYTES_PER_ITEM),
            local=InMemoryStorageArea(LOCAL),
            session=InMemoryStorageArea(SESSION),
        )

    @classmethod
    def on_disk(cls, base_dir: Path) -> "StorageManager":
        """Persistent sync/local tiers as JSON files under base_dir; session stays in memory."""
        logger.debug("Storage tiers at: %s", base_dir)
        return cls(
            sync=JsonFileStorageArea(SYNC, base_dir / "sync.json", quota_bytes_per_item=SYNC_QUOTA_BYTES_PER_ITEM),
            local=JsonFileStorageArea(LOCAL, base_dir / "local.json"),
            session=InMemoryStorageArea(SESSION),
        )

    def area(self, tier: str) -> StorageArea:
        try:
            return self._areas[tier]
        except KeyError:
            raise ValueError(f"Unknown storage tier '{tier}'. Expected one of {STORAGE_TIERS}") from None

    @property
    def sync(self) -> StorageArea:
        return self._areas[SYNC]

    @property
    def local(self) -> StorageArea:
        return self._areas[LOCAL]

    @property
    def session(self) -> StorageArea:
        return self._areas[SESSION]
