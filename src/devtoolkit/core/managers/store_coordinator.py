# src/devtoolkit/core/managers/store_coordinator.py
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional, Tuple, Type, Union

from devtoolkit.core.managers.config_manager import config_manager
from devtoolkit.core.managers.storage_manager import StorageManager, StorageError, SESSION
from devtoolkit.core.stores.bounded_store import BoundedRecordStore
from devtoolkit.model import StoredRecord, ColorEntry, CodeSnippet, AnalysisRecord

logger = logging.getLogger(__name__)

COLOR_HISTORY = "color_history"
CODE_SNIPPETS = "code_snippets"
RECENT_ANALYSES = "recent_analyses"

# name -> (record type, built-in defaults used when settings.json lacks the entry)
KNOWN_STORES: Dict[str, Tuple[Type[StoredRecord], Dict[str, Any]]] = {
    COLOR_HISTORY: (ColorEntry, {"area": "sync", "key": "colorHistory", "capacity": 20}),
    CODE_SNIPPETS: (CodeSnippet, {"area": "local", "key": "codeSnippets", "capacity": 50}),
    RECENT_ANALYSES: (
        AnalysisRecord,
        {"area": "session", "key": "recentAnalyses", "capacity": 50, "max_age_minutes": 1440},
    ),
}

RecordOrFactory = Union[StoredRecord, Callable[[BoundedRecordStore], StoredRecord]]


class StoreRejectedError(ValueError):
    """The request was refused before touching the store; its state is unchanged."""


class PersistenceError(RuntimeError):
    """
    Writing a store to its storage tier failed.

    `applied` tells whether the in-memory mutation went through before the
    write failed (True), as opposed to a request that never mutated anything.
    """

    def __init__(self, message: str, store: str, applied: bool):
        super().__init__(message)
        self.store = store
        self.applied = applied


class StoreDefinition:
    """Binds a named store to its record type, storage tier, key, and retention settings."""

    def __init__(
            self,
            name: str,
            item_type: Type[StoredRecord],
            area: str,
            key: str,
            capacity: int,
            max_age_minutes: Optional[int] = None
    ):
        self.name = name
        self.item_type = item_type
        self.area = area
        self.key = key
        self.capacity = capacity
        self.max_age = timedelta(minutes=max_age_minutes) if max_age_minutes else None

    @classmethod
    def from_config(cls, name: str) -> "StoreDefinition":
        """Builds a known store's definition from 'stores.<name>' in settings.json."""
        item_type, defaults = KNOWN_STORES[name]
        settings = {**defaults, **(config_manager.get_nested(f"stores.{name}", {}) or {})}
        return cls(
            name=name,
            item_type=item_type,
            area=settings["area"],
            key=settings["key"],
            capacity=int(settings["capacity"]),
            max_age_minutes=settings.get("max_age_minutes"),
        )

    def create_store(self, persisted: Any) -> BoundedRecordStore:
        if persisted is not None and not isinstance(persisted, list):
            logger.warning("Stored value for '%s' is not a list; starting empty.", self.key)
            persisted = None
        return BoundedRecordStore.from_persisted(self.item_type, persisted, self.capacity, self.max_age)


def default_store_definitions() -> Dict[str, StoreDefinition]:
    return {name: StoreDefinition.from_config(name) for name in KNOWN_STORES}


class StoreCoordinator:
    """
    Single owner of all bounded record stores.

    Callers submit requests that land on one asyncio queue; a single worker task
    applies them strictly in arrival order and persists the affected store after
    each mutation. Inserts, sweeps and clears therefore never interleave, which
    keeps every store newest-first and within capacity.
    """

    def __init__(self, storage: StorageManager, definitions: Optional[Dict[str, StoreDefinition]] = None):
        self.storage = storage
        self.definitions = definitions or default_store_definitions()
        self._stores: Dict[str, BoundedRecordStore] = {}
        self._queue: Optional[asyncio.Queue] = None
        self._worker: Optional[asyncio.Task] = None

    # --- Lifecycle ---

    async def start(self) -> None:
        """
        Loads every store from its storage tier and starts the worker task.

        Raises:
            PersistenceError: If a storage tier cannot be read.
        """
        if self._worker is not None:
            return
        for name, defn in self.definitions.items():
            try:
                persisted = await asyncio.to_thread(self.storage.area(defn.area).get, defn.key)
            except StorageError as e:
                raise PersistenceError(f"Could not load store '{name}': {e}", store=name, applied=False) from e
            self._stores[name] = defn.create_store(persisted)
            logger.debug("Loaded store '%s' with %d record(s).", name, len(self._stores[name]))

        self._queue = asyncio.Queue()
        self._worker = asyncio.create_task(self._run(), name="store-coordinator")

    async def stop(self) -> None:
        """Processes the requests already queued, then stops the worker."""
        if self._worker is None:
            return
        await self._queue.put(None)
        await self._worker
        self._worker = None
        self._queue = None

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    # --- Public operations ---

    async def insert(self, name: str, item: RecordOrFactory) -> Tuple[StoredRecord, ...]:
        """
        Prepends a record to the named store. `item` may also be a factory that
        receives the current store and returns the record (used for id allocation).

        Returns:
            The store's items after the insert, newest first.

        Raises:
            StoreRejectedError: Unknown store or wrong record type; nothing changed.
            PersistenceError: The insert applied in memory but could not be written.
        """
        def operation(store: BoundedRecordStore):
            record = item(store) if callable(item) else item
            try:
                store.insert(record)
            except TypeError as e:
                raise StoreRejectedError(str(e)) from e
            return store.items

        return await self._submit(name, operation, mutates=True)

    async def sweep(self, name: str, now: Optional[datetime] = None) -> int:
        """Applies the named store's retention policy; returns the number of records removed."""
        return await self._submit(name, lambda store: store.sweep(now), mutates=True)

    async def clear(self, name: str) -> int:
        """
        Empties a session-scoped store.

        Raises:
            StoreRejectedError: If the store lives in a persistent tier.
        """
        defn = self._definition(name)
        if defn.area != SESSION:
            raise StoreRejectedError(f"Store '{name}' is persistent ({defn.area}); only session stores can be cleared")
        return await self._submit(name, lambda store: store.clear(), mutates=True)

    async def items(self, name: str) -> Tuple[StoredRecord, ...]:
        """Reads the named store's items, ordered behind any pending mutation."""
        return await self._submit(name, lambda store: store.items, mutates=False)

    async def run_retention_sweep(self, now: Optional[datetime] = None) -> Dict[str, int]:
        """
        The periodic retention policy: clears the session tier, then sweeps every
        store by its own policy and writes it back. Idempotent.

        Returns:
            Dict[str, int]: Records removed per store.
        """
        return await self._enqueue(self._retention_sweep, now)

    # --- Internals ---

    def _definition(self, name: str) -> StoreDefinition:
        try:
            return self.definitions[name]
        except KeyError:
            raise StoreRejectedError(f"Unknown store '{name}'") from None

    async def _submit(self, name: str, operation: Callable[[BoundedRecordStore], Any], mutates: bool) -> Any:
        self._definition(name)
        return await self._enqueue(self._apply, name, operation, mutates)

    async def _enqueue(self, func: Callable, *args: Any) -> Any:
        if not self.running:
            raise RuntimeError("StoreCoordinator is not running; call start() first")
        future = asyncio.get_running_loop().create_future()
        await self._queue.put((func, args, future))
        return await future

    async def _run(self) -> None:
        while True:
            request = await self._queue.get()
            try:
                if request is None:
                    return
                func, args, future = request
                try:
                    result = await func(*args)
                except Exception as e:
                    if not future.done():
                        future.set_exception(e)
                else:
                    if not future.done():
                        future.set_result(result)
            finally:
                self._queue.task_done()

    async def _apply(self, name: str, operation: Callable[[BoundedRecordStore], Any], mutates: bool) -> Any:
        result = operation(self._stores[name])
        if mutates:
            await self._persist(name)
        return result

    async def _persist(self, name: str) -> None:
        defn = self.definitions[name]
        payload = self._stores[name].to_persisted()
        try:
            await asyncio.to_thread(self.storage.area(defn.area).set, defn.key, payload)
        except StorageError as e:
            logger.error("Failed to persist store '%s': %s", name, e)
            raise PersistenceError(
                f"Store '{name}' changed in memory but could not be saved: {e}",
                store=name,
                applied=True
            ) from e

    async def _retention_sweep(self, now: Optional[datetime]) -> Dict[str, int]:
        try:
            await asyncio.to_thread(self.storage.session.clear)
        except StorageError as e:
            raise PersistenceError(f"Could not clear session storage: {e}", store=SESSION, applied=False) from e

        removed: Dict[str, int] = {}
        failures = []
        for name, store in self._stores.items():
            removed[name] = store.sweep(now)
            try:
                await self._persist(name)
            except PersistenceError as e:
                failures.append(e)

        logger.info("Retention sweep removed: %s", removed)
        if failures:
            raise failures[0]
        return removed
