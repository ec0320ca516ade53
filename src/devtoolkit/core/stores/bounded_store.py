# src/devtoolkit/core/stores/bounded_store.py
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Generic, Iterable, Iterator, List, Optional, Tuple, Type, TypeVar

from pydantic import ValidationError

from devtoolkit.model import StoredRecord, utc_now

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=StoredRecord)


class BoundedRecordStore(Generic[T]):
    """
    An ordered, capacity-limited collection of records, newest first.

    The retention policy is fixed at construction:
      - count (default): a sweep keeps the `capacity` newest records;
      - age (`max_age` given): a sweep drops records older than `max_age`.
    Capacity is enforced on every insert regardless of the policy.

    Every mutation builds the new sequence first and swaps it in with a single
    assignment, so the store is never observed over capacity.
    """

    def __init__(
            self,
            item_type: Type[T],
            capacity: int,
            max_age: Optional[timedelta] = None,
            items: Iterable[T] = ()
    ):
        if capacity <= 0:
            raise ValueError(f"capacity must be > 0, got {capacity}")
        if max_age is not None and max_age <= timedelta(0):
            raise ValueError(f"max_age must be positive, got {max_age}")

        self.item_type = item_type
        self.capacity = capacity
        self.max_age = max_age
        self._items: Tuple[T, ...] = tuple(items)[:capacity]

    @property
    def policy(self) -> str:
        return "age" if self.max_age is not None else "count"

    @property
    def items(self) -> Tuple[T, ...]:
        return self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)

    def newest(self) -> Optional[T]:
        return self._items[0] if self._items else None

    def insert(self, item: T) -> None:
        """
        Prepends an item and truncates the tail down to capacity in the same step.

        Raises:
            TypeError: If the item is not of the store's record type. The store is left untouched.
        """
        if not isinstance(item, self.item_type):
            raise TypeError(
                f"Store holds {self.item_type.__name__} records, got {type(item).__name__}"
            )
        self._items = ((item,) + self._items)[:self.capacity]

    def sweep(self, now: Optional[datetime] = None) -> int:
        """
        Applies the store's retention policy. Running it twice in a row is a no-op the second time.

        Returns:
            int: The number of records removed.
        """
        before = len(self._items)

        if self.max_age is not None:
            cutoff = (now or utc_now()) - self.max_age
            kept = tuple(item for item in self._items if item.timestamp >= cutoff)
        else:
            # Stable sort: records with equal timestamps keep their relative order.
            kept = tuple(sorted(self._items, key=lambda item: item.timestamp, reverse=True))

        self._items = kept[:self.capacity]
        removed = before - len(self._items)
        if removed:
            logger.debug("Swept %d %s record(s) (%s policy).", removed, self.item_type.__name__, self.policy)
        return removed

    def clear(self) -> int:
        """Empties the store and returns the number of records dropped."""
        removed = len(self._items)
        self._items = ()
        return removed

    # --- Persistence representation ---

    def to_persisted(self) -> List[Dict[str, Any]]:
        """The whole ordered sequence as JSON-compatible dicts (timestamps as ISO-8601)."""
        return [item.model_dump(mode="json") for item in self._items]

    @classmethod
    def from_persisted(
            cls,
            item_type: Type[T],
            data: Optional[List[Any]],
            capacity: int,
            max_age: Optional[timedelta] = None
    ) -> "BoundedRecordStore[T]":
        """
        Rebuilds a store from its persisted sequence, preserving order.
        Entries that fail validation are skipped and logged; over-capacity data is truncated.

        Legacy entries stored without a timestamp are stamped with strictly
        decreasing times from the load time down, so a later count sweep keeps
        their stored order.
        """
        load_time = utc_now()
        items: List[T] = []
        for index, raw in enumerate(data or []):
            try:
                item = item_type.model_validate(raw)
            except ValidationError as e:
                logger.warning("Skipping unreadable %s record: %s", item_type.__name__, e)
                continue
            if not (isinstance(raw, dict) and raw.get("timestamp") is not None):
                item = item.model_copy(update={"timestamp": load_time - timedelta(microseconds=index)})
            items.append(item)

        if len(items) > capacity:
            logger.info(
                "Persisted %s data holds %d records; truncating to capacity %d.",
                item_type.__name__, len(items), capacity
            )
        return cls(item_type, capacity, max_age=max_age, items=items)
