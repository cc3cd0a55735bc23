"""
Generic JSON collection over a key/value medium.

A collection is one key holding a JSON array of entity objects. Reads never
fail: a missing key, an unparsable value or a non-array value all read as an
empty collection, and elements that no longer match the entity shape are
dropped. A dropped element stays on the medium only until the next write to
that collection, which persists the readable records alone. Writes serialize the whole array first and replace the key in one
medium call; when the medium refuses, the previous value stays in place, a
warning is logged and the store's notifier is told.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict
from typing import Any, Callable, Generic, Iterable, Optional, TypeVar

from errors import StorageError, ValidationError
from storage_backend import StorageMedium

logger = logging.getLogger(__name__)

T = TypeVar("T")

Notifier = Callable[[str], None]


class Collection(Generic[T]):
    """Typed CRUD over one collection key."""

    def __init__(self, medium: StorageMedium, key: str, model: type,
                 notifier: Optional[Notifier] = None, max_items: int = 0) -> None:
        self.medium = medium
        self.key = key
        self.model = model
        self.notifier = notifier
        self.max_items = max_items  # keep only the newest N when > 0

    # ── Reads ──────────────────────────────────────────────

    def get_all(self) -> list[T]:
        raw = self.medium.get_item(self.key)
        if raw is None:
            return []
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            logger.warning("Collection %s holds unreadable data, treating as empty: %s", self.key, e)
            return []
        if not isinstance(data, list):
            logger.warning("Collection %s is not a JSON array, treating as empty", self.key)
            return []

        items: list[T] = []
        for element in data:
            try:
                items.append(self.model.from_dict(element))
            except (ValidationError, TypeError) as e:
                logger.warning(
                    "Dropping malformed %s record from %s; it will be lost on the next write: %s",
                    self.model.__name__, self.key, e,
                )
        return items

    def get_by_id(self, item_id: str) -> Optional[T]:
        for item in self.get_all():
            if item.id == item_id:
                return item
        return None

    def filter(self, predicate: Callable[[T], bool]) -> list[T]:
        return [item for item in self.get_all() if predicate(item)]

    def count(self) -> int:
        return len(self.get_all())

    # ── Writes ─────────────────────────────────────────────

    def add(self, item: T | dict) -> bool:
        """Append a record. Returns False when the medium refused the write."""
        record = self._coerce(item)
        items = self.get_all()
        items.append(record)
        return self._write(items)

    def update(self, item_id: str, fields: dict[str, Any]) -> Optional[T]:
        """Shallow-merge fields into the record with this id.

        Returns the updated record, or None when no record has the id or the
        write was refused. Nothing is written for a missing id.
        """
        if "id" in fields and fields["id"] != item_id:
            raise ValidationError("id cannot be changed")
        items = self.get_all()
        for index, current in enumerate(items):
            if current.id == item_id:
                merged = {**asdict(current), **fields}
                updated = self.model.from_dict(merged)
                items[index] = updated
                return updated if self._write(items) else None
        logger.debug("update: no %s with id %s in %s", self.model.__name__, item_id, self.key)
        return None

    def delete(self, item_id: str) -> bool:
        """Remove the record with this id. False when absent or not persisted."""
        items = self.get_all()
        remaining = [item for item in items if item.id != item_id]
        if len(remaining) == len(items):
            return False
        return self._write(remaining)

    def transform(self, fn: Callable[[list[T]], Iterable[T]]) -> bool:
        """Read once, rewrite the whole collection in memory, write once."""
        items = [self._coerce(item) for item in fn(self.get_all())]
        return self._write(items)

    def replace_all(self, items: Iterable[T | dict]) -> bool:
        return self._write([self._coerce(item) for item in items])

    # ── Internals ──────────────────────────────────────────

    def _coerce(self, item: T | dict) -> T:
        data = item if isinstance(item, dict) else asdict(item)
        return self.model.from_dict(data)

    def _write(self, items: list[T]) -> bool:
        if self.max_items and len(items) > self.max_items:
            items = items[-self.max_items:]
        payload = json.dumps([asdict(item) for item in items])
        try:
            self.medium.set_item(self.key, payload)
        except StorageError as e:
            logger.warning("Write to %s refused, change not applied: %s", self.key, e)
            if self.notifier is not None:
                self.notifier(f"Could not save {self.key.replace('_', ' ')}: storage is full or unavailable.")
            return False
        return True
