"""Entity store adapters.

An entity store holds one collection of plain JSON-compatible records keyed by
their "id" field. Repositories receive store handles explicitly; nothing here
is a process-wide singleton.

Absent records are reported with None / False / [], never with an exception.
StoreError is reserved for the backend itself failing (I/O, corrupt data).
"""

from __future__ import annotations

import copy
import json
import logging
import os
import uuid
from pathlib import Path
from typing import Any, Iterable, Protocol

log = logging.getLogger(__name__)

Record = dict[str, Any]


class StoreError(Exception):
    """Raised when the storage backend fails (I/O, serialization)."""

    pass


def generate_id() -> str:
    """Return a new globally unique entity id."""
    return uuid.uuid4().hex


class EntityStore(Protocol):
    """Async CRUD over a single collection of records."""

    async def create(self, record: Record) -> Record: ...

    async def find_by_id(self, entity_id: str) -> Record | None: ...

    async def update(self, entity_id: str, changes: Record) -> Record | None: ...

    async def delete(self, entity_id: str) -> bool: ...

    async def delete_many(self, entity_ids: Iterable[str]) -> int: ...

    async def find_all(self) -> list[Record]: ...

    async def find_by_field(self, name: str, value: Any) -> list[Record]: ...


def _require_id(record: Record) -> str:
    entity_id = record.get("id")
    if not isinstance(entity_id, str) or not entity_id:
        raise ValueError("Record must carry a non-empty string 'id'")
    return entity_id


class MemoryStore:
    """Dict-backed store. Records keep insertion order.

    Records are deep-copied on the way in and out so callers never share
    mutable state with the store.
    """

    def __init__(self, collection: str = "default"):
        self.collection = collection
        self._records: dict[str, Record] = {}

    async def create(self, record: Record) -> Record:
        entity_id = _require_id(record)
        if entity_id in self._records:
            raise ValueError(f"Duplicate id in {self.collection}: {entity_id}")
        self._records[entity_id] = copy.deepcopy(record)
        return copy.deepcopy(record)

    async def find_by_id(self, entity_id: str) -> Record | None:
        record = self._records.get(entity_id)
        return copy.deepcopy(record) if record is not None else None

    async def update(self, entity_id: str, changes: Record) -> Record | None:
        existing = self._records.get(entity_id)
        if existing is None:
            return None
        merged = {**existing, **copy.deepcopy(changes), "id": entity_id}
        self._records[entity_id] = merged
        return copy.deepcopy(merged)

    async def delete(self, entity_id: str) -> bool:
        return self._records.pop(entity_id, None) is not None

    async def delete_many(self, entity_ids: Iterable[str]) -> int:
        removed = 0
        for entity_id in entity_ids:
            if self._records.pop(entity_id, None) is not None:
                removed += 1
        return removed

    async def find_all(self) -> list[Record]:
        return [copy.deepcopy(r) for r in self._records.values()]

    async def find_by_field(self, name: str, value: Any) -> list[Record]:
        return [copy.deepcopy(r) for r in self._records.values() if r.get(name) == value]


class JsonFileStore:
    """Store one collection as a JSON file under a root directory.

    The whole collection is read on every call and rewritten after every
    mutation with an atomic temp-file + rename, so several processes pointed at
    the same root see each other's writes (last writer wins).
    """

    def __init__(self, root: Path, collection: str):
        self.root = Path(root)
        self.collection = collection
        self.path = self.root / f"{collection}.json"

    def _load(self) -> dict[str, Record]:
        if not self.path.exists():
            return {}
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise StoreError(f"Failed to read {self.path}: {e}") from e

        records = payload.get("records") if isinstance(payload, dict) else None
        if not isinstance(records, list):
            raise StoreError(f"Malformed collection file: {self.path}")
        if not all(isinstance(r, dict) and isinstance(r.get("id"), str) for r in records):
            raise StoreError(f"Malformed collection file: {self.path}")
        return {record["id"]: record for record in records}

    def _save(self, records: dict[str, Record]) -> None:
        payload = {"collection": self.collection, "records": list(records.values())}
        temp_path = self.path.with_suffix(".json.tmp")
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            temp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
            os.replace(temp_path, self.path)
        except (OSError, TypeError, ValueError) as e:
            if temp_path.exists():
                temp_path.unlink()
            raise StoreError(f"Failed to write {self.path}: {e}") from e
        log.debug("Saved %d records to %s", len(records), self.path)

    async def create(self, record: Record) -> Record:
        entity_id = _require_id(record)
        records = self._load()
        if entity_id in records:
            raise ValueError(f"Duplicate id in {self.collection}: {entity_id}")
        records[entity_id] = dict(record)
        self._save(records)
        return dict(record)

    async def find_by_id(self, entity_id: str) -> Record | None:
        return self._load().get(entity_id)

    async def update(self, entity_id: str, changes: Record) -> Record | None:
        records = self._load()
        existing = records.get(entity_id)
        if existing is None:
            return None
        merged = {**existing, **changes, "id": entity_id}
        records[entity_id] = merged
        self._save(records)
        return merged

    async def delete(self, entity_id: str) -> bool:
        return await self.delete_many([entity_id]) == 1

    async def delete_many(self, entity_ids: Iterable[str]) -> int:
        records = self._load()
        removed = 0
        for entity_id in entity_ids:
            if records.pop(entity_id, None) is not None:
                removed += 1
        if removed:
            self._save(records)
        return removed

    async def find_all(self) -> list[Record]:
        return list(self._load().values())

    async def find_by_field(self, name: str, value: Any) -> list[Record]:
        return [r for r in self._load().values() if r.get(name) == value]


def open_store(collection: str, root: Path | None = None) -> EntityStore:
    """Open a file-backed store under root, or an in-memory one when root is None."""
    if root is None:
        return MemoryStore(collection)
    return JsonFileStore(root, collection)
