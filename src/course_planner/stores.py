from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from functools import lru_cache
from threading import RLock
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .errors import ConditionalWriteFailed
from .models import RecordDict
from .settings import get_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ListQuery:
    """
    Query parameters for listing records of one model.
    """
    limit: int = 50
    offset: int = 0
    filters: Mapping[str, Any] = field(default_factory=dict)  # equality match on stored fields
    sort: str = "created_at"  # allowed: created_at, -created_at


def _sort_direction(sort: Optional[str]) -> bool:
    """Return True for descending order; anything unrecognized sorts ascending."""
    return (sort or "").strip().lower() == "-created_at"


# PUBLIC_INTERFACE
class RecordStore(ABC):
    """Abstract key-value contract for record storage backends.

    Records are grouped by table (the schema model name) and keyed by their
    "id" field.
    """

    @abstractmethod
    def put_if_absent(self, table: str, item: RecordDict) -> None:
        """
        Store item under item["id"] only if no record with that id exists.

        Raises:
            ConditionalWriteFailed: the id is already taken.
            StoreUnavailableError: the backend could not be reached.
            StoreError: any other backend fault.
        """

    @abstractmethod
    def get(self, table: str, record_id: str) -> Optional[RecordDict]:
        """Return a record by id, or None if not found."""

    @abstractmethod
    def list(self, table: str, query: Optional[ListQuery] = None) -> Tuple[List[RecordDict], int]:
        """
        Return a slice of records and the total count matching the filters.
        - Equality filters on stored fields
        - Sorting by created_at (asc/desc)
        - limit/offset pagination
        """


class InMemoryStore(RecordStore):
    """
    Thread-safe in-memory store suitable for testing and default runtime.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._tables: Dict[str, Dict[str, RecordDict]] = {}

    def put_if_absent(self, table: str, item: RecordDict) -> None:
        record_id = item["id"]
        with self._lock:
            rows = self._tables.setdefault(table, {})
            if record_id in rows:
                raise ConditionalWriteFailed(table, record_id)
            rows[record_id] = dict(item)

    def get(self, table: str, record_id: str) -> Optional[RecordDict]:
        with self._lock:
            item = self._tables.get(table, {}).get(record_id)
            return None if item is None else dict(item)

    def list(self, table: str, query: Optional[ListQuery] = None) -> Tuple[List[RecordDict], int]:
        q = query or ListQuery()
        with self._lock:
            items = [
                t for t in self._tables.get(table, {}).values()
                if all(t.get(k) == v for k, v in q.filters.items())
            ]
            total = len(items)

            items_sorted = sorted(
                items,
                key=lambda t: (t.get("created_at") or "", t["id"]),
                reverse=_sort_direction(q.sort),
            )

            start = max(q.offset, 0)
            end = start + max(q.limit, 0)
            # Return copies to avoid external mutation
            return [dict(t) for t in items_sorted[start:end]], total


@lru_cache(maxsize=None)
def _store_for(backend: str, sqlite_path: str) -> RecordStore:
    if backend == "sqlite":
        from .db import SQLiteStore

        logger.info("Using SQLite record store at %s", sqlite_path)
        return SQLiteStore(sqlite_path)
    logger.info("Using in-memory record store")
    return InMemoryStore()


# PUBLIC_INTERFACE
def get_store() -> RecordStore:
    """
    Return the process-wide store for the configured backend.
    - memory: InMemoryStore
    - sqlite: SQLiteStore
    """
    settings = get_settings()
    return _store_for(settings.persistence_backend, settings.sqlite_db_path)
