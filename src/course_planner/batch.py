"""Bulk record creation.

`BulkCreator.create_batch` writes a list of new records concurrently, each
under a create-if-absent condition, and reports which items were created and
which failed. A failing item never blocks or rolls back the others; only the
up-front checks (batch size, caller identity) and a store that is unreachable
for every item fail the call as a whole.
"""

from __future__ import annotations

import logging
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence

from .errors import (
    BatchTooLarge,
    ConditionalWriteFailed,
    InfrastructureError,
    ItemConflict,
    ItemError,
    ItemWriteError,
    StoreError,
    StoreUnavailableError,
)
from .identity import Identity, IdentityPolicy
from .models import TodoEntity
from .schemas import TodoCreate
from .stores import RecordStore

logger = logging.getLogger(__name__)


def utc_timestamp() -> str:
    """Current UTC time as ISO8601 with millisecond precision and a 'Z' suffix."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def new_record_id() -> str:
    return str(uuid.uuid4())


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class ItemFailure:
    """One item that was not created, correlated by its position in the input."""

    original_index: int
    error: ItemError

    @property
    def error_description(self) -> str:
        return self.error.description


# PUBLIC_INTERFACE
@dataclass
class BatchResult:
    """
    Outcome of one batch call.

    Invariant: len(created_records) + len(failures) equals the number of requests.
    """

    created_records: List[TodoEntity] = field(default_factory=list)
    failures: List[ItemFailure] = field(default_factory=list)

    @property
    def failed_count(self) -> int:
        return len(self.failures)


# PUBLIC_INTERFACE
class BulkCreator:
    """
    Creates many records in one call with per-item failure isolation.

    Args:
        store: key-value store providing put_if_absent.
        table: model name the records are written under.
        policy: identity rule deciding whether the caller may write and who owns the records.
        max_items: largest accepted batch.
        max_workers: upper bound on concurrently outstanding writes.
        id_factory: produces a fresh identifier per item.
        clock: produces the shared creation timestamp for a batch.
    """

    def __init__(
        self,
        store: RecordStore,
        *,
        table: str = "Todo",
        policy: Optional[IdentityPolicy] = None,
        max_items: int = 100,
        max_workers: int = 8,
        id_factory: Callable[[], str] = new_record_id,
        clock: Callable[[], str] = utc_timestamp,
    ) -> None:
        self._store = store
        self._table = table
        self._policy = policy or IdentityPolicy()
        self._max_items = max_items
        self._max_workers = max(1, max_workers)
        self._id_factory = id_factory
        self._clock = clock

    def create_batch(self, requests: Sequence[TodoCreate], identity: Optional[Identity]) -> BatchResult:
        """
        Create one record per request.

        Returns:
            BatchResult with created records in input order and one ItemFailure
            per item that could not be written.

        Raises:
            BatchTooLarge: more than max_items requests; nothing is written.
            AuthenticationRequired: the caller may not write; nothing is written.
            InfrastructureError: the store was unreachable for every item.
        """
        if not requests:
            logger.info("No %s records provided in input", self._table)
            return BatchResult()

        if len(requests) > self._max_items:
            raise BatchTooLarge(len(requests), self._max_items)

        owner = self._policy.resolve_owner(identity)

        now = self._clock()
        records = [self._build_record(request, owner, now) for request in requests]
        logger.info("Creating %d %s records (owner=%s)", len(records), self._table, owner)

        workers = min(len(records), self._max_workers)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="batch-put") as pool:
            futures: List[Future] = [
                pool.submit(self._store.put_if_absent, self._table, record) for record in records
            ]
        # Leaving the executor block joins every write.

        result = BatchResult()
        unavailable = 0
        for index, (record, future) in enumerate(zip(records, futures)):
            error = self._classify(future.exception(), record)
            if error is None:
                result.created_records.append(record)
                continue
            if isinstance(error.__cause__, StoreUnavailableError):
                unavailable += 1
            logger.warning("Failed to put %s item at index %d: %s", self._table, index, error.description)
            result.failures.append(ItemFailure(original_index=index, error=error))

        if unavailable == len(records):
            logger.error("Record store unreachable for all %d items", len(records))
            raise InfrastructureError(f"record store unreachable for all {len(records)} writes")

        logger.info(
            "Batch create finished: %d created, %d failed",
            len(result.created_records),
            result.failed_count,
        )
        return result

    def _build_record(self, request: TodoCreate, owner: Optional[str], now: str) -> TodoEntity:
        return {
            "id": self._id_factory(),
            "title": request.title,
            "content": request.content or None,
            "owner": owner,
            "created_at": now,
            "updated_at": now,
        }

    @staticmethod
    def _classify(exc: Optional[BaseException], record: TodoEntity) -> Optional[ItemError]:
        if exc is None:
            return None
        if isinstance(exc, ConditionalWriteFailed):
            error: ItemError = ItemConflict(record["id"])
        elif isinstance(exc, StoreError):
            error = ItemWriteError(str(exc) or type(exc).__name__)
        else:
            raise exc
        error.__cause__ = exc
        return error
