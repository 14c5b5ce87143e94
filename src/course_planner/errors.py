"""Exception types shared by the store, the bulk creator and the HTTP layer."""

from __future__ import annotations


class StoreError(Exception):
    """Any fault reported by a record store."""


class ConditionalWriteFailed(StoreError):
    """A create-if-absent write found the key already present."""

    def __init__(self, table: str, record_id: str) -> None:
        super().__init__(f"{table} record '{record_id}' already exists")
        self.table = table
        self.record_id = record_id


class StoreUnavailableError(StoreError):
    """The store could not be reached at all."""


class AuthenticationRequired(Exception):
    """The caller has no usable identity for the requested operation."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message)


class BatchTooLarge(ValueError):
    def __init__(self, size: int, limit: int) -> None:
        super().__init__(f"batch of {size} items exceeds the limit of {limit}")
        self.size = size
        self.limit = limit


class InfrastructureError(Exception):
    """Every write of a batch failed because the store was unreachable."""


class UnknownModel(KeyError):
    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"unknown model '{self.name}'"


class ItemError(Exception):
    """Base class for failures recorded against a single batch item."""

    @property
    def description(self) -> str:
        return str(self)


class ItemConflict(ItemError):
    """The generated identifier already exists in the store."""

    def __init__(self, record_id: str) -> None:
        super().__init__(f"record '{record_id}' already exists")
        self.record_id = record_id


class ItemWriteError(ItemError):
    """Any other store fault for a single item (throttling, validation, outage)."""
