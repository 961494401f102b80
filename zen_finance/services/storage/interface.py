"""
Abstract Storage Interface

DESIGN DECISION: The engine only needs a durable key-value store
(the same shape as browser local storage). Defining it as an interface
allows us to:
1. Keep JSON files on disk for the desktop app
2. Use in-memory storage for testing
3. Swap in a real database later without touching the engine

Each key holds one JSON document (a list of records). Writes are
synchronous and considered durable once they return.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from zen_finance.models.audit import AuditEvent


# Keys used by the finance engine (before prefixing)
TRANSACTIONS_KEY = "transactions"
BUDGETS_KEY = "budgets"
RECURRING_PAYMENTS_KEY = "recurring-payments"
INCOMES_KEY = "incomes"

ENGINE_KEYS = (
    TRANSACTIONS_KEY,
    BUDGETS_KEY,
    RECURRING_PAYMENTS_KEY,
    INCOMES_KEY,
)


class KeyValueStorageInterface(ABC):
    """
    Abstract interface for key-value JSON storage.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    def read(self, key: str) -> Optional[Any]:
        """
        Read the JSON value stored under a key.

        Args:
            key: Storage key

        Returns:
            The decoded JSON value, or None if the key is absent

        Raises:
            SerializationError: If the stored value is not valid JSON
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    def write(self, key: str, value: Any) -> bool:
        """
        Store a JSON-serializable value under a key.

        Args:
            key: Storage key
            value: JSON-serializable value (replaces any previous value)

        Returns:
            True if written successfully

        Raises:
            SerializationError: If the value cannot be encoded as JSON
            QuotaExceededError: If the backend is out of space
            StorageError: For any other write failure
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """
        Remove a key.

        Returns:
            True if the key existed
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class SerializationError(StorageError):
    """Value could not be encoded to or decoded from JSON."""
    pass


class QuotaExceededError(StorageError):
    """Backend ran out of space."""
    pass


class StorageConnectionError(StorageError):
    """Could not reach the storage backend."""
    pass
