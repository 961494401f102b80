"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
JSON files on disk are the default backend; an in-memory backend is used
for tests.
"""

from zen_finance.services.storage.interface import (
    BUDGETS_KEY,
    ENGINE_KEYS,
    INCOMES_KEY,
    RECURRING_PAYMENTS_KEY,
    TRANSACTIONS_KEY,
    AuditStorageInterface,
    KeyValueStorageInterface,
    QuotaExceededError,
    SerializationError,
    StorageConnectionError,
    StorageError,
)
from zen_finance.services.storage.json_file import (
    JsonFileKeyValueStorage,
    JsonLinesAuditStorage,
)
from zen_finance.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryKeyValueStorage,
)

__all__ = [
    # Keys
    "BUDGETS_KEY",
    "ENGINE_KEYS",
    "INCOMES_KEY",
    "RECURRING_PAYMENTS_KEY",
    "TRANSACTIONS_KEY",
    # Interfaces
    "AuditStorageInterface",
    "KeyValueStorageInterface",
    # Exceptions
    "QuotaExceededError",
    "SerializationError",
    "StorageConnectionError",
    "StorageError",
    # Implementations
    "InMemoryAuditStorage",
    "InMemoryKeyValueStorage",
    "JsonFileKeyValueStorage",
    "JsonLinesAuditStorage",
]
