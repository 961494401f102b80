"""Services package."""

from zen_finance.services.storage import (
    AuditStorageInterface,
    InMemoryAuditStorage,
    InMemoryKeyValueStorage,
    JsonFileKeyValueStorage,
    JsonLinesAuditStorage,
    KeyValueStorageInterface,
    QuotaExceededError,
    SerializationError,
    StorageConnectionError,
    StorageError,
)

__all__ = [
    "AuditStorageInterface",
    "InMemoryAuditStorage",
    "InMemoryKeyValueStorage",
    "JsonFileKeyValueStorage",
    "JsonLinesAuditStorage",
    "KeyValueStorageInterface",
    "QuotaExceededError",
    "SerializationError",
    "StorageConnectionError",
    "StorageError",
]
