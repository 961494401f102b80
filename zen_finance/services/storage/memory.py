"""
In-Memory Storage Implementation

Used by tests and by the `memory` storage backend. Values are kept as
encoded JSON strings so that anything that would fail to serialize on a
real backend fails here too, and reads hand back fresh copies.
"""

import json
from collections import deque
from typing import Any, Optional

from zen_finance.models.audit import AuditEvent
from zen_finance.services.storage.interface import (
    AuditStorageInterface,
    KeyValueStorageInterface,
    QuotaExceededError,
    SerializationError,
)


class InMemoryKeyValueStorage(KeyValueStorageInterface):
    """
    Dictionary-backed key-value storage.

    An optional quota (total encoded bytes) mimics the size limit of
    browser storage.
    """

    def __init__(self, quota_bytes: Optional[int] = None):
        self._items: dict[str, str] = {}
        self._quota_bytes = quota_bytes

    def read(self, key: str) -> Optional[Any]:
        raw = self._items.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise SerializationError(f"Corrupt value under {key}: {e}")

    def write(self, key: str, value: Any) -> bool:
        try:
            encoded = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Cannot encode value for {key}: {e}")

        if self._quota_bytes is not None:
            used = sum(
                len(v.encode("utf-8"))
                for k, v in self._items.items()
                if k != key
            )
            if used + len(encoded.encode("utf-8")) > self._quota_bytes:
                raise QuotaExceededError(
                    f"Writing {key} would exceed the {self._quota_bytes} byte quota"
                )

        self._items[key] = encoded
        return True

    def delete(self, key: str) -> bool:
        return self._items.pop(key, None) is not None

    def set_raw(self, key: str, raw: str) -> None:
        """Store an undecoded string (for simulating corrupt data)."""
        self._items[key] = raw

    def keys(self) -> list[str]:
        return list(self._items)


class InMemoryAuditStorage(AuditStorageInterface):
    """Bounded in-memory audit log."""

    def __init__(self, max_events: int = 1000):
        self._events: deque[AuditEvent] = deque(maxlen=max_events)

    def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]
