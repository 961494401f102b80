"""
JSON File Storage Implementation

DESIGN DECISION: Each key is stored as its own JSON document in a data
directory, mirroring how browser local storage keeps one string per key:
1. Users can open and back up their data with any text editor
2. No database setup required
3. A corrupt key only loses that collection, not the whole ledger

Writes go to a temporary file first and are moved into place, so a crash
mid-write never leaves half a document behind.
"""

import errno
import json
import os
from pathlib import Path
from typing import Any, Optional

from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from zen_finance.models.audit import AuditEvent
from zen_finance.services.storage.interface import (
    AuditStorageInterface,
    KeyValueStorageInterface,
    QuotaExceededError,
    SerializationError,
    StorageConnectionError,
    StorageError,
)


_OUT_OF_SPACE = {errno.ENOSPC, getattr(errno, "EDQUOT", errno.ENOSPC)}


def _is_transient(exc: BaseException) -> bool:
    """Retry OS errors except running out of space."""
    return isinstance(exc, OSError) and exc.errno not in _OUT_OF_SPACE


class JsonFileKeyValueStorage(KeyValueStorageInterface):
    """
    Directory-backed key-value storage.

    `zen-transactions` is stored as `<data_dir>/zen-transactions.json`.
    """

    def __init__(self, data_dir: str | os.PathLike):
        self._data_dir = Path(data_dir)
        try:
            self._data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageConnectionError(
                f"Cannot create data directory {self._data_dir}: {e}"
            )

    def _path_for(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key.startswith("."):
            raise StorageError(f"Invalid storage key: {key!r}")
        return self._data_dir / f"{key}.json"

    def read(self, key: str) -> Optional[Any]:
        path = self._path_for(key)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Failed to read {key}: {e}")

        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise SerializationError(f"Corrupt JSON in {path}: {e}")

    def write(self, key: str, value: Any) -> bool:
        path = self._path_for(key)
        try:
            encoded = json.dumps(value, indent=2, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Cannot encode value for {key}: {e}")

        try:
            self._replace_file(path, encoded)
        except OSError as e:
            if e.errno in _OUT_OF_SPACE:
                raise QuotaExceededError(f"No space left writing {key}: {e}")
            raise StorageError(f"Failed to write {key}: {e}")
        return True

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
        retry=retry_if_exception(_is_transient),
        reraise=True,
    )
    def _replace_file(self, path: Path, encoded: str) -> None:
        tmp_path = path.with_suffix(".json.tmp")
        with open(tmp_path, "w", encoding="utf-8") as handle:
            handle.write(encoded)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)

    def delete(self, key: str) -> bool:
        path = self._path_for(key)
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f"Failed to delete {key}: {e}")


class JsonLinesAuditStorage(AuditStorageInterface):
    """Append-only audit log, one JSON object per line."""

    def __init__(self, path: str | os.PathLike):
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def append_event(self, event: AuditEvent) -> bool:
        line = json.dumps(event.to_storage(), ensure_ascii=False)
        try:
            with open(self._path, "a", encoding="utf-8") as handle:
                handle.write(line + "\n")
        except OSError as e:
            raise StorageError(f"Failed to append audit event: {e}")
        return True

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        try:
            lines = self._path.read_text(encoding="utf-8").splitlines()
        except FileNotFoundError:
            return []

        events = []
        for line in reversed(lines):
            if len(events) >= limit:
                break
            if not line.strip():
                continue
            try:
                events.append(AuditEvent.model_validate_json(line))
            except ValueError:
                continue  # Skip malformed lines
        return events
