"""Tests for the storage backends."""

import pytest

from zen_finance.models import AuditEventBuilder, AuditEventType
from zen_finance.services.storage import (
    InMemoryAuditStorage,
    InMemoryKeyValueStorage,
    JsonFileKeyValueStorage,
    JsonLinesAuditStorage,
    QuotaExceededError,
    SerializationError,
    StorageError,
)


def sample_event(entity_id: str):
    return AuditEventBuilder.entity_changed(
        AuditEventType.TRANSACTION_ADDED,
        "transaction",
        entity_id,
        f"Transaction added: {entity_id}",
        details={"amount": "5.00"},
    )


class TestInMemoryKeyValueStorage:
    """Tests for the dictionary-backed store."""

    def test_read_missing_returns_none(self):
        assert InMemoryKeyValueStorage().read("zen-transactions") is None

    def test_write_then_read(self):
        storage = InMemoryKeyValueStorage()
        storage.write("zen-budgets", [{"category": "Misc", "limit": "500"}])
        assert storage.read("zen-budgets") == [{"category": "Misc", "limit": "500"}]

    def test_reads_are_copies(self):
        storage = InMemoryKeyValueStorage()
        storage.write("k", [1, 2])
        storage.read("k").append(3)
        assert storage.read("k") == [1, 2]

    def test_unencodable_value(self):
        with pytest.raises(SerializationError):
            InMemoryKeyValueStorage().write("k", {"bad": object()})

    def test_corrupt_value(self):
        storage = InMemoryKeyValueStorage()
        storage.set_raw("k", "[1, 2")
        with pytest.raises(SerializationError):
            storage.read("k")

    def test_quota_exceeded(self):
        storage = InMemoryKeyValueStorage(quota_bytes=20)
        storage.write("a", "x" * 5)
        with pytest.raises(QuotaExceededError):
            storage.write("b", "y" * 30)
        assert storage.read("b") is None

    def test_quota_counts_replaced_key_once(self):
        storage = InMemoryKeyValueStorage(quota_bytes=20)
        storage.write("a", "x" * 10)
        storage.write("a", "y" * 15)
        assert storage.read("a") == "y" * 15

    def test_delete(self):
        storage = InMemoryKeyValueStorage()
        storage.write("k", 1)
        assert storage.delete("k") is True
        assert storage.delete("k") is False


class TestJsonFileKeyValueStorage:
    """Tests for the directory-backed store."""

    def test_write_creates_file(self, tmp_path):
        storage = JsonFileKeyValueStorage(tmp_path / "data")
        storage.write("zen-incomes", [])
        assert (tmp_path / "data" / "zen-incomes.json").exists()

    def test_round_trip(self, tmp_path):
        storage = JsonFileKeyValueStorage(tmp_path)
        value = [{"description": "Café", "amount": "3.20"}]
        storage.write("zen-transactions", value)

        assert JsonFileKeyValueStorage(tmp_path).read("zen-transactions") == value

    def test_no_temp_file_left_behind(self, tmp_path):
        storage = JsonFileKeyValueStorage(tmp_path)
        storage.write("zen-budgets", [])
        assert [p.name for p in tmp_path.iterdir()] == ["zen-budgets.json"]

    def test_read_missing_returns_none(self, tmp_path):
        assert JsonFileKeyValueStorage(tmp_path).read("zen-budgets") is None

    def test_corrupt_file(self, tmp_path):
        (tmp_path / "zen-budgets.json").write_text("{oops", encoding="utf-8")
        with pytest.raises(SerializationError):
            JsonFileKeyValueStorage(tmp_path).read("zen-budgets")

    @pytest.mark.parametrize("key", ["", "../escape", "a/b", ".hidden"])
    def test_invalid_keys(self, tmp_path, key):
        with pytest.raises(StorageError):
            JsonFileKeyValueStorage(tmp_path).write(key, [])

    def test_delete(self, tmp_path):
        storage = JsonFileKeyValueStorage(tmp_path)
        storage.write("k", 1)
        assert storage.delete("k") is True
        assert storage.delete("k") is False


class TestAuditStorage:
    """Tests for both audit backends."""

    def test_in_memory_newest_first(self):
        storage = InMemoryAuditStorage()
        for name in ("a", "b", "c"):
            storage.append_event(sample_event(name))

        assert [e.entity_id for e in storage.get_recent_events(limit=2)] == ["c", "b"]

    def test_in_memory_bounded(self):
        storage = InMemoryAuditStorage(max_events=2)
        for name in ("a", "b", "c"):
            storage.append_event(sample_event(name))

        assert [e.entity_id for e in storage.get_recent_events()] == ["c", "b"]

    def test_json_lines_append_and_read(self, tmp_path):
        storage = JsonLinesAuditStorage(tmp_path / "logs" / "audit.jsonl")
        for name in ("a", "b"):
            storage.append_event(sample_event(name))

        events = storage.get_recent_events()
        assert [e.entity_id for e in events] == ["b", "a"]
        assert events[0].event_type == AuditEventType.TRANSACTION_ADDED
        assert events[0].details == {"amount": "5.00"}

    def test_json_lines_missing_file(self, tmp_path):
        assert JsonLinesAuditStorage(tmp_path / "audit.jsonl").get_recent_events() == []
