"""Shared fixtures: in-memory storage, a fixed clock and a loaded store."""

from datetime import datetime, timedelta

import pytest

from zen_finance.audit import AuditLogger
from zen_finance.config import AppSettings
from zen_finance.engine import FinanceStore
from zen_finance.services.storage import InMemoryAuditStorage, InMemoryKeyValueStorage
from zen_finance.validation import FinanceValidator


class FixedClock:
    """A clock tests can move by hand."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, now: datetime) -> None:
        self.now = now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock():
    return FixedClock(datetime(2026, 10, 20, 9, 0))


@pytest.fixture
def storage():
    return InMemoryKeyValueStorage()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def validator():
    return FinanceValidator(AppSettings())


@pytest.fixture
def make_store(storage, audit_storage, validator, clock):
    """Build a store over the shared storage (call again to simulate a reload)."""

    def _make(backend=None):
        return FinanceStore(
            storage=backend or storage,
            audit_logger=AuditLogger(audit_storage),
            validator=validator,
            clock=clock,
        )

    return _make


@pytest.fixture
def store(make_store):
    finance_store = make_store()
    finance_store.load()
    return finance_store
