"""
Finance Engine Package

The stateful store plus the pure helpers it is built from.
"""

from zen_finance.engine.errors import (
    DuplicateCategoryError,
    EntityNotFoundError,
    FinanceEngineError,
    ValidationFailedError,
)
from zen_finance.engine.store import FinanceStore

__all__ = [
    "DuplicateCategoryError",
    "EntityNotFoundError",
    "FinanceEngineError",
    "FinanceStore",
    "ValidationFailedError",
]
