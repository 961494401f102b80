"""Validation package."""

from zen_finance.validation.validator import FinanceValidator

__all__ = ["FinanceValidator"]
