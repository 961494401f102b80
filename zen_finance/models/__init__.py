"""
Data Models Package

This package contains all Pydantic models used in Zen Finance.
All data owned by the engine must conform to these schemas.
"""

from zen_finance.models.finance import (
    BUILTIN_CATEGORY_ICONS,
    DEFAULT_ICON,
    Budget,
    BudgetProgress,
    BuiltinCategory,
    DailySpending,
    FinanceSnapshot,
    IconName,
    Income,
    IncomeFrequency,
    RecurringPayment,
    RecurringPaymentLogged,
    RecurringPaymentState,
    Transaction,
    UpcomingPayment,
    ValidationIssue,
    ValidationResult,
    default_budgets,
    new_entity_id,
)
from zen_finance.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Finance models
    "BUILTIN_CATEGORY_ICONS",
    "DEFAULT_ICON",
    "Budget",
    "BudgetProgress",
    "BuiltinCategory",
    "DailySpending",
    "FinanceSnapshot",
    "IconName",
    "Income",
    "IncomeFrequency",
    "RecurringPayment",
    "RecurringPaymentLogged",
    "RecurringPaymentState",
    "Transaction",
    "UpcomingPayment",
    "ValidationIssue",
    "ValidationResult",
    "default_budgets",
    "new_entity_id",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
