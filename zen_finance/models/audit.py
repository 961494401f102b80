"""
Audit Models for Zen Finance

Every change to the ledger is logged for audit purposes.
This provides:
1. Traceability of who/what changed a number
2. Debugging information when totals look wrong
3. A record of automatic actions (recurring bills logged on load)

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Transactions
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"

    # Categories and budgets
    CATEGORY_ADDED = "category_added"
    CATEGORY_UPDATED = "category_updated"
    CATEGORY_RENAMED = "category_renamed"
    CATEGORY_DELETED = "category_deleted"
    BUDGET_LIMIT_UPDATED = "budget_limit_updated"
    BUDGETS_REPLACED = "budgets_replaced"

    # Recurring payments
    RECURRING_PAYMENT_ADDED = "recurring_payment_added"
    RECURRING_PAYMENT_UPDATED = "recurring_payment_updated"
    RECURRING_PAYMENT_DELETED = "recurring_payment_deleted"
    RECURRING_PAYMENT_LOGGED = "recurring_payment_logged"

    # Income
    INCOME_ADDED = "income_added"
    INCOME_UPDATED = "income_updated"
    INCOME_DELETED = "income_deleted"

    # Lifecycle
    DATA_LOADED = "data_loaded"
    DATA_RESET = "data_reset"

    # Failures
    VALIDATION_FAILED = "validation_failed"
    AI_PARSE_FAILED = "ai_parse_failed"
    AI_REQUEST_FAILED = "ai_request_failed"
    STORAGE_READ_FAILED = "storage_read_failed"
    STORAGE_WRITE_FAILED = "storage_write_failed"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.now,
        description="When the event occurred (local time)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'budget')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID (or category name) of the entity"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_storage(self) -> dict:
        """JSON-safe form for key-value storage."""
        record = self.to_log_dict()
        record["details"] = json.loads(json.dumps(self.details, default=str))
        return record


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.entity_changed(AuditEventType.TRANSACTION_ADDED, "transaction", tx.id, "...")
        event = AuditEventBuilder.recurring_payment_logged(payment.id, tx_id, payment.description, payment.amount)
    """

    @staticmethod
    def entity_changed(
        event_type: AuditEventType,
        entity_type: str,
        entity_id: str,
        description: str,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            description=description,
            details=details or {},
            is_user_action=True,
        )

    @staticmethod
    def category_deleted(
        category: str,
        removed_transactions: int,
        removed_payments: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_DELETED,
            entity_type="budget",
            entity_id=category,
            description=f"Category deleted: {category}",
            details={
                "removed_transactions": removed_transactions,
                "removed_recurring_payments": removed_payments,
            },
            is_user_action=True,
        )

    @staticmethod
    def category_renamed(old: str, new: str, touched: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_RENAMED,
            entity_type="budget",
            entity_id=new,
            description=f"Category renamed: {old} -> {new}",
            details={
                "old_name": old,
                "new_name": new,
                "records_updated": touched,
            },
            is_user_action=True,
        )

    @staticmethod
    def recurring_payment_logged(
        payment_id: str,
        transaction_id: str,
        description: str,
        amount: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECURRING_PAYMENT_LOGGED,
            entity_type="recurring_payment",
            entity_id=payment_id,
            description=f"Recurring payment logged: {description} - ${amount}",
            details={
                "transaction_id": transaction_id,
                "amount": amount,
            },
        )

    @staticmethod
    def validation_failed(
        entity_type: str,
        issues: list[dict],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            description=f"Rejected {entity_type} with {len(issues)} issues",
            details={"issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def ai_failed(
        event_type: AuditEventType,
        agent: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            severity=AuditSeverity.WARNING,
            description=f"AI call failed: {agent}",
            error_message=error_message,
            details={"agent": agent},
        )

    @staticmethod
    def storage_failed(
        event_type: AuditEventType,
        key: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            severity=AuditSeverity.ERROR,
            entity_type="storage_key",
            entity_id=key,
            description=f"Storage failure on key: {key}",
            error_message=error_message,
        )
