"""
Audit Logger

DESIGN DECISION: Every change to the ledger is logged.
This provides:
1. Traceability of automatic actions (recurring bills logged on load)
2. Debugging capability when a total looks wrong
3. Visibility into storage failures that the user never sees

The audit logger:
- Is synchronous, like the engine mutations that call it
- Gracefully handles failures (doesn't crash the app if logging fails)
"""

from typing import Optional

import structlog

from zen_finance.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from zen_finance.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def get_logger(name: Optional[str] = None):
    """Module-level structured logger."""
    return structlog.get_logger(name)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage, when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("zen_finance.audit")

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def log_change(
        self,
        event_type: AuditEventType,
        entity_type: str,
        entity_id: str,
        description: str,
        details: Optional[dict] = None,
    ) -> None:
        """Log a user-driven change to an entity."""
        self.log(AuditEventBuilder.entity_changed(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            description=description,
            details=details,
        ))

    def log_category_deleted(
        self,
        category: str,
        removed_transactions: int,
        removed_payments: int,
    ) -> None:
        self.log(AuditEventBuilder.category_deleted(
            category=category,
            removed_transactions=removed_transactions,
            removed_payments=removed_payments,
        ))

    def log_category_renamed(self, old: str, new: str, touched: int) -> None:
        self.log(AuditEventBuilder.category_renamed(old, new, touched))

    def log_recurring_payment_logged(
        self,
        payment_id: str,
        transaction_id: str,
        description: str,
        amount: str,
    ) -> None:
        """Log automatic materialization of a recurring payment."""
        self.log(AuditEventBuilder.recurring_payment_logged(
            payment_id=payment_id,
            transaction_id=transaction_id,
            description=description,
            amount=amount,
        ))

    def log_validation_failed(
        self,
        entity_type: str,
        issues: list[dict],
    ) -> None:
        self.log(AuditEventBuilder.validation_failed(entity_type, issues))

    def log_ai_failure(
        self,
        agent: str,
        error_message: str,
        parse_failure: bool = False,
    ) -> None:
        """Log an AI call that produced nothing usable."""
        event_type = (
            AuditEventType.AI_PARSE_FAILED
            if parse_failure
            else AuditEventType.AI_REQUEST_FAILED
        )
        self.log(AuditEventBuilder.ai_failed(event_type, agent, error_message))

    def log_storage_failure(
        self,
        key: str,
        error_message: str,
        on_write: bool = True,
    ) -> None:
        event_type = (
            AuditEventType.STORAGE_WRITE_FAILED
            if on_write
            else AuditEventType.STORAGE_READ_FAILED
        )
        self.log(AuditEventBuilder.storage_failed(event_type, key, error_message))
