"""Audit logging package."""

from zen_finance.audit.logger import AuditLogger, get_logger

__all__ = ["AuditLogger", "get_logger"]
