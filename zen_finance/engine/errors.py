"""Exceptions raised by the finance engine."""

from zen_finance.models.finance import ValidationResult


class FinanceEngineError(Exception):
    """Base exception for engine operations."""
    pass


class ValidationFailedError(FinanceEngineError):
    """A mutation was rejected before any state changed."""

    def __init__(self, result: ValidationResult):
        self.result = result
        messages = "; ".join(
            issue.message for issue in result.issues if issue.severity == "error"
        )
        super().__init__(f"Invalid {result.entity_type}: {messages}")


class EntityNotFoundError(FinanceEngineError):
    """No entity with the given id (or category name) exists."""

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found: {entity_id}")


class DuplicateCategoryError(ValidationFailedError):
    """A category with that name already exists."""
    pass
