"""
Mutation Validation

DESIGN DECISION: Every mutation request is checked against the current
ledger BEFORE any state changes:
- Required fields present (description, category)
- Amounts strictly positive
- Categories refer to an existing budget
- Icons are tokens the front end can draw
- Day of month and income frequency within range

Pydantic models catch malformed values on their own, but they cannot know
which categories exist. This validator can, and it reports every problem
at once instead of stopping at the first one.

IMPORTANT: Validation NEVER silently fixes issues.
It reports them; the engine refuses the mutation.
"""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Optional

from zen_finance.config import AppSettings, get_settings
from zen_finance.models.finance import (
    IconName,
    IncomeFrequency,
    ValidationIssue,
    ValidationResult,
)


# Months shorter than this never contain the day
_SHORTEST_MONTH = 28


class FinanceValidator:
    """Validates mutation inputs for every entity the engine owns."""

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    # ------------------------------------------------------------------
    # Field checks
    # ------------------------------------------------------------------

    def _check_amount(
        self,
        issues: list[ValidationIssue],
        amount: Any,
        field: str = "amount",
    ) -> None:
        if amount is None:
            issues.append(ValidationIssue(
                field=field,
                issue_type="missing",
                message="Amount is required",
                severity="error",
            ))
            return

        if isinstance(amount, bool):
            value = None
        else:
            try:
                value = Decimal(str(amount))
            except (InvalidOperation, ValueError):
                value = None

        if value is None or not value.is_finite():
            issues.append(ValidationIssue(
                field=field,
                issue_type="invalid_value",
                message=f"Amount is not a number: {amount!r}",
                severity="error",
            ))
            return

        if value <= 0:
            issues.append(ValidationIssue(
                field=field,
                issue_type="invalid_value",
                message="Amount must be greater than zero",
                severity="error",
                suggested_fix="Enter a positive amount",
            ))
        elif value > self._settings.max_transaction_amount:
            issues.append(ValidationIssue(
                field=field,
                issue_type="suspicious_value",
                message=f"Amount ({value:,.2f}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

    def _check_description(
        self,
        issues: list[ValidationIssue],
        description: Any,
    ) -> None:
        if description is None or not str(description).strip():
            issues.append(ValidationIssue(
                field="description",
                issue_type="missing",
                message="Description is required",
                severity="error",
            ))
        elif len(str(description).strip()) > self._settings.max_description_length:
            issues.append(ValidationIssue(
                field="description",
                issue_type="invalid_value",
                message=(
                    f"Description is longer than "
                    f"{self._settings.max_description_length} characters"
                ),
                severity="error",
            ))

    def _check_category(
        self,
        issues: list[ValidationIssue],
        category: Any,
        known_categories: Iterable[str],
    ) -> None:
        if category is None or not str(category).strip():
            issues.append(ValidationIssue(
                field="category",
                issue_type="missing",
                message="Category is required",
                severity="error",
            ))
            return

        if str(category).strip() not in set(known_categories):
            issues.append(ValidationIssue(
                field="category",
                issue_type="unknown_category",
                message=f"Category does not exist: {category}",
                severity="error",
                suggested_fix="Create the category first or pick an existing one",
            ))

    def _check_icon(self, issues: list[ValidationIssue], icon: Any) -> None:
        if icon is not None and not IconName.is_known(icon):
            issues.append(ValidationIssue(
                field="icon",
                issue_type="invalid_value",
                message=f"Unknown icon: {icon}",
                severity="error",
            ))

    def _check_category_name(
        self,
        issues: list[ValidationIssue],
        name: Any,
        existing: Iterable[str],
    ) -> None:
        if name is None or not str(name).strip():
            issues.append(ValidationIssue(
                field="category",
                issue_type="missing",
                message="Category name is required",
                severity="error",
            ))
            return
        if len(str(name).strip()) > 50:
            issues.append(ValidationIssue(
                field="category",
                issue_type="invalid_value",
                message="Category name is longer than 50 characters",
                severity="error",
            ))
        if str(name).strip() in set(existing):
            issues.append(ValidationIssue(
                field="category",
                issue_type="duplicate",
                message=f"Category already exists: {name}",
                severity="error",
            ))

    @staticmethod
    def _check_datetime(
        issues: list[ValidationIssue],
        value: Any,
        field: str,
        required: bool,
    ) -> None:
        if value is None:
            if required:
                issues.append(ValidationIssue(
                    field=field,
                    issue_type="missing",
                    message=f"{field} is required",
                    severity="error",
                ))
            return
        if not isinstance(value, (date, datetime)):
            issues.append(ValidationIssue(
                field=field,
                issue_type="invalid_value",
                message=f"{field} must be a date or datetime",
                severity="error",
            ))

    # ------------------------------------------------------------------
    # Entity checks
    # ------------------------------------------------------------------

    def validate_transaction(
        self,
        *,
        amount: Any,
        description: Any,
        category: Any,
        known_categories: Iterable[str],
        icon: Any = None,
        date: Any = None,
        date_required: bool = False,
    ) -> ValidationResult:
        """
        Validate a new or updated transaction.

        A new transaction may omit the date (it defaults to now); an
        update must keep one.
        """
        issues: list[ValidationIssue] = []
        self._check_amount(issues, amount)
        self._check_description(issues, description)
        self._check_category(issues, category, known_categories)
        self._check_icon(issues, icon)
        self._check_datetime(issues, date, "date", required=date_required)
        return ValidationResult(entity_type="transaction", issues=issues)

    def validate_new_category(
        self,
        *,
        category: Any,
        limit: Any,
        existing_categories: Iterable[str],
        icon: Any = None,
    ) -> ValidationResult:
        """Validate a category about to be created."""
        issues: list[ValidationIssue] = []
        self._check_category_name(issues, category, existing_categories)
        self._check_amount(issues, limit, field="limit")
        self._check_icon(issues, icon)
        return ValidationResult(entity_type="budget", issues=issues)

    def validate_budget_limit(self, limit: Any) -> ValidationResult:
        issues: list[ValidationIssue] = []
        self._check_amount(issues, limit, field="limit")
        return ValidationResult(entity_type="budget", issues=issues)

    def validate_category_rename(
        self,
        *,
        new_name: Any,
        existing_categories: Iterable[str],
    ) -> ValidationResult:
        issues: list[ValidationIssue] = []
        self._check_category_name(issues, new_name, existing_categories)
        return ValidationResult(entity_type="budget", issues=issues)

    def validate_recurring_payment(
        self,
        *,
        description: Any,
        amount: Any,
        category: Any,
        day_of_month: Any,
        known_categories: Iterable[str],
        icon: Any = None,
    ) -> ValidationResult:
        """Validate a new or updated recurring payment."""
        issues: list[ValidationIssue] = []
        self._check_description(issues, description)
        self._check_amount(issues, amount)
        self._check_category(issues, category, known_categories)
        self._check_icon(issues, icon)

        if not isinstance(day_of_month, int) or isinstance(day_of_month, bool):
            issues.append(ValidationIssue(
                field="day_of_month",
                issue_type="invalid_value",
                message="Day of month must be a whole number",
                severity="error",
            ))
        elif not 1 <= day_of_month <= 31:
            issues.append(ValidationIssue(
                field="day_of_month",
                issue_type="invalid_value",
                message="Day of month must be between 1 and 31",
                severity="error",
            ))
        elif day_of_month > _SHORTEST_MONTH:
            issues.append(ValidationIssue(
                field="day_of_month",
                issue_type="short_months",
                message=(
                    f"Months without a day {day_of_month} will not log "
                    f"this payment"
                ),
                severity="warning",
                suggested_fix="Use day 28 or earlier to log every month",
            ))

        return ValidationResult(entity_type="recurring_payment", issues=issues)

    def validate_income(
        self,
        *,
        description: Any,
        amount: Any,
        frequency: Any,
        start_date: Any,
    ) -> ValidationResult:
        """Validate a new or updated income source."""
        issues: list[ValidationIssue] = []
        self._check_description(issues, description)
        self._check_amount(issues, amount)

        valid_frequencies = {f.value for f in IncomeFrequency}
        if frequency is None or str(getattr(frequency, "value", frequency)) not in valid_frequencies:
            issues.append(ValidationIssue(
                field="frequency",
                issue_type="invalid_value",
                message=(
                    f"Frequency must be one of: "
                    f"{', '.join(sorted(valid_frequencies))}"
                ),
                severity="error",
            ))

        self._check_datetime(issues, start_date, "start_date", required=True)
        return ValidationResult(entity_type="income", issues=issues)

    @staticmethod
    def get_user_friendly_summary(result: ValidationResult) -> str:
        """Short message listing what needs fixing."""
        if result.is_valid and not result.warnings:
            return "All checks passed."

        lines = []
        for issue in result.issues:
            marker = "❌" if issue.severity == "error" else "⚠️"
            lines.append(f"{marker} {issue.message}")
            if issue.suggested_fix:
                lines.append(f"   💡 {issue.suggested_fix}")
        return "\n".join(lines)
