"""
Tests for Zen Finance

Test strategy:
1. Unit tests for individual components (models, validators, aggregates)
2. Engine tests against in-memory storage with a fixed clock
3. No real API calls in tests (use mocks)
"""

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from zen_finance.models import (
    BUILTIN_CATEGORY_ICONS,
    DEFAULT_ICON,
    Budget,
    BuiltinCategory,
    IconName,
    Income,
    IncomeFrequency,
    RecurringPayment,
    RecurringPaymentLogged,
    Transaction,
    ValidationIssue,
    ValidationResult,
    default_budgets,
)
from zen_finance.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestFinanceModels:
    """Tests for ledger Pydantic models."""

    def test_transaction_creation(self):
        """Test Transaction model creation."""
        transaction = Transaction(
            amount=Decimal("7.50"),
            description="Coffee",
            category="Food & Drink",
            icon=IconName.COFFEE,
            date=datetime(2026, 10, 20, 8, 30),
        )
        assert transaction.amount == Decimal("7.50")
        assert transaction.icon == IconName.COFFEE
        assert transaction.id

    def test_transaction_ids_are_unique(self):
        a = Transaction(amount=1, description="a", category="Misc", date=datetime(2026, 1, 1))
        b = Transaction(amount=1, description="b", category="Misc", date=datetime(2026, 1, 1))
        assert a.id != b.id

    def test_transaction_strips_whitespace(self):
        """Test that whitespace is stripped from description."""
        transaction = Transaction(
            amount=1,
            description="  Coffee  ",
            category="Food & Drink",
            date=datetime(2026, 10, 20),
        )
        assert transaction.description == "Coffee"

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5")])
    def test_transaction_rejects_non_positive_amount(self, amount):
        """Test that zero and negative amounts are rejected."""
        with pytest.raises(ValueError):
            Transaction(
                amount=amount,
                description="Test",
                category="Misc",
                date=datetime(2026, 10, 20),
            )

    def test_unknown_icon_becomes_default(self):
        transaction = Transaction(
            amount=1,
            description="Test",
            category="Misc",
            icon="🍔",
            date=datetime(2026, 10, 20),
        )
        assert transaction.icon == DEFAULT_ICON == IconName.LANDMARK

    def test_aware_dates_become_naive_local(self):
        aware = datetime(2026, 10, 20, 12, 0, tzinfo=timezone(timedelta(hours=2)))
        transaction = Transaction(amount=1, description="x", category="Misc", date=aware)

        assert transaction.date.tzinfo is None
        assert transaction.date == aware.astimezone().replace(tzinfo=None)

    def test_recurring_payment_day_bounds(self):
        with pytest.raises(ValueError):
            RecurringPayment(description="Rent", amount=1, category="Misc", day_of_month=32)

    def test_recurring_payment_storage_uses_camel_case(self):
        payment = RecurringPayment(
            id="rent",
            description="Rent",
            amount=Decimal("1200"),
            category="Essentials",
            day_of_month=1,
        )
        record = payment.to_storage()

        assert record["dayOfMonth"] == 1
        assert record["lastLogged"] is None
        assert record["amount"] == "1200"
        assert RecurringPayment.model_validate(record) == payment

    def test_income_frequency_values(self):
        income = Income(
            description="Salary",
            amount=3000,
            frequency="bi-weekly",
            start_date=datetime(2026, 1, 1),
        )
        assert income.frequency is IncomeFrequency.BI_WEEKLY
        assert income.to_storage()["startDate"] == "2026-01-01T00:00:00"

    def test_budget_derived_properties(self):
        budget = Budget(category="Misc", limit=Decimal("200"), spent=Decimal("150"))
        assert budget.remaining == Decimal("50")
        assert budget.utilization == pytest.approx(0.75)

    def test_budget_rejects_negative_spent(self):
        with pytest.raises(ValueError):
            Budget(category="Misc", limit=Decimal("200"), spent=Decimal("-1"))

    def test_recurring_logged_message(self):
        logged = RecurringPaymentLogged(
            payment_id="p",
            transaction_id="t",
            description="Netflix",
            amount=Decimal("15.49"),
            due_date=datetime(2026, 10, 5),
            logged_at=datetime(2026, 10, 20, 9, 0),
        )
        assert logged.message == 'Automatically logged "Netflix" for $15.49.'


class TestDefaultBudgets:
    """Tests for the built-in categories."""

    def test_all_builtin_categories_exist(self):
        expected = {
            "Food & Drink",
            "Transportation",
            "Entertainment",
            "Essentials",
            "Shopping",
            "Misc",
        }
        assert {c.value for c in BuiltinCategory} == expected

    def test_default_budgets(self):
        budgets = default_budgets(Decimal("250"))

        assert len(budgets) == 6
        assert all(b.limit == Decimal("250") for b in budgets)
        assert all(b.spent == Decimal("0") for b in budgets)
        assert len({b.color for b in budgets}) == 6

    def test_builtin_icons(self):
        for category, icon in BUILTIN_CATEGORY_ICONS.items():
            assert IconName.is_known(icon.value), category

    def test_icon_lookup_rejects_non_strings(self):
        assert not IconName.is_known(None)
        assert not IconName.is_known(["Home"])
        assert IconName.is_known("Home")


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.TRANSACTION_ADDED,
            description="Transaction added: Coffee",
        )
        assert event.event_type == AuditEventType.TRANSACTION_ADDED
        assert event.severity == AuditSeverity.INFO
        assert event.event_id is not None

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEventBuilder.entity_changed(
            AuditEventType.INCOME_ADDED,
            "income",
            "inc-1",
            "Income added: Salary",
        )
        log_dict = event.to_log_dict()

        assert log_dict["event_type"] == "income_added"
        assert log_dict["entity_id"] == "inc-1"
        assert log_dict["is_user_action"] is True

    def test_audit_event_to_storage_is_json_safe(self):
        event = AuditEventBuilder.entity_changed(
            AuditEventType.TRANSACTION_ADDED,
            "transaction",
            "t1",
            "Transaction added",
            details={"amount": Decimal("5.00")},
        )
        assert event.to_storage()["details"] == {"amount": "5.00"}

    def test_audit_event_builder_recurring_logged(self):
        event = AuditEventBuilder.recurring_payment_logged(
            payment_id="p1",
            transaction_id="recurring-p1-2026-10-20T09:00:00",
            description="Rent",
            amount="1200.00",
        )
        assert event.event_type == AuditEventType.RECURRING_PAYMENT_LOGGED
        assert event.is_user_action is False
        assert event.details["transaction_id"].startswith("recurring-p1")

    def test_audit_event_builder_storage_failed(self):
        event = AuditEventBuilder.storage_failed(
            AuditEventType.STORAGE_WRITE_FAILED,
            "zen-transactions",
            "disk full",
        )
        assert event.severity == AuditSeverity.ERROR
        assert event.error_message == "disk full"


class TestValidationResult:
    """Tests for validation result model."""

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = ValidationResult(
            entity_type="transaction",
            issues=[
                ValidationIssue(
                    field="amount",
                    issue_type="missing",
                    message="Amount is required",
                    severity="error",
                ),
            ],
        )
        assert result.has_errors
        assert not result.is_valid
        assert result.error_count == 1

    def test_validation_result_warnings_only(self):
        """Test result with only warnings is valid."""
        result = ValidationResult(
            entity_type="recurring_payment",
            issues=[
                ValidationIssue(
                    field="day_of_month",
                    issue_type="short_months",
                    message="Months without a day 31 will not log this payment",
                    severity="warning",
                ),
            ],
        )
        assert result.is_valid
        assert result.warnings == ["Months without a day 31 will not log this payment"]
