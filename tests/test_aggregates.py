"""Tests for derived aggregates and dashboard selectors."""

import pytest
from datetime import date, datetime
from decimal import Decimal

from zen_finance.engine import aggregates
from zen_finance.models import (
    Budget,
    Income,
    IncomeFrequency,
    RecurringPayment,
    Transaction,
    default_budgets,
)


TODAY = date(2026, 10, 20)
NOW = datetime(2026, 10, 20, 9, 0)


def tx(amount: str, category: str, when: datetime, description: str = "Item") -> Transaction:
    return Transaction(
        amount=Decimal(amount),
        description=description,
        category=category,
        date=when,
    )


def income(amount: str, frequency: IncomeFrequency, start: datetime) -> Income:
    return Income(
        description="Pay",
        amount=Decimal(amount),
        frequency=frequency,
        start_date=start,
    )


class TestMonthWindow:

    def test_window_bounds(self):
        assert aggregates.month_window(TODAY) == (date(2026, 10, 1), date(2026, 11, 1))

    def test_december_window(self):
        assert aggregates.month_window(date(2026, 12, 31)) == (date(2026, 12, 1), date(2027, 1, 1))

    def test_transactions_in_month_includes_edges(self):
        transactions = [
            tx("1", "Misc", datetime(2026, 10, 1, 0, 0)),
            tx("2", "Misc", datetime(2026, 10, 31, 23, 59)),
            tx("3", "Misc", datetime(2026, 9, 30, 23, 59)),
            tx("4", "Misc", datetime(2026, 11, 1, 0, 0)),
        ]
        in_month = aggregates.transactions_in_month(transactions, TODAY)
        assert [t.amount for t in in_month] == [Decimal("1"), Decimal("2")]


class TestRecomputeBudgets:
    """Tests for Budget.spent recompute."""

    def test_sums_current_month_per_category(self):
        budgets = default_budgets()
        transactions = [
            tx("10.25", "Food & Drink", datetime(2026, 10, 2)),
            tx("4.75", "Food & Drink", datetime(2026, 10, 19)),
            tx("99", "Food & Drink", datetime(2026, 9, 28)),
            tx("20", "Shopping", datetime(2026, 10, 5)),
        ]

        result = aggregates.recompute_budgets(transactions, [], budgets, TODAY)
        spent = {b.category: b.spent for b in result}

        assert spent["Food & Drink"] == Decimal("15.00")
        assert spent["Shopping"] == Decimal("20")
        assert spent["Misc"] == Decimal("0")

    def test_resets_stale_spent(self):
        budgets = [Budget(category="Misc", limit=Decimal("100"), spent=Decimal("70"))]
        result = aggregates.recompute_budgets([], [], budgets, TODAY)
        assert result[0].spent == Decimal("0")
        assert budgets[0].spent == Decimal("70")

    def test_unlogged_recurring_payments_not_counted(self):
        payment = RecurringPayment(
            description="Rent",
            amount=Decimal("1200"),
            category="Essentials",
            day_of_month=28,
        )
        result = aggregates.recompute_budgets([], [payment], default_budgets(), TODAY)
        assert all(b.spent == Decimal("0") for b in result)


class TestMonthlyIncome:
    """Tests for the monthly income approximation."""

    def test_monthly_plus_weekly(self):
        incomes = [
            income("1000", IncomeFrequency.MONTHLY, datetime(2026, 1, 1)),
            income("200", IncomeFrequency.WEEKLY, datetime(2026, 1, 1)),
        ]
        assert aggregates.calculate_monthly_income(incomes, NOW) == Decimal("1800")

    def test_bi_weekly_counts_twice(self):
        incomes = [income("650", IncomeFrequency.BI_WEEKLY, datetime(2026, 1, 1))]
        assert aggregates.calculate_monthly_income(incomes, NOW) == Decimal("1300")

    @pytest.mark.parametrize("start,expected", [
        (datetime(2026, 10, 3), Decimal("500")),
        (datetime(2026, 9, 3), Decimal("0")),
        (datetime(2026, 10, 25), Decimal("0")),
    ])
    def test_one_time(self, start, expected):
        incomes = [income("500", IncomeFrequency.ONE_TIME, start)]
        assert aggregates.calculate_monthly_income(incomes, NOW) == expected

    def test_not_started_yet(self):
        incomes = [income("1000", IncomeFrequency.MONTHLY, datetime(2026, 11, 1))]
        assert aggregates.calculate_monthly_income(incomes, NOW) == Decimal("0")

    def test_empty(self):
        assert aggregates.calculate_monthly_income([], NOW) == Decimal("0")


class TestMonthlyExpenses:

    def test_current_month_only(self):
        transactions = [
            tx("10", "Misc", datetime(2026, 10, 2)),
            tx("5.5", "Shopping", datetime(2026, 10, 20)),
            tx("100", "Misc", datetime(2026, 8, 2)),
        ]
        assert aggregates.calculate_monthly_expenses(transactions, TODAY) == Decimal("15.5")


class TestSelectors:
    """Tests for dashboard selectors."""

    def test_daily_spending_zero_filled(self):
        transactions = [
            tx("3", "Misc", datetime(2026, 10, 20, 8, 0)),
            tx("4", "Misc", datetime(2026, 10, 20, 18, 0)),
            tx("9", "Misc", datetime(2026, 9, 21, 12, 0)),
            tx("50", "Misc", datetime(2026, 9, 20, 12, 0)),
        ]

        daily = aggregates.daily_spending(transactions, TODAY, days=30)

        assert len(daily) == 30
        assert daily[0].day == date(2026, 9, 21)
        assert daily[0].total == Decimal("9")
        assert daily[-1].day == TODAY
        assert daily[-1].total == Decimal("7")
        assert sum(d.total for d in daily) == Decimal("16")

    @pytest.mark.parametrize("spent,status", [
        ("0", "ok"),
        ("79", "ok"),
        ("80", "warning"),
        ("100", "warning"),
        ("100.01", "over"),
    ])
    def test_budget_progress_status(self, spent, status):
        budget = Budget(category="Misc", limit=Decimal("100"), spent=Decimal(spent))
        assert aggregates.budget_progress(budget).status == status

    def test_top_budgets_by_utilization(self):
        budgets = [
            Budget(category="A", limit=Decimal("100"), spent=Decimal("10")),
            Budget(category="B", limit=Decimal("50"), spent=Decimal("45")),
            Budget(category="C", limit=Decimal("1000"), spent=Decimal("300")),
        ]
        top = aggregates.top_budgets(budgets, limit=2)
        assert [b.category for b in top] == ["B", "C"]

    def test_recent_transactions_newest_first(self):
        transactions = [
            tx("1", "Misc", datetime(2026, 10, 1), "old"),
            tx("1", "Misc", datetime(2026, 10, 19), "new"),
            tx("1", "Misc", datetime(2026, 10, 10), "mid"),
        ]
        recent = aggregates.recent_transactions(transactions, limit=2)
        assert [t.description for t in recent] == ["new", "mid"]

    def test_upcoming_payments(self):
        payments = [
            RecurringPayment(description="Rent", amount=Decimal("1200"), category="Essentials", day_of_month=1),
            RecurringPayment(description="Phone", amount=Decimal("20"), category="Essentials", day_of_month=20),
            RecurringPayment(description="Storage", amount=Decimal("60"), category="Misc", day_of_month=31),
        ]

        upcoming = aggregates.upcoming_payments(payments, TODAY, limit=3)

        assert [u.payment.description for u in upcoming] == ["Phone", "Storage", "Rent"]
        assert [u.due_date for u in upcoming] == [
            date(2026, 10, 20),
            date(2026, 10, 31),
            date(2026, 11, 1),
        ]
        assert upcoming[0].days_until_due == 0

    def test_category_icons(self):
        icons = aggregates.category_icons(default_budgets())
        assert icons["Transportation"].value == "Car"
