"""
Derived Aggregates

Pure functions over the engine's collections. Nothing here mutates its
input; callers decide whether to store the result.

DESIGN DECISION: Recurring payments are NOT counted towards a budget's
`spent` or towards monthly expenses until they have been materialized as
transactions. Once a bill falls due it becomes a transaction automatically,
so counting the payment as well would count it twice. Matching payments to
transactions by description and amount is fragile (users edit
descriptions), so no such matching is attempted.
"""

from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Iterable

from zen_finance.engine.recurring import is_same_month, next_due_date
from zen_finance.models.finance import (
    Budget,
    BudgetProgress,
    DailySpending,
    IconName,
    Income,
    IncomeFrequency,
    RecurringPayment,
    Transaction,
    UpcomingPayment,
)


# Simplified payouts per month; not calendar accurate
INCOME_MONTHLY_MULTIPLIERS: dict[IncomeFrequency, int] = {
    IncomeFrequency.MONTHLY: 1,
    IncomeFrequency.WEEKLY: 4,
    IncomeFrequency.BI_WEEKLY: 2,
}

WARNING_THRESHOLD = 80.0


def month_window(today: date) -> tuple[date, date]:
    """[start, end) of the calendar month containing `today`."""
    start = date(today.year, today.month, 1)
    if today.month == 12:
        end = date(today.year + 1, 1, 1)
    else:
        end = date(today.year, today.month + 1, 1)
    return start, end


def transactions_in_month(
    transactions: Iterable[Transaction],
    today: date,
) -> list[Transaction]:
    start, end = month_window(today)
    return [t for t in transactions if start <= t.date.date() < end]


def recompute_budgets(
    transactions: Iterable[Transaction],
    recurring_payments: Iterable[RecurringPayment],
    budgets: Iterable[Budget],
    today: date,
) -> list[Budget]:
    """
    Fresh Budget list with `spent` set to this month's total per category.

    `recurring_payments` is accepted so callers pass the whole ledger;
    unmaterialized payments deliberately do not contribute.
    """
    totals: dict[str, Decimal] = {}
    for t in transactions_in_month(transactions, today):
        totals[t.category] = totals.get(t.category, Decimal("0")) + t.amount

    return [
        b.model_copy(update={"spent": totals.get(b.category, Decimal("0"))})
        for b in budgets
    ]


def calculate_monthly_income(incomes: Iterable[Income], today: datetime) -> Decimal:
    """
    Expected income for the current month.

    Weekly counts four payouts and bi-weekly two, regardless of how many
    paydays the month really has. One-time income counts only in the month
    it arrives. Sources that have not started yet count nothing.
    """
    total = Decimal("0")
    for income in incomes:
        if income.start_date > today:
            continue
        if income.frequency is IncomeFrequency.ONE_TIME:
            if is_same_month(income.start_date, today):
                total += income.amount
            continue
        total += income.amount * INCOME_MONTHLY_MULTIPLIERS[income.frequency]
    return total


def calculate_monthly_expenses(
    transactions: Iterable[Transaction],
    today: date,
) -> Decimal:
    """Sum of this month's transactions."""
    return sum(
        (t.amount for t in transactions_in_month(transactions, today)),
        Decimal("0"),
    )


def upcoming_payments(
    payments: Iterable[RecurringPayment],
    today: date,
    limit: int = 3,
) -> list[UpcomingPayment]:
    """Soonest-due recurring payments, nearest first."""
    upcoming = []
    for payment in payments:
        due = next_due_date(payment.day_of_month, today)
        upcoming.append(UpcomingPayment(
            payment=payment,
            due_date=due,
            days_until_due=(due - today).days,
        ))
    upcoming.sort(key=lambda u: (u.days_until_due, u.payment.description))
    return upcoming[:limit]


def daily_spending(
    transactions: Iterable[Transaction],
    today: date,
    days: int = 30,
) -> list[DailySpending]:
    """Zero-filled daily totals for the `days` days ending today."""
    first = today - timedelta(days=days - 1)
    totals = {first + timedelta(days=i): Decimal("0") for i in range(days)}
    for t in transactions:
        day = t.date.date()
        if day in totals:
            totals[day] += t.amount
    return [DailySpending(day=day, total=total) for day, total in sorted(totals.items())]


def budget_progress(budget: Budget) -> BudgetProgress:
    percent = budget.utilization * 100
    if percent > 100:
        status = "over"
    elif percent >= WARNING_THRESHOLD:
        status = "warning"
    else:
        status = "ok"
    return BudgetProgress(category=budget.category, percent_used=percent, status=status)


def top_budgets(budgets: Iterable[Budget], limit: int = 3) -> list[Budget]:
    """Budgets closest to (or furthest over) their limit."""
    return sorted(budgets, key=lambda b: b.utilization, reverse=True)[:limit]


def recent_transactions(
    transactions: Iterable[Transaction],
    limit: int = 5,
) -> list[Transaction]:
    return sorted(transactions, key=lambda t: t.date, reverse=True)[:limit]


def category_icons(budgets: Iterable[Budget]) -> dict[str, IconName]:
    return {b.category: b.icon for b in budgets}
