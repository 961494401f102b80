"""
Recurring Payment Materialization

A recurring payment has no stored "pending" or "fired" flag. Its state for
the current month is worked out from two things only: the day of month it
is due and when it was last logged. That makes the check safe to run on
every app load: once a payment has been logged in a month, the same-month
guard stops it from being logged again.

Months that do not contain the due day (day 31 in April, day 30 in
February) simply skip that payment. No clamping to the last day.

Everything here is pure. The engine applies the result.
"""

import calendar
from datetime import date, datetime
from typing import Callable, Iterable, NamedTuple, Optional

from zen_finance.models.finance import (
    RecurringPayment,
    RecurringPaymentLogged,
    RecurringPaymentState,
    Transaction,
)


def due_date_for_month(day_of_month: int, year: int, month: int) -> Optional[datetime]:
    """
    Midnight of the due day in the given month.

    Returns None when the month has fewer days than day_of_month.
    """
    _, days_in_month = calendar.monthrange(year, month)
    if day_of_month > days_in_month:
        return None
    return datetime(year, month, day_of_month)


def is_same_month(a: date, b: date) -> bool:
    return a.year == b.year and a.month == b.month


def payment_state(payment: RecurringPayment, now: datetime) -> RecurringPaymentState:
    """Classify a payment for the month containing `now`."""
    due = due_date_for_month(payment.day_of_month, now.year, now.month)
    if due is None:
        return RecurringPaymentState.NOT_DUE_THIS_MONTH
    if due.date() > now.date():
        return RecurringPaymentState.NOT_YET_DUE
    if payment.last_logged is not None and is_same_month(payment.last_logged, now):
        return RecurringPaymentState.DUE_LOGGED
    return RecurringPaymentState.DUE_NOT_LOGGED


RECURRING_ID_PREFIX = "recurring-"


def recurring_transaction_id(payment_id: str, now: datetime) -> str:
    return f"{RECURRING_ID_PREFIX}{payment_id}-{now.isoformat()}"


def is_recurring_transaction(transaction: Transaction) -> bool:
    """True for transactions logged automatically from a recurring payment."""
    return transaction.id.startswith(RECURRING_ID_PREFIX)


class MaterializationResult(NamedTuple):
    """Outcome of one materialization pass."""

    transactions: list[Transaction]
    payments: list[RecurringPayment]
    notifications: list[RecurringPaymentLogged]

    @property
    def changed(self) -> bool:
        return bool(self.transactions)


def materialize_due_payments(
    payments: Iterable[RecurringPayment],
    now: datetime,
    id_factory: Callable[[str, datetime], str] = recurring_transaction_id,
) -> MaterializationResult:
    """
    Turn every due-and-unlogged payment into a transaction.

    Returns the new transactions, the full payment list (with last_logged
    bumped on the ones that fired) and one notification per logged payment.
    Input payments are not modified.
    """
    new_transactions: list[Transaction] = []
    updated_payments: list[RecurringPayment] = []
    notifications: list[RecurringPaymentLogged] = []

    for payment in payments:
        if payment_state(payment, now) is not RecurringPaymentState.DUE_NOT_LOGGED:
            updated_payments.append(payment)
            continue

        due = due_date_for_month(payment.day_of_month, now.year, now.month)
        transaction = Transaction(
            id=id_factory(payment.id, now),
            amount=payment.amount,
            description=payment.description,
            category=payment.category,
            icon=payment.icon,
            date=due,
        )
        new_transactions.append(transaction)
        updated_payments.append(payment.model_copy(update={"last_logged": now}))
        notifications.append(RecurringPaymentLogged(
            payment_id=payment.id,
            transaction_id=transaction.id,
            description=payment.description,
            amount=payment.amount,
            due_date=due,
            logged_at=now,
        ))

    return MaterializationResult(new_transactions, updated_payments, notifications)


def next_due_date(day_of_month: int, today: date) -> date:
    """
    The next date (today or later) on which the payment is due.

    Months lacking the day are skipped, matching materialization.
    """
    year, month = today.year, today.month
    # Any day 1-31 appears at least once in every 12-month span
    for _ in range(13):
        due = due_date_for_month(day_of_month, year, month)
        if due is not None and due.date() >= today:
            return due.date()
        month += 1
        if month > 12:
            year, month = year + 1, 1
    raise ValueError(f"No due date found for day {day_of_month}")
