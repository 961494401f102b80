"""
Finance Store

The single owner of every ledger collection: transactions, budgets,
recurring payments and incomes.

LIFECYCLE:
1. Construct with a storage backend (nothing is read yet)
2. load() reads every collection, logs any recurring bills that fell due,
   and recomputes budget totals
3. Call mutators; each one validates, changes state, writes through to
   storage and recomputes derived values before returning
4. close() at the end of the session

GUARANTEES:
- A rejected mutation leaves every collection untouched
- Every transaction and recurring payment refers to an existing category
- Budget.spent always equals this month's transactions in that category
- A recurring payment is logged at most once per calendar month

Storage failures never propagate out of a mutator. The in-memory state
stays authoritative for the session; the failure is logged and audited.
"""

from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Callable, Iterable, Optional

from pydantic import TypeAdapter, ValidationError

from zen_finance.audit import AuditLogger, get_logger
from zen_finance.engine import aggregates
from zen_finance.engine.errors import (
    DuplicateCategoryError,
    EntityNotFoundError,
    ValidationFailedError,
)
from zen_finance.engine.recurring import materialize_due_payments, payment_state
from zen_finance.models.audit import AuditEventType
from zen_finance.models.finance import (
    Budget,
    BudgetProgress,
    DailySpending,
    DEFAULT_ICON,
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
    color_for_index,
    default_budgets,
)
from zen_finance.services.storage import (
    BUDGETS_KEY,
    INCOMES_KEY,
    RECURRING_PAYMENTS_KEY,
    TRANSACTIONS_KEY,
    KeyValueStorageInterface,
    StorageError,
)
from zen_finance.validation import FinanceValidator


logger = get_logger(__name__)

_TRANSACTION_FIELDS = {"amount", "description", "category", "icon", "date"}
_RECURRING_FIELDS = {"description", "amount", "category", "icon", "day_of_month"}
_INCOME_FIELDS = {"description", "amount", "frequency", "start_date"}

_ADAPTERS = {
    TRANSACTIONS_KEY: TypeAdapter(list[Transaction]),
    BUDGETS_KEY: TypeAdapter(list[Budget]),
    RECURRING_PAYMENTS_KEY: TypeAdapter(list[RecurringPayment]),
    INCOMES_KEY: TypeAdapter(list[Income]),
}


def _as_datetime(value: date | datetime) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time())


def _as_decimal(value: Any) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


class FinanceStore:
    """
    Stateful finance engine.

    One instance per session. Inject it wherever the ledger is needed
    rather than sharing a global.
    """

    def __init__(
        self,
        storage: KeyValueStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[FinanceValidator] = None,
        clock: Callable[[], datetime] = datetime.now,
        key_prefix: str = "zen-",
        default_budget_limit: Decimal = Decimal("500"),
    ):
        self._storage = storage
        self._audit_logger = audit_logger or AuditLogger()
        self._validator = validator or FinanceValidator()
        self._clock = clock
        self._key_prefix = key_prefix
        self._default_budget_limit = default_budget_limit

        self._transactions: list[Transaction] = []
        self._budgets: list[Budget] = default_budgets(default_budget_limit)
        self._recurring_payments: list[RecurringPayment] = []
        self._incomes: list[Income] = []
        self._notifications: list[RecurringPaymentLogged] = []
        self._initialized = False

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def transactions(self) -> list[Transaction]:
        return list(self._transactions)

    @property
    def budgets(self) -> list[Budget]:
        return list(self._budgets)

    @property
    def recurring_payments(self) -> list[RecurringPayment]:
        return list(self._recurring_payments)

    @property
    def incomes(self) -> list[Income]:
        return list(self._incomes)

    @property
    def categories(self) -> list[str]:
        return [b.category for b in self._budgets]

    @property
    def category_icons(self) -> dict[str, IconName]:
        return aggregates.category_icons(self._budgets)

    def get_budget(self, category: str) -> Budget:
        for budget in self._budgets:
            if budget.category == category:
                return budget
        raise EntityNotFoundError("budget", category)

    def snapshot(self) -> FinanceSnapshot:
        return FinanceSnapshot(
            transactions=self.transactions,
            budgets=self.budgets,
            recurring_payments=self.recurring_payments,
            incomes=self.incomes,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def load(self) -> list[RecurringPaymentLogged]:
        """
        Read every collection from storage and bring derived state up to date.

        Missing or unreadable keys fall back to their defaults.
        Returns the recurring payments logged during this load.
        """
        self._transactions = self._read_collection(TRANSACTIONS_KEY, [])
        self._budgets = self._read_collection(
            BUDGETS_KEY, default_budgets(self._default_budget_limit)
        )
        self._recurring_payments = self._read_collection(RECURRING_PAYMENTS_KEY, [])
        self._incomes = self._read_collection(INCOMES_KEY, [])
        self._restore_missing_categories()
        self._initialized = True

        logged = self.check_recurring_payments()
        self._recompute()

        self._audit_logger.log_change(
            AuditEventType.DATA_LOADED,
            "ledger",
            "ledger",
            "Ledger loaded from storage",
            details={
                "transactions": len(self._transactions),
                "budgets": len(self._budgets),
                "recurring_payments": len(self._recurring_payments),
                "incomes": len(self._incomes),
                "recurring_logged": len(logged),
            },
        )
        return logged

    def close(self) -> None:
        """End the session. Pending notifications are dropped."""
        self._notifications.clear()
        self._initialized = False

    def reset_data(self) -> None:
        """Wipe the ledger back to the default budgets."""
        self._transactions = []
        self._budgets = default_budgets(self._default_budget_limit)
        self._recurring_payments = []
        self._incomes = []
        self._persist(TRANSACTIONS_KEY, BUDGETS_KEY, RECURRING_PAYMENTS_KEY, INCOMES_KEY)
        self._audit_logger.log_change(
            AuditEventType.DATA_RESET, "ledger", "ledger", "All data reset"
        )

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def add_transaction(
        self,
        amount: Any,
        description: str,
        category: str,
        icon: Optional[IconName | str] = None,
        date: Optional[date | datetime] = None,
    ) -> Transaction:
        """Record a spend. Newest transactions are kept first."""
        self._check(self._validator.validate_transaction(
            amount=amount,
            description=description,
            category=category,
            icon=icon,
            date=date,
            known_categories=self.categories,
        ))

        category = category.strip()
        transaction = Transaction(
            amount=_as_decimal(amount),
            description=description,
            category=category,
            icon=icon or self.get_budget(category).icon,
            date=_as_datetime(date) if date is not None else self._now(),
        )
        self._transactions.insert(0, transaction)
        self._persist(TRANSACTIONS_KEY)
        self._recompute()

        self._audit_logger.log_change(
            AuditEventType.TRANSACTION_ADDED,
            "transaction",
            transaction.id,
            f"Transaction added: {transaction.description}",
            details={"amount": str(transaction.amount), "category": category},
        )
        return transaction

    def update_transaction(self, transaction_id: str, **updates: Any) -> Transaction:
        """Merge the given fields into a transaction."""
        index = self._index_of(self._transactions, transaction_id, "transaction")
        current = self._transactions[index]
        merged = self._merge(current, updates, _TRANSACTION_FIELDS, "transaction")

        self._check(self._validator.validate_transaction(
            amount=merged["amount"],
            description=merged["description"],
            category=merged["category"],
            icon=merged["icon"],
            date=merged["date"],
            known_categories=self.categories,
            date_required=True,
        ))

        updated = Transaction(
            id=current.id,
            amount=_as_decimal(merged["amount"]),
            description=merged["description"],
            category=merged["category"].strip(),
            icon=merged["icon"],
            date=_as_datetime(merged["date"]),
        )
        self._transactions[index] = updated
        self._persist(TRANSACTIONS_KEY)
        self._recompute()

        self._audit_logger.log_change(
            AuditEventType.TRANSACTION_UPDATED,
            "transaction",
            transaction_id,
            f"Transaction updated: {updated.description}",
            details={"fields": sorted(updates)},
        )
        return updated

    def delete_transaction(self, transaction_id: str) -> None:
        index = self._index_of(self._transactions, transaction_id, "transaction")
        removed = self._transactions.pop(index)
        self._persist(TRANSACTIONS_KEY)
        self._recompute()

        self._audit_logger.log_change(
            AuditEventType.TRANSACTION_DELETED,
            "transaction",
            transaction_id,
            f"Transaction deleted: {removed.description}",
        )

    # ------------------------------------------------------------------
    # Budgets and categories
    # ------------------------------------------------------------------

    def add_category(
        self,
        category: str,
        limit: Any,
        icon: Optional[IconName | str] = None,
        color: Optional[str] = None,
    ) -> Budget:
        """Create a category with its monthly limit."""
        self._check(self._validator.validate_new_category(
            category=category,
            limit=limit,
            icon=icon,
            existing_categories=self.categories,
        ))

        budget = Budget(
            category=category.strip(),
            limit=_as_decimal(limit),
            icon=icon or DEFAULT_ICON,
            color=color or color_for_index(len(self._budgets)),
        )
        self._budgets.append(budget)
        self._persist(BUDGETS_KEY)
        self._recompute()

        self._audit_logger.log_change(
            AuditEventType.CATEGORY_ADDED,
            "budget",
            budget.category,
            f"Category added: {budget.category}",
            details={"limit": str(budget.limit)},
        )
        return self.get_budget(budget.category)

    def update_budget_limit(self, category: str, new_limit: Any) -> Budget:
        index = self._budget_index(category)
        self._check(self._validator.validate_budget_limit(new_limit))

        self._budgets[index] = self._budgets[index].model_copy(
            update={"limit": _as_decimal(new_limit)}
        )
        self._persist(BUDGETS_KEY)

        self._audit_logger.log_change(
            AuditEventType.BUDGET_LIMIT_UPDATED,
            "budget",
            category,
            f"Budget limit for {category} set to {new_limit}",
        )
        return self._budgets[index]

    def update_category(
        self,
        category: str,
        icon: Optional[IconName | str] = None,
        color: Optional[str] = None,
    ) -> Budget:
        """Change how a category is displayed."""
        index = self._budget_index(category)
        issues: list[ValidationIssue] = []
        if icon is not None and not IconName.is_known(icon):
            issues.append(ValidationIssue(
                field="icon",
                issue_type="invalid_value",
                message=f"Unknown icon: {icon}",
                severity="error",
            ))
        if color is not None and not color.strip():
            issues.append(ValidationIssue(
                field="color",
                issue_type="missing",
                message="Color must not be empty",
                severity="error",
            ))
        self._check(ValidationResult(entity_type="budget", issues=issues))

        changes: dict[str, Any] = {}
        if icon is not None:
            changes["icon"] = IconName(icon)
        if color is not None:
            changes["color"] = color.strip()
        if not changes:
            return self._budgets[index]

        self._budgets[index] = self._budgets[index].model_copy(update=changes)
        self._persist(BUDGETS_KEY)

        self._audit_logger.log_change(
            AuditEventType.CATEGORY_UPDATED,
            "budget",
            category,
            f"Category updated: {category}",
            details={"fields": sorted(changes)},
        )
        return self._budgets[index]

    def rename_category(self, old_name: str, new_name: str) -> Budget:
        """Rename a category and every record that refers to it."""
        index = self._budget_index(old_name)
        self._check(self._validator.validate_category_rename(
            new_name=new_name,
            existing_categories=self.categories,
        ))
        new_name = new_name.strip()

        touched = 0
        for i, t in enumerate(self._transactions):
            if t.category == old_name:
                self._transactions[i] = t.model_copy(update={"category": new_name})
                touched += 1
        for i, p in enumerate(self._recurring_payments):
            if p.category == old_name:
                self._recurring_payments[i] = p.model_copy(update={"category": new_name})
                touched += 1
        self._budgets[index] = self._budgets[index].model_copy(update={"category": new_name})

        self._persist(BUDGETS_KEY, TRANSACTIONS_KEY, RECURRING_PAYMENTS_KEY)
        self._recompute()

        self._audit_logger.log_category_renamed(old_name, new_name, touched)
        return self._budgets[index]

    def delete_category(self, category: str) -> None:
        """
        Delete a category together with its transactions and recurring
        payments. Cascading is the policy; deletion is never refused
        because the category is in use.
        """
        index = self._budget_index(category)

        remaining_transactions = [t for t in self._transactions if t.category != category]
        remaining_payments = [p for p in self._recurring_payments if p.category != category]
        removed_transactions = len(self._transactions) - len(remaining_transactions)
        removed_payments = len(self._recurring_payments) - len(remaining_payments)

        self._budgets.pop(index)
        self._transactions = remaining_transactions
        self._recurring_payments = remaining_payments

        self._persist(BUDGETS_KEY, TRANSACTIONS_KEY, RECURRING_PAYMENTS_KEY)
        self._recompute()

        self._audit_logger.log_category_deleted(
            category, removed_transactions, removed_payments
        )

    def set_budgets(self, budgets: Iterable[Budget]) -> list[Budget]:
        """
        Replace the budget list wholesale.

        Refused if a category still referenced by a transaction or
        recurring payment would disappear, or if names repeat.
        """
        budgets = list(budgets)
        issues: list[ValidationIssue] = []

        names = [b.category for b in budgets]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        for name in duplicates:
            issues.append(ValidationIssue(
                field="category",
                issue_type="duplicate",
                message=f"Category listed more than once: {name}",
                severity="error",
            ))

        in_use = {t.category for t in self._transactions}
        in_use |= {p.category for p in self._recurring_payments}
        for name in sorted(in_use - set(names)):
            issues.append(ValidationIssue(
                field="category",
                issue_type="category_in_use",
                message=f"Category still in use: {name}",
                severity="error",
                suggested_fix="Delete the category instead to remove its records",
            ))
        self._check(ValidationResult(entity_type="budget", issues=issues))

        self._budgets = [b.model_copy() for b in budgets]
        self._persist(BUDGETS_KEY)
        self._recompute()

        self._audit_logger.log_change(
            AuditEventType.BUDGETS_REPLACED,
            "budget",
            "all",
            f"Budgets replaced ({len(budgets)} categories)",
        )
        return self.budgets

    def apply_budget_suggestions(self, limits: dict[str, Any]) -> list[Budget]:
        """Set new limits for several categories at once (all or nothing)."""
        issues: list[ValidationIssue] = []
        known = set(self.categories)
        for category, limit in limits.items():
            if category not in known:
                issues.append(ValidationIssue(
                    field="category",
                    issue_type="unknown_category",
                    message=f"Category does not exist: {category}",
                    severity="error",
                ))
            issues.extend(self._validator.validate_budget_limit(limit).issues)
        self._check(ValidationResult(entity_type="budget", issues=issues))

        self._budgets = [
            b.model_copy(update={"limit": _as_decimal(limits[b.category])})
            if b.category in limits else b
            for b in self._budgets
        ]
        self._persist(BUDGETS_KEY)

        self._audit_logger.log_change(
            AuditEventType.BUDGETS_REPLACED,
            "budget",
            "all",
            f"Applied suggested limits for {len(limits)} categories",
            details={k: str(v) for k, v in limits.items()},
        )
        return self.budgets

    # ------------------------------------------------------------------
    # Recurring payments
    # ------------------------------------------------------------------

    def add_recurring_payment(
        self,
        description: str,
        amount: Any,
        category: str,
        day_of_month: int,
        icon: Optional[IconName | str] = None,
    ) -> RecurringPayment:
        """
        Register a monthly bill.

        If it is already due this month it is logged straight away.
        """
        self._check(self._validator.validate_recurring_payment(
            description=description,
            amount=amount,
            category=category,
            day_of_month=day_of_month,
            icon=icon,
            known_categories=self.categories,
        ))

        category = category.strip()
        payment = RecurringPayment(
            description=description,
            amount=_as_decimal(amount),
            category=category,
            icon=icon or self.get_budget(category).icon,
            day_of_month=day_of_month,
            last_logged=None,
        )
        self._recurring_payments.append(payment)
        self._persist(RECURRING_PAYMENTS_KEY)

        self._audit_logger.log_change(
            AuditEventType.RECURRING_PAYMENT_ADDED,
            "recurring_payment",
            payment.id,
            f"Recurring payment added: {payment.description}",
            details={"amount": str(payment.amount), "day_of_month": day_of_month},
        )
        self.check_recurring_payments()
        return self._find(self._recurring_payments, payment.id, "recurring_payment")

    def update_recurring_payment(self, payment_id: str, **updates: Any) -> RecurringPayment:
        index = self._index_of(self._recurring_payments, payment_id, "recurring_payment")
        current = self._recurring_payments[index]
        merged = self._merge(current, updates, _RECURRING_FIELDS, "recurring_payment")

        self._check(self._validator.validate_recurring_payment(
            description=merged["description"],
            amount=merged["amount"],
            category=merged["category"],
            day_of_month=merged["day_of_month"],
            icon=merged["icon"],
            known_categories=self.categories,
        ))

        self._recurring_payments[index] = RecurringPayment(
            id=current.id,
            description=merged["description"],
            amount=_as_decimal(merged["amount"]),
            category=merged["category"].strip(),
            icon=merged["icon"],
            day_of_month=merged["day_of_month"],
            last_logged=current.last_logged,
        )
        self._persist(RECURRING_PAYMENTS_KEY)

        self._audit_logger.log_change(
            AuditEventType.RECURRING_PAYMENT_UPDATED,
            "recurring_payment",
            payment_id,
            f"Recurring payment updated: {merged['description']}",
            details={"fields": sorted(updates)},
        )
        self.check_recurring_payments()
        return self._find(self._recurring_payments, payment_id, "recurring_payment")

    def delete_recurring_payment(self, payment_id: str) -> None:
        """Stop a bill from recurring. Transactions already logged stay."""
        index = self._index_of(self._recurring_payments, payment_id, "recurring_payment")
        removed = self._recurring_payments.pop(index)
        self._persist(RECURRING_PAYMENTS_KEY)

        self._audit_logger.log_change(
            AuditEventType.RECURRING_PAYMENT_DELETED,
            "recurring_payment",
            payment_id,
            f"Recurring payment deleted: {removed.description}",
        )

    def check_recurring_payments(self) -> list[RecurringPaymentLogged]:
        """
        Log every recurring payment that is due this month and not yet logged.

        Safe to call any number of times; a payment is logged at most once
        per calendar month.
        """
        now = self._now()
        result = materialize_due_payments(self._recurring_payments, now)
        if not result.changed:
            return []

        self._transactions = result.transactions + self._transactions
        self._recurring_payments = result.payments
        self._persist(TRANSACTIONS_KEY, RECURRING_PAYMENTS_KEY)
        self._recompute()

        for notification in result.notifications:
            self._audit_logger.log_recurring_payment_logged(
                payment_id=notification.payment_id,
                transaction_id=notification.transaction_id,
                description=notification.description,
                amount=f"{notification.amount:.2f}",
            )
        self._notifications.extend(result.notifications)
        return list(result.notifications)

    def drain_notifications(self) -> list[RecurringPaymentLogged]:
        """Hand pending notifications to the UI and forget them."""
        pending, self._notifications = self._notifications, []
        return pending

    def recurring_payment_state(self, payment_id: str) -> RecurringPaymentState:
        payment = self._find(self._recurring_payments, payment_id, "recurring_payment")
        return payment_state(payment, self._now())

    # ------------------------------------------------------------------
    # Incomes
    # ------------------------------------------------------------------

    def add_income(
        self,
        description: str,
        amount: Any,
        frequency: IncomeFrequency | str,
        start_date: date | datetime,
    ) -> Income:
        self._check(self._validator.validate_income(
            description=description,
            amount=amount,
            frequency=frequency,
            start_date=start_date,
        ))

        income = Income(
            description=description,
            amount=_as_decimal(amount),
            frequency=IncomeFrequency(frequency),
            start_date=_as_datetime(start_date),
        )
        self._incomes.append(income)
        self._persist(INCOMES_KEY)

        self._audit_logger.log_change(
            AuditEventType.INCOME_ADDED,
            "income",
            income.id,
            f"Income added: {income.description}",
            details={"amount": str(income.amount), "frequency": income.frequency.value},
        )
        return income

    def update_income(self, income_id: str, **updates: Any) -> Income:
        index = self._index_of(self._incomes, income_id, "income")
        current = self._incomes[index]
        merged = self._merge(current, updates, _INCOME_FIELDS, "income")

        self._check(self._validator.validate_income(
            description=merged["description"],
            amount=merged["amount"],
            frequency=merged["frequency"],
            start_date=merged["start_date"],
        ))

        updated = Income(
            id=current.id,
            description=merged["description"],
            amount=_as_decimal(merged["amount"]),
            frequency=IncomeFrequency(merged["frequency"]),
            start_date=_as_datetime(merged["start_date"]),
        )
        self._incomes[index] = updated
        self._persist(INCOMES_KEY)

        self._audit_logger.log_change(
            AuditEventType.INCOME_UPDATED,
            "income",
            income_id,
            f"Income updated: {updated.description}",
            details={"fields": sorted(updates)},
        )
        return updated

    def delete_income(self, income_id: str) -> None:
        index = self._index_of(self._incomes, income_id, "income")
        removed = self._incomes.pop(index)
        self._persist(INCOMES_KEY)

        self._audit_logger.log_change(
            AuditEventType.INCOME_DELETED,
            "income",
            income_id,
            f"Income deleted: {removed.description}",
        )

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    def monthly_income(self) -> Decimal:
        return aggregates.calculate_monthly_income(self._incomes, self._now())

    def month_transactions(self) -> list[Transaction]:
        """Transactions dated in the current calendar month."""
        return aggregates.transactions_in_month(self._transactions, self._now().date())

    def monthly_expenses(self) -> Decimal:
        return aggregates.calculate_monthly_expenses(self._transactions, self._now().date())

    def upcoming_payments(self, limit: int = 3) -> list[UpcomingPayment]:
        return aggregates.upcoming_payments(
            self._recurring_payments, self._now().date(), limit
        )

    def daily_spending(self, days: int = 30) -> list[DailySpending]:
        return aggregates.daily_spending(self._transactions, self._now().date(), days)

    def top_budgets(self, limit: int = 3) -> list[Budget]:
        return aggregates.top_budgets(self._budgets, limit)

    def recent_transactions(self, limit: int = 5) -> list[Transaction]:
        return aggregates.recent_transactions(self._transactions, limit)

    def budget_progress(self, category: str) -> BudgetProgress:
        return aggregates.budget_progress(self.get_budget(category))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _now(self) -> datetime:
        return self._clock()

    def _key(self, name: str) -> str:
        return f"{self._key_prefix}{name}"

    def _collection(self, name: str) -> list:
        return {
            TRANSACTIONS_KEY: self._transactions,
            BUDGETS_KEY: self._budgets,
            RECURRING_PAYMENTS_KEY: self._recurring_payments,
            INCOMES_KEY: self._incomes,
        }[name]

    def _check(self, result: ValidationResult) -> None:
        """Raise (and audit) if the validation result has errors."""
        if result.is_valid:
            return
        self._audit_logger.log_validation_failed(
            result.entity_type,
            [
                {"field": i.field, "type": i.issue_type, "message": i.message}
                for i in result.issues
            ],
        )
        if any(i.issue_type == "duplicate" for i in result.issues):
            raise DuplicateCategoryError(result)
        raise ValidationFailedError(result)

    def _recompute(self) -> bool:
        """
        Refresh Budget.spent. Storage is only touched when a total changed,
        so calling this after every mutation never causes write churn.
        """
        recomputed = aggregates.recompute_budgets(
            self._transactions,
            self._recurring_payments,
            self._budgets,
            self._now().date(),
        )
        if [b.spent for b in recomputed] == [b.spent for b in self._budgets]:
            return False
        self._budgets = recomputed
        self._persist(BUDGETS_KEY)
        return True

    def _persist(self, *names: str) -> bool:
        """Write the named collections. Failures are logged, never raised."""
        ok = True
        for name in names:
            key = self._key(name)
            payload = [item.to_storage() for item in self._collection(name)]
            try:
                self._storage.write(key, payload)
            except StorageError as e:
                ok = False
                logger.error("storage_write_failed", key=key, error=str(e))
                self._audit_logger.log_storage_failure(key, str(e), on_write=True)
        return ok

    def _read_collection(self, name: str, default: list) -> list:
        key = self._key(name)
        try:
            raw = self._storage.read(key)
        except StorageError as e:
            logger.error("storage_read_failed", key=key, error=str(e))
            self._audit_logger.log_storage_failure(key, str(e), on_write=False)
            return default
        if raw is None:
            return default
        try:
            return _ADAPTERS[name].validate_python(raw)
        except ValidationError as e:
            logger.error("storage_value_invalid", key=key, error=str(e))
            self._audit_logger.log_storage_failure(key, str(e), on_write=False)
            return default

    def _restore_missing_categories(self) -> None:
        """Recreate categories that stored records refer to but budgets lack."""
        known = set(self.categories)
        referenced = [t.category for t in self._transactions]
        referenced += [p.category for p in self._recurring_payments]

        missing = []
        for name in referenced:
            if name not in known:
                known.add(name)
                missing.append(name)
        if not missing:
            return

        for name in missing:
            self._budgets.append(Budget(
                category=name,
                limit=self._default_budget_limit,
                color=color_for_index(len(self._budgets)),
            ))
        logger.warning("categories_restored", categories=missing)
        self._persist(BUDGETS_KEY)

    def _budget_index(self, category: str) -> int:
        for index, budget in enumerate(self._budgets):
            if budget.category == category:
                return index
        raise EntityNotFoundError("budget", category)

    @staticmethod
    def _index_of(items: list, entity_id: str, entity_type: str) -> int:
        for index, item in enumerate(items):
            if item.id == entity_id:
                return index
        raise EntityNotFoundError(entity_type, entity_id)

    @classmethod
    def _find(cls, items: list, entity_id: str, entity_type: str):
        return items[cls._index_of(items, entity_id, entity_type)]

    def _merge(
        self,
        current: Any,
        updates: dict[str, Any],
        allowed: set[str],
        entity_type: str,
    ) -> dict[str, Any]:
        unknown = sorted(set(updates) - allowed)
        if unknown:
            self._check(ValidationResult(
                entity_type=entity_type,
                issues=[
                    ValidationIssue(
                        field=name,
                        issue_type="unknown_field",
                        message=f"Field cannot be updated: {name}",
                        severity="error",
                    )
                    for name in unknown
                ],
            ))
        merged = {name: getattr(current, name) for name in allowed}
        merged.update(updates)
        return merged
