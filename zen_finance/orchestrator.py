"""
Main Orchestrator for Zen Finance

This module ties the AI agents to the finance store and defines the
end-to-end flows for:
1. Transaction entry (text → parse → user confirms amount → ledger)
2. Spending insights (ledger → insights)
3. Budget suggestion (income + spending → suggested limits → user applies)

DESIGN DECISION: The orchestrator enforces the boundaries:
- AI output never reaches the ledger without going through the store's
  validated mutators
- A failed AI call leaves the ledger untouched
- Suggestions are returned for review; applying them is a separate step

Agents are created lazily so the app keeps working (manual entry,
budgets, recurring bills) when no Gemini API key is configured.
"""

from datetime import date, datetime
from pathlib import Path
from typing import Any, Optional, Union

from zen_finance.agents import (
    BudgetSuggestion,
    BudgetSuggestionAgent,
    BudgetSuggestionFailure,
    InsightAgent,
    InsightsFailure,
    ParsedTransaction,
    ParseFailure,
    SpendingInsights,
    TransactionParsingAgent,
)
from zen_finance.audit import AuditLogger, get_logger
from zen_finance.config import get_settings
from zen_finance.engine import FinanceStore
from zen_finance.engine.recurring import is_recurring_transaction
from zen_finance.models.finance import Budget, Transaction
from zen_finance.services.storage import (
    AuditStorageInterface,
    InMemoryAuditStorage,
    InMemoryKeyValueStorage,
    JsonFileKeyValueStorage,
    JsonLinesAuditStorage,
    KeyValueStorageInterface,
)
from zen_finance.validation import FinanceValidator


logger = get_logger(__name__)

# Upper bound on transactions sent to the insights model
INSIGHTS_HISTORY_LIMIT = 100

AUDIT_LOG_FILENAME = "audit.jsonl"


class TransactionEntryFlow:
    """
    Orchestrates quick transaction entry.

    Flow:
    1. Parse → AI reads description, category and icon from free text
    2. Review → Caller shows the result and collects the amount
    3. Confirm → Transaction is added through the store

    The amount typed by the user wins over an amount found in the text.
    """

    def __init__(
        self,
        store: FinanceStore,
        parsing_agent: Optional[TransactionParsingAgent] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._parsing_agent = parsing_agent
        self._audit_logger = audit_logger

    @property
    def parsing_agent(self) -> TransactionParsingAgent:
        if self._parsing_agent is None:
            self._parsing_agent = TransactionParsingAgent(audit_logger=self._audit_logger)
        return self._parsing_agent

    async def parse(self, text: str) -> Union[ParsedTransaction, ParseFailure]:
        return await self.parsing_agent.parse(
            text,
            self._store.categories,
            self._store.category_icons,
        )

    def confirm(
        self,
        parsed: ParsedTransaction,
        amount: Optional[Any] = None,
        date: Optional[date | datetime] = None,
    ) -> Transaction:
        """
        Add a reviewed transaction to the ledger.

        Raises ValidationFailedError if no amount is known or the category
        disappeared in the meantime.
        """
        return self._store.add_transaction(
            amount=amount if amount is not None else parsed.amount,
            description=parsed.description,
            category=parsed.category,
            icon=parsed.icon,
            date=date,
        )

    async def submit(
        self,
        text: str,
        amount: Optional[Any] = None,
        date: Optional[date | datetime] = None,
    ) -> Union[Transaction, ParseFailure]:
        """Parse and confirm in one step."""
        parsed = await self.parse(text)
        if isinstance(parsed, ParseFailure):
            return parsed
        return self.confirm(parsed, amount=amount, date=date)


class InsightsFlow:
    """Generates spending insights from the newest transactions."""

    def __init__(
        self,
        store: FinanceStore,
        insight_agent: Optional[InsightAgent] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._insight_agent = insight_agent
        self._audit_logger = audit_logger

    @property
    def insight_agent(self) -> InsightAgent:
        if self._insight_agent is None:
            self._insight_agent = InsightAgent(audit_logger=self._audit_logger)
        return self._insight_agent

    async def generate(self) -> Union[SpendingInsights, InsightsFailure]:
        history = self._store.recent_transactions(limit=INSIGHTS_HISTORY_LIMIT)
        return await self.insight_agent.generate(history, self._store.categories)


class BudgetSuggestionFlow:
    """
    Suggests monthly limits, then applies them on request.

    Transactions logged from recurring payments are left out of the
    discretionary history; the payments themselves are sent separately.
    """

    def __init__(
        self,
        store: FinanceStore,
        suggestion_agent: Optional[BudgetSuggestionAgent] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._suggestion_agent = suggestion_agent
        self._audit_logger = audit_logger

    @property
    def suggestion_agent(self) -> BudgetSuggestionAgent:
        if self._suggestion_agent is None:
            self._suggestion_agent = BudgetSuggestionAgent(audit_logger=self._audit_logger)
        return self._suggestion_agent

    async def suggest(self) -> Union[BudgetSuggestion, BudgetSuggestionFailure]:
        discretionary = [
            t for t in self._store.month_transactions()
            if not is_recurring_transaction(t)
        ]
        return await self.suggestion_agent.suggest(
            monthly_income=self._store.monthly_income(),
            transactions=discretionary,
            recurring_payments=self._store.recurring_payments,
            categories=self._store.categories,
        )

    def apply(self, suggestion: BudgetSuggestion) -> list[Budget]:
        return self._store.apply_budget_suggestions(suggestion.limits)


def create_storage(
    use_storage: bool = True,
) -> tuple[KeyValueStorageInterface, AuditStorageInterface]:
    """Build the key-value and audit backends from StorageSettings."""
    settings = get_settings().storage
    if not use_storage or settings.backend == "memory":
        return InMemoryKeyValueStorage(quota_bytes=settings.quota_bytes), InMemoryAuditStorage()

    data_dir = Path(settings.data_dir)
    return (
        JsonFileKeyValueStorage(data_dir),
        JsonLinesAuditStorage(data_dir / AUDIT_LOG_FILENAME),
    )


def create_app_components(
    use_storage: bool = True,
) -> tuple[FinanceStore, TransactionEntryFlow, InsightsFlow, BudgetSuggestionFlow]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to persist to disk.
                    Set to False for an in-memory session.

    Returns:
        (store, transaction_entry_flow, insights_flow, budget_suggestion_flow)

    The store is returned unloaded; call load() before use.
    """
    settings = get_settings()
    storage, audit_storage = create_storage(use_storage)
    audit_logger = AuditLogger(audit_storage)

    store = FinanceStore(
        storage=storage,
        audit_logger=audit_logger,
        validator=FinanceValidator(settings.app),
        key_prefix=settings.storage.key_prefix,
        default_budget_limit=settings.app.default_budget_limit,
    )

    logger.info(
        "app_components_created",
        backend=type(storage).__name__,
        environment=settings.app.app_environment,
    )

    return (
        store,
        TransactionEntryFlow(store, audit_logger=audit_logger),
        InsightsFlow(store, audit_logger=audit_logger),
        BudgetSuggestionFlow(store, audit_logger=audit_logger),
    )
