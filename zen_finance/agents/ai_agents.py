"""
AI Agents for Zen Finance

CRITICAL BOUNDARIES:

1. TRANSACTION PARSING AGENT:
   - CAN: Turn free text ("coffee with Sam, 7 bucks") into description,
     category, icon and (when stated) amount
   - CANNOT: Invent a category; anything outside the user's list fails
   - CANNOT: Write to the ledger; the orchestrator applies the result

2. INSIGHT AGENT:
   - CAN: Summarize spending patterns FROM the transactions it is given
   - CANNOT: Produce insights for an empty history

3. BUDGET SUGGESTION AGENT:
   - CAN: Propose a monthly limit per existing category
   - CANNOT: Create categories or apply limits itself

Every agent returns either a result model or a *Failure model. Model
output is never trusted as-is: it is parsed, checked against the ledger's
categories and icons, and rejected when it does not fit.
"""

import json
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Literal, Optional, Union

import google.generativeai as genai
from pydantic import BaseModel, Field, ValidationError, field_validator
from tenacity import retry, stop_after_attempt, wait_exponential

from zen_finance.audit import AuditLogger, get_logger
from zen_finance.config import GeminiSettings, get_settings
from zen_finance.models.finance import (
    DEFAULT_ICON,
    IconName,
    RecurringPayment,
    Transaction,
)


logger = get_logger(__name__)

EMPTY_HISTORY_MESSAGE = "No transactions yet. Start logging to see your insights!"


# =============================================================================
# RESULT MODELS
# =============================================================================

class ParsedTransaction(BaseModel):
    """Transaction details read out of free text. Not yet in the ledger."""

    amount: Optional[Decimal] = Field(
        default=None,
        gt=0,
        description="Only set when the text states an amount"
    )
    description: str = Field(..., min_length=1, max_length=200)
    category: str = Field(..., min_length=1)
    icon: IconName = Field(default=DEFAULT_ICON)


class ParseFailure(BaseModel):
    reason: str


class Insight(BaseModel):
    """One structured spending insight."""

    type: Literal["observation", "suggestion", "alert", "positive"]
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    category: str = ""
    icon: IconName = Field(default=DEFAULT_ICON)

    @field_validator('icon', mode='before')
    @classmethod
    def coerce_unknown_icon(cls, v: object) -> object:
        return v if IconName.is_known(v) else DEFAULT_ICON


class SpendingInsights(BaseModel):
    insights: list[Insight] = Field(default_factory=list)
    generated_at: datetime = Field(default_factory=datetime.now)


class InsightsFailure(BaseModel):
    reason: str


class BudgetSuggestion(BaseModel):
    """Suggested monthly limits, keyed by existing category name."""

    limits: dict[str, Decimal] = Field(default_factory=dict)
    monthly_income: Decimal = Decimal("0")

    @property
    def total(self) -> Decimal:
        return sum(self.limits.values(), Decimal("0"))

    @property
    def exceeds_income(self) -> bool:
        """Reported, not enforced: the user decides whether to apply."""
        return self.total > self.monthly_income


class BudgetSuggestionFailure(BaseModel):
    reason: str


def extract_json_object(text: str) -> Optional[dict]:
    """Pull the outermost JSON object out of a model reply."""
    start = text.find("{")
    end = text.rfind("}") + 1
    if start < 0 or end <= start:
        return None
    try:
        data = json.loads(text[start:end])
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


def _positive_decimal(value: Any) -> Optional[Decimal]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite() or number <= 0:
        return None
    return number


# =============================================================================
# AGENTS
# =============================================================================

class GeminiAgent:
    """
    Shared plumbing for agents backed by a Gemini model.

    Pass `model` to reuse an existing GenerativeModel (tests pass a mock);
    otherwise one is configured from GeminiSettings.
    """

    agent_name = "gemini"

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        model: Optional[Any] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._audit_logger = audit_logger
        if model is not None:
            self._model = model
        else:
            self._settings = settings or get_settings().gemini
            self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
            }
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        reraise=True,
    )
    async def _generate(self, prompt: str) -> str:
        response = await self._model.generate_content_async(prompt)
        return response.text.strip()

    async def _ask_json(self, prompt: str) -> tuple[Optional[dict], Optional[str]]:
        """
        Send a prompt and parse the JSON reply.

        Returns (data, None) on success or (None, reason) on failure; the
        failure has already been logged and audited.
        """
        try:
            text = await self._generate(prompt)
        except Exception as e:
            self._report_failure(str(e), parse_failure=False)
            return None, "The AI service is unavailable right now."

        data = extract_json_object(text)
        if data is None:
            self._report_failure(f"Unparseable reply: {text[:200]}", parse_failure=True)
            return None, "The AI reply could not be understood."
        return data, None

    def _report_failure(self, message: str, parse_failure: bool) -> None:
        logger.warning(
            "ai_call_failed",
            agent=self.agent_name,
            error=message,
            parse_failure=parse_failure,
        )
        if self._audit_logger:
            self._audit_logger.log_ai_failure(
                self.agent_name, message, parse_failure=parse_failure
            )


class TransactionParsingAgent(GeminiAgent):
    """Reads a transaction out of a sentence."""

    agent_name = "transaction_parser"

    async def parse(
        self,
        text: str,
        categories: Iterable[str],
        category_icons: Optional[dict[str, IconName]] = None,
    ) -> Union[ParsedTransaction, ParseFailure]:
        """
        Parse free text into transaction details.

        The category must be one of `categories`. An icon the front end
        cannot draw is replaced by the category's icon.
        """
        categories = list(categories)
        if not text or not text.strip():
            return ParseFailure(reason="Please enter a transaction description.")
        if not categories:
            return ParseFailure(reason="There are no categories to choose from.")

        category_list = ", ".join(f'"{c}"' for c in categories)
        icon_list = ", ".join(i.value for i in IconName)
        prompt = f"""Extract the amount, create a concise title for the description, determine the category, and find an appropriate icon for the transaction from the following text.

Text: {text.strip()}

The category must be one of the following: {category_list}.

The icon must be one of the following lucide icon names: {icon_list}.

The description should be a short, clean title for the transaction, not the full text.
If the text does not mention an amount, use null for the amount.

Respond with ONLY a JSON object in this exact format:
{{"amount": 7, "description": "Coffee at Starbucks", "category": "Food & Drink", "icon": "Coffee"}}"""

        data, reason = await self._ask_json(prompt)
        if data is None:
            return ParseFailure(reason=reason)

        category = str(data.get("category") or "").strip()
        if category not in categories:
            self._report_failure(f"Category not in list: {category!r}", parse_failure=True)
            return ParseFailure(
                reason="Could not determine a valid category for this transaction."
            )

        icon = data.get("icon")
        if not IconName.is_known(icon):
            icon = (category_icons or {}).get(category, DEFAULT_ICON)

        try:
            return ParsedTransaction(
                amount=_positive_decimal(data.get("amount")),
                description=str(data.get("description") or "").strip() or text.strip()[:200],
                category=category,
                icon=icon,
            )
        except ValidationError as e:
            self._report_failure(str(e), parse_failure=True)
            return ParseFailure(
                reason="Failed to parse transaction. Please try a different description."
            )


class InsightAgent(GeminiAgent):
    """Turns recent transactions into a handful of structured insights."""

    agent_name = "insights"

    async def generate(
        self,
        transactions: Iterable[Transaction],
        categories: Iterable[str],
    ) -> Union[SpendingInsights, InsightsFailure]:
        transactions = list(transactions)
        categories = list(categories)
        if not transactions:
            return SpendingInsights(insights=[
                Insight(
                    type="observation",
                    title="Nothing to analyze yet",
                    description=EMPTY_HISTORY_MESSAGE,
                    icon=IconName.RECEIPT,
                )
            ])

        lines = "\n".join(
            f'- Amount: ${t.amount:.2f}, Description: "{t.description}", '
            f'Category: "{t.category}", Date: {t.date.date().isoformat()}'
            for t in transactions
        )
        category_list = ", ".join(f'"{c}"' for c in categories)
        icon_list = ", ".join(i.value for i in IconName)

        prompt = f"""You are a friendly and insightful personal finance advisor named Zen. Help the user understand their spending habits by analyzing their transaction data.

Analyze the following transactions and generate 2-4 structured insights.
Your insights should be actionable, personalized to specific categories, and varied: mix observations, suggestions and positive reinforcement. Avoid being overly critical. Be concise.

Transaction Data:
{lines}

Available categories: {category_list}.

The icon for each insight must be one of these lucide icon names: {icon_list}.

Each insight has:
- "type": "observation", "suggestion", "alert" or "positive"
- "title": a short headline
- "description": the advice or observation
- "category": the most relevant spending category
- "icon": an icon name from the list

Respond with ONLY a JSON object in this exact format:
{{"insights": [{{"type": "suggestion", "title": "Tackle Your Top Expense", "description": "Food & Drink was your highest category this month.", "category": "Food & Drink", "icon": "Utensils"}}]}}"""

        data, reason = await self._ask_json(prompt)
        if data is None:
            return InsightsFailure(reason=reason)

        raw_insights = data.get("insights")
        if not isinstance(raw_insights, list):
            self._report_failure("Reply has no insights list", parse_failure=True)
            return InsightsFailure(reason="Failed to generate insights.")

        insights = []
        for item in raw_insights:
            try:
                insights.append(Insight.model_validate(item))
            except ValidationError:
                # Skip malformed items
                continue

        if not insights:
            self._report_failure("No usable insights in reply", parse_failure=True)
            return InsightsFailure(reason="Failed to generate insights.")
        return SpendingInsights(insights=insights)


class BudgetSuggestionAgent(GeminiAgent):
    """Proposes a monthly limit for each existing category."""

    agent_name = "budget_suggestion"

    async def suggest(
        self,
        monthly_income: Decimal,
        transactions: Iterable[Transaction],
        recurring_payments: Iterable[RecurringPayment],
        categories: Iterable[str],
    ) -> Union[BudgetSuggestion, BudgetSuggestionFailure]:
        """
        Ask for limits and keep only positive values for known categories.

        Categories the model leaves out simply get no suggestion.
        """
        categories = list(categories)
        if not categories:
            return BudgetSuggestionFailure(reason="There are no categories to budget for.")

        category_lines = "\n".join(f"- {c}" for c in categories)
        recurring_lines = "\n".join(
            f"- Category: {p.category}, Amount: {p.amount:.2f}"
            for p in recurring_payments
        ) or "- none"
        spending_lines = "\n".join(
            f"- Category: {t.category}, Amount: {t.amount:.2f}"
            for t in transactions
        ) or "- none"

        prompt = f"""You are a helpful and experienced personal finance assistant. Help the user create a realistic monthly budget.

Process:
1. Account for the fixed costs from the recurring payments. They are non-negotiable.
2. Analyze the discretionary spending from the past month and identify where spending is high.
3. For each category propose a limit. Categories with recurring payments need at least the sum of those payments. For discretionary categories use past spending as a baseline and suggest a rounded, sensible number.
4. The SUM of all limits should NOT exceed the monthly income. Leave a small buffer if possible.

User's Monthly Income: {monthly_income:.2f}

User's Categories:
{category_lines}

Fixed Recurring Payments (this month):
{recurring_lines}

Discretionary Spending (past month):
{spending_lines}

Respond with ONLY a JSON object whose keys are the exact category names above and whose values are whole-number limits."""

        data, reason = await self._ask_json(prompt)
        if data is None:
            return BudgetSuggestionFailure(reason=reason)

        known = set(categories)
        limits: dict[str, Decimal] = {}
        for category, value in data.items():
            number = _positive_decimal(value)
            if category in known and number is not None:
                limits[category] = number

        if not limits:
            self._report_failure("No usable limits in reply", parse_failure=True)
            return BudgetSuggestionFailure(reason="Failed to suggest a budget.")

        suggestion = BudgetSuggestion(limits=limits, monthly_income=monthly_income)
        if suggestion.exceeds_income:
            logger.info(
                "budget_suggestion_exceeds_income",
                total=str(suggestion.total),
                monthly_income=str(monthly_income),
            )
        return suggestion
