"""
Tests for the AI agents

The Gemini model is replaced by a mock; no network calls are made.
"""

import json
import pytest
from datetime import datetime
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

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
from zen_finance.agents.ai_agents import extract_json_object
from zen_finance.audit import AuditLogger
from zen_finance.models import AuditEventType, IconName, RecurringPayment, Transaction
from zen_finance.services.storage import InMemoryAuditStorage


CATEGORIES = ["Food & Drink", "Transportation", "Essentials"]


def mock_model(reply=None, error=None):
    """A stand-in for genai.GenerativeModel."""
    model = MagicMock()
    if error is not None:
        model.generate_content_async = AsyncMock(side_effect=error)
    else:
        text = reply if isinstance(reply, str) else json.dumps(reply)
        model.generate_content_async = AsyncMock(return_value=SimpleNamespace(text=text))
    return model


def sample_transactions():
    return [
        Transaction(
            amount=Decimal("7"),
            description="Coffee",
            category="Food & Drink",
            date=datetime(2026, 10, 19, 8, 0),
        ),
        Transaction(
            amount=Decimal("40"),
            description="Fuel",
            category="Transportation",
            date=datetime(2026, 10, 12, 18, 0),
        ),
    ]


class TestExtractJson:

    def test_plain_object(self):
        assert extract_json_object('{"a": 1}') == {"a": 1}

    def test_fenced_reply(self):
        assert extract_json_object('```json\n{"a": 1}\n```') == {"a": 1}

    @pytest.mark.parametrize("text", ["", "no json here", "{broken", "[1, 2]"])
    def test_unusable(self, text):
        assert extract_json_object(text) is None


class TestTransactionParsingAgent:
    """Tests for free-text transaction parsing."""

    @pytest.mark.asyncio
    async def test_parses_transaction(self):
        model = mock_model({
            "amount": 7,
            "description": "Coffee at Starbucks",
            "category": "Food & Drink",
            "icon": "Coffee",
        })
        agent = TransactionParsingAgent(model=model)

        result = await agent.parse("grande latte at starbucks, 7 bucks", CATEGORIES)

        assert isinstance(result, ParsedTransaction)
        assert result.amount == Decimal("7")
        assert result.description == "Coffee at Starbucks"
        assert result.category == "Food & Drink"
        assert result.icon == IconName.COFFEE

        prompt = model.generate_content_async.await_args.args[0]
        assert '"Food & Drink", "Transportation", "Essentials"' in prompt

    @pytest.mark.asyncio
    async def test_missing_amount_is_allowed(self):
        model = mock_model({
            "amount": None,
            "description": "Bus ticket",
            "category": "Transportation",
            "icon": "Bus",
        })
        result = await TransactionParsingAgent(model=model).parse("bus ticket", CATEGORIES)

        assert isinstance(result, ParsedTransaction)
        assert result.amount is None

    @pytest.mark.asyncio
    async def test_empty_text_fails_without_model_call(self):
        model = mock_model({})
        result = await TransactionParsingAgent(model=model).parse("   ", CATEGORIES)

        assert isinstance(result, ParseFailure)
        model.generate_content_async.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_category_outside_list_fails(self):
        model = mock_model({
            "amount": 12,
            "description": "Concert",
            "category": "Entertainment",
            "icon": "Music",
        })
        audit_storage = InMemoryAuditStorage()
        agent = TransactionParsingAgent(model=model, audit_logger=AuditLogger(audit_storage))

        result = await agent.parse("concert tickets", CATEGORIES)

        assert isinstance(result, ParseFailure)
        assert result.reason == "Could not determine a valid category for this transaction."
        event = audit_storage.get_recent_events(limit=1)[0]
        assert event.event_type == AuditEventType.AI_PARSE_FAILED

    @pytest.mark.asyncio
    async def test_unknown_icon_uses_category_icon(self):
        model = mock_model({
            "amount": 3,
            "description": "Tea",
            "category": "Food & Drink",
            "icon": "🍵",
        })
        result = await TransactionParsingAgent(model=model).parse(
            "tea",
            CATEGORIES,
            category_icons={"Food & Drink": IconName.UTENSILS},
        )
        assert result.icon == IconName.UTENSILS

    @pytest.mark.asyncio
    async def test_negative_amount_dropped(self):
        model = mock_model({
            "amount": -3,
            "description": "Refund",
            "category": "Essentials",
            "icon": "Receipt",
        })
        result = await TransactionParsingAgent(model=model).parse("refund", CATEGORIES)
        assert result.amount is None

    @pytest.mark.asyncio
    async def test_unparseable_reply(self):
        model = mock_model("Sorry, I can't help with that.")
        result = await TransactionParsingAgent(model=model).parse("coffee", CATEGORIES)
        assert isinstance(result, ParseFailure)

    @pytest.mark.asyncio
    async def test_model_error_retried_then_reported(self):
        model = mock_model(error=RuntimeError("quota exhausted"))
        audit_storage = InMemoryAuditStorage()
        agent = TransactionParsingAgent(model=model, audit_logger=AuditLogger(audit_storage))

        result = await agent.parse("coffee", CATEGORIES)

        assert isinstance(result, ParseFailure)
        assert model.generate_content_async.await_count == 3
        event = audit_storage.get_recent_events(limit=1)[0]
        assert event.event_type == AuditEventType.AI_REQUEST_FAILED
        assert event.error_message == "quota exhausted"


class TestInsightAgent:
    """Tests for spending insights."""

    @pytest.mark.asyncio
    async def test_empty_history_short_circuits(self):
        model = mock_model({})
        result = await InsightAgent(model=model).generate([], CATEGORIES)

        assert isinstance(result, SpendingInsights)
        assert len(result.insights) == 1
        assert result.insights[0].type == "observation"
        assert "Start logging" in result.insights[0].description
        model.generate_content_async.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_generates_insights(self):
        model = mock_model({"insights": [
            {
                "type": "suggestion",
                "title": "Tackle Your Top Expense",
                "description": "Transportation was your highest category.",
                "category": "Transportation",
                "icon": "Car",
            },
            {
                "type": "positive",
                "title": "Coffee under control",
                "description": "Only one coffee this week.",
                "category": "Food & Drink",
                "icon": "NotAnIcon",
            },
        ]})

        result = await InsightAgent(model=model).generate(sample_transactions(), CATEGORIES)

        assert [i.type for i in result.insights] == ["suggestion", "positive"]
        assert result.insights[0].icon == IconName.CAR
        assert result.insights[1].icon == IconName.LANDMARK

        prompt = model.generate_content_async.await_args.args[0]
        assert 'Description: "Fuel"' in prompt

    @pytest.mark.asyncio
    async def test_malformed_insights_skipped(self):
        model = mock_model({"insights": [
            {"type": "rant", "title": "x", "description": "y"},
            {"type": "alert", "title": "Over budget", "description": "Shopping is over."},
        ]})

        result = await InsightAgent(model=model).generate(sample_transactions(), CATEGORIES)

        assert len(result.insights) == 1
        assert result.insights[0].type == "alert"

    @pytest.mark.asyncio
    async def test_no_usable_insights(self):
        model = mock_model({"insights": []})
        result = await InsightAgent(model=model).generate(sample_transactions(), CATEGORIES)
        assert isinstance(result, InsightsFailure)


class TestBudgetSuggestionAgent:
    """Tests for budget suggestions."""

    @pytest.mark.asyncio
    async def test_keeps_known_positive_limits(self):
        model = mock_model({
            "Food & Drink": 300,
            "Transportation": "150",
            "Essentials": 0,
            "Yachts": 5000,
        })
        rent = RecurringPayment(
            description="Rent",
            amount=Decimal("1200"),
            category="Essentials",
            day_of_month=1,
        )

        result = await BudgetSuggestionAgent(model=model).suggest(
            Decimal("3000"),
            sample_transactions(),
            [rent],
            CATEGORIES,
        )

        assert isinstance(result, BudgetSuggestion)
        assert result.limits == {
            "Food & Drink": Decimal("300"),
            "Transportation": Decimal("150"),
        }
        assert result.total == Decimal("450")
        assert not result.exceeds_income

        prompt = model.generate_content_async.await_args.args[0]
        assert "Category: Essentials, Amount: 1200.00" in prompt
        assert "User's Monthly Income: 3000.00" in prompt

    @pytest.mark.asyncio
    async def test_flags_limits_above_income(self):
        model = mock_model({"Food & Drink": 900, "Transportation": 400})
        result = await BudgetSuggestionAgent(model=model).suggest(
            Decimal("1000"), [], [], CATEGORIES
        )
        assert result.exceeds_income

    @pytest.mark.asyncio
    async def test_nothing_usable(self):
        model = mock_model({"Yachts": 5000})
        result = await BudgetSuggestionAgent(model=model).suggest(
            Decimal("1000"), [], [], CATEGORIES
        )
        assert isinstance(result, BudgetSuggestionFailure)

    @pytest.mark.asyncio
    async def test_no_categories(self):
        model = mock_model({})
        result = await BudgetSuggestionAgent(model=model).suggest(Decimal("1000"), [], [], [])

        assert isinstance(result, BudgetSuggestionFailure)
        model.generate_content_async.assert_not_awaited()
