"""AI Agents package."""

from zen_finance.agents.ai_agents import (
    BudgetSuggestion,
    BudgetSuggestionAgent,
    BudgetSuggestionFailure,
    Insight,
    InsightAgent,
    InsightsFailure,
    ParsedTransaction,
    ParseFailure,
    SpendingInsights,
    TransactionParsingAgent,
)

__all__ = [
    "BudgetSuggestion",
    "BudgetSuggestionAgent",
    "BudgetSuggestionFailure",
    "Insight",
    "InsightAgent",
    "InsightsFailure",
    "ParsedTransaction",
    "ParseFailure",
    "SpendingInsights",
    "TransactionParsingAgent",
]
