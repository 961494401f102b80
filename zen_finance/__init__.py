"""
Zen Finance - Source Package

A personal finance tracker: transactions, budgets, recurring bills and
income, with AI-assisted entry and insights.

DESIGN PRINCIPLES:
1. The engine owns the data, everything else reads it
2. Derived values are recomputed, never edited
3. Reject bad input before touching state
4. AI suggests, the engine decides
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Zen Finance Team"
