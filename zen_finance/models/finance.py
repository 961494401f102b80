"""
Core Data Models for Zen Finance

These models define the schemas for everything the finance engine owns.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Round-trip through JSON storage unchanged
4. Keep derived values (Budget.spent) visibly separate from user input

DESIGN DECISION: Stored JSON uses camelCase keys (dayOfMonth, lastLogged,
startDate) so existing exports stay readable, while Python code uses
snake_case. Pydantic aliases handle the mapping in both directions.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)
from pydantic.alias_generators import to_camel


def new_entity_id() -> str:
    """Generate an opaque identifier for a new entity."""
    return str(uuid4())


def to_local_naive(value: datetime) -> datetime:
    """Convert aware datetimes to naive local time; naive ones pass through."""
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class BuiltinCategory(str, Enum):
    """
    Categories every new ledger starts with.

    Users can add their own categories as free-form strings; these are
    only the defaults (and what reset restores).
    """
    FOOD_AND_DRINK = "Food & Drink"
    TRANSPORTATION = "Transportation"
    ENTERTAINMENT = "Entertainment"
    ESSENTIALS = "Essentials"
    SHOPPING = "Shopping"
    MISC = "Misc"


class IconName(str, Enum):
    """Icon tokens understood by the front end."""
    HOME = "Home"
    CAR = "Car"
    COFFEE = "Coffee"
    SHOPPING_BAG = "ShoppingBag"
    TICKET = "Ticket"
    LIGHTBULB = "Lightbulb"
    LANDMARK = "Landmark"
    PLANE = "Plane"
    PALETTE = "Palette"
    BUS = "Bus"
    LAPTOP = "Laptop"
    PARTY_POPPER = "PartyPopper"
    DUMBBELL = "Dumbbell"
    GIFT = "Gift"
    HEART = "Heart"
    MUSIC = "Music"
    PAW_PRINT = "PawPrint"
    SMARTPHONE = "Smartphone"
    RECEIPT = "Receipt"
    WALLET = "Wallet"
    SHIRT = "Shirt"
    GRADUATION_CAP = "GraduationCap"
    BRIEFCASE = "Briefcase"
    BOOK = "Book"
    FILM = "Film"
    UTENSILS = "Utensils"
    PIZZA = "Pizza"
    REPEAT = "Repeat"
    LAYOUT_DASHBOARD = "LayoutDashboard"

    @classmethod
    def is_known(cls, value: object) -> bool:
        return isinstance(value, str) and value in cls._value2member_map_


# Shown whenever an icon token is unknown
DEFAULT_ICON = IconName.LANDMARK


class IncomeFrequency(str, Enum):
    """How often an income source pays out."""
    WEEKLY = "weekly"
    BI_WEEKLY = "bi-weekly"
    MONTHLY = "monthly"
    ONE_TIME = "one-time"


class RecurringPaymentState(str, Enum):
    """
    Where a recurring payment stands in the current month.

    Derived on every evaluation from day_of_month and last_logged.
    Never stored.
    """
    NOT_DUE_THIS_MONTH = "not_due_this_month"  # Month has no such day
    NOT_YET_DUE = "not_yet_due"
    DUE_LOGGED = "due_logged"
    DUE_NOT_LOGGED = "due_not_logged"


BUILTIN_CATEGORY_ICONS: dict[BuiltinCategory, IconName] = {
    BuiltinCategory.FOOD_AND_DRINK: IconName.UTENSILS,
    BuiltinCategory.TRANSPORTATION: IconName.CAR,
    BuiltinCategory.ENTERTAINMENT: IconName.FILM,
    BuiltinCategory.ESSENTIALS: IconName.HOME,
    BuiltinCategory.SHOPPING: IconName.SHOPPING_BAG,
    BuiltinCategory.MISC: IconName.LIGHTBULB,
}

CATEGORY_COLORS: tuple[str, ...] = (
    "#2563eb",
    "#16a34a",
    "#db2777",
    "#ea580c",
    "#9333ea",
    "#0891b2",
    "#ca8a04",
    "#64748b",
)


def color_for_index(index: int) -> str:
    """Pick a palette color for the n-th category."""
    return CATEGORY_COLORS[index % len(CATEGORY_COLORS)]


# =============================================================================
# ENTITY MODELS
# =============================================================================

class FinanceModel(BaseModel):
    """Shared configuration for every stored entity."""

    model_config = ConfigDict(
        str_strip_whitespace=True,
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
    )

    @field_validator('icon', mode='before', check_fields=False)
    @classmethod
    def coerce_unknown_icon(cls, v: object) -> object:
        """Unknown tokens render as the default icon, so store them that way."""
        if v is None or not IconName.is_known(v):
            return DEFAULT_ICON
        return v

    def to_storage(self) -> dict:
        """Serialize to the JSON shape kept in storage."""
        return self.model_dump(mode="json", by_alias=True)


class Transaction(FinanceModel):
    """
    A single spend.

    Created by manual entry, by AI-parsed entry, or automatically when a
    recurring payment falls due.
    """

    id: str = Field(
        default_factory=new_entity_id,
        description="Opaque unique identifier"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Amount in currency units"
    )
    description: str = Field(
        ...,
        min_length=1,
        max_length=200,
    )
    category: str = Field(
        ...,
        min_length=1,
        max_length=50,
        description="Must match an existing Budget.category"
    )
    icon: IconName = Field(default=DEFAULT_ICON)
    date: datetime = Field(
        ...,
        description="When the money was spent"
    )

    @field_validator('date')
    @classmethod
    def normalize_date(cls, v: datetime) -> datetime:
        return to_local_naive(v)


class Budget(FinanceModel):
    """
    A spending category with a monthly limit.

    `spent` is derived from this month's transactions and is rewritten by
    the engine after every change. Users never set it directly.
    """

    category: str = Field(
        ...,
        min_length=1,
        max_length=50,
        description="Unique category name"
    )
    limit: Decimal = Field(
        ...,
        gt=0,
        description="Monthly limit"
    )
    spent: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Derived: current-month spend in this category"
    )
    icon: IconName = Field(default=DEFAULT_ICON)
    color: str = Field(
        default=CATEGORY_COLORS[0],
        min_length=1,
        max_length=32,
        description="Display color token"
    )

    @property
    def remaining(self) -> Decimal:
        return self.limit - self.spent

    @property
    def utilization(self) -> float:
        """Fraction of the limit already spent (can exceed 1.0)."""
        return float(self.spent / self.limit)


class RecurringPayment(FinanceModel):
    """
    A bill that recurs monthly on a fixed day.

    last_logged is the only persisted trace of materialization; the
    per-month state is recomputed from it every time.
    """

    id: str = Field(default_factory=new_entity_id)
    description: str = Field(
        ...,
        min_length=1,
        max_length=200,
    )
    amount: Decimal = Field(..., gt=0)
    category: str = Field(..., min_length=1, max_length=50)
    icon: IconName = Field(default=DEFAULT_ICON)
    day_of_month: int = Field(
        ...,
        ge=1,
        le=31,
        description="Day the bill is due each month"
    )
    last_logged: Optional[datetime] = Field(
        default=None,
        description="When this payment was last turned into a transaction"
    )

    @field_validator('last_logged')
    @classmethod
    def normalize_last_logged(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_local_naive(v) if v is not None else None


class Income(FinanceModel):
    """An income source. Only feeds the monthly income figure."""

    id: str = Field(default_factory=new_entity_id)
    description: str = Field(
        ...,
        min_length=1,
        max_length=200,
    )
    amount: Decimal = Field(..., gt=0)
    frequency: IncomeFrequency
    start_date: datetime = Field(
        ...,
        description="First payout (or the payout date for one-time income)"
    )

    @field_validator('start_date')
    @classmethod
    def normalize_start_date(cls, v: datetime) -> datetime:
        return to_local_naive(v)


def default_budgets(limit: Decimal = Decimal("500")) -> list[Budget]:
    """The budget list a fresh (or reset) ledger starts with."""
    return [
        Budget(
            category=category.value,
            limit=limit,
            icon=BUILTIN_CATEGORY_ICONS[category],
            color=color_for_index(index),
        )
        for index, category in enumerate(BuiltinCategory)
    ]


# =============================================================================
# ENGINE OUTPUT MODELS
# =============================================================================

class RecurringPaymentLogged(BaseModel):
    """Notification emitted when a recurring payment is auto-logged."""

    payment_id: str
    transaction_id: str
    description: str
    amount: Decimal
    due_date: datetime
    logged_at: datetime

    @property
    def message(self) -> str:
        return (
            f'Automatically logged "{self.description}" '
            f'for ${self.amount:,.2f}.'
        )


class UpcomingPayment(BaseModel):
    """A recurring payment with its next due date."""

    payment: RecurringPayment
    due_date: date
    days_until_due: int = Field(ge=0)


class DailySpending(BaseModel):
    """Total spend on a single calendar day."""

    day: date
    total: Decimal = Field(ge=0)


class BudgetProgress(BaseModel):
    """How far through its limit a budget is."""

    category: str
    percent_used: float = Field(ge=0)
    status: str = Field(
        ...,
        pattern="^(ok|warning|over)$",
    )


class FinanceSnapshot(BaseModel):
    """Every collection the engine owns, for export and round-trips."""

    transactions: list[Transaction] = Field(default_factory=list)
    budgets: list[Budget] = Field(default_factory=list)
    recurring_payments: list[RecurringPayment] = Field(default_factory=list)
    incomes: list[Income] = Field(default_factory=list)


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'unknown_category')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """Outcome of validating one mutation request."""

    entity_type: str = Field(
        ...,
        description="What was being validated (transaction, budget, ...)"
    )
    validated_at: datetime = Field(
        default_factory=datetime.now
    )
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def warnings(self) -> list[str]:
        return [i.message for i in self.issues if i.severity == "warning"]
