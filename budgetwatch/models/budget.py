"""
Budget Models for budgetwatch

These models define the budget ledger records (budgets and alerts) and
the derived, never-persisted views computed from them.

DESIGN DECISION: Alerts are append-only facts. They denormalize the
category and the limit at alert time so they stay meaningful after the
budget they reference is edited or deleted.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from budgetwatch.models.expense import ensure_aware, new_record_id, utc_now


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class BudgetPeriod(str, Enum):
    """Granularity of a budget's spending cycle."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"

    @classmethod
    def parse(cls, value: Any) -> "BudgetPeriod":
        """Read a period tag, falling back to MONTHLY for anything unknown."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.MONTHLY

    @property
    def label(self) -> str:
        return self.value.capitalize()


class StatusTier(str, Enum):
    """
    Discrete budget health tier.

    Ordered from healthiest to worst; EXCEEDED always dominates.
    """
    SAFE = "safe"
    WARNING = "warning"
    DANGER = "danger"
    EXCEEDED = "exceeded"

    @property
    def label(self) -> str:
        return _TIER_LABELS[self]


_TIER_LABELS = {
    StatusTier.SAFE: "On Track",
    StatusTier.WARNING: "Warning",
    StatusTier.DANGER: "Danger",
    StatusTier.EXCEEDED: "Exceeded",
}


# =============================================================================
# PERSISTED RECORDS
# =============================================================================

class Budget(BaseModel):
    """
    A spending limit for one category over one period.

    The limit must be positive. Edits are last-write-wins and bump
    ``updated_at``; there is no version history.
    """

    id: str = Field(
        default_factory=new_record_id,
        min_length=1,
        description="Unique budget ID"
    )
    category: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Category this budget limits (exact match)"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Spending limit for one period"
    )
    period: BudgetPeriod = Field(
        default=BudgetPeriod.MONTHLY,
        description="Budget cycle"
    )
    created_at: datetime = Field(
        default_factory=utc_now,
        description="When the budget was created"
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        description="Last edit timestamp"
    )

    @field_validator('period', mode='before')
    @classmethod
    def fallback_period(cls, v: Any) -> BudgetPeriod:
        return BudgetPeriod.parse(v)

    @field_validator('created_at', 'updated_at')
    @classmethod
    def timestamps_are_aware(cls, v: datetime) -> datetime:
        return ensure_aware(v)


class BudgetAlert(BaseModel):
    """
    A point-in-time record that a budget was at or over its limit
    when a specific expense was recorded.

    Never edited; only bulk-cleared.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(
        default_factory=new_record_id,
        description="Unique alert ID"
    )
    budget_id: str = Field(
        ...,
        description="Budget that was violated (may no longer exist)"
    )
    category: str = Field(
        ...,
        description="Budget category at alert time"
    )
    spent: Decimal = Field(
        ...,
        description="Projected spend including the triggering expense"
    )
    budget_amount: Decimal = Field(
        ...,
        description="Budget limit at alert time"
    )
    percentage: Decimal = Field(
        ...,
        description="spent / budget_amount x 100"
    )
    exceeded: bool = Field(
        ...,
        description="Whether spent is strictly over the limit"
    )
    created_at: datetime = Field(
        default_factory=utc_now
    )

    @property
    def overage(self) -> Decimal:
        """Amount by which the limit is exceeded (0 when not exceeded)."""
        return max(self.spent - self.budget_amount, Decimal("0"))


# =============================================================================
# DERIVED VIEWS (never persisted)
# =============================================================================

class PeriodWindow(BaseModel):
    """Inclusive [start, end] range of one budget cycle."""
    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    def contains(self, instant: datetime) -> bool:
        return self.start <= ensure_aware(instant) <= self.end


class SpendSummary(BaseModel):
    """Total spend and matched record count for one category/window."""
    model_config = ConfigDict(frozen=True)

    spent: Decimal = Decimal("0")
    count: int = Field(default=0, ge=0)


class CategoryTotal(BaseModel):
    """One row of a per-category spending breakdown."""

    category: str
    amount: Decimal
    count: int = Field(ge=0)
    percentage: Decimal


class MonthlyTotal(BaseModel):
    """One calendar month of a spending time series."""

    month: date = Field(..., description="First day of the month")
    amount: Decimal = Decimal("0")
    count: int = Field(default=0, ge=0)

    @property
    def label(self) -> str:
        """Display label such as ``May 2024``."""
        return self.month.strftime("%b %Y")


class BudgetStatus(BaseModel):
    """
    Health of one budget for the period containing a reference instant.

    Computed on demand. Recomputing with the same ledgers and reference
    instant yields an identical result.
    """
    model_config = ConfigDict(frozen=True)

    budget: Budget
    window: PeriodWindow
    spent: Decimal
    count: int = Field(ge=0)
    remaining: Decimal
    percentage: Decimal
    exceeded: bool
    status: StatusTier
