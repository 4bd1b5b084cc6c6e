"""
Expense Models for budgetwatch

An expense is a single recorded spend. Its category is a free-text
string and is the join key to budgets (exact, case-sensitive match).

DESIGN DECISION: The model stores whatever amount it is given.
Invalid, negative or non-finite amounts are kept as recorded and are
neutralized at aggregation time instead. Rejecting bad input is the job
of the form-boundary validator, not of the stored record.
"""

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator


def new_record_id() -> str:
    """Generate a new stable record identifier."""
    return str(uuid4())


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ExpenseSortKey(str, Enum):
    """Orderings offered by the expense list."""
    DATE = "date"
    CATEGORY = "category"


class Expense(BaseModel):
    """
    A single recorded expense.

    The identifier is assigned once at creation and never changes;
    edits replace every other field.
    """

    id: str = Field(
        default_factory=new_record_id,
        min_length=1,
        description="Unique, stable expense ID"
    )
    title: str = Field(
        default="",
        max_length=200,
        description="Short description of the expense"
    )
    category: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Category name, matched exactly against budgets"
    )
    amount: Decimal = Field(
        ...,
        allow_inf_nan=True,
        description="Amount spent (invalid values are stored as NaN)"
    )
    date: datetime = Field(
        ...,
        description="When the expense happened"
    )
    note: Optional[str] = Field(
        default=None,
        max_length=1000,
        description="Optional free-form note"
    )

    @field_validator('amount', mode='before')
    @classmethod
    def keep_unparsable_amount(cls, v: Any) -> Any:
        """Store unparsable amounts as NaN rather than refusing the record."""
        if isinstance(v, (Decimal, int, float)) and not isinstance(v, bool):
            return v
        try:
            return Decimal(str(v).strip())
        except (InvalidOperation, ValueError):
            return Decimal("NaN")

    @field_validator('date')
    @classmethod
    def date_is_aware(cls, v: datetime) -> datetime:
        return ensure_aware(v)

    def to_snapshot(self) -> dict:
        """Serialize to the JSON-compatible form used in ledger snapshots."""
        return self.model_dump(mode="json")
