"""Budget tracking engine: periods, aggregation, status and violations."""

from budgetwatch.tracking.aggregation import (
    aggregate_spend,
    category_breakdown,
    coerce_amount,
    monthly_breakdown,
    top_categories,
)
from budgetwatch.tracking.periods import MONDAY, SUNDAY, resolve_period
from budgetwatch.tracking.status import (
    all_budget_statuses,
    calculate_budget_status,
    classify,
    compute_percentage,
)
from budgetwatch.tracking.violations import describe_violation, detect_violations

__all__ = [
    "MONDAY",
    "SUNDAY",
    "aggregate_spend",
    "all_budget_statuses",
    "calculate_budget_status",
    "category_breakdown",
    "classify",
    "coerce_amount",
    "compute_percentage",
    "describe_violation",
    "detect_violations",
    "monthly_breakdown",
    "resolve_period",
    "top_categories",
]
