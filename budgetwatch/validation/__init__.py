"""Form-boundary validation package."""

from budgetwatch.validation.validator import (
    BudgetDraft,
    DraftRejectedError,
    DraftValidator,
    ExpenseDraft,
)

__all__ = ["BudgetDraft", "DraftRejectedError", "DraftValidator", "ExpenseDraft"]
