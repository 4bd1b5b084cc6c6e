"""
Validation Models

Results of checking a form draft before it reaches a ledger.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_format', 'invalid_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        default="error",
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Outcome of validating one draft.

    When valid, ``cleaned`` holds the normalized field values ready
    to build a ledger record from.
    """

    entity_type: str = Field(
        ...,
        pattern="^(expense|budget)$"
    )
    issues: list[ValidationIssue] = Field(default_factory=list)
    cleaned: Optional[dict[str, Any]] = None

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    def summary(self) -> str:
        """One line per error, suitable for showing to the user."""
        return "\n".join(
            issue.message for issue in self.issues if issue.severity == "error"
        )
