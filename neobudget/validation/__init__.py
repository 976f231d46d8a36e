"""Validation of manual ledger writes."""

from neobudget.validation.validator import (
    LedgerValidationError,
    RecurringRuleValidator,
    TransactionValidator,
    get_user_friendly_summary,
    issues_from_error,
    raise_for_issues,
)

__all__ = [
    "LedgerValidationError",
    "RecurringRuleValidator",
    "TransactionValidator",
    "get_user_friendly_summary",
    "issues_from_error",
    "raise_for_issues",
]
