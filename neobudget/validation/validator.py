"""
Two-Stage Validation for Ledger Writes

STAGE 1 - SCHEMA VALIDATION:
- Required field presence
- Parseable amount, date, type
- Length and range limits

STAGE 2 - SEMANTIC VALIDATION:
- Account links point at accounts that exist
- Links that do not fit the entry type
- Dates far in the future

Stage 2 only runs when stage 1 found no errors. Warnings never block a
write; any error does, and only for the record being validated.

Validation never fixes values itself. Normalization (trimming, default
category, legacy type alias) is the job of the models.
"""

from datetime import date, timedelta
from typing import Any, Iterable, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from neobudget.dates import is_month_key, normalize_date
from neobudget.money import parse_money
from neobudget.models.ledger import TransactionType, coerce_transaction_type
from neobudget.models.reports import ValidationIssue, ValidationResult


FUTURE_DATE_TOLERANCE_DAYS = 366


class LedgerValidationError(Exception):
    """A ledger write was rejected; `issues` lists the errors found."""

    def __init__(self, issues: list[ValidationIssue], message: Optional[str] = None):
        self.issues = issues
        if message is None:
            errors = [issue.message for issue in issues if issue.severity == "error"]
            message = "; ".join(errors) or "Invalid ledger record"
        super().__init__(message)

    @property
    def reason(self) -> str:
        return str(self)


def _error(field: str, issue_type: str, message: str) -> ValidationIssue:
    return ValidationIssue(field=field, issue_type=issue_type, message=message, severity="error")


def _warning(field: str, issue_type: str, message: str) -> ValidationIssue:
    return ValidationIssue(field=field, issue_type=issue_type, message=message, severity="warning")


def _has_errors(issues: list[ValidationIssue]) -> bool:
    return any(issue.severity == "error" for issue in issues)


def _check_description(raw: Mapping[str, Any], issues: list[ValidationIssue]) -> None:
    description = str(raw.get("description") or "").strip()
    if not description:
        issues.append(_error("description", "missing", "Description is required"))
    elif len(description) > 500:
        issues.append(_error("description", "invalid_value", "Description is longer than 500 characters"))


def _check_type(raw: Mapping[str, Any], issues: list[ValidationIssue]) -> Optional[TransactionType]:
    value = raw.get("type")
    if value in (None, ""):
        return TransactionType.EXPENSE
    try:
        return coerce_transaction_type(value)
    except ValueError:
        issues.append(_error("type", "invalid_value", f"Unknown transaction type: {value!r}"))
        return None


def _link(raw: Mapping[str, Any], snake: str, camel: str) -> Optional[str]:
    value = raw.get(snake, raw.get(camel))
    return str(value).strip() if value else None


class _LinkChecks:
    """Semantic checks on debt/asset links shared by both validators."""

    def __init__(
        self,
        debt_ids: Optional[Iterable[str]] = None,
        asset_ids: Optional[Iterable[str]] = None,
    ):
        self._debt_ids = set(debt_ids) if debt_ids is not None else None
        self._asset_ids = set(asset_ids) if asset_ids is not None else None

    def _check_links(
        self,
        raw: Mapping[str, Any],
        entry_type: TransactionType,
    ) -> list[ValidationIssue]:
        issues = []
        debt_id = _link(raw, "debt_account_id", "debtAccountId")
        asset_id = _link(raw, "asset_account_id", "assetAccountId")

        if debt_id and not entry_type.is_debt:
            issues.append(_warning(
                "debt_account_id", "ignored_link",
                f"Debt account link is ignored for {entry_type.value} entries",
            ))
        elif debt_id and self._debt_ids is not None and debt_id not in self._debt_ids:
            issues.append(_error(
                "debt_account_id", "unknown_account",
                f"Debt account {debt_id} does not exist",
            ))

        if asset_id and not entry_type.is_asset:
            issues.append(_warning(
                "asset_account_id", "ignored_link",
                f"Asset account link is ignored for {entry_type.value} entries",
            ))
        elif asset_id and self._asset_ids is not None and asset_id not in self._asset_ids:
            issues.append(_error(
                "asset_account_id", "unknown_account",
                f"Asset account {asset_id} does not exist",
            ))

        if entry_type.is_debt and not debt_id:
            issues.append(_warning(
                "debt_account_id", "missing",
                "Debt entry is not linked to a debt account; no balance will move",
            ))
        if entry_type.is_asset and not asset_id:
            issues.append(_warning(
                "asset_account_id", "missing",
                "Asset entry is not linked to an asset account; no balance will move",
            ))
        return issues


class TransactionValidator(_LinkChecks):
    """
    Validates a manually entered transaction before it becomes a draft.

    Pass the known account ids to have unknown links reported; leave them
    as None to skip that check.
    """

    def __init__(
        self,
        debt_ids: Optional[Iterable[str]] = None,
        asset_ids: Optional[Iterable[str]] = None,
        today: Optional[date] = None,
    ):
        super().__init__(debt_ids, asset_ids)
        self._today = today

    def _validate_schema(self, raw: Mapping[str, Any]) -> tuple[bool, list[ValidationIssue]]:
        issues: list[ValidationIssue] = []
        _check_description(raw, issues)

        amount = parse_money(raw.get("amount"))
        if raw.get("amount") in (None, ""):
            issues.append(_error("amount", "missing", "Amount is required"))
        elif amount is None:
            issues.append(_error("amount", "invalid_format", f"Amount is not a number: {raw.get('amount')!r}"))
        elif amount <= 0:
            issues.append(_error("amount", "invalid_value", "Amount must be greater than zero"))

        if raw.get("date") not in (None, ""):
            try:
                normalize_date(raw.get("date"), today=self._today)
            except ValueError:
                issues.append(_error("date", "invalid_format", f"Unrecognized date: {raw.get('date')!r}"))

        _check_type(raw, issues)
        return not _has_errors(issues), issues

    def _validate_semantic(self, raw: Mapping[str, Any]) -> tuple[bool, list[ValidationIssue]]:
        entry_type = _check_type(raw, [])
        issues = self._check_links(raw, entry_type)

        if raw.get("date") not in (None, ""):
            today = self._today or date.today()
            entry_date = date.fromisoformat(normalize_date(raw.get("date"), today=today))
            if entry_date > today + timedelta(days=FUTURE_DATE_TOLERANCE_DAYS):
                issues.append(_warning(
                    "date", "future_date",
                    f"Date {entry_date.isoformat()} is more than a year in the future",
                ))

        return not _has_errors(issues), issues

    def validate(self, raw: Mapping[str, Any]) -> ValidationResult:
        """Run both stages; stage 2 is skipped when stage 1 fails."""
        schema_valid, issues = self._validate_schema(raw)
        semantic_valid = False
        if schema_valid:
            semantic_valid, semantic_issues = self._validate_semantic(raw)
            issues.extend(semantic_issues)
        return ValidationResult(is_valid=schema_valid and semantic_valid, issues=issues)


class RecurringRuleValidator(_LinkChecks):
    """Validates a recurring rule before it is added or edited."""

    def _validate_schema(self, raw: Mapping[str, Any]) -> tuple[bool, list[ValidationIssue]]:
        issues: list[ValidationIssue] = []
        _check_description(raw, issues)

        amount = parse_money(raw.get("amount"))
        if amount is None or amount <= 0:
            issues.append(_error("amount", "invalid_value", "Recurring amount must be a positive number"))

        day = raw.get("day_of_month", raw.get("dayOfMonth", 1))
        try:
            day_number = int(day)
        except (TypeError, ValueError):
            day_number = 0
        if not 1 <= day_number <= 31:
            issues.append(_error("day_of_month", "invalid_value", "Day of month must be between 1 and 31"))

        start_month = str(raw.get("start_month", raw.get("startMonth")) or "")
        if not is_month_key(start_month):
            issues.append(_error("start_month", "invalid_format", "Start month must be YYYY-MM"))

        _check_type(raw, issues)
        return not _has_errors(issues), issues

    def validate(self, raw: Mapping[str, Any]) -> ValidationResult:
        schema_valid, issues = self._validate_schema(raw)
        semantic_valid = False
        if schema_valid:
            semantic_issues = self._check_links(raw, _check_type(raw, []))
            issues.extend(semantic_issues)
            semantic_valid = not _has_errors(semantic_issues)
        return ValidationResult(is_valid=schema_valid and semantic_valid, issues=issues)


def raise_for_issues(result: ValidationResult) -> None:
    """Raise LedgerValidationError when the result holds any error."""
    if result.has_errors:
        raise LedgerValidationError(result.issues)


def get_user_friendly_summary(result: ValidationResult) -> str:
    """Plain-text summary of a validation result for display."""
    if result.is_valid and not result.warnings:
        return "All checks passed."

    lines = []
    errors = [issue for issue in result.issues if issue.severity == "error"]
    if errors:
        lines.append("Please fix the following:")
        lines.extend(f"  - {issue.message}" for issue in errors)
    if result.warnings:
        if lines:
            lines.append("")
        lines.append("Please verify the following:")
        lines.extend(f"  - {warning}" for warning in result.warnings)
    return "\n".join(lines)


def issues_from_error(exc: PydanticValidationError) -> list[ValidationIssue]:
    """Translate a pydantic ValidationError into validation issues."""
    issues = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ())) or "record"
        issues.append(_error(field, error.get("type", "invalid_value"), error.get("msg", "Invalid value")))
    return issues
