"""
Derived views and operation results.

None of these are persisted: balances, summaries and ingestion outcomes
are recomputed from the ledger every time they are asked for.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from neobudget.models.ledger import Transaction, TransactionDraft


ZERO = Decimal("0")


# =============================================================================
# ACCOUNT BALANCES
# =============================================================================

class DebtBalance(BaseModel):
    """Derived state of a debt account."""

    account_id: str
    current: Decimal
    payments: Decimal = ZERO
    interest: Decimal = ZERO
    charges: Decimal = ZERO

    @property
    def is_paid_off(self) -> bool:
        return self.current <= 0


class AssetBalance(BaseModel):
    """Derived state of an asset account."""

    account_id: str
    current: Decimal
    deposits: Decimal = ZERO
    growth: Decimal = ZERO


# =============================================================================
# CASHFLOW / BUDGET HEALTH
# =============================================================================

class PeriodGranularity(str, Enum):
    MONTH = "month"
    YEAR = "year"


class BudgetStatus(str, Enum):
    ON_TRACK = "on_track"
    OVERSPENT = "overspent"


class CategoryOverspend(BaseModel):
    """A category whose spend exceeded its (period-scaled) budget."""

    category: str
    actual: Decimal
    budget: Decimal
    over_by: Decimal


class CategoryTotal(BaseModel):
    category: str
    total: Decimal


class CashFlowSplit(BaseModel):
    """Money in (income) versus everything else out."""

    money_in: Decimal = ZERO
    money_out: Decimal = ZERO


class CashflowSummary(BaseModel):
    """
    Budget-health figures for one period.

    `cash_left` subtracts only the debt payments whose account had no
    charges or interest in the same period; payments on charged accounts
    are already represented by the charges counted in `spend`.
    """

    period: str
    granularity: PeriodGranularity
    income: Decimal = ZERO
    spend: Decimal = ZERO
    debt_payments: Decimal = ZERO
    debt_payments_uncharged: Decimal = ZERO
    savings: Decimal = ZERO
    cash_left: Decimal = ZERO
    savings_rate: Decimal = ZERO
    debt_payoff_rate: Decimal = ZERO
    overspent: list[CategoryOverspend] = Field(default_factory=list)
    transaction_count: int = 0

    @property
    def status(self) -> BudgetStatus:
        return BudgetStatus.ON_TRACK if self.cash_left >= 0 else BudgetStatus.OVERSPENT


# =============================================================================
# VALIDATION
# =============================================================================

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
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )


class ValidationResult(BaseModel):
    """Result of validating one ledger write."""

    is_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def warnings(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "warning"]


# =============================================================================
# INGESTION OUTCOMES
# =============================================================================

class RejectedRecord(BaseModel):
    """A source record that did not make it past normalization."""

    index: int = Field(
        ...,
        ge=0,
        description="Position of the record in its source batch"
    )
    reason: str
    source: Optional[str] = None


class IngestResult(BaseModel):
    """
    Outcome of merging one batch into the ledger.

    Duplicates are a normal outcome and are only counted.
    """

    accepted: list[Transaction] = Field(default_factory=list)
    duplicates: int = 0
    rejected: list[RejectedRecord] = Field(default_factory=list)

    @property
    def accepted_count(self) -> int:
        return len(self.accepted)


class FileImportReport(BaseModel):
    """Per-file outcome of a statement import batch."""

    filename: str
    mime_type: str
    size_bytes: int = Field(default=0, ge=0)
    model_hint: Optional[str] = None
    ok: bool
    transaction_count: int = 0
    error: Optional[str] = None


class StatementImportResult(BaseModel):
    """Outcome of importing a batch of statement files."""

    files: list[FileImportReport] = Field(default_factory=list)
    ingest: IngestResult = Field(default_factory=IngestResult)

    @property
    def failed_files(self) -> list[FileImportReport]:
        return [report for report in self.files if not report.ok]


class CsvImportResult(BaseModel):
    """Transactions and budget targets read from one CSV file."""

    layout: str = Field(
        ...,
        pattern="^(known|fallback|unrecognized)$",
        description="Which header detection matched"
    )
    transactions: list[TransactionDraft] = Field(default_factory=list)
    budgets: dict[str, Decimal] = Field(default_factory=dict)
    rejected: list[RejectedRecord] = Field(default_factory=list)
    skipped_rows: int = 0
