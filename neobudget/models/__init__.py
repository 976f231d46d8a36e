"""
Data Models Package

This package contains all Pydantic models used by NeoBudget.
Every record flowing into the ledger must conform to these schemas.
"""

from neobudget.models.ledger import (
    ASSET_TYPES,
    DEBT_TYPES,
    DEFAULT_CATEGORY,
    AccountRole,
    AssetAccount,
    BalanceAccount,
    DebtAccount,
    RecurringRule,
    SyncCursor,
    Transaction,
    TransactionDraft,
    TransactionType,
    UserProfile,
    coerce_transaction_type,
)
from neobudget.models.feed import (
    FeedAccount,
    FeedAccountSet,
    FeedTransaction,
    SyncMode,
    SyncPlan,
    SyncResult,
    SyncStatus,
    SyncWindow,
    parse_feed_amount,
)
from neobudget.models.reports import (
    AssetBalance,
    BudgetStatus,
    CashFlowSplit,
    CashflowSummary,
    CategoryOverspend,
    CategoryTotal,
    CsvImportResult,
    DebtBalance,
    FileImportReport,
    IngestResult,
    PeriodGranularity,
    RejectedRecord,
    StatementImportResult,
    ValidationIssue,
    ValidationResult,
)
from neobudget.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger records
    "ASSET_TYPES",
    "DEBT_TYPES",
    "DEFAULT_CATEGORY",
    "AccountRole",
    "AssetAccount",
    "BalanceAccount",
    "DebtAccount",
    "RecurringRule",
    "SyncCursor",
    "Transaction",
    "TransactionDraft",
    "TransactionType",
    "UserProfile",
    "coerce_transaction_type",
    # Feed models
    "FeedAccount",
    "FeedAccountSet",
    "FeedTransaction",
    "SyncMode",
    "SyncPlan",
    "SyncResult",
    "SyncStatus",
    "SyncWindow",
    "parse_feed_amount",
    # Derived views and results
    "AssetBalance",
    "BudgetStatus",
    "CashFlowSplit",
    "CashflowSummary",
    "CategoryOverspend",
    "CategoryTotal",
    "CsvImportResult",
    "DebtBalance",
    "FileImportReport",
    "IngestResult",
    "PeriodGranularity",
    "RejectedRecord",
    "StatementImportResult",
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
