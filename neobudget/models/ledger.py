"""
Ledger Data Models for NeoBudget

These models define the canonical shapes that every ingestion path must
produce and that the persisted per-user record is made of.

Rules enforced here:
1. Amounts are never negative; the sign lives in the transaction type
2. Dates are normalized ISO `YYYY-MM-DD` strings
3. The legacy `debt` type is read as `debt-payment` and never written back
4. A record links to a debt account or an asset account, never both,
   and only when its type belongs to that family

Persisted field names are camelCase (`debtAccountId`, `startingBalance`,
...); Python code uses snake_case. Both are accepted on input.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from neobudget.dates import MONTH_KEY_PATTERN, normalize_date


DEFAULT_CATEGORY = "Uncategorized"


# =============================================================================
# ENUMS
# =============================================================================

class TransactionType(str, Enum):
    """
    Kind of ledger entry.

    `debt-*` types move a linked debt account, `asset-*` types move a
    linked asset account. Income and expense only touch cashflow.
    """
    INCOME = "income"
    EXPENSE = "expense"
    DEBT_PAYMENT = "debt-payment"
    DEBT_INTEREST = "debt-interest"
    DEBT_CHARGE = "debt-charge"
    ASSET_DEPOSIT = "asset-deposit"
    ASSET_GROWTH = "asset-growth"

    @property
    def is_debt(self) -> bool:
        return self in DEBT_TYPES

    @property
    def is_asset(self) -> bool:
        return self in ASSET_TYPES


DEBT_TYPES = frozenset({
    TransactionType.DEBT_PAYMENT,
    TransactionType.DEBT_INTEREST,
    TransactionType.DEBT_CHARGE,
})
ASSET_TYPES = frozenset({
    TransactionType.ASSET_DEPOSIT,
    TransactionType.ASSET_GROWTH,
})

# Read-only aliases kept for records written by older clients.
LEGACY_TYPE_ALIASES = {
    "debt": TransactionType.DEBT_PAYMENT,
}


def coerce_transaction_type(value: Any) -> TransactionType:
    """
    Parse a transaction type, accepting legacy aliases and loose casing.

    Raises ValueError for unknown values.
    """
    if isinstance(value, TransactionType):
        return value
    text = str(value or "").strip().lower()
    if text in LEGACY_TYPE_ALIASES:
        return LEGACY_TYPE_ALIASES[text]
    return TransactionType(text)


# =============================================================================
# BASE
# =============================================================================

class LedgerModel(BaseModel):
    """Base for persisted records: camelCase on the wire, snake_case in code."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    def to_record(self) -> dict:
        """Serialize to the persisted (camelCase, JSON-safe) shape."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def _default_category(value: Any) -> Any:
    if value is None or (isinstance(value, str) and not value.strip()):
        return DEFAULT_CATEGORY
    return value


class _AccountLinked(LedgerModel):
    """Shared type/link handling for transactions and recurring rules."""

    type: TransactionType = Field(
        default=TransactionType.EXPENSE,
        description="Entry type; the sign of the amount is implied by it"
    )
    category: str = Field(
        default=DEFAULT_CATEGORY,
        description="Free-text category label"
    )
    debt_account_id: Optional[str] = Field(
        default=None,
        description="Linked debt account (debt-* types only)"
    )
    asset_account_id: Optional[str] = Field(
        default=None,
        description="Linked asset account (asset-* types only)"
    )

    @field_validator("type", mode="before")
    @classmethod
    def read_legacy_type(cls, v: Any) -> TransactionType:
        return coerce_transaction_type(v)

    @field_validator("category", mode="before")
    @classmethod
    def default_category(cls, v: Any) -> Any:
        return _default_category(v)

    @model_validator(mode="after")
    def normalize_links(self):
        """Drop account links that do not belong to the entry's type family."""
        if not self.type.is_debt:
            self.debt_account_id = None
        if not self.type.is_asset:
            self.asset_account_id = None
        return self


# =============================================================================
# TRANSACTIONS
# =============================================================================

class TransactionDraft(_AccountLinked):
    """
    A candidate ledger entry produced by an ingestion path.

    Drafts have no `id`: identifiers are assigned only when the ledger
    store accepts the entry.
    """

    date: str = Field(
        ...,
        description="ISO calendar date YYYY-MM-DD"
    )
    description: str = Field(
        ...,
        min_length=1,
        max_length=500,
        description="Free-text description"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Non-negative amount; direction comes from `type`"
    )
    recurring_id: Optional[str] = Field(
        default=None,
        description="Rule that generated this entry, if any"
    )
    external_id: Optional[str] = Field(
        default=None,
        description="Source-stable identifier, e.g. simplefin:<account>:<tx>"
    )
    source: Optional[str] = Field(
        default=None,
        description="Where the entry came from (file name, feed account)"
    )

    @field_validator("date", mode="before")
    @classmethod
    def normalize_iso_date(cls, v: Any) -> str:
        return normalize_date(v)


class Transaction(TransactionDraft):
    """An entry accepted into the ledger. `id` is immutable once assigned."""

    id: str = Field(
        ...,
        min_length=1,
        frozen=True,
        description="Opaque unique identifier assigned by the ledger store"
    )

    @classmethod
    def from_draft(cls, draft: TransactionDraft, transaction_id: str) -> "Transaction":
        return cls(id=transaction_id, **draft.model_dump())

    def to_draft(self) -> TransactionDraft:
        return TransactionDraft(**self.model_dump(exclude={"id"}))


# =============================================================================
# ACCOUNTS
# =============================================================================

class BalanceAccount(LedgerModel):
    """An account whose current balance is derived from the ledger."""

    id: str = Field(..., min_length=1)
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Display name"
    )
    starting_balance: Decimal = Field(
        default=Decimal("0"),
        description="Opening balance before any ledger history (signed)"
    )


class DebtAccount(BalanceAccount):
    """A loan or credit line; current = start + charges - payments + interest."""


class AssetAccount(BalanceAccount):
    """A savings or investment account; current = start + deposits + growth."""


# =============================================================================
# RECURRING RULES
# =============================================================================

class RecurringRule(_AccountLinked):
    """
    A monthly obligation or income projected into the ledger.

    Disabling a rule stops future projection only; entries already
    generated stay in the ledger.
    """

    id: str = Field(..., min_length=1)
    enabled: bool = Field(default=True)
    description: str = Field(
        ...,
        min_length=1,
        max_length=500,
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Amount of each generated entry"
    )
    day_of_month: int = Field(
        default=1,
        ge=1,
        le=31,
        description="Day of month, clamped to the month's length when projected"
    )
    start_month: str = Field(
        ...,
        pattern=MONTH_KEY_PATTERN,
        description="First month (YYYY-MM) the rule applies to"
    )


# =============================================================================
# FEED CURSOR & ACCOUNT ROLES
# =============================================================================

class SyncCursor(LedgerModel):
    """
    Sync progress for one connected feed.

    Replaced wholesale on reconnect; `last_sync_epoch` only moves after a
    fully successful round.
    """

    access_credential: str = Field(
        ...,
        min_length=1,
        description="Opaque long-lived access credential returned by the claim"
    )
    last_sync_epoch: Optional[int] = Field(
        default=None,
        ge=0,
        description="Request time (unix seconds) of the last successful round"
    )

    @property
    def has_history(self) -> bool:
        return bool(self.last_sync_epoch)


class AccountRole(LedgerModel):
    """User-assigned mapping of a feed account onto a debt or asset account."""

    feed_account_id: str = Field(..., min_length=1)
    role: Literal["debt", "asset"]
    account_id: str = Field(
        ...,
        min_length=1,
        description="Local DebtAccount / AssetAccount id"
    )


# =============================================================================
# PERSISTED USER RECORD
# =============================================================================

class UserProfile(LedgerModel):
    """
    Everything persisted for one user, stored as a single document.

    Saves replace the whole document (last write wins).
    """

    transactions: list[Transaction] = Field(default_factory=list)
    debts: list[DebtAccount] = Field(default_factory=list)
    assets: list[AssetAccount] = Field(default_factory=list)
    category_budgets: dict[str, Decimal] = Field(default_factory=dict)
    recurring: list[RecurringRule] = Field(default_factory=list)
    simplefin_cursor: Optional[SyncCursor] = None
    feed_account_roles: list[AccountRole] = Field(default_factory=list)
    last_updated: Optional[datetime] = None

    @field_validator("transactions", "debts", "assets", "recurring", "feed_account_roles", mode="before")
    @classmethod
    def null_list(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("category_budgets", mode="before")
    @classmethod
    def null_budgets(cls, v: Any) -> Any:
        return {} if v is None else v

    @classmethod
    def from_record(cls, data: Optional[dict]) -> "UserProfile":
        """Load a persisted record, tolerating older shapes."""
        return cls.model_validate(data or {})
