"""
Bank-aggregation feed payloads and sync planning models.

The payload models mirror the SimpleFIN account-set document loosely:
unknown keys are ignored and every list defaults to empty, since the feed
omits fields freely.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from neobudget.models.ledger import SyncCursor, TransactionDraft


# =============================================================================
# FEED PAYLOAD
# =============================================================================

def _number_to_str(value):
    """Feeds send amounts and ids both as strings and as JSON numbers."""
    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        return str(value)
    return value


class FeedTransaction(BaseModel):
    """One transaction row as reported by the feed."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    posted: Optional[int] = None
    transacted_at: Optional[int] = None
    amount: str = "0"
    description: str = ""
    pending: bool = False

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, value):
        return _number_to_str(value)

    @field_validator("amount", mode="before")
    @classmethod
    def stringify_amount(cls, value):
        return "0" if value is None else _number_to_str(value)

    @field_validator("description", mode="before")
    @classmethod
    def blank_description(cls, value):
        return "" if value is None else value

    @field_validator("pending", mode="before")
    @classmethod
    def missing_pending(cls, value):
        return False if value is None else value


class FeedAccount(BaseModel):
    """A feed account with the transactions inside the requested window."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str = "unknown"
    name: str = "Account"
    currency: Optional[str] = None
    balance: Optional[str] = None
    transactions: list[FeedTransaction] = Field(default_factory=list)

    @field_validator("id", "balance", mode="before")
    @classmethod
    def stringify_number(cls, value):
        return _number_to_str(value)

    @field_validator("name", mode="before")
    @classmethod
    def default_name(cls, value):
        return value or "Account"

    @field_validator("transactions", mode="before")
    @classmethod
    def missing_transactions(cls, value):
        return [] if value is None else value


class FeedAccountSet(BaseModel):
    """Response of one windowed fetch."""

    model_config = ConfigDict(extra="ignore")

    accounts: list[FeedAccount] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)


# =============================================================================
# SYNC PLANNING
# =============================================================================

class SyncMode(str, Enum):
    INCREMENTAL = "incremental"
    BACKFILL = "backfill"


class SyncWindow(BaseModel):
    """Half-open request range `[start_epoch, end_epoch)` in unix seconds."""

    start_epoch: int = Field(..., ge=0)
    end_epoch: int = Field(..., ge=0)

    @model_validator(mode="after")
    def validate_order(self) -> "SyncWindow":
        if self.end_epoch <= self.start_epoch:
            raise ValueError("Window end must be after its start")
        return self

    @property
    def span_seconds(self) -> int:
        return self.end_epoch - self.start_epoch


class SyncPlan(BaseModel):
    """The ordered list of requests one sync round will issue."""

    mode: SyncMode
    now_epoch: int
    requested_days_back: int
    windows: list[SyncWindow] = Field(default_factory=list)

    @property
    def request_count(self) -> int:
        return len(self.windows)


class SyncResult(BaseModel):
    """
    Outcome of a fully successful sync round.

    Nothing in here has been applied yet: the caller commits `accepted`
    and `cursor` together, or neither.
    """

    plan: SyncPlan
    accepted: list[TransactionDraft] = Field(default_factory=list)
    duplicates: int = 0
    dropped_zero_amount: int = 0
    feed_errors: list[str] = Field(default_factory=list)
    accounts_seen: int = 0
    cursor: SyncCursor


class SyncStatus(BaseModel):
    connected: bool
    last_sync_epoch: Optional[int] = None


def parse_feed_amount(raw: Optional[str]) -> Decimal:
    """Signed decimal of a feed amount string; unparsable values read as zero."""
    try:
        value = Decimal(str(raw).strip())
    except (ArithmeticError, ValueError, TypeError):
        return Decimal("0")
    return value if value.is_finite() else Decimal("0")
