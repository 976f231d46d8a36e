"""
Ledger Store

The single mutation surface over one user's `UserProfile`. Ingestion
paths and the recurring projector append through it; balances and
summaries are read through it but computed by the pure functions in this
package.

Invariants held here:
1. Transaction ids are uuid4 strings assigned on acceptance and never change
2. Every batch goes through the duplicate filter before anything is appended
3. Deleting an account unlinks, never deletes, the entries and rules
   that referenced it

The store does no I/O. Persisting the profile is the session's job.
"""

import uuid
from decimal import Decimal
from typing import Any, Callable, Iterable, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from neobudget.ledger.balances import asset_balance, debt_balance, total_assets, total_debt
from neobudget.ledger.cashflow import aggregate
from neobudget.ledger.fingerprint import DuplicateFilter
from neobudget.ledger.recurring import project, project_range
from neobudget.money import parse_money
from neobudget.models.ledger import (
    AccountRole,
    AssetAccount,
    BalanceAccount,
    DebtAccount,
    RecurringRule,
    SyncCursor,
    Transaction,
    TransactionDraft,
    UserProfile,
)
from neobudget.models.reports import (
    AssetBalance,
    CashflowSummary,
    DebtBalance,
    IngestResult,
    PeriodGranularity,
    RejectedRecord,
    ValidationIssue,
)
from neobudget.validation import LedgerValidationError, issues_from_error


class RecordNotFoundError(LookupError):
    """No transaction, account or rule with the given id."""

    def __init__(self, kind: str, record_id: str):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} not found: {record_id}")


def new_id() -> str:
    return str(uuid.uuid4())


class LedgerStore:
    """
    Mutable view of one user's ledger.

    Args:
        profile: The profile to operate on. It is mutated in place.
        id_factory: Source of new record ids (uuid4 strings by default).
    """

    def __init__(
        self,
        profile: Optional[UserProfile] = None,
        id_factory: Callable[[], str] = new_id,
    ):
        self._profile = profile if profile is not None else UserProfile()
        self._new_id = id_factory

    @property
    def profile(self) -> UserProfile:
        return self._profile

    @property
    def transactions(self) -> list[Transaction]:
        return self._profile.transactions

    @property
    def debts(self) -> list[DebtAccount]:
        return self._profile.debts

    @property
    def assets(self) -> list[AssetAccount]:
        return self._profile.assets

    @property
    def recurring(self) -> list[RecurringRule]:
        return self._profile.recurring

    @property
    def category_budgets(self) -> dict[str, Decimal]:
        return self._profile.category_budgets

    # =========================================================================
    # INGESTION
    # =========================================================================

    def ingest(
        self,
        drafts: Iterable[TransactionDraft],
        rejected: Iterable[RejectedRecord] = (),
    ) -> IngestResult:
        """
        Merge a batch into the ledger.

        Candidates are checked in order against the existing ledger and
        against the ones accepted earlier in the same batch. `rejected`
        records from the adapter are passed through to the result.
        """
        seen = DuplicateFilter(self._profile.transactions)
        result = IngestResult(rejected=list(rejected))

        for draft in drafts:
            if not seen.admit(draft):
                result.duplicates += 1
                continue
            transaction = Transaction.from_draft(draft, self._new_id())
            self._profile.transactions.append(transaction)
            result.accepted.append(transaction)

        return result

    def apply_recurring(self, period: str) -> list[Transaction]:
        """Append the recurring entries still missing for `period`."""
        drafts = project(self._profile.recurring, period, self._profile.transactions)
        return self._append(drafts)

    def apply_recurring_range(self, from_period: str, to_period: str) -> list[Transaction]:
        """Backfill recurring entries for every month in the range."""
        drafts = project_range(
            self._profile.recurring, from_period, to_period, self._profile.transactions
        )
        return self._append(drafts)

    def _append(self, drafts: Iterable[TransactionDraft]) -> list[Transaction]:
        added = [Transaction.from_draft(draft, self._new_id()) for draft in drafts]
        self._profile.transactions.extend(added)
        return added

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    def get_transaction(self, transaction_id: str) -> Transaction:
        for transaction in self._profile.transactions:
            if transaction.id == transaction_id:
                return transaction
        raise RecordNotFoundError("Transaction", transaction_id)

    def add_transaction(self, draft: TransactionDraft) -> Transaction:
        """Append one entry without duplicate checking (explicit user action)."""
        return self._append([draft])[0]

    def edit_transaction(self, transaction_id: str, changes: Mapping[str, Any]) -> Transaction:
        """
        Apply field changes to an entry. The id cannot be changed.

        Raises:
            RecordNotFoundError: unknown id
            LedgerValidationError: the edited entry is not valid
        """
        current = self.get_transaction(transaction_id)
        updated = _revalidate(Transaction, current, changes)
        index = self._profile.transactions.index(current)
        self._profile.transactions[index] = updated
        return updated

    def delete_transaction(self, transaction_id: str) -> Transaction:
        transaction = self.get_transaction(transaction_id)
        self._profile.transactions.remove(transaction)
        return transaction

    def clear_all(self) -> int:
        """
        Remove every transaction, account and category budget.

        Recurring rules (unlinked) and the feed connection are kept. Returns the
        number of transactions removed.
        """
        count = len(self._profile.transactions)
        self._profile.transactions.clear()
        self._profile.debts.clear()
        self._profile.assets.clear()
        self._profile.category_budgets.clear()
        self._profile.feed_account_roles.clear()
        self._profile.recurring = [
            rule.model_copy(update={"debt_account_id": None, "asset_account_id": None})
            for rule in self._profile.recurring
        ]
        return count

    # =========================================================================
    # ACCOUNTS
    # =========================================================================

    def add_debt(self, name: str, starting_balance: Any = 0) -> DebtAccount:
        account = _build(DebtAccount, id=self._new_id(), name=name, starting_balance=_money(starting_balance))
        self._profile.debts.append(account)
        return account

    def add_asset(self, name: str, starting_balance: Any = 0) -> AssetAccount:
        account = _build(AssetAccount, id=self._new_id(), name=name, starting_balance=_money(starting_balance))
        self._profile.assets.append(account)
        return account

    def get_debt(self, account_id: str) -> DebtAccount:
        return _find(self._profile.debts, account_id, "Debt account")

    def get_asset(self, account_id: str) -> AssetAccount:
        return _find(self._profile.assets, account_id, "Asset account")

    def edit_debt(self, account_id: str, changes: Mapping[str, Any]) -> DebtAccount:
        return _replace(self._profile.debts, self.get_debt(account_id), changes)

    def edit_asset(self, account_id: str, changes: Mapping[str, Any]) -> AssetAccount:
        return _replace(self._profile.assets, self.get_asset(account_id), changes)

    def delete_debt(self, account_id: str) -> tuple[int, int]:
        """
        Delete a debt account and unlink everything that referenced it.

        Returns (unlinked transactions, unlinked rules).
        """
        self._profile.debts.remove(self.get_debt(account_id))
        return (
            _unlink(self._profile.transactions, "debt_account_id", account_id),
            _unlink(self._profile.recurring, "debt_account_id", account_id),
        )

    def delete_asset(self, account_id: str) -> tuple[int, int]:
        """Asset counterpart of `delete_debt`."""
        self._profile.assets.remove(self.get_asset(account_id))
        return (
            _unlink(self._profile.transactions, "asset_account_id", account_id),
            _unlink(self._profile.recurring, "asset_account_id", account_id),
        )

    # =========================================================================
    # RECURRING RULES
    # =========================================================================

    def get_recurring(self, rule_id: str) -> RecurringRule:
        return _find(self._profile.recurring, rule_id, "Recurring rule")

    def add_recurring(self, fields: Mapping[str, Any]) -> RecurringRule:
        data = {key: value for key, value in fields.items() if key != "id"}
        rule = _build(RecurringRule, id=self._new_id(), **data)
        self._profile.recurring.append(rule)
        return rule

    def edit_recurring(self, rule_id: str, changes: Mapping[str, Any]) -> RecurringRule:
        """Edits affect future projections only."""
        return _replace(self._profile.recurring, self.get_recurring(rule_id), changes)

    def toggle_recurring(self, rule_id: str, enabled: Optional[bool] = None) -> RecurringRule:
        rule = self.get_recurring(rule_id)
        target = (not rule.enabled) if enabled is None else enabled
        return self.edit_recurring(rule_id, {"enabled": target})

    def delete_recurring(self, rule_id: str) -> RecurringRule:
        """Remove a rule; entries it already generated stay in the ledger."""
        rule = self.get_recurring(rule_id)
        self._profile.recurring.remove(rule)
        return rule

    # =========================================================================
    # CATEGORY BUDGETS
    # =========================================================================

    def set_category_budget(self, category: str, monthly_limit: Any) -> Decimal:
        name = (category or "").strip()
        amount = parse_money(monthly_limit)
        issues = []
        if not name:
            issues.append(ValidationIssue(
                field="category", issue_type="missing",
                message="Category is required", severity="error",
            ))
        if amount is None or amount < 0:
            issues.append(ValidationIssue(
                field="monthly_limit", issue_type="invalid_value",
                message="Budget must be a non-negative number", severity="error",
            ))
        if issues:
            raise LedgerValidationError(issues)
        self._profile.category_budgets[name] = amount
        return amount

    def set_category_budgets(self, budgets: Mapping[str, Any]) -> None:
        for category, limit in budgets.items():
            self.set_category_budget(category, limit)

    def remove_category_budget(self, category: str) -> bool:
        return self._profile.category_budgets.pop(category, None) is not None

    # =========================================================================
    # FEED STATE
    # =========================================================================

    @property
    def sync_cursor(self) -> Optional[SyncCursor]:
        return self._profile.simplefin_cursor

    def connect_feed(self, access_credential: str) -> SyncCursor:
        """Start over with a fresh cursor for a newly claimed credential."""
        cursor = SyncCursor(access_credential=access_credential)
        self._profile.simplefin_cursor = cursor
        return cursor

    def disconnect_feed(self) -> None:
        self._profile.simplefin_cursor = None

    def commit_sync(self, drafts: Iterable[TransactionDraft], cursor: SyncCursor) -> IngestResult:
        """Apply a successful sync round: entries and cursor together."""
        result = self.ingest(drafts)
        self._profile.simplefin_cursor = cursor
        return result

    def set_account_role(self, feed_account_id: str, role: str, account_id: str) -> AccountRole:
        mapping = _build(AccountRole, feed_account_id=feed_account_id, role=role, account_id=account_id)
        if mapping.role == "debt":
            self.get_debt(account_id)
        else:
            self.get_asset(account_id)
        self.remove_account_role(feed_account_id)
        self._profile.feed_account_roles.append(mapping)
        return mapping

    def remove_account_role(self, feed_account_id: str) -> bool:
        before = len(self._profile.feed_account_roles)
        self._profile.feed_account_roles = [
            mapping for mapping in self._profile.feed_account_roles
            if mapping.feed_account_id != feed_account_id
        ]
        return len(self._profile.feed_account_roles) != before

    # =========================================================================
    # DERIVED VIEWS
    # =========================================================================

    def debt_balances(self) -> list[DebtBalance]:
        return [debt_balance(account, self.transactions) for account in self.debts]

    def asset_balances(self) -> list[AssetBalance]:
        return [asset_balance(account, self.transactions) for account in self.assets]

    def total_debt(self) -> Decimal:
        return total_debt(self.debts, self.transactions)

    def total_assets(self) -> Decimal:
        return total_assets(self.assets, self.transactions)

    def summary(
        self,
        period: str,
        granularity: Union[PeriodGranularity, str] = PeriodGranularity.MONTH,
        top_n: Optional[int] = None,
    ) -> CashflowSummary:
        return aggregate(self.transactions, period, self.category_budgets, granularity, top_n)


# =============================================================================
# HELPERS
# =============================================================================

def _money(value: Any) -> Any:
    amount = parse_money(value)
    return value if amount is None else amount


def _build(model: type, **fields: Any):
    try:
        return model(**fields)
    except PydanticValidationError as e:
        raise LedgerValidationError(issues_from_error(e)) from e


def _revalidate(model: type, current, changes: Mapping[str, Any]):
    names = {field.alias or name: name for name, field in model.model_fields.items()}
    data = current.model_dump()
    for key, value in changes.items():
        key = names.get(key, key)
        if key == "id":
            continue
        data[key] = value
    return _build(model, **data)


def _find(records: list, record_id: str, kind: str):
    for record in records:
        if record.id == record_id:
            return record
    raise RecordNotFoundError(kind, record_id)


def _replace(records: list, current: Union[BalanceAccount, RecurringRule], changes: Mapping[str, Any]):
    changes = {
        key: _money(value) if key in ("starting_balance", "startingBalance") else value
        for key, value in changes.items()
    }
    updated = _revalidate(type(current), current, changes)
    records[records.index(current)] = updated
    return updated


def _unlink(records: list, field: str, account_id: str) -> int:
    count = 0
    for index, record in enumerate(records):
        if getattr(record, field) == account_id:
            records[index] = record.model_copy(update={field: None})
            count += 1
    return count
