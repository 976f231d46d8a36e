"""
Feed row to ledger draft mapping.

Without an account role the sign decides: money in is income, money out
is expense. Accounts the user mapped to a debt or asset account get the
matching debt/asset types and the link:

    debt role:  out -> debt-charge (debt-interest when the description
                mentions interest or a finance charge), in -> debt-payment
    asset role: in -> asset-deposit (asset-growth for interest or
                dividends), out -> plain expense without a link
"""

from typing import Iterable, Optional

from neobudget.dates import epoch_to_iso_date
from neobudget.models.feed import FeedAccount, FeedAccountSet, FeedTransaction, parse_feed_amount
from neobudget.models.ledger import AccountRole, TransactionDraft, TransactionType

DEBT_INTEREST_MARKERS = ("interest", "finance charge")
ASSET_GROWTH_MARKERS = ("interest", "dividend")


def external_id(feed_name: str, account_id: str, transaction_id: str) -> str:
    return f"{feed_name}:{account_id}:{transaction_id}"


def entry_epoch(transaction: FeedTransaction, now_epoch: int) -> int:
    """Posted time, else transacted-at time, else the round's request time."""
    if transaction.posted and transaction.posted > 0:
        return transaction.posted
    if transaction.transacted_at and transaction.transacted_at > 0:
        return transaction.transacted_at
    return now_epoch


def _mentions(description: str, markers: Iterable[str]) -> bool:
    text = description.lower()
    return any(marker in text for marker in markers)


def classify(amount_is_inflow: bool, description: str, role: Optional[AccountRole]) -> tuple[TransactionType, dict]:
    """Entry type and account link for one feed row."""
    if role is None:
        return (TransactionType.INCOME if amount_is_inflow else TransactionType.EXPENSE), {}

    if role.role == "debt":
        link = {"debt_account_id": role.account_id}
        if amount_is_inflow:
            return TransactionType.DEBT_PAYMENT, link
        if _mentions(description, DEBT_INTEREST_MARKERS):
            return TransactionType.DEBT_INTEREST, link
        return TransactionType.DEBT_CHARGE, link

    if not amount_is_inflow:
        return TransactionType.EXPENSE, {}
    link = {"asset_account_id": role.account_id}
    if _mentions(description, ASSET_GROWTH_MARKERS):
        return TransactionType.ASSET_GROWTH, link
    return TransactionType.ASSET_DEPOSIT, link


def map_feed_transaction(
    transaction: FeedTransaction,
    account: FeedAccount,
    feed_name: str,
    now_epoch: int,
    role: Optional[AccountRole] = None,
) -> Optional[TransactionDraft]:
    """Draft for one feed row, or None for a zero amount."""
    amount = parse_feed_amount(transaction.amount)
    if amount == 0:
        return None

    raw_description = (transaction.description or "").strip() or "Transaction"
    entry_type, link = classify(amount >= 0, raw_description, role)
    return TransactionDraft(
        date=epoch_to_iso_date(entry_epoch(transaction, now_epoch)),
        description=f"{raw_description} ({account.name or 'Account'})"[:500],
        amount=abs(amount),
        type=entry_type,
        external_id=external_id(feed_name, account.id, transaction.id),
        source=f"SimpleFIN:{account.id}",
        **link,
    )


def map_feed_accounts(
    account_set: FeedAccountSet,
    feed_name: str,
    now_epoch: int,
    roles: Iterable[AccountRole] = (),
) -> tuple[list[TransactionDraft], int]:
    """All drafts of one fetch in feed order, plus the number of zero-amount rows dropped."""
    role_by_account = {role.feed_account_id: role for role in roles}
    drafts = []
    dropped = 0
    for account in account_set.accounts:
        role = role_by_account.get(account.id)
        for transaction in account.transactions:
            draft = map_feed_transaction(transaction, account, feed_name, now_epoch, role)
            if draft is None:
                dropped += 1
            else:
                drafts.append(draft)
    return drafts, dropped
