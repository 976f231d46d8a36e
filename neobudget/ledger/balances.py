"""
Account balance derivation.

Balances are recomputed from the starting balance and the linked ledger
entries on every read. Editing or deleting history therefore needs no
migration, and there is no stored balance that could drift.
"""

from decimal import Decimal
from typing import Iterable

from neobudget.money import ZERO, safe_amount
from neobudget.models.ledger import (
    AssetAccount,
    DebtAccount,
    TransactionDraft,
    TransactionType,
)
from neobudget.models.reports import AssetBalance, DebtBalance


def debt_balance(account: DebtAccount, ledger: Iterable[TransactionDraft]) -> DebtBalance:
    """
    current = starting balance + charges - payments + interest

    Only entries whose `debt_account_id` matches the account count.
    """
    payments = ZERO
    interest = ZERO
    charges = ZERO

    for entry in ledger:
        if entry.debt_account_id != account.id:
            continue
        if entry.type == TransactionType.DEBT_PAYMENT:
            payments += safe_amount(entry.amount)
        elif entry.type == TransactionType.DEBT_INTEREST:
            interest += safe_amount(entry.amount)
        elif entry.type == TransactionType.DEBT_CHARGE:
            charges += safe_amount(entry.amount)

    start = safe_amount(account.starting_balance)
    return DebtBalance(
        account_id=account.id,
        current=start + charges - payments + interest,
        payments=payments,
        interest=interest,
        charges=charges,
    )


def asset_balance(account: AssetAccount, ledger: Iterable[TransactionDraft]) -> AssetBalance:
    """current = starting balance + deposits + growth"""
    deposits = ZERO
    growth = ZERO

    for entry in ledger:
        if entry.asset_account_id != account.id:
            continue
        if entry.type == TransactionType.ASSET_DEPOSIT:
            deposits += safe_amount(entry.amount)
        elif entry.type == TransactionType.ASSET_GROWTH:
            growth += safe_amount(entry.amount)

    start = safe_amount(account.starting_balance)
    return AssetBalance(
        account_id=account.id,
        current=start + deposits + growth,
        deposits=deposits,
        growth=growth,
    )


def total_debt(accounts: Iterable[DebtAccount], ledger: Iterable[TransactionDraft]) -> Decimal:
    """Sum of current balances across debt accounts."""
    entries = list(ledger)
    return sum((debt_balance(account, entries).current for account in accounts), ZERO)


def total_assets(accounts: Iterable[AssetAccount], ledger: Iterable[TransactionDraft]) -> Decimal:
    """Sum of current balances across asset accounts."""
    entries = list(ledger)
    return sum((asset_balance(account, entries).current for account in accounts), ZERO)


def is_paid_off(balance: DebtBalance) -> bool:
    return balance.current <= 0
