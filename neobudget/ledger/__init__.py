"""
Ledger core: deduplication, derived balances, recurring projection,
cashflow aggregation and the ledger store.
"""

from neobudget.ledger.balances import (
    asset_balance,
    debt_balance,
    is_paid_off,
    total_assets,
    total_debt,
)
from neobudget.ledger.cashflow import (
    aggregate,
    cash_flow_split,
    category_breakdown,
    counts_as_spend,
    is_transfer_description,
    overspent_categories,
    transactions_for_period,
)
from neobudget.ledger.fingerprint import DuplicateFilter, fingerprint, is_duplicate
from neobudget.ledger.recurring import project, project_range, projected_date
from neobudget.ledger.store import LedgerStore, RecordNotFoundError, new_id

__all__ = [
    "DuplicateFilter",
    "LedgerStore",
    "RecordNotFoundError",
    "aggregate",
    "asset_balance",
    "cash_flow_split",
    "category_breakdown",
    "counts_as_spend",
    "debt_balance",
    "fingerprint",
    "is_duplicate",
    "is_paid_off",
    "is_transfer_description",
    "new_id",
    "overspent_categories",
    "project",
    "project_range",
    "projected_date",
    "total_assets",
    "total_debt",
    "transactions_for_period",
]
