"""
Cashflow and budget-health aggregation.

Every figure is recomputed from the ledger on each call. Periods are
string prefixes of ISO dates: `YYYY-MM` for a month, `YYYY` for a year.

Double counting of card payments
--------------------------------
A charge to a credit card is already counted in `spend`. Paying that card
off later is a second outflow of the same money, so `cash_left` only
subtracts payments toward debt accounts that had no charges or interest
in the period. Payments with no linked account are always subtracted.
`debt_payments` itself still reports every payment.
"""

from collections import defaultdict
from decimal import Decimal
from typing import Iterable, Mapping, Optional, Sequence

from neobudget.config import get_settings
from neobudget.dates import is_month_key, is_year_key
from neobudget.money import ZERO, safe_amount
from neobudget.models.ledger import DEFAULT_CATEGORY, Transaction, TransactionDraft, TransactionType
from neobudget.models.reports import (
    CashFlowSplit,
    CashflowSummary,
    CategoryOverspend,
    CategoryTotal,
    PeriodGranularity,
)


# =============================================================================
# CLASSIFICATION
# =============================================================================

def is_transfer_description(description: Optional[str], markers: Optional[Sequence[str]] = None) -> bool:
    """
    True when the description looks like a move between own accounts.

    Plain substring matching; descriptions that merely mention a marker
    are misclassified too.
    """
    if markers is None:
        markers = get_settings().ledger.transfer_markers_list
    text = (description or "").lower()
    return any(marker in text for marker in markers)


def counts_as_spend(entry: TransactionDraft, markers: Optional[Sequence[str]] = None) -> bool:
    """Expenses that are not transfers, plus every debt charge and interest entry."""
    if entry.type == TransactionType.EXPENSE:
        return not is_transfer_description(entry.description, markers)
    return entry.type in (TransactionType.DEBT_CHARGE, TransactionType.DEBT_INTEREST)


# =============================================================================
# PERIOD VIEWS
# =============================================================================

def _check_period(period: str, granularity: PeriodGranularity) -> None:
    if granularity == PeriodGranularity.MONTH and not is_month_key(period):
        raise ValueError(f"Monthly period must be YYYY-MM, got {period!r}")
    if granularity == PeriodGranularity.YEAR and not is_year_key(period):
        raise ValueError(f"Yearly period must be YYYY, got {period!r}")


def in_period(ledger: Iterable[TransactionDraft], period: str) -> list[TransactionDraft]:
    return [entry for entry in ledger if entry.date.startswith(period)]


def transactions_for_period(ledger: Iterable[Transaction], period: str) -> list[Transaction]:
    """Entries of one month or year, newest first."""
    return sorted(in_period(ledger, period), key=lambda entry: entry.date, reverse=True)


def category_breakdown(ledger: Iterable[TransactionDraft]) -> list[CategoryTotal]:
    """Expense totals per category, largest first."""
    totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for entry in ledger:
        if entry.type == TransactionType.EXPENSE:
            totals[entry.category or DEFAULT_CATEGORY] += safe_amount(entry.amount)
    ranked = sorted(totals.items(), key=lambda item: (-item[1], item[0]))
    return [CategoryTotal(category=category, total=total) for category, total in ranked]


def cash_flow_split(ledger: Iterable[TransactionDraft]) -> CashFlowSplit:
    """Income in versus every other entry out."""
    split = CashFlowSplit()
    for entry in ledger:
        amount = safe_amount(entry.amount)
        if entry.type == TransactionType.INCOME:
            split.money_in += amount
        else:
            split.money_out += amount
    return split


# =============================================================================
# BUDGET HEALTH
# =============================================================================

def _rate(part: Decimal, whole: Decimal) -> Decimal:
    if whole == 0:
        return ZERO
    return part / whole


def overspent_categories(
    entries: Iterable[TransactionDraft],
    category_budgets: Mapping[str, Decimal],
    granularity: PeriodGranularity = PeriodGranularity.MONTH,
    top_n: Optional[int] = None,
    markers: Optional[Sequence[str]] = None,
) -> list[CategoryOverspend]:
    """
    Categories whose spend exceeds their budget, largest overage first.

    Monthly budgets are multiplied by 12 for a yearly period. Categories
    without a positive budget are never reported.
    """
    if top_n is None:
        top_n = get_settings().ledger.top_overspent_limit
    multiplier = 12 if granularity == PeriodGranularity.YEAR else 1

    actuals: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for entry in entries:
        if counts_as_spend(entry, markers):
            actuals[entry.category or DEFAULT_CATEGORY] += safe_amount(entry.amount)

    overspent = []
    for category, actual in actuals.items():
        monthly = safe_amount(category_budgets.get(category))
        if monthly <= 0:
            continue
        budget = monthly * multiplier
        if actual > budget:
            overspent.append(CategoryOverspend(
                category=category,
                actual=actual,
                budget=budget,
                over_by=actual - budget,
            ))

    overspent.sort(key=lambda item: (-item.over_by, item.category))
    return overspent[:max(top_n, 0)]


def aggregate(
    ledger: Iterable[TransactionDraft],
    period: str,
    category_budgets: Optional[Mapping[str, Decimal]] = None,
    granularity: PeriodGranularity = PeriodGranularity.MONTH,
    top_n: Optional[int] = None,
) -> CashflowSummary:
    """
    Budget-health summary for one month or year.

    Raises ValueError if `period` does not match `granularity`.
    """
    granularity = PeriodGranularity(granularity)
    _check_period(period, granularity)
    markers = get_settings().ledger.transfer_markers_list
    entries = in_period(ledger, period)

    income = ZERO
    spend = ZERO
    debt_payments = ZERO
    savings = ZERO
    charged_accounts: set[str] = set()

    for entry in entries:
        amount = safe_amount(entry.amount)
        if entry.type == TransactionType.INCOME:
            income += amount
        elif entry.type == TransactionType.DEBT_PAYMENT:
            debt_payments += amount
        elif entry.type == TransactionType.ASSET_DEPOSIT:
            savings += amount
        if counts_as_spend(entry, markers):
            spend += amount
        if entry.type in (TransactionType.DEBT_CHARGE, TransactionType.DEBT_INTEREST) and entry.debt_account_id:
            charged_accounts.add(entry.debt_account_id)

    uncharged = sum(
        (
            safe_amount(entry.amount)
            for entry in entries
            if entry.type == TransactionType.DEBT_PAYMENT
            and entry.debt_account_id not in charged_accounts
        ),
        ZERO,
    )

    return CashflowSummary(
        period=period,
        granularity=granularity,
        income=income,
        spend=spend,
        debt_payments=debt_payments,
        debt_payments_uncharged=uncharged,
        savings=savings,
        cash_left=income - (spend + savings + uncharged),
        savings_rate=_rate(savings, income),
        debt_payoff_rate=_rate(debt_payments, income),
        overspent=overspent_categories(
            entries, category_budgets or {}, granularity, top_n, markers
        ),
        transaction_count=len(entries),
    )
