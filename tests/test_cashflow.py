"""Tests for the cashflow and budget-health aggregator."""

from decimal import Decimal

import pytest

from neobudget.ledger import (
    aggregate,
    cash_flow_split,
    category_breakdown,
    is_transfer_description,
    transactions_for_period,
)
from neobudget.models import BudgetStatus, PeriodGranularity, Transaction


def _t(n, date, type_, amount, category="General", description=None, **links) -> Transaction:
    return Transaction(
        id=f"t{n}",
        date=date,
        description=description or f"entry {n}",
        amount=Decimal(amount),
        type=type_,
        category=category,
        **links,
    )


@pytest.fixture
def ledger():
    return [
        _t(1, "2025-03-01", "income", "4000", "Salary"),
        _t(2, "2025-03-03", "expense", "300", "Groceries"),
        _t(3, "2025-03-05", "expense", "120", "Dining"),
        _t(4, "2025-03-06", "expense", "500", "Transfers", description="Transfer to savings"),
        _t(5, "2025-03-10", "debt-charge", "200", "Shopping", debt_account_id="card"),
        _t(6, "2025-03-11", "debt-interest", "25", "Interest", debt_account_id="card"),
        _t(7, "2025-03-20", "debt-payment", "225", "Card", debt_account_id="card"),
        _t(8, "2025-03-21", "debt-payment", "400", "Car", debt_account_id="car"),
        _t(9, "2025-03-25", "asset-deposit", "600", "Savings", asset_account_id="a1"),
        _t(10, "2025-03-26", "asset-growth", "10", "Savings", asset_account_id="a1"),
        _t(11, "2025-04-01", "expense", "999", "Groceries"),
    ]


class TestAggregate:
    """Tests for monthly and yearly summaries."""

    def test_monthly_figures(self, ledger):
        """Test income, spend, payments, savings and cash left."""
        summary = aggregate(ledger, "2025-03", {})
        assert summary.income == Decimal("4000")
        # groceries + dining + charge + interest; the transfer is excluded
        assert summary.spend == Decimal("645")
        assert summary.debt_payments == Decimal("625")
        assert summary.savings == Decimal("600")
        assert summary.transaction_count == 10

    def test_payment_on_charged_account_not_subtracted_twice(self, ledger):
        """Test that only the uncharged account's payment reduces cash left."""
        summary = aggregate(ledger, "2025-03", {})
        assert summary.debt_payments_uncharged == Decimal("400")
        assert summary.cash_left == Decimal("4000") - (Decimal("645") + Decimal("600") + Decimal("400"))
        assert summary.status == BudgetStatus.ON_TRACK

    def test_unlinked_payment_is_subtracted(self):
        """Test that a payment without an account always counts."""
        summary = aggregate(
            [
                _t(1, "2025-03-01", "income", "100"),
                _t(2, "2025-03-02", "debt-payment", "150"),
            ],
            "2025-03",
        )
        assert summary.debt_payments_uncharged == Decimal("150")
        assert summary.cash_left == Decimal("-50")
        assert summary.status == BudgetStatus.OVERSPENT

    def test_rates(self, ledger):
        """Test savings and payoff rates."""
        summary = aggregate(ledger, "2025-03", {})
        assert summary.savings_rate == Decimal("600") / Decimal("4000")
        assert summary.debt_payoff_rate == Decimal("625") / Decimal("4000")

    def test_zero_income_rates(self):
        """Test that rates are zero instead of dividing by zero."""
        summary = aggregate([_t(1, "2025-03-02", "asset-deposit", "50", asset_account_id="a")], "2025-03")
        assert summary.savings_rate == Decimal("0")
        assert summary.debt_payoff_rate == Decimal("0")

    def test_empty_period(self, ledger):
        """Test a period without entries."""
        summary = aggregate(ledger, "2024-12", {})
        assert summary.transaction_count == 0
        assert summary.cash_left == Decimal("0")
        assert summary.overspent == []

    def test_overspend_ranked_and_limited(self, ledger):
        """Test overspent categories sorted by overage, top N only."""
        budgets = {
            "Groceries": Decimal("200"),
            "Dining": Decimal("100"),
            "Shopping": Decimal("50"),
            "Interest": Decimal("0"),
            "Transfers": Decimal("10"),
        }
        summary = aggregate(ledger, "2025-03", budgets, top_n=2)
        assert [item.category for item in summary.overspent] == ["Shopping", "Groceries"]
        assert summary.overspent[0].over_by == Decimal("150")
        assert summary.overspent[1].actual == Decimal("300")

    def test_default_top_three(self, ledger):
        """Test the configured default of three categories."""
        budgets = {"Groceries": 1, "Dining": 1, "Shopping": 1, "Interest": 1}
        assert len(aggregate(ledger, "2025-03", budgets).overspent) == 3

    def test_yearly_budget_scaled(self, ledger):
        """Test that yearly periods compare against twelve monthly budgets."""
        budgets = {"Groceries": Decimal("100")}
        summary = aggregate(ledger, "2025", budgets, PeriodGranularity.YEAR)
        # 300 + 999 groceries against 1200
        assert summary.overspent[0].category == "Groceries"
        assert summary.overspent[0].budget == Decimal("1200")
        assert summary.overspent[0].over_by == Decimal("99")
        assert summary.transaction_count == 11

    def test_period_must_match_granularity(self, ledger):
        """Test that a mismatched period key is rejected."""
        with pytest.raises(ValueError):
            aggregate(ledger, "2025", {}, PeriodGranularity.MONTH)
        with pytest.raises(ValueError):
            aggregate(ledger, "2025-03", {}, "year")


class TestPeriodViews:
    """Tests for the supplementary views."""

    def test_transfer_heuristic(self):
        """Test the transfer description markers."""
        assert is_transfer_description("TRANSFER FROM checking") is True
        assert is_transfer_description("Overdraft Transfer fee") is True
        assert is_transfer_description("Grocery store") is False
        assert is_transfer_description(None) is False

    def test_transactions_for_period_sorted(self, ledger):
        """Test month filtering with newest first."""
        march = transactions_for_period(ledger, "2025-03")
        assert len(march) == 10
        assert march[0].date == "2025-03-26"
        assert march[-1].date == "2025-03-01"

    def test_category_breakdown(self, ledger):
        """Test expense totals per category."""
        breakdown = category_breakdown(ledger)
        assert breakdown[0].category == "Groceries"
        assert breakdown[0].total == Decimal("1299")
        assert {item.category for item in breakdown} == {"Groceries", "Dining", "Transfers"}

    def test_cash_flow_split(self, ledger):
        """Test income in versus everything else out."""
        split = cash_flow_split(ledger[:3])
        assert split.money_in == Decimal("4000")
        assert split.money_out == Decimal("420")
