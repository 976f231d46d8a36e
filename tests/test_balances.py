"""Tests for derived account balances."""

from decimal import Decimal

import pytest

from neobudget.ledger import asset_balance, debt_balance, is_paid_off, total_assets, total_debt
from neobudget.models import AssetAccount, DebtAccount, Transaction


def _entry(n: int, type_: str, amount: str, **links) -> Transaction:
    return Transaction(
        id=f"t{n}",
        date="2025-01-10",
        description=f"entry {n}",
        amount=Decimal(amount),
        type=type_,
        **links,
    )


@pytest.fixture
def card():
    return DebtAccount(id="d1", name="Visa", starting_balance=Decimal("1000"))


@pytest.fixture
def savings():
    return AssetAccount(id="a1", name="Savings", starting_balance=Decimal("500"))


class TestDebtBalance:
    """Tests for debt balance derivation."""

    def test_worked_example(self, card):
        """Test 1000 - 200 payment + 15 interest = 815."""
        ledger = [
            _entry(1, "debt-payment", "200", debt_account_id="d1"),
            _entry(2, "debt-interest", "15", debt_account_id="d1"),
        ]
        balance = debt_balance(card, ledger)
        assert balance.current == Decimal("815")
        assert balance.payments == Decimal("200")
        assert balance.interest == Decimal("15")
        assert balance.charges == Decimal("0")

    def test_charges_increase_balance(self, card):
        """Test the full formula with charges."""
        ledger = [
            _entry(1, "debt-charge", "50.25", debt_account_id="d1"),
            _entry(2, "debt-payment", "100", debt_account_id="d1"),
            _entry(3, "debt-interest", "4.75", debt_account_id="d1"),
        ]
        assert debt_balance(card, ledger).current == Decimal("955.00")

    def test_no_entries_returns_start(self, card):
        """Test that an account without history keeps its starting balance."""
        assert debt_balance(card, []).current == Decimal("1000")

    def test_only_linked_entries_count(self, card):
        """Test that other accounts' and unlinked entries are ignored."""
        ledger = [
            _entry(1, "debt-payment", "200", debt_account_id="other"),
            _entry(2, "debt-payment", "300"),
            _entry(3, "expense", "50"),
        ]
        assert debt_balance(card, ledger).current == Decimal("1000")

    def test_legacy_debt_type_counts_as_payment(self, card):
        """Test that the 'debt' alias reduces the balance."""
        ledger = [_entry(1, "debt", "100", debt_account_id="d1")]
        assert debt_balance(card, ledger).current == Decimal("900")

    def test_removing_entries_restores_start(self, card):
        """Test that deleting history needs no migration."""
        ledger = [_entry(1, "debt-payment", "200", debt_account_id="d1")]
        assert debt_balance(card, ledger).current == Decimal("800")
        assert debt_balance(card, ledger[:0]).current == Decimal("1000")

    def test_paid_off(self, card):
        """Test the paid-off interpretation."""
        ledger = [_entry(1, "debt-payment", "1000", debt_account_id="d1")]
        balance = debt_balance(card, ledger)
        assert balance.is_paid_off is True
        assert is_paid_off(balance) is True
        assert is_paid_off(debt_balance(card, [])) is False


class TestAssetBalance:
    """Tests for asset balance derivation."""

    def test_deposits_and_growth(self, savings):
        """Test start + deposits + growth."""
        ledger = [
            _entry(1, "asset-deposit", "250", asset_account_id="a1"),
            _entry(2, "asset-growth", "12.34", asset_account_id="a1"),
            _entry(3, "asset-deposit", "99", asset_account_id="a2"),
        ]
        balance = asset_balance(savings, ledger)
        assert balance.current == Decimal("762.34")
        assert balance.deposits == Decimal("250")
        assert balance.growth == Decimal("12.34")

    def test_no_entries_returns_start(self, savings):
        """Test an account without history."""
        assert asset_balance(savings, []).current == Decimal("500")


class TestTotals:
    """Tests for portfolio totals."""

    def test_total_debt_and_assets(self, card, savings):
        """Test that totals sum derived balances."""
        other = DebtAccount(id="d2", name="Car", starting_balance=Decimal("3000"))
        ledger = [
            _entry(1, "debt-payment", "200", debt_account_id="d1"),
            _entry(2, "debt-payment", "500", debt_account_id="d2"),
            _entry(3, "asset-deposit", "100", asset_account_id="a1"),
        ]
        assert total_debt([card, other], ledger) == Decimal("3300")
        assert total_assets([savings], ledger) == Decimal("600")

    def test_totals_empty(self):
        """Test totals without accounts."""
        assert total_debt([], []) == Decimal("0")
        assert total_assets([], []) == Decimal("0")
