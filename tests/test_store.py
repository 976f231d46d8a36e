"""Tests for the ledger store."""

import itertools
from decimal import Decimal

import pytest
from pydantic import ValidationError as PydanticValidationError

from neobudget.ledger import LedgerStore, RecordNotFoundError
from neobudget.models import SyncCursor, TransactionDraft, TransactionType, UserProfile
from neobudget.validation import LedgerValidationError


@pytest.fixture
def store():
    counter = itertools.count(1)
    return LedgerStore(UserProfile(), id_factory=lambda: f"id{next(counter)}")


def _draft(description="Coffee", amount="3.50", date="2025-11-05", **fields):
    return TransactionDraft(date=date, description=description, amount=Decimal(amount), **fields)


class TestIngest:
    """Tests for batch merging."""

    def test_accepts_and_assigns_ids(self, store):
        """Test that accepted entries get fresh ids."""
        result = store.ingest([_draft(), _draft("Tea")])
        assert [t.id for t in result.accepted] == ["id1", "id2"]
        assert len(store.transactions) == 2

    def test_duplicates_within_and_across_batches(self, store):
        """Test duplicate counting inside a batch and against the ledger."""
        first = store.ingest([_draft(), _draft(description="coffee")])
        assert first.accepted_count == 1
        assert first.duplicates == 1
        second = store.ingest([_draft()])
        assert second.accepted == []
        assert second.duplicates == 1
        assert len(store.transactions) == 1

    def test_rejected_passed_through(self, store):
        """Test that adapter rejections reach the result."""
        from neobudget.models import RejectedRecord

        result = store.ingest([], rejected=[RejectedRecord(index=3, reason="bad date")])
        assert result.rejected[0].index == 3

    def test_add_transaction_skips_dedup(self, store):
        """Test that an explicit add may repeat an existing entry."""
        store.add_transaction(_draft())
        store.add_transaction(_draft())
        assert len(store.transactions) == 2


class TestTransactionEdits:
    """Tests for editing and deleting entries."""

    def test_edit_keeps_id(self, store):
        """Test that edits never change the id."""
        entry = store.add_transaction(_draft())
        updated = store.edit_transaction(entry.id, {"amount": Decimal("4.00"), "id": "other"})
        assert updated.id == entry.id
        assert updated.amount == Decimal("4.00")
        assert store.get_transaction(entry.id).amount == Decimal("4.00")

    def test_id_cannot_be_reassigned(self, store):
        """Test that a stored entry's id is frozen against direct assignment."""
        entry = store.add_transaction(_draft())
        with pytest.raises(PydanticValidationError):
            entry.id = "other"
        assert store.get_transaction("id1") is entry
        entry.category = "Coffee Shops"
        assert store.get_transaction("id1").category == "Coffee Shops"

    def test_edit_accepts_camel_case_keys(self, store):
        """Test wire-style field names."""
        debt = store.add_debt("Card", 100)
        entry = store.add_transaction(_draft(type="debt-payment"))
        updated = store.edit_transaction(entry.id, {"debtAccountId": debt.id})
        assert updated.debt_account_id == debt.id

    def test_invalid_edit_rejected(self, store):
        """Test that an edit producing an invalid entry is refused."""
        entry = store.add_transaction(_draft())
        with pytest.raises(LedgerValidationError):
            store.edit_transaction(entry.id, {"description": ""})
        assert store.get_transaction(entry.id).description == "Coffee"

    def test_unknown_id(self, store):
        """Test lookups of missing entries."""
        with pytest.raises(RecordNotFoundError):
            store.delete_transaction("nope")

    def test_delete(self, store):
        """Test removing an entry."""
        entry = store.add_transaction(_draft())
        store.delete_transaction(entry.id)
        assert store.transactions == []


class TestAccounts:
    """Tests for debt and asset accounts."""

    def test_balances_follow_ledger(self, store):
        """Test derived balances through the store."""
        card = store.add_debt("Card", "$1,000")
        savings = store.add_asset("Savings", 500)
        store.ingest([
            _draft("Charge", "200", type="debt-charge", debt_account_id=card.id),
            _draft("Payment", "400", type="debt-payment", debt_account_id=card.id),
            _draft("Deposit", "100", type="asset-deposit", asset_account_id=savings.id),
        ])
        assert store.debt_balances()[0].current == Decimal("800")
        assert store.asset_balances()[0].current == Decimal("600")
        assert store.total_debt() == Decimal("800")
        assert store.total_assets() == Decimal("600")

    def test_invalid_account_rejected(self, store):
        """Test that blank names are refused."""
        with pytest.raises(LedgerValidationError):
            store.add_debt("", 10)

    def test_edit_account(self, store):
        """Test renaming and rebasing an account."""
        card = store.add_debt("Card", 100)
        updated = store.edit_debt(card.id, {"name": "Visa", "startingBalance": "250"})
        assert updated.name == "Visa"
        assert updated.starting_balance == Decimal("250")

    def test_delete_unlinks(self, store):
        """Test that deleting an account keeps entries and rules, unlinked."""
        card = store.add_debt("Card", 100)
        store.ingest([_draft("Payment", "50", type="debt-payment", debt_account_id=card.id)])
        store.add_recurring({
            "description": "Card autopay", "amount": "50", "type": "debt-payment",
            "debt_account_id": card.id, "start_month": "2025-01",
        })
        assert store.delete_debt(card.id) == (1, 1)
        assert store.debts == []
        assert store.transactions[0].debt_account_id is None
        assert store.transactions[0].type == TransactionType.DEBT_PAYMENT
        assert store.recurring[0].debt_account_id is None

    def test_delete_asset_unlinks(self, store):
        """Test the asset side of unlinking."""
        savings = store.add_asset("Savings")
        store.ingest([_draft("Deposit", "10", type="asset-deposit", asset_account_id=savings.id)])
        assert store.delete_asset(savings.id) == (1, 0)
        assert store.transactions[0].asset_account_id is None


class TestRecurring:
    """Tests for recurring rules in the store."""

    def _rule(self, store, **fields):
        data = {"description": "Rent", "amount": "1200", "day_of_month": 31, "start_month": "2025-01"}
        data.update(fields)
        return store.add_recurring(data)

    def test_apply_is_idempotent(self, store):
        """Test that applying a month twice adds one entry."""
        rule = self._rule(store)
        added = store.apply_recurring("2025-02")
        assert [t.date for t in added] == ["2025-02-28"]
        assert added[0].recurring_id == rule.id
        assert store.apply_recurring("2025-02") == []
        assert len(store.transactions) == 1

    def test_backfill(self, store):
        """Test applying a range of months."""
        self._rule(store, day_of_month=1)
        added = store.apply_recurring_range("2025-01", "2025-03")
        assert len(added) == 3

    def test_toggle(self, store):
        """Test disabling and re-enabling a rule."""
        rule = self._rule(store)
        assert store.toggle_recurring(rule.id).enabled is False
        assert store.apply_recurring("2025-03") == []
        assert store.toggle_recurring(rule.id, True).enabled is True

    def test_add_ignores_supplied_id(self, store):
        """Test that rule ids come from the store."""
        rule = self._rule(store, id="mine")
        assert rule.id == "id1"

    def test_invalid_rule(self, store):
        """Test that a non-positive amount is refused."""
        with pytest.raises(LedgerValidationError):
            self._rule(store, amount="0")

    def test_delete_keeps_generated_entries(self, store):
        """Test that removing a rule leaves its entries."""
        rule = self._rule(store)
        store.apply_recurring("2025-01")
        store.delete_recurring(rule.id)
        assert store.recurring == []
        assert len(store.transactions) == 1


class TestBudgetsAndFeed:
    """Tests for category budgets, feed state and clearing."""

    def test_category_budgets(self, store):
        """Test setting, replacing and removing budgets."""
        store.set_category_budgets({"Groceries": "$400", "Dining": 120})
        assert store.category_budgets == {"Groceries": Decimal("400"), "Dining": Decimal("120")}
        assert store.remove_category_budget("Dining") is True
        assert store.remove_category_budget("Dining") is False

    @pytest.mark.parametrize("category,limit", [("", 10), ("Food", -1), ("Food", "abc")])
    def test_invalid_budget(self, store, category, limit):
        """Test that blank categories and bad limits are refused."""
        with pytest.raises(LedgerValidationError):
            store.set_category_budget(category, limit)

    def test_summary_uses_budgets(self, store):
        """Test that the store's summary sees its budgets."""
        store.set_category_budget("Food", 10)
        store.ingest([_draft("Lunch", "25", date="2025-03-02", category="Food")])
        summary = store.summary("2025-03")
        assert summary.overspent[0].over_by == Decimal("15")

    def test_connect_resets_cursor(self, store):
        """Test that a new credential starts without history."""
        store.commit_sync([], SyncCursor(access_credential="old", last_sync_epoch=100))
        cursor = store.connect_feed("new")
        assert cursor.last_sync_epoch is None
        assert store.sync_cursor.access_credential == "new"
        store.disconnect_feed()
        assert store.sync_cursor is None

    def test_commit_sync(self, store):
        """Test that entries and cursor are applied together."""
        store.connect_feed("cred")
        result = store.commit_sync(
            [_draft(external_id="simplefin:A:1")],
            SyncCursor(access_credential="cred", last_sync_epoch=500),
        )
        assert result.accepted_count == 1
        assert store.sync_cursor.last_sync_epoch == 500

    def test_account_roles(self, store):
        """Test mapping feed accounts onto local accounts."""
        card = store.add_debt("Card", 0)
        store.set_account_role("ACT-1", "debt", card.id)
        store.set_account_role("ACT-1", "debt", card.id)
        assert len(store.profile.feed_account_roles) == 1
        with pytest.raises(RecordNotFoundError):
            store.set_account_role("ACT-2", "asset", card.id)
        with pytest.raises(LedgerValidationError):
            store.set_account_role("ACT-2", "savings", card.id)
        assert store.remove_account_role("ACT-1") is True

    def test_clear_all(self, store):
        """Test that clearing keeps rules (unlinked) and the feed connection."""
        card = store.add_debt("Card", 0)
        store.add_recurring({
            "description": "Autopay", "amount": "50", "type": "debt-payment",
            "debt_account_id": card.id, "start_month": "2025-01",
        })
        store.set_account_role("ACT-1", "debt", card.id)
        store.set_category_budget("Food", 10)
        store.connect_feed("cred")
        store.ingest([_draft(), _draft("Tea")])

        assert store.clear_all() == 2
        assert store.transactions == []
        assert store.debts == []
        assert store.category_budgets == {}
        assert store.profile.feed_account_roles == []
        assert len(store.recurring) == 1
        assert store.recurring[0].debt_account_id is None
        assert store.sync_cursor is not None
