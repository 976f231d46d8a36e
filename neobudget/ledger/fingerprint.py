"""
Transaction fingerprinting for deduplication.

A fingerprint is a SHA-256 digest of the fields that identify a money
movement: date, normalized type, amount rounded to cents, and the
lower-cased trimmed description and category. Ids, account links and
provenance fields do not take part.

Feed entries also carry an `external_id`. For those, identity is decided
by the external id alone: a feed row whose id was seen before is a
duplicate even if it has been re-categorized locally since, and a new feed
id is never collapsed into an older entry with the same content.
"""

import hashlib
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable, Optional

from neobudget.models.ledger import TransactionDraft, coerce_transaction_type

CENT = Decimal("0.01")


def _normalize_text(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def _normalize_amount(value: Any) -> str:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        amount = Decimal("0")
    if not amount.is_finite():
        amount = Decimal("0")
    return str(amount.quantize(CENT, rounding=ROUND_HALF_UP))


def fingerprint(transaction: TransactionDraft) -> str:
    """
    Stable identity key of a transaction's content.

    Two entries that differ only in `id` (or other provenance fields)
    produce the same fingerprint.
    """
    parts = "|".join([
        transaction.date,
        coerce_transaction_type(transaction.type).value,
        _normalize_amount(transaction.amount),
        _normalize_text(transaction.description),
        _normalize_text(transaction.category),
    ])
    return hashlib.sha256(parts.encode("utf-8")).hexdigest()


def is_duplicate(candidate: TransactionDraft, existing: set[str]) -> bool:
    """Exact-match test of a candidate's fingerprint against a seen set."""
    return fingerprint(candidate) in existing


class DuplicateFilter:
    """
    Tracks what a batch has already seen.

    Seed it with the current ledger, then call `admit` for each candidate
    in order: an admitted candidate is remembered immediately, so repeats
    inside the same batch are caught too.
    """

    def __init__(self, existing: Iterable[TransactionDraft] = ()):
        self._fingerprints: set[str] = set()
        self._external_ids: set[str] = set()
        for transaction in existing:
            self.remember(transaction)

    def __len__(self) -> int:
        return len(self._fingerprints)

    def remember(self, transaction: TransactionDraft) -> None:
        self._fingerprints.add(fingerprint(transaction))
        if transaction.external_id:
            self._external_ids.add(transaction.external_id)

    def is_duplicate(self, candidate: TransactionDraft) -> bool:
        if candidate.external_id:
            return candidate.external_id in self._external_ids
        return is_duplicate(candidate, self._fingerprints)

    def admit(self, candidate: TransactionDraft) -> bool:
        """Remember and return True if new; return False for a duplicate."""
        if self.is_duplicate(candidate):
            return False
        self.remember(candidate)
        return True
