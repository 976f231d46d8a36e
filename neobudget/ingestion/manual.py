"""Manual entry: validate user input and turn it into a draft."""

from datetime import date
from typing import Any, Iterable, Mapping, Optional

from neobudget.dates import normalize_date
from neobudget.models.ledger import TransactionDraft
from neobudget.models.reports import RejectedRecord
from neobudget.money import parse_money
from neobudget.validation import LedgerValidationError, TransactionValidator, raise_for_issues

MANUAL_SOURCE = "manual"


def normalize_manual(
    raw: Mapping[str, Any],
    today: Optional[date] = None,
    validator: Optional[TransactionValidator] = None,
) -> TransactionDraft:
    """
    Build a draft from a manual entry form.

    The date defaults to `today`; the category defaults to Uncategorized
    through the model.

    Raises:
        LedgerValidationError: missing description, non-positive or
            unparseable amount, unknown type or bad date
    """
    today = today or date.today()
    validator = validator or TransactionValidator(today=today)
    raise_for_issues(validator.validate(raw))

    entry_date = raw.get("date")
    return TransactionDraft(
        date=normalize_date(entry_date, today=today) if entry_date else today.isoformat(),
        description=str(raw.get("description")).strip(),
        amount=parse_money(raw.get("amount")),
        type=raw.get("type") or "expense",
        category=raw.get("category"),
        debt_account_id=raw.get("debt_account_id", raw.get("debtAccountId")),
        asset_account_id=raw.get("asset_account_id", raw.get("assetAccountId")),
        source=raw.get("source") or MANUAL_SOURCE,
    )


def normalize_manual_batch(
    records: Iterable[Mapping[str, Any]],
    today: Optional[date] = None,
    validator: Optional[TransactionValidator] = None,
) -> tuple[list[TransactionDraft], list[RejectedRecord]]:
    """Normalize several entries; invalid ones are rejected individually."""
    drafts = []
    rejected = []
    for index, raw in enumerate(records):
        try:
            drafts.append(normalize_manual(raw, today=today, validator=validator))
        except LedgerValidationError as e:
            rejected.append(RejectedRecord(index=index, reason=e.reason, source=MANUAL_SOURCE))
    return drafts, rejected
