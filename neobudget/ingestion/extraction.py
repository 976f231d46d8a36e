"""
Normalization of AI statement-extraction output.

The extractor returns loosely typed JSON: usually an object with a
`transactions` array, sometimes a bare array, sometimes a string that
still has to be decoded. This module is the strict boundary between that
output and the ledger. It never calls the extractor.

The result is tagged: `ParseOk` carries the drafts plus the records that
were rejected one by one, `ParseErr` means the response as a whole could
not be read.
"""

import json
from datetime import date
from pathlib import PurePath
from typing import Any, Literal, Mapping, Optional, Union

from pydantic import BaseModel, Field

from neobudget.config import get_settings
from neobudget.dates import normalize_date
from neobudget.models.ledger import TransactionDraft, TransactionType, coerce_transaction_type
from neobudget.models.reports import RejectedRecord
from neobudget.money import parse_money

DEFAULT_DESCRIPTION = "Imported"

MIME_TYPES = {
    ".pdf": "application/pdf",
    ".csv": "text/csv",
}
DEFAULT_MIME = "application/octet-stream"


class ParseOk(BaseModel):
    kind: Literal["ok"] = "ok"
    transactions: list[TransactionDraft] = Field(default_factory=list)
    rejected: list[RejectedRecord] = Field(default_factory=list)


class ParseErr(BaseModel):
    kind: Literal["err"] = "err"
    reason: str


ExtractionParseResult = Union[ParseOk, ParseErr]


# =============================================================================
# FILE HELPERS
# =============================================================================

def guess_mime(filename: str) -> str:
    """Mime type from the file extension; octet-stream when unknown."""
    return MIME_TYPES.get(PurePath(filename or "").suffix.lower(), DEFAULT_MIME)


def is_pdf(filename: str, mime_type: Optional[str] = None) -> bool:
    return "pdf" in (mime_type or "") or (filename or "").lower().endswith(".pdf")


def model_hint_for(filename: str, mime_type: Optional[str] = None, requested: Optional[str] = None) -> str:
    """The caller's model choice, else the PDF or text default."""
    if requested:
        return requested
    settings = get_settings().imports
    return settings.default_pdf_model if is_pdf(filename, mime_type) else settings.default_csv_model


# =============================================================================
# RESPONSE NORMALIZATION
# =============================================================================

def _records_of(payload: Any) -> Optional[list]:
    if isinstance(payload, (str, bytes)):
        payload = json.loads(payload)
    if isinstance(payload, list):
        return payload
    if isinstance(payload, Mapping):
        records = payload.get("transactions")
        if records is None:
            return []
        if isinstance(records, list):
            return records
    return None


def _coerce_type(value: Any) -> TransactionType:
    try:
        return coerce_transaction_type(value)
    except ValueError:
        return TransactionType.EXPENSE


def normalize_record(
    record: Any,
    filename: str,
    today: Optional[date] = None,
) -> TransactionDraft:
    """
    Coerce one extracted record into a draft.

    Amounts are made non-negative; a missing or unknown type becomes
    expense; a missing category becomes the default; `source` falls back
    to the filename; a missing date falls back to `today`.

    Raises ValueError for records that cannot be salvaged: not an object,
    no usable amount, or an unreadable date.
    """
    if not isinstance(record, Mapping):
        raise ValueError("Record is not an object")

    amount = parse_money(record.get("amount"))
    if amount is None or amount == 0:
        raise ValueError(f"Missing or invalid amount: {record.get('amount')!r}")

    today = today or date.today()
    raw_date = record.get("date")
    entry_date = normalize_date(raw_date, today=today) if raw_date else today.isoformat()

    description = str(record.get("description") or "").strip() or DEFAULT_DESCRIPTION
    category = record.get("category")
    return TransactionDraft(
        date=entry_date,
        description=description[:500],
        amount=abs(amount),
        type=_coerce_type(record.get("type")),
        category=category if isinstance(category, str) else None,
        source=str(record.get("source") or filename),
    )


def normalize_extracted(
    payload: Any,
    filename: str,
    today: Optional[date] = None,
) -> ExtractionParseResult:
    """Turn one file's extractor response into a tagged result."""
    try:
        records = _records_of(payload)
    except (ValueError, UnicodeDecodeError) as e:
        return ParseErr(reason=f"Could not parse extractor response: {e}")
    if records is None:
        return ParseErr(reason="Extractor response has no transactions array")

    result = ParseOk()
    for index, record in enumerate(records):
        try:
            result.transactions.append(normalize_record(record, filename, today))
        except ValueError as e:
            result.rejected.append(RejectedRecord(index=index, reason=str(e), source=filename))
    return result
