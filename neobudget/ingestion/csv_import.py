"""
Heuristic CSV statement parsing.

Two layouts are understood:

KNOWN LAYOUT
    A budgeting spreadsheet export. The header row is the first row that
    has a "Date of Transaction" cell; "Description", "Category", "Income"
    and "Debits" columns are looked up in that row. A row becomes income
    when its Income cell is positive, otherwise an expense (or a debt
    payment when the category mentions a debt keyword) when its Debits
    cell is positive. Rows with neither are ignored.

FALLBACK LAYOUT
    Any file whose first row has headers containing "date" and "amount".
    Optional "desc", "type" and "cat" columns are matched by substring.

The same file may also hold a budget sub-table: a row with a "Budget
Target" cell and an "Expenses" cell starts it, and every following row
with a category and a positive target becomes a monthly budget.

Rows without a date are skipped silently. Rows whose date or amount
cannot be read are rejected one by one; the rest of the file still loads.
"""

import csv
import io
from datetime import date
from decimal import Decimal
from typing import Optional, Sequence

import structlog
from pydantic import ValidationError as PydanticValidationError

from neobudget.config import get_settings
from neobudget.dates import normalize_date
from neobudget.models.ledger import TransactionDraft, TransactionType, coerce_transaction_type
from neobudget.models.reports import CsvImportResult, RejectedRecord
from neobudget.money import parse_money
from neobudget.validation import issues_from_error

logger = structlog.get_logger(__name__)

KNOWN_DATE_HEADER = "Date of Transaction"
KNOWN_DESCRIPTION_HEADER = "Description"
KNOWN_CATEGORY_HEADER = "Category"
KNOWN_INCOME_HEADER = "Income"
KNOWN_DEBIT_HEADER = "Debits"
BUDGET_TARGET_HEADER = "Budget Target"
BUDGET_CATEGORY_HEADER = "Expenses"

DEFAULT_DESCRIPTION = "Imported"


def read_rows(text: str) -> list[list[str]]:
    """Split CSV text into rows, dropping rows that are entirely blank."""
    reader = csv.reader(io.StringIO(text.lstrip("﻿")))
    return [row for row in reader if any(cell.strip() for cell in row)]


def _cell(row: Sequence[str], index: int) -> str:
    if index < 0 or index >= len(row):
        return ""
    return row[index].strip()


def _find_row(rows: list[list[str]], header: str) -> int:
    for index, row in enumerate(rows):
        if header in (cell.strip() for cell in row):
            return index
    return -1


def _column(header_row: Sequence[str], name: str) -> int:
    for index, cell in enumerate(header_row):
        if cell.strip() == name:
            return index
    return -1


def _column_containing(header_row: Sequence[str], fragment: str) -> int:
    for index, cell in enumerate(header_row):
        if fragment in cell.strip().lower():
            return index
    return -1


# =============================================================================
# BUDGET SUB-TABLE
# =============================================================================

def parse_budget_table(rows: list[list[str]]) -> dict[str, Decimal]:
    """Monthly budget targets keyed by category; empty when there is no table."""
    header_index = _find_row(rows, BUDGET_TARGET_HEADER)
    if header_index == -1:
        return {}

    header = rows[header_index]
    category_col = _column(header, BUDGET_CATEGORY_HEADER)
    target_col = _column(header, BUDGET_TARGET_HEADER)
    if category_col == -1 or target_col == -1:
        return {}

    budgets: dict[str, Decimal] = {}
    for row in rows[header_index + 1:]:
        category = _cell(row, category_col)
        target = parse_money(_cell(row, target_col))
        if category and target is not None and target > 0:
            budgets[category] = target
    return budgets


# =============================================================================
# TRANSACTIONS
# =============================================================================

def _append_draft(result: CsvImportResult, index: int, source: Optional[str], **fields) -> None:
    """Append a draft for one row, or record the row as rejected if the draft is invalid."""
    try:
        result.transactions.append(TransactionDraft(source=source, **fields))
    except PydanticValidationError as e:
        reason = "; ".join(f"{issue.field}: {issue.message}" for issue in issues_from_error(e))
        logger.debug("csv_row_rejected", index=index, reason=reason)
        result.rejected.append(RejectedRecord(index=index, reason=reason, source=source))


def _parse_known(
    rows: list[list[str]],
    header_index: int,
    today: date,
    source: Optional[str],
    debt_keywords: Sequence[str],
    result: CsvImportResult,
) -> None:
    header = rows[header_index]
    date_col = _column(header, KNOWN_DATE_HEADER)
    description_col = _column(header, KNOWN_DESCRIPTION_HEADER)
    category_col = _column(header, KNOWN_CATEGORY_HEADER)
    income_col = _column(header, KNOWN_INCOME_HEADER)
    debit_col = _column(header, KNOWN_DEBIT_HEADER)

    for offset, row in enumerate(rows[header_index + 1:]):
        index = header_index + 1 + offset
        raw_date = _cell(row, date_col)
        if not raw_date:
            result.skipped_rows += 1
            continue

        category = _cell(row, category_col) or get_settings().ledger.default_category
        income = parse_money(_cell(row, income_col)) or Decimal("0")
        debit = parse_money(_cell(row, debit_col)) or Decimal("0")

        if income > 0:
            amount, entry_type = income, TransactionType.INCOME
        elif debit > 0:
            amount, entry_type = debit, TransactionType.EXPENSE
            if any(keyword in category.lower() for keyword in debt_keywords):
                entry_type = TransactionType.DEBT_PAYMENT
        else:
            result.skipped_rows += 1
            continue

        try:
            entry_date = normalize_date(raw_date, today=today)
        except ValueError:
            result.rejected.append(RejectedRecord(
                index=index, reason=f"Unrecognized date: {raw_date!r}", source=source,
            ))
            continue

        _append_draft(
            result, index, source,
            date=entry_date,
            description=_cell(row, description_col) or DEFAULT_DESCRIPTION,
            amount=amount,
            type=entry_type,
            category=category,
        )


def _parse_fallback(
    rows: list[list[str]],
    today: date,
    source: Optional[str],
    result: CsvImportResult,
) -> None:
    header = rows[0]
    date_col = _column_containing(header, "date")
    description_col = _column_containing(header, "desc")
    amount_col = _column_containing(header, "amount")
    type_col = _column_containing(header, "type")
    category_col = _column_containing(header, "cat")

    for index, row in enumerate(rows[1:], start=1):
        raw_date = _cell(row, date_col)
        if not raw_date:
            result.skipped_rows += 1
            continue

        amount = parse_money(_cell(row, amount_col))
        if amount is None or amount == 0:
            result.rejected.append(RejectedRecord(
                index=index, reason=f"Missing or invalid amount: {_cell(row, amount_col)!r}", source=source,
            ))
            continue

        try:
            entry_date = normalize_date(raw_date, today=today)
        except ValueError:
            result.rejected.append(RejectedRecord(
                index=index, reason=f"Unrecognized date: {raw_date!r}", source=source,
            ))
            continue

        raw_type = _cell(row, type_col)
        try:
            entry_type = coerce_transaction_type(raw_type) if raw_type else TransactionType.EXPENSE
        except ValueError:
            entry_type = TransactionType.EXPENSE

        _append_draft(
            result, index, source,
            date=entry_date,
            description=_cell(row, description_col) or DEFAULT_DESCRIPTION,
            amount=abs(amount),
            type=entry_type,
            category=_cell(row, category_col) or None,
        )


def parse_csv(
    text: str,
    source: Optional[str] = None,
    today: Optional[date] = None,
) -> CsvImportResult:
    """
    Parse a CSV statement into drafts and budget targets.

    `today` supplies the year for dates written without one.
    """
    today = today or date.today()
    rows = read_rows(text)
    budgets = parse_budget_table(rows)

    header_index = _find_row(rows, KNOWN_DATE_HEADER)
    if header_index != -1:
        result = CsvImportResult(layout="known", budgets=budgets)
        _parse_known(
            rows, header_index, today, source,
            get_settings().ledger.debt_category_keywords_list, result,
        )
    elif rows and _column_containing(rows[0], "date") != -1 and _column_containing(rows[0], "amount") != -1:
        result = CsvImportResult(layout="fallback", budgets=budgets)
        _parse_fallback(rows, today, source, result)
    else:
        result = CsvImportResult(layout="unrecognized", budgets=budgets)

    logger.info(
        "csv_parsed",
        source=source,
        layout=result.layout,
        transactions=len(result.transactions),
        budgets=len(result.budgets),
        rejected=len(result.rejected),
        skipped=result.skipped_rows,
    )
    return result
