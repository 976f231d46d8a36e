"""Ingestion adapters: manual entry, CSV statements and AI extraction output."""

from neobudget.ingestion.csv_import import parse_budget_table, parse_csv, read_rows
from neobudget.ingestion.extraction import (
    ExtractionParseResult,
    ParseErr,
    ParseOk,
    guess_mime,
    is_pdf,
    model_hint_for,
    normalize_extracted,
    normalize_record,
)
from neobudget.ingestion.manual import normalize_manual, normalize_manual_batch

__all__ = [
    "ExtractionParseResult",
    "ParseErr",
    "ParseOk",
    "guess_mime",
    "is_pdf",
    "model_hint_for",
    "normalize_extracted",
    "normalize_manual",
    "normalize_manual_batch",
    "normalize_record",
    "parse_budget_table",
    "parse_csv",
    "read_rows",
]
