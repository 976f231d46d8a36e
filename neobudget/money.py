"""Decimal helpers for amounts coming from loosely-typed sources."""

import re
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

ZERO = Decimal("0")

_CURRENCY_NOISE = re.compile(r"[$€£₹,\s]")


def parse_money(value: Any) -> Optional[Decimal]:
    """
    Parse a money value such as `"$1,234.50"`, `"(12.00)"` or `-3.5`.

    Currency symbols, thousands separators and whitespace are stripped;
    accounting parentheses read as negative. Returns None when nothing
    numeric is left.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, (int, float)):
        return parse_money(str(value))

    text = _CURRENCY_NOISE.sub("", str(value))
    negative = text.startswith("(") and text.endswith(")")
    if negative:
        text = text[1:-1]
    if not text:
        return None
    try:
        amount = Decimal(text)
    except InvalidOperation:
        return None
    if not amount.is_finite():
        return None
    return -amount if negative else amount


def safe_amount(value: Any) -> Decimal:
    """Amount for derivations: anything non-numeric counts as zero."""
    amount = parse_money(value)
    return ZERO if amount is None else amount
