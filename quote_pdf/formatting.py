"""Text formatting helpers for the rendered document (pt-BR conventions)."""

from __future__ import annotations

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

CENTS = Decimal("0.01")

_LATIN1_REPLACEMENTS = {
    "\u00a0": " ",
    "\u2009": " ",
    "\u200b": "",
    "\u2010": "-",
    "\u2011": "-",
    "\u2013": "-",
    "\u2014": "--",
    "\u2212": "-",
    "\u2026": "...",
    "\u2018": "'",
    "\u2019": "'",
    "\u201c": '"',
    "\u201d": '"',
    "\u2022": "*",
}


def to_decimal(value: Any) -> Decimal:
    """Coerce numbers and numeric strings to ``Decimal``; junk becomes zero."""
    if isinstance(value, Decimal):
        return value
    if value is None or value == "":
        return Decimal("0")
    try:
        return Decimal(str(value).strip())
    except InvalidOperation:
        return Decimal("0")


def money(value: Any) -> Decimal:
    return to_decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def format_currency(value: Any) -> str:
    """Format as Brazilian reais, e.g. ``R$ 1.234,56``."""
    amount = money(value)
    sign = "-" if amount < 0 else ""
    grouped = f"{abs(amount):,.2f}"
    # 1,234.56 -> 1.234,56
    grouped = grouped.replace(",", "_").replace(".", ",").replace("_", ".")
    return f"{sign}R$ {grouped}"


def format_quantity(value: Any) -> str:
    """Integral quantities render as plain integers, never grouped."""
    qty = to_decimal(value)
    if qty == qty.to_integral_value():
        return str(int(qty))
    return format(qty.normalize(), "f")


def format_percentage(value: Any) -> str:
    pct = to_decimal(value)
    if pct == pct.to_integral_value():
        return f"{int(pct)}%"
    return f"{format(pct.normalize(), 'f').replace('.', ',')}%"


def format_date(value: Optional[date]) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        value = value.date()
    return value.strftime("%d/%m/%Y")


def truncate(text: Optional[str], limit: int) -> str:
    if not text:
        return ""
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def pdf_safe(text: Any) -> str:
    """Map text onto Latin-1 so the core PDF fonts can draw it."""
    out = "" if text is None else str(text)
    for key, val in _LATIN1_REPLACEMENTS.items():
        out = out.replace(key, val)
    return out.encode("latin-1", "replace").decode("latin-1")
