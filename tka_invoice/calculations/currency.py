"""Rupiah formatting and parsing for documents and the API"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any
import logging
import re

from tka_invoice.models.decimal_wire import wire_to_decimal

logger = logging.getLogger(__name__)

_NON_NUMERIC = re.compile(r"[^\d,\-]")


def _group_id(value: Decimal, decimals: int) -> str:
    """Format with Indonesian separators: '.' for thousands, ',' for decimals"""
    text = f"{abs(value):,.{decimals}f}"
    text = text.replace(",", "_").replace(".", ",").replace("_", ".")
    return f"-{text}" if value < 0 else text


def format_idr(amount: Any) -> str:
    """
    Format an amount as whole Rupiah.

    Examples:
        >>> format_idr(Decimal("2220000"))
        'Rp 2.220.000'
        >>> format_idr(-1500)
        '-Rp 1.500'
    """
    value = wire_to_decimal(amount) or Decimal("0")
    value = value.quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    text = _group_id(abs(value), 0)
    return f"-Rp {text}" if value < 0 else f"Rp {text}"


def format_decimal(amount: Any, decimals: int = 2) -> str:
    value = wire_to_decimal(amount) or Decimal("0")
    return _group_id(value, decimals)


def format_percent(amount: Any) -> str:
    """11 -> '11%', 11.5 -> '11,5%'"""
    value = wire_to_decimal(amount) or Decimal("0")
    text = format(value.normalize(), "f")
    return text.replace(".", ",") + "%"


def parse_currency(text: str) -> Decimal:
    """
    Parse an Indonesian-formatted amount such as 'Rp 1.234.567,50'.

    Unparseable input yields 0.
    """
    cleaned = text.replace("Rp", "")
    cleaned = _NON_NUMERIC.sub("", cleaned).replace(",", ".")
    try:
        return Decimal(cleaned) if cleaned else Decimal("0")
    except InvalidOperation:
        logger.warning(f"Could not parse currency string: {text!r}")
        return Decimal("0")
