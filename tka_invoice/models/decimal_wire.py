"""Decimal wire serialization utilities

Amounts cross the API and the calculation core as Decimal. Callers may hand in
ints, floats or strings; they are always parsed via their string form so that
a float such as 0.1 becomes Decimal("0.1") rather than its binary expansion.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Optional
import logging

logger = logging.getLogger(__name__)


def decimal_to_wire(d: Optional[Decimal]) -> Optional[str]:
    """
    Convert Decimal to wire-safe string representation.

    Args:
        d: Decimal value or None

    Returns:
        String representation without scientific notation, or None

    Examples:
        >>> decimal_to_wire(Decimal("2220000.00"))
        "2220000"
        >>> decimal_to_wire(Decimal("1E+6"))
        "1000000"
        >>> decimal_to_wire(None)
        None
    """
    if d is None:
        return None

    s = format(d, 'f')
    if '.' in s:
        s = s.rstrip('0').rstrip('.')
    if s in ('', '-0'):
        return '0'
    return s


def wire_to_decimal(x: Any) -> Optional[Decimal]:
    """
    Parse wire value to Decimal safely.

    Args:
        x: Wire value (None, str, int, float, or Decimal)

    Returns:
        Decimal value or None when the value is empty or unparseable
    """
    if x is None or x == "":
        return None

    if isinstance(x, bool):
        logger.warning(f"Refusing to parse boolean as Decimal: {x}")
        return None

    if isinstance(x, Decimal):
        return x

    try:
        return Decimal(str(x).strip())
    except (InvalidOperation, ValueError, TypeError) as e:
        logger.warning(f"Failed to parse value as Decimal: {x}, error: {e}")
        return None
