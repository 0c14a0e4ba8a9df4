"""PPN (VAT) calculation with the Indonesian business rounding rule

VAT is always a whole Rupiah amount. The raw amount is rounded as follows:

- fractional part within 0.001 of 0.49: round down
- fractional part 0.50 or more: round up
- anything else: round to nearest

Invoices already issued were computed with exactly this rule, so it must not
change. A different regime needs a new, separately named function.
"""

from decimal import Decimal, ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP
from typing import Any
import logging

from tka_invoice.models.decimal_wire import wire_to_decimal
from tka_invoice.models.invoice import VATBreakdown

logger = logging.getLogger(__name__)

DEFAULT_VAT_PERCENTAGE = Decimal("11")
SPECIAL_ROUNDING_THRESHOLD = Decimal("0.49")
SPECIAL_ROUNDING_EPSILON = Decimal("0.001")
STANDARD_ROUNDING_THRESHOLD = Decimal("0.50")
VAT_TOLERANCE = Decimal("0.01")

RULE_SPECIAL = "Special rule: .49 rounds down"
RULE_ROUND_UP = "Standard rule: .50+ rounds up"
RULE_STANDARD = "Standard rounding"


def _to_decimal(value: Any, name: str) -> Decimal:
    parsed = wire_to_decimal(value)
    if parsed is None or not parsed.is_finite():
        raise ValueError(f"{name} must be a finite number, got {value!r}")
    return parsed


def raw_vat(subtotal: Any, vat_percentage: Any = DEFAULT_VAT_PERCENTAGE) -> Decimal:
    """Unrounded VAT: subtotal * percentage / 100"""
    return _to_decimal(subtotal, "subtotal") * _to_decimal(vat_percentage, "vat_percentage") / 100


def _round_vat(raw: Decimal) -> tuple:
    """Apply the rounding rule, returning (vat, rule)"""
    fractional = raw - raw.to_integral_value(rounding=ROUND_FLOOR)

    if abs(fractional - SPECIAL_ROUNDING_THRESHOLD) < SPECIAL_ROUNDING_EPSILON:
        return int(raw.to_integral_value(rounding=ROUND_FLOOR)), RULE_SPECIAL
    if fractional >= STANDARD_ROUNDING_THRESHOLD:
        return int(raw.to_integral_value(rounding=ROUND_CEILING)), RULE_ROUND_UP
    return int(raw.to_integral_value(rounding=ROUND_HALF_UP)), RULE_STANDARD


def calculate_vat(subtotal: Any, vat_percentage: Any = DEFAULT_VAT_PERCENTAGE) -> int:
    """
    Calculate VAT on a subtotal.

    Args:
        subtotal: Invoice subtotal
        vat_percentage: VAT rate in percent (default 11)

    Returns:
        VAT in whole Rupiah

    Examples:
        >>> calculate_vat(1234)          # raw 135.74
        136
        >>> calculate_vat(Decimal("913.54545"))  # raw 100.49
        100
    """
    vat, _ = _round_vat(raw_vat(subtotal, vat_percentage))
    return vat


def get_vat_breakdown(subtotal: Any, vat_percentage: Any = DEFAULT_VAT_PERCENTAGE) -> VATBreakdown:
    """Explain how the VAT for a subtotal was rounded"""
    subtotal_d = _to_decimal(subtotal, "subtotal")
    percentage_d = _to_decimal(vat_percentage, "vat_percentage")
    raw = subtotal_d * percentage_d / 100
    integer_part = raw.to_integral_value(rounding=ROUND_FLOOR)
    final_vat, rule = _round_vat(raw)

    if rule == RULE_SPECIAL:
        explanation = f"VAT calculated as {raw:.4f}, rounded down due to .49 rule"
    elif rule == RULE_ROUND_UP:
        explanation = f"VAT calculated as {raw:.4f}, rounded up"
    else:
        explanation = f"VAT calculated as {raw:.4f}, standard rounding applied"

    return VATBreakdown(
        subtotal=subtotal_d,
        vat_percentage=percentage_d,
        raw_vat=raw,
        integer_part=int(integer_part),
        fractional_part=raw - integer_part,
        final_vat=final_vat,
        difference=final_vat - raw,
        total=subtotal_d + final_vat,
        rounding_rule=rule,
        explanation=explanation,
    )


def calculate_vat_with_details(subtotal: Any, vat_percentage: Any = DEFAULT_VAT_PERCENTAGE) -> dict:
    """VAT together with the resulting total and the rule that was applied"""
    breakdown = get_vat_breakdown(subtotal, vat_percentage)
    return {
        "subtotal": breakdown.subtotal,
        "vat_amount": breakdown.final_vat,
        "total": breakdown.total,
        "vat_percentage": breakdown.vat_percentage,
        "rounding_rule": breakdown.rounding_rule,
        "explanation": breakdown.explanation,
    }


def validate_vat(
    subtotal: Any,
    calculated_vat: Any,
    vat_percentage: Any = DEFAULT_VAT_PERCENTAGE,
) -> bool:
    """Check a stored VAT amount against the rule (1 cent tolerance)"""
    try:
        expected = calculate_vat(subtotal, vat_percentage)
        actual = _to_decimal(calculated_vat, "calculated_vat")
    except ValueError as e:
        logger.warning(f"VAT check skipped for unparseable input: {e}")
        return False
    return abs(actual - expected) < VAT_TOLERANCE
