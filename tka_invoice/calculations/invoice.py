"""Invoice totals aggregation and integrity checks"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable
import logging

from tka_invoice.calculations.line_items import LineLike, calculate_line_total, line_field
from tka_invoice.calculations.vat import DEFAULT_VAT_PERCENTAGE, calculate_vat
from tka_invoice.models.decimal_wire import wire_to_decimal
from tka_invoice.models.invoice import InvoiceTotals, ValidationResult

logger = logging.getLogger(__name__)

TOTALS_TOLERANCE = Decimal("0.01")  # Allow 1 cent rounding differences
MAX_AMOUNT = Decimal("9999999999999.99")  # Numeric(15, 2) columns


def round_to(value: Any, decimals: int = 2) -> Decimal:
    """Round half-up to the given number of decimal places"""
    return wire_to_decimal(value).quantize(Decimal(1).scaleb(-decimals), rounding=ROUND_HALF_UP)


def calculate_percentage(value: Any, total: Any) -> Decimal:
    """value as a percentage of total; 0 when total is 0"""
    total_d = wire_to_decimal(total)
    if not total_d:
        return Decimal("0")
    return wire_to_decimal(value) / total_d * 100


def apply_discount(amount: Any, discount_percentage: Any) -> Decimal:
    amount_d = wire_to_decimal(amount)
    return amount_d - amount_d * wire_to_decimal(discount_percentage) / 100


def calculate_subtotal(lines: Iterable[LineLike]) -> Decimal:
    """
    Sum line totals, recomputing each one from quantity and price.

    A line_total carried on the input is never trusted; when it disagrees with
    the recomputed value a warning is logged and the recomputed value wins.
    """
    subtotal = Decimal("0")
    for index, line in enumerate(lines):
        line_total = calculate_line_total(
            line_field(line, "quantity"),
            line_field(line, "unit_price"),
            line_field(line, "custom_price"),
        )
        supplied = wire_to_decimal(line_field(line, "line_total"))
        if supplied is not None and supplied != line_total:
            logger.warning(
                f"Line {index + 1}: supplied line_total={supplied} differs from "
                f"computed {line_total}, using computed value"
            )
        subtotal += line_total
    return subtotal


def calculate_invoice_totals(
    lines: Iterable[LineLike],
    vat_percentage: Any = DEFAULT_VAT_PERCENTAGE,
) -> InvoiceTotals:
    """
    Compute subtotal, VAT and total for a set of lines.

    Args:
        lines: LineItem models or mappings with quantity/unit_price/custom_price
        vat_percentage: VAT rate in percent (default 11)

    Returns:
        InvoiceTotals with vat_percentage echoed back unchanged
    """
    percentage = wire_to_decimal(vat_percentage)
    if percentage is None:
        raise ValueError(f"vat_percentage must be a number, got {vat_percentage!r}")

    subtotal = round_to(calculate_subtotal(lines))
    vat_amount = Decimal(calculate_vat(subtotal, percentage))
    total_amount = round_to(subtotal + vat_amount)

    return InvoiceTotals(
        subtotal=subtotal,
        vat_amount=vat_amount,
        total_amount=total_amount,
        vat_percentage=percentage,
    )


def validate_invoice_totals(totals: Any) -> ValidationResult:
    """
    Check that a set of totals is internally consistent.

    VAT and total are re-derived from the subtotal, so totals arriving from an
    import or a manual edit are caught when they were not produced by
    calculate_invoice_totals. Amounts above MAX_AMOUNT or a VAT percentage
    outside 0-100 are reported without re-deriving VAT. Never raises.
    """
    errors = []

    def field(name):
        raw = totals.get(name) if isinstance(totals, dict) else getattr(totals, name, None)
        value = wire_to_decimal(raw)
        if value is None or not value.is_finite():
            errors.append(f"{name} must be a number")
            return None
        return value

    subtotal = field("subtotal")
    vat_amount = field("vat_amount")
    total_amount = field("total_amount")
    vat_percentage = field("vat_percentage")

    out_of_range = False
    for value, label in (
        (subtotal, "Subtotal"),
        (vat_amount, "VAT amount"),
        (total_amount, "Total amount"),
    ):
        if value is None:
            continue
        if value < 0:
            errors.append(f"{label} cannot be negative")
        if abs(value) > MAX_AMOUNT:
            errors.append(f"{label} is too large")
            out_of_range = True

    if vat_percentage is not None and not (0 <= vat_percentage <= 100):
        errors.append("VAT percentage must be between 0 and 100")
        out_of_range = True

    # Re-deriving VAT from unbounded values can overflow the decimal context
    if subtotal is not None and vat_percentage is not None and not out_of_range:
        expected_vat = calculate_vat(subtotal, vat_percentage)
        expected_total = subtotal + expected_vat

        if vat_amount is not None and abs(vat_amount - expected_vat) > TOTALS_TOLERANCE:
            errors.append("VAT calculation is inconsistent")
        if total_amount is not None and abs(total_amount - expected_total) > TOTALS_TOLERANCE:
            errors.append("Total calculation is inconsistent")

    return ValidationResult.from_errors(errors)
