"""Aggregation validation for stored invoices

Validates that an invoice's stored money fields agree with its lines and with
the VAT rule. Used on invoices that were imported or edited outside the
service, where the stored figures cannot be assumed to come from
calculate_invoice_totals.
"""

from decimal import Decimal
from typing import Any, Dict, Optional, Tuple
import logging

from tka_invoice.calculations.invoice import TOTALS_TOLERANCE, validate_invoice_totals
from tka_invoice.calculations.line_items import calculate_line_total
from tka_invoice.models.invoice import Invoice

logger = logging.getLogger(__name__)


class AggregationValidator:
    """Validates aggregation consistency between invoice and its lines"""

    TOLERANCE = TOTALS_TOLERANCE

    @staticmethod
    def validate_line_totals(invoice: Invoice) -> Tuple[bool, Optional[str]]:
        """
        Validate: line.line_total == price * quantity for every line

        Returns:
            (is_valid, error_message)
        """
        mismatches = []
        for index, line in enumerate(invoice.lines, start=1):
            if line.line_total is None:
                continue
            expected = calculate_line_total(line.quantity, line.unit_price, line.custom_price)
            if abs(line.line_total - expected) > AggregationValidator.TOLERANCE:
                mismatches.append(f"line {index}: stored={line.line_total} expected={expected}")

        if mismatches:
            return False, "Line total mismatch: " + ", ".join(mismatches)
        return True, None

    @staticmethod
    def validate_subtotal(invoice: Invoice) -> Tuple[bool, Optional[str]]:
        """
        Validate: invoice.subtotal == sum(recomputed line totals)

        Returns:
            (is_valid, error_message)
        """
        if not invoice.lines:
            return True, None

        sum_lines = sum(
            (calculate_line_total(line.quantity, line.unit_price, line.custom_price) for line in invoice.lines),
            Decimal("0"),
        )
        difference = abs(invoice.subtotal - sum_lines)

        if difference > AggregationValidator.TOLERANCE:
            return False, (
                f"Subtotal mismatch: invoice.subtotal={invoice.subtotal} != "
                f"sum(line_total)={sum_lines}, difference={difference}"
            )
        return True, None

    @staticmethod
    def validate_totals(invoice: Invoice) -> Tuple[bool, Optional[str]]:
        """
        Validate VAT and total against the subtotal

        Returns:
            (is_valid, error_message)
        """
        result = validate_invoice_totals(invoice.totals)
        if not result.is_valid:
            return False, "; ".join(result.errors)
        return True, None

    @staticmethod
    def validate_all(invoice: Invoice) -> Dict[str, Tuple[bool, Optional[str]]]:
        return {
            "line_totals": AggregationValidator.validate_line_totals(invoice),
            "subtotal": AggregationValidator.validate_subtotal(invoice),
            "totals": AggregationValidator.validate_totals(invoice),
        }

    @staticmethod
    def get_validation_summary(invoice: Invoice) -> Dict[str, Any]:
        """
        Get a summary of aggregation validation results.

        Returns:
            Dictionary with all_valid, validations, errors and counts
        """
        results = AggregationValidator.validate_all(invoice)

        all_valid = all(is_valid for is_valid, _ in results.values())
        errors = [error for is_valid, error in results.values() if not is_valid and error]

        if not all_valid:
            logger.warning(f"Invoice {invoice.invoice_number} failed aggregation checks: {errors}")

        return {
            "all_valid": all_valid,
            "validations": results,
            "errors": errors,
            "total_validations": len(results),
            "passed_validations": sum(1 for is_valid, _ in results.values() if is_valid),
            "failed_validations": len(errors),
        }
