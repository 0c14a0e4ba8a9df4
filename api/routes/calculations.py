"""API routes exposing the invoice calculation core"""

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from decimal import Decimal
import logging

from tka_invoice.calculations.invoice import MAX_AMOUNT, calculate_invoice_totals, validate_invoice_totals
from tka_invoice.calculations.line_items import calculate_line_total, validate_line_item
from tka_invoice.calculations.terbilang import amount_to_words, amount_to_words_with_sen, validate_number
from tka_invoice.calculations.vat import DEFAULT_VAT_PERCENTAGE, get_vat_breakdown
from tka_invoice.models.decimal_wire import decimal_to_wire
from tka_invoice.models.invoice import InvoiceTotals, LineItem

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/calculations", tags=["calculations"])


class VATRequest(BaseModel):
    subtotal: Decimal
    vat_percentage: Decimal = DEFAULT_VAT_PERCENTAGE


class TotalsRequest(BaseModel):
    lines: List[LineItem] = Field(default_factory=list)
    vat_percentage: Decimal = DEFAULT_VAT_PERCENTAGE


def totals_to_wire(totals: InvoiceTotals) -> Dict[str, Optional[str]]:
    return {
        "subtotal": decimal_to_wire(totals.subtotal),
        "vat_amount": decimal_to_wire(totals.vat_amount),
        "total_amount": decimal_to_wire(totals.total_amount),
        "vat_percentage": decimal_to_wire(totals.vat_percentage),
    }


@router.post("/line-total")
async def line_total(line: LineItem):
    """Total of one line after the custom price override"""
    validation = validate_line_item(line)
    if not validation.is_valid:
        raise HTTPException(status_code=400, detail={"message": "Invalid line item", "errors": validation.errors})

    total = calculate_line_total(line.quantity, line.unit_price, line.custom_price)
    return {"line_total": decimal_to_wire(total)}


@router.post("/vat")
async def vat(request: VATRequest):
    """VAT for a subtotal with the rounding rule that was applied"""
    if not (0 <= request.subtotal <= MAX_AMOUNT) or not (0 <= request.vat_percentage <= 100):
        raise HTTPException(
            status_code=400,
            detail=f"Subtotal must be within 0-{MAX_AMOUNT} and VAT percentage within 0-100",
        )

    breakdown = get_vat_breakdown(request.subtotal, request.vat_percentage)
    return {
        "subtotal": decimal_to_wire(breakdown.subtotal),
        "vat_percentage": decimal_to_wire(breakdown.vat_percentage),
        "raw_vat": decimal_to_wire(breakdown.raw_vat),
        "vat_amount": breakdown.final_vat,
        "total": decimal_to_wire(breakdown.total),
        "rounding_rule": breakdown.rounding_rule,
        "explanation": breakdown.explanation,
    }


@router.post("/totals")
async def totals(request: TotalsRequest):
    """Subtotal, VAT and total for a set of lines"""
    errors = []
    for index, line in enumerate(request.lines, start=1):
        errors.extend(f"Line {index}: {error}" for error in validate_line_item(line).errors)
    if not (0 <= request.vat_percentage <= 100):
        errors.append("VAT percentage must be between 0 and 100")
    if errors:
        raise HTTPException(status_code=400, detail={"message": "Invalid invoice lines", "errors": errors})

    return totals_to_wire(calculate_invoice_totals(request.lines, request.vat_percentage))


@router.post("/validate-totals")
async def validate_totals(totals: Dict[str, Any]):
    """Integrity check for totals coming from an import or a manual edit"""
    result = validate_invoice_totals(totals)
    return {"is_valid": result.is_valid, "errors": result.errors}


@router.get("/terbilang")
async def terbilang(amount: str = Query(..., description="Amount in Rupiah")):
    """Indonesian words for an amount"""
    validation = validate_number(amount)
    if not validation.is_valid:
        raise HTTPException(status_code=400, detail={"message": "Invalid amount", "errors": validation.errors})

    return {
        "amount": amount,
        "words": amount_to_words(amount),
        "words_with_sen": amount_to_words_with_sen(amount),
    }
