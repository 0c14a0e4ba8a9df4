"""API routes for invoices"""

from fastapi import APIRouter, HTTPException, Depends, Header, Query, Response
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from datetime import date
from decimal import Decimal
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from tka_invoice.models.database import get_db
from tka_invoice.models.decimal_wire import decimal_to_wire
from tka_invoice.models.invoice import Invoice, InvoiceCreate, InvoiceLine, InvoiceStatus, UserRole
from tka_invoice.printing.invoice_pdf import InvoicePDFRenderer
from tka_invoice.services.invoice_service import (
    InvoiceNotFoundError,
    InvoicePermissionError,
    InvoiceService,
    InvoiceServiceError,
    InvoiceValidationError,
    InvoiceWorkflowError,
)
from tka_invoice.services.sequence_service import InvoiceNumberSequencer
from tka_invoice.validation.aggregation_validator import AggregationValidator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/invoices", tags=["invoices"])


class LinesUpdateRequest(BaseModel):
    lines: List[InvoiceLine] = Field(default_factory=list)
    vat_percentage: Optional[Decimal] = None


class StatusUpdateRequest(BaseModel):
    status: InvoiceStatus


def get_invoice_service() -> InvoiceService:
    """Dependency to get invoice service instance"""
    return InvoiceService()


def get_sequencer() -> InvoiceNumberSequencer:
    """Dependency to get invoice number sequencer"""
    return InvoiceNumberSequencer()


def invoice_to_wire(invoice: Invoice) -> Dict[str, Any]:
    """Invoice as JSON with Decimal amounts as strings"""
    return {
        "id": invoice.id,
        "invoice_number": invoice.invoice_number,
        "company_id": invoice.company_id,
        "invoice_date": invoice.invoice_date.isoformat(),
        "status": invoice.status.value,
        "subtotal": decimal_to_wire(invoice.subtotal),
        "vat_percentage": decimal_to_wire(invoice.vat_percentage),
        "vat_amount": decimal_to_wire(invoice.vat_amount),
        "total_amount": decimal_to_wire(invoice.total_amount),
        "notes": invoice.notes,
        "bank_account_id": invoice.bank_account_id,
        "printed_count": invoice.printed_count,
        "last_printed_at": invoice.last_printed_at.isoformat() if invoice.last_printed_at else None,
        "created_by": invoice.created_by,
        "lines": [
            {
                "id": line.id,
                "baris": line.baris,
                "line_order": line.line_order,
                "tka_id": line.tka_id,
                "job_description_id": line.job_description_id,
                "custom_job_name": line.custom_job_name,
                "custom_job_description": line.custom_job_description,
                "quantity": line.quantity,
                "unit_price": decimal_to_wire(line.unit_price),
                "custom_price": decimal_to_wire(line.custom_price),
                "line_total": decimal_to_wire(line.line_total),
            }
            for line in invoice.lines
        ],
    }


def _raise_http(error: InvoiceServiceError) -> None:
    if isinstance(error, InvoiceNotFoundError):
        raise HTTPException(status_code=404, detail=str(error))
    if isinstance(error, InvoiceValidationError):
        raise HTTPException(status_code=400, detail={"message": "Invalid invoice", "errors": error.errors})
    if isinstance(error, InvoicePermissionError):
        raise HTTPException(status_code=403, detail=str(error))
    if isinstance(error, InvoiceWorkflowError):
        raise HTTPException(status_code=409, detail=str(error))
    raise HTTPException(status_code=500, detail=str(error))


@router.get("/number")
async def invoice_number(
    preview: bool = Query(False, description="Show the next number without allocating it"),
    sequencer: InvoiceNumberSequencer = Depends(get_sequencer),
):
    """Allocate (or preview) the next invoice number for the current month"""
    try:
        if preview:
            return {"invoice_number": await sequencer.peek_next_number()}
        return {"invoice_number": await sequencer.generate_invoice_number()}
    except Exception as e:
        logger.error(f"Error generating invoice number: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Internal server error: {str(e)}")


@router.post("", status_code=201)
async def create_invoice(
    data: InvoiceCreate,
    x_user_id: Optional[str] = Header(None),
    service: InvoiceService = Depends(get_invoice_service),
    db: AsyncSession = Depends(get_db),
):
    """Create a draft invoice; totals and number are assigned by the server"""
    try:
        invoice = await service.create_invoice(data, created_by=x_user_id, db=db)
    except InvoiceServiceError as e:
        _raise_http(e)
    return invoice_to_wire(invoice)


@router.get("")
async def list_invoices(
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=50),
    status: Optional[InvoiceStatus] = None,
    company_id: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    search: Optional[str] = Query(None, alias="query", max_length=50),
    service: InvoiceService = Depends(get_invoice_service),
    db: AsyncSession = Depends(get_db),
):
    invoices = await service.list_invoices(
        skip=skip,
        limit=limit,
        status=status,
        company_id=company_id,
        date_from=date_from,
        date_to=date_to,
        search=search,
        db=db,
    )
    return {"invoices": [invoice_to_wire(inv) for inv in invoices], "skip": skip, "limit": limit}


@router.get("/{invoice_id}")
async def get_invoice(
    invoice_id: str,
    service: InvoiceService = Depends(get_invoice_service),
    db: AsyncSession = Depends(get_db),
):
    invoice = await service.get_invoice(invoice_id, db=db)
    if not invoice:
        raise HTTPException(status_code=404, detail=f"Invoice not found: {invoice_id}")

    payload = invoice_to_wire(invoice)
    payload["aggregation"] = AggregationValidator.get_validation_summary(invoice)["errors"]
    return payload


@router.put("/{invoice_id}/lines")
async def update_lines(
    invoice_id: str,
    request: LinesUpdateRequest,
    service: InvoiceService = Depends(get_invoice_service),
    db: AsyncSession = Depends(get_db),
):
    """Replace lines of a draft invoice"""
    try:
        invoice = await service.update_invoice_lines(
            invoice_id, request.lines, vat_percentage=request.vat_percentage, db=db
        )
    except InvoiceServiceError as e:
        _raise_http(e)
    return invoice_to_wire(invoice)


@router.patch("/{invoice_id}/status")
async def update_status(
    invoice_id: str,
    request: StatusUpdateRequest,
    x_user_role: UserRole = Header(UserRole.FINANCE_STAFF),
    service: InvoiceService = Depends(get_invoice_service),
    db: AsyncSession = Depends(get_db),
):
    try:
        invoice = await service.update_status(invoice_id, request.status, x_user_role, db=db)
    except InvoiceServiceError as e:
        _raise_http(e)
    return {
        "message": f"Invoice status updated to {invoice.status.value}",
        "invoice": invoice_to_wire(invoice),
    }


@router.delete("/{invoice_id}")
async def delete_invoice(
    invoice_id: str,
    service: InvoiceService = Depends(get_invoice_service),
    db: AsyncSession = Depends(get_db),
):
    try:
        await service.delete_invoice(invoice_id, db=db)
    except InvoiceServiceError as e:
        _raise_http(e)
    return {"message": "Invoice deleted", "invoice_id": invoice_id}


@router.get("/{invoice_id}/pdf")
async def invoice_pdf(
    invoice_id: str,
    service: InvoiceService = Depends(get_invoice_service),
    db: AsyncSession = Depends(get_db),
):
    """Printable invoice with the terbilang line"""
    invoice = await service.get_invoice(invoice_id, db=db)
    if not invoice:
        raise HTTPException(status_code=404, detail=f"Invoice not found: {invoice_id}")

    content = InvoicePDFRenderer().render(invoice)
    await service.mark_printed(invoice_id, db=db)

    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="{invoice.invoice_number}.pdf"'},
    )
