"""Utilities for converting between Pydantic and SQLAlchemy models"""

from decimal import Decimal
from typing import List, Optional
import uuid

from .invoice import Invoice as InvoicePydantic, InvoiceLine as InvoiceLinePydantic, InvoiceStatus
from .db_models import Invoice as InvoiceDB, InvoiceLine as InvoiceLineDB


def _decimal(value) -> Optional[Decimal]:
    if value is None:
        return None
    return value if isinstance(value, Decimal) else Decimal(str(value))


def line_to_db(line: InvoiceLinePydantic, line_total: Decimal) -> InvoiceLineDB:
    """Build a new InvoiceLine row; line_total is the recomputed value"""
    return InvoiceLineDB(
        id=str(uuid.uuid4()),
        baris=line.baris,
        line_order=line.line_order,
        tka_id=line.tka_id,
        job_description_id=line.job_description_id,
        custom_job_name=line.custom_job_name,
        custom_job_description=line.custom_job_description,
        quantity=line.quantity,
        unit_price=line.unit_price,
        custom_price=line.custom_price,
        line_total=line_total,
    )


def db_to_pydantic_line(line_db: InvoiceLineDB) -> InvoiceLinePydantic:
    return InvoiceLinePydantic(
        id=line_db.id,
        baris=line_db.baris,
        line_order=line_db.line_order,
        tka_id=line_db.tka_id,
        job_description_id=line_db.job_description_id,
        custom_job_name=line_db.custom_job_name,
        custom_job_description=line_db.custom_job_description,
        quantity=line_db.quantity,
        unit_price=_decimal(line_db.unit_price),
        custom_price=_decimal(line_db.custom_price),
        line_total=_decimal(line_db.line_total),
    )


def db_to_pydantic_invoice(invoice_db: InvoiceDB) -> InvoicePydantic:
    """Convert SQLAlchemy Invoice (with loaded lines) to Pydantic Invoice"""
    lines: List[InvoiceLinePydantic] = [db_to_pydantic_line(line) for line in invoice_db.lines]
    return InvoicePydantic(
        id=invoice_db.id,
        invoice_number=invoice_db.invoice_number,
        company_id=invoice_db.company_id,
        invoice_date=invoice_db.invoice_date,
        status=InvoiceStatus(invoice_db.status),
        subtotal=_decimal(invoice_db.subtotal),
        vat_percentage=_decimal(invoice_db.vat_percentage),
        vat_amount=_decimal(invoice_db.vat_amount),
        total_amount=_decimal(invoice_db.total_amount),
        notes=invoice_db.notes,
        bank_account_id=invoice_db.bank_account_id,
        printed_count=invoice_db.printed_count or 0,
        last_printed_at=invoice_db.last_printed_at,
        created_by=invoice_db.created_by,
        created_at=invoice_db.created_at,
        updated_at=invoice_db.updated_at,
        lines=lines,
    )
