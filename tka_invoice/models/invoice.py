"""Invoice data models"""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, Field
from enum import Enum


class InvoiceStatus(str, Enum):
    """Invoice lifecycle states"""
    DRAFT = "draft"
    FINALIZED = "finalized"
    PAID = "paid"
    CANCELLED = "cancelled"


class UserRole(str, Enum):
    """Roles that may act on an invoice"""
    ADMIN = "admin"
    FINANCE_SUPERVISOR = "finance_supervisor"
    FINANCE_STAFF = "finance_staff"


class ValidationResult(BaseModel):
    """Outcome of a validation pass; lists every violated rule"""
    is_valid: bool
    errors: List[str] = Field(default_factory=list)

    @classmethod
    def from_errors(cls, errors: List[str]) -> "ValidationResult":
        return cls(is_valid=not errors, errors=list(errors))


class LineItem(BaseModel):
    """Pricing fields of a single invoice line"""
    quantity: int = 1
    unit_price: Decimal
    custom_price: Optional[Decimal] = None
    line_total: Optional[Decimal] = None  # ignored by totals, always recomputed


class InvoiceLine(LineItem):
    """Invoice line as stored and printed"""
    id: Optional[str] = None
    baris: Optional[int] = None  # print row grouping
    line_order: Optional[int] = None
    tka_id: str
    job_description_id: str
    custom_job_name: Optional[str] = None
    custom_job_description: Optional[str] = None


class InvoiceTotals(BaseModel):
    """Computed invoice money fields"""
    subtotal: Decimal
    vat_amount: Decimal
    total_amount: Decimal
    vat_percentage: Decimal


class VATBreakdown(BaseModel):
    """Step-by-step view of a VAT rounding decision"""
    subtotal: Decimal
    vat_percentage: Decimal
    raw_vat: Decimal
    integer_part: int
    fractional_part: Decimal
    final_vat: int
    difference: Decimal
    total: Decimal
    rounding_rule: str
    explanation: str


class InvoiceCreate(BaseModel):
    """Payload for creating an invoice"""
    company_id: str
    invoice_date: date
    vat_percentage: Optional[Decimal] = None
    notes: Optional[str] = None
    bank_account_id: Optional[str] = None
    lines: List[InvoiceLine] = Field(default_factory=list)


class Invoice(BaseModel):
    """Persisted invoice with its lines"""
    id: Optional[str] = None
    invoice_number: str
    company_id: str
    invoice_date: date
    status: InvoiceStatus = InvoiceStatus.DRAFT

    subtotal: Decimal = Decimal("0")
    vat_percentage: Decimal = Decimal("11")
    vat_amount: Decimal = Decimal("0")
    total_amount: Decimal = Decimal("0")

    notes: Optional[str] = None
    bank_account_id: Optional[str] = None
    printed_count: int = 0
    last_printed_at: Optional[datetime] = None

    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    lines: List[InvoiceLine] = Field(default_factory=list)

    @property
    def totals(self) -> InvoiceTotals:
        return InvoiceTotals(
            subtotal=self.subtotal,
            vat_amount=self.vat_amount,
            total_amount=self.total_amount,
            vat_percentage=self.vat_percentage,
        )
