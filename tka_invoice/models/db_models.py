"""SQLAlchemy ORM models"""

from sqlalchemy import (
    CheckConstraint, Column, String, Integer, DateTime, Date, Numeric, Text,
    ForeignKey, Index, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid

from .database import Base


class InvoiceSequence(Base):
    """Per (year, month) invoice counter"""
    __tablename__ = "invoice_sequences"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    year = Column(Integer, nullable=False)
    month = Column(Integer, nullable=False)
    current_number = Column(Integer, nullable=False, default=0)
    prefix = Column(String(10), nullable=False, default="INV")
    suffix = Column(String(10), nullable=False, default="")

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint('year', 'month', name='uq_invoice_sequences_year_month'),
        CheckConstraint('current_number >= 0', name='ck_invoice_sequences_current_number'),
        CheckConstraint('month >= 1 AND month <= 12', name='ck_invoice_sequences_month'),
    )


class Invoice(Base):
    """Invoice header with computed totals"""
    __tablename__ = "invoices"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    invoice_number = Column(String(50), nullable=False, unique=True)
    company_id = Column(String(36), nullable=False, index=True)
    invoice_date = Column(Date, nullable=False)

    subtotal = Column(Numeric(15, 2), nullable=False, default=0)
    vat_percentage = Column(Numeric(5, 2), nullable=False, default=11)
    vat_amount = Column(Numeric(15, 2), nullable=False, default=0)
    total_amount = Column(Numeric(15, 2), nullable=False, default=0)

    status = Column(String(20), nullable=False, default="draft")
    notes = Column(Text, nullable=True)
    bank_account_id = Column(String(36), nullable=True)
    printed_count = Column(Integer, nullable=False, default=0)
    last_printed_at = Column(DateTime, nullable=True)

    created_by = Column(String(36), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    lines = relationship(
        "InvoiceLine",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceLine.line_order",
        lazy="selectin",
    )

    __table_args__ = (
        Index('ix_invoices_status', 'status'),
        Index('ix_invoices_invoice_date', 'invoice_date'),
        CheckConstraint("status IN ('draft', 'finalized', 'paid', 'cancelled')", name='ck_invoices_status'),
        CheckConstraint('subtotal >= 0', name='ck_invoices_subtotal'),
        CheckConstraint('vat_amount >= 0', name='ck_invoices_vat_amount'),
        CheckConstraint('total_amount >= 0', name='ck_invoices_total_amount'),
    )


class InvoiceLine(Base):
    """Invoice line; one TKA worker billed for one job description"""
    __tablename__ = "invoice_lines"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    invoice_id = Column(String(36), ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False)

    baris = Column(Integer, nullable=False)
    line_order = Column(Integer, nullable=False)
    tka_id = Column(String(36), nullable=False)
    job_description_id = Column(String(36), nullable=False)
    custom_job_name = Column(String(200), nullable=True)
    custom_job_description = Column(Text, nullable=True)

    quantity = Column(Integer, nullable=False, default=1)
    unit_price = Column(Numeric(15, 2), nullable=False)
    custom_price = Column(Numeric(15, 2), nullable=True)
    line_total = Column(Numeric(15, 2), nullable=False)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    invoice = relationship("Invoice", back_populates="lines")

    __table_args__ = (
        Index('ix_invoice_lines_invoice_id', 'invoice_id', 'line_order'),
        Index('ix_invoice_lines_tka_id', 'tka_id'),
        CheckConstraint('quantity > 0', name='ck_invoice_lines_quantity'),
        CheckConstraint('unit_price >= 0', name='ck_invoice_lines_unit_price'),
        CheckConstraint('line_total >= 0', name='ck_invoice_lines_line_total'),
    )
