"""Printable invoice rendering"""

import logging
from collections import OrderedDict
from decimal import Decimal
from io import BytesIO
from typing import Dict, List, Optional

from reportlab.pdfgen import canvas
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import cm

from tka_invoice.calculations.currency import format_idr, format_percent
from tka_invoice.calculations.terbilang import amount_to_words
from tka_invoice.config import settings
from tka_invoice.models.invoice import Invoice, InvoiceLine

logger = logging.getLogger(__name__)

PAGE_WIDTH, PAGE_HEIGHT = A4
LEFT = 2 * cm
RIGHT = PAGE_WIDTH - 2 * cm
BOTTOM = 3 * cm
ROW_HEIGHT = 0.55 * cm


def group_lines_by_baris(lines: List[InvoiceLine]) -> Dict[int, List[InvoiceLine]]:
    """Lines sharing a baris number print as one row, in line order"""
    groups: Dict[int, List[InvoiceLine]] = OrderedDict()
    ordered = sorted(lines, key=lambda line: (line.baris or 0, line.line_order or 0))
    for line in ordered:
        groups.setdefault(line.baris or 0, []).append(line)
    return groups


class InvoicePDFRenderer:
    """Renders an invoice as a single A4 document with the terbilang line"""

    def __init__(self, company_name: Optional[str] = None):
        self.company_name = company_name or settings.COMPANY_NAME

    def render(self, invoice: Invoice) -> bytes:
        """
        Render invoice to PDF

        Args:
            invoice: Pydantic Invoice model with lines

        Returns:
            PDF bytes
        """
        buffer = BytesIO()
        pdf = canvas.Canvas(buffer, pagesize=A4)
        pdf.setTitle(f"Invoice {invoice.invoice_number}")

        y = self._render_header(pdf, invoice)
        y = self._render_lines(pdf, invoice, y)
        self._render_totals(pdf, invoice, y)

        pdf.showPage()
        pdf.save()

        logger.info(f"Rendered invoice {invoice.invoice_number} ({len(invoice.lines)} lines)")
        return buffer.getvalue()

    def _render_header(self, pdf: canvas.Canvas, invoice: Invoice) -> float:
        pdf.setFont("Helvetica-Bold", 14)
        pdf.drawString(LEFT, PAGE_HEIGHT - 2 * cm, self.company_name)

        pdf.setFont("Helvetica-Bold", 12)
        pdf.drawRightString(RIGHT, PAGE_HEIGHT - 2 * cm, "INVOICE")

        pdf.setFont("Helvetica", 10)
        pdf.drawRightString(RIGHT, PAGE_HEIGHT - 2.6 * cm, f"No: {invoice.invoice_number}")
        pdf.drawRightString(RIGHT, PAGE_HEIGHT - 3.1 * cm, f"Tanggal: {invoice.invoice_date:%d/%m/%Y}")

        y = PAGE_HEIGHT - 4.2 * cm
        self._render_column_titles(pdf, y)
        return y - ROW_HEIGHT

    def _render_column_titles(self, pdf: canvas.Canvas, y: float) -> None:
        pdf.setFont("Helvetica-Bold", 10)
        pdf.drawString(LEFT, y, "No")
        pdf.drawString(LEFT + 1.2 * cm, y, "Keterangan")
        pdf.drawRightString(RIGHT - 4.5 * cm, y, "Qty")
        pdf.drawRightString(RIGHT, y, "Jumlah")
        pdf.line(LEFT, y - 0.2 * cm, RIGHT, y - 0.2 * cm)

    def _render_lines(self, pdf: canvas.Canvas, invoice: Invoice, y: float) -> float:
        pdf.setFont("Helvetica", 10)

        for baris, lines in group_lines_by_baris(invoice.lines).items():
            if y < BOTTOM + len(lines) * ROW_HEIGHT:
                pdf.showPage()
                y = PAGE_HEIGHT - 2 * cm
                self._render_column_titles(pdf, y)
                y -= ROW_HEIGHT
                pdf.setFont("Helvetica", 10)

            pdf.drawString(LEFT, y, str(baris))
            for line in lines:
                description = line.custom_job_name or line.job_description_id
                amount = line.line_total if line.line_total is not None else Decimal("0")
                pdf.drawString(LEFT + 1.2 * cm, y, description[:60])
                pdf.drawRightString(RIGHT - 4.5 * cm, y, str(line.quantity))
                pdf.drawRightString(RIGHT, y, format_idr(amount))
                y -= ROW_HEIGHT

        pdf.line(LEFT, y + 0.3 * cm, RIGHT, y + 0.3 * cm)
        return y

    def _render_totals(self, pdf: canvas.Canvas, invoice: Invoice, y: float) -> None:
        if y < BOTTOM + 4 * ROW_HEIGHT:
            pdf.showPage()
            y = PAGE_HEIGHT - 2 * cm

        rows = [
            ("Subtotal", format_idr(invoice.subtotal)),
            (f"PPN ({format_percent(invoice.vat_percentage)})", format_idr(invoice.vat_amount)),
            ("TOTAL", format_idr(invoice.total_amount)),
        ]
        for label, value in rows:
            pdf.setFont("Helvetica-Bold" if label == "TOTAL" else "Helvetica", 10)
            pdf.drawString(RIGHT - 8 * cm, y, label)
            pdf.drawRightString(RIGHT, y, value)
            y -= ROW_HEIGHT

        y -= ROW_HEIGHT / 2
        pdf.setFont("Helvetica-Oblique", 10)
        pdf.drawString(LEFT, y, f"Terbilang: {amount_to_words(invoice.total_amount)}")
