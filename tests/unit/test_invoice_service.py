"""Unit tests for InvoiceService"""

import pytest
from datetime import date
from decimal import Decimal

from tka_invoice.models.invoice import InvoiceCreate, InvoiceLine, InvoiceStatus, UserRole
from tka_invoice.services.invoice_service import (
    InvoiceNotFoundError,
    InvoicePermissionError,
    InvoiceService,
    InvoiceValidationError,
    InvoiceWorkflowError,
    allowed_transitions,
)
from tka_invoice.services.sequence_service import InvoiceNumberSequencer


@pytest.fixture
def service() -> InvoiceService:
    return InvoiceService(sequencer=InvoiceNumberSequencer())


def _line(**overrides) -> InvoiceLine:
    values = {"tka_id": "tka-001", "job_description_id": "job-1", "quantity": 1, "unit_price": Decimal("1000000")}
    values.update(overrides)
    return InvoiceLine(**values)


@pytest.mark.unit
@pytest.mark.requires_db
class TestCreateInvoice:
    """Test InvoiceService.create_invoice"""

    @pytest.mark.asyncio
    async def test_create_invoice(self, service, db_session, sample_invoice_create, issue_time):
        """Test totals and number are assigned on create"""
        invoice = await service.create_invoice(
            sample_invoice_create, created_by="user-1", db=db_session, now=issue_time
        )

        assert invoice.id is not None
        assert invoice.invoice_number == "INV-25-03-001"
        assert invoice.status == InvoiceStatus.DRAFT
        assert invoice.subtotal == Decimal("21000001.00")
        assert invoice.vat_percentage == Decimal("11")
        assert invoice.vat_amount == Decimal("2310000")
        assert invoice.total_amount == Decimal("23310001.00")
        assert invoice.created_by == "user-1"
        assert invoice.printed_count == 0

    @pytest.mark.asyncio
    async def test_lines_are_stored_with_computed_totals(
        self, service, db_session, sample_invoice_create, issue_time
    ):
        """Test stored lines carry recomputed totals and print grouping"""
        created = await service.create_invoice(sample_invoice_create, db=db_session, now=issue_time)
        invoice = await service.get_invoice(created.id, db=db_session)

        assert [line.line_total for line in invoice.lines] == [
            Decimal("7500000.00"), Decimal("7000000.00"), Decimal("6500001.00"),
        ]
        assert [line.baris for line in invoice.lines] == [1, 1, 2]
        assert [line.line_order for line in invoice.lines] == [1, 2, 3]
        assert invoice.lines[0].custom_job_name == "Site Supervisor"

    @pytest.mark.asyncio
    async def test_supplied_line_total_is_ignored(self, service, db_session, issue_time):
        """Test a client supplied line_total never reaches the database"""
        data = InvoiceCreate(
            company_id="company-abc",
            invoice_date=date(2025, 3, 15),
            lines=[_line(quantity=2, line_total=Decimal("1"))],
        )

        created = await service.create_invoice(data, db=db_session, now=issue_time)
        invoice = await service.get_invoice(created.id, db=db_session)

        assert invoice.lines[0].line_total == Decimal("2000000.00")
        assert invoice.lines[0].baris == 1
        assert invoice.total_amount == Decimal("2220000.00")

    @pytest.mark.asyncio
    async def test_explicit_vat_percentage(self, service, db_session, issue_time):
        data = InvoiceCreate(
            company_id="company-abc",
            invoice_date=date(2025, 3, 15),
            vat_percentage=Decimal("12"),
            lines=[_line()],
        )

        invoice = await service.create_invoice(data, db=db_session, now=issue_time)

        assert invoice.vat_percentage == Decimal("12")
        assert invoice.vat_amount == Decimal("120000")

    @pytest.mark.asyncio
    async def test_sequential_numbers(self, service, db_session, sample_invoice_create, issue_time):
        first = await service.create_invoice(sample_invoice_create, db=db_session, now=issue_time)
        second = await service.create_invoice(sample_invoice_create, db=db_session, now=issue_time)

        assert first.invoice_number == "INV-25-03-001"
        assert second.invoice_number == "INV-25-03-002"

    @pytest.mark.asyncio
    async def test_no_lines(self, service, db_session):
        """Test an invoice without lines is rejected"""
        data = InvoiceCreate(company_id="company-abc", invoice_date=date(2025, 3, 15))

        with pytest.raises(InvoiceValidationError) as exc_info:
            await service.create_invoice(data, db=db_session)

        assert exc_info.value.errors == ["Invoice must have at least one line"]

    @pytest.mark.asyncio
    async def test_invalid_lines_do_not_consume_a_number(self, service, db_session, issue_time):
        """Test every line error is reported and no number is allocated"""
        data = InvoiceCreate(
            company_id="company-abc",
            invoice_date=date(2025, 3, 15),
            vat_percentage=Decimal("150"),
            lines=[_line(), _line(quantity=0, unit_price=Decimal("-5"))],
        )

        with pytest.raises(InvoiceValidationError) as exc_info:
            await service.create_invoice(data, db=db_session, now=issue_time)

        assert exc_info.value.errors == [
            "VAT percentage must be between 0 and 100",
            "Line 2: Quantity must be greater than 0",
            "Line 2: Unit price cannot be negative",
        ]
        assert await service.sequencer.peek_next_number(db=db_session, now=issue_time) == "INV-25-03-001"


@pytest.mark.unit
@pytest.mark.requires_db
class TestQueryInvoices:
    """Test get_invoice and list_invoices"""

    @pytest.mark.asyncio
    async def test_get_invoice_not_found(self, service, db_session):
        assert await service.get_invoice("nonexistent-id", db=db_session) is None

    @pytest.mark.asyncio
    async def test_list_invoices(self, service, db_session, sample_invoice_create, issue_time):
        """Test listing with status filter and pagination"""
        first = await service.create_invoice(sample_invoice_create, db=db_session, now=issue_time)
        await service.create_invoice(sample_invoice_create, db=db_session, now=issue_time)
        await service.update_status(first.id, InvoiceStatus.FINALIZED, UserRole.FINANCE_STAFF, db=db_session)

        everything = await service.list_invoices(db=db_session)
        drafts = await service.list_invoices(status=InvoiceStatus.DRAFT, db=db_session)
        page = await service.list_invoices(skip=1, limit=1, db=db_session)

        assert [inv.invoice_number for inv in everything] == ["INV-25-03-002", "INV-25-03-001"]
        assert [inv.invoice_number for inv in drafts] == ["INV-25-03-002"]
        assert [inv.invoice_number for inv in page] == ["INV-25-03-001"]

    async def _create_for(self, service, db_session, issue_time, company_id, invoice_date):
        data = InvoiceCreate(company_id=company_id, invoice_date=invoice_date, lines=[_line()])
        return await service.create_invoice(data, db=db_session, now=issue_time)

    @pytest.mark.asyncio
    async def test_filter_by_company(self, service, db_session, issue_time):
        await self._create_for(service, db_session, issue_time, "company-abc", date(2025, 3, 1))
        other = await self._create_for(service, db_session, issue_time, "company-xyz", date(2025, 3, 2))

        result = await service.list_invoices(company_id="company-xyz", db=db_session)

        assert [inv.id for inv in result] == [other.id]

    @pytest.mark.asyncio
    async def test_filter_by_date_range(self, service, db_session, issue_time):
        """Test date_from and date_to are inclusive"""
        await self._create_for(service, db_session, issue_time, "company-abc", date(2025, 2, 28))
        start = await self._create_for(service, db_session, issue_time, "company-abc", date(2025, 3, 1))
        end = await self._create_for(service, db_session, issue_time, "company-abc", date(2025, 3, 31))
        await self._create_for(service, db_session, issue_time, "company-abc", date(2025, 4, 1))

        in_march = await service.list_invoices(
            date_from=date(2025, 3, 1), date_to=date(2025, 3, 31), db=db_session
        )
        from_april = await service.list_invoices(date_from=date(2025, 4, 1), db=db_session)
        until_february = await service.list_invoices(date_to=date(2025, 2, 28), db=db_session)

        assert [inv.id for inv in in_march] == [end.id, start.id]
        assert [inv.invoice_date for inv in from_april] == [date(2025, 4, 1)]
        assert [inv.invoice_date for inv in until_february] == [date(2025, 2, 28)]

    @pytest.mark.asyncio
    async def test_search_invoice_number(self, service, db_session, issue_time):
        """Test search matches part of the number, ignoring case"""
        for _ in range(3):
            await self._create_for(service, db_session, issue_time, "company-abc", date(2025, 3, 15))

        exact = await service.list_invoices(search="03-002", db=db_session)
        lowercase = await service.list_invoices(search="inv-25", db=db_session)
        missing = await service.list_invoices(search="INV-24", db=db_session)

        assert [inv.invoice_number for inv in exact] == ["INV-25-03-002"]
        assert len(lowercase) == 3
        assert missing == []

    @pytest.mark.asyncio
    async def test_filters_combine(self, service, db_session, issue_time):
        await self._create_for(service, db_session, issue_time, "company-abc", date(2025, 3, 10))
        await self._create_for(service, db_session, issue_time, "company-xyz", date(2025, 3, 10))
        await self._create_for(service, db_session, issue_time, "company-xyz", date(2025, 1, 10))

        result = await service.list_invoices(
            company_id="company-xyz", date_from=date(2025, 3, 1), search="INV", db=db_session
        )

        assert [inv.invoice_number for inv in result] == ["INV-25-03-002"]


@pytest.mark.unit
@pytest.mark.requires_db
class TestUpdateInvoiceLines:
    """Test InvoiceService.update_invoice_lines"""

    @pytest.mark.asyncio
    async def test_replace_lines(self, service, db_session, sample_invoice_create, issue_time):
        """Test replacing lines recomputes totals"""
        created = await service.create_invoice(sample_invoice_create, db=db_session, now=issue_time)

        updated = await service.update_invoice_lines(
            created.id, [_line(quantity=2, unit_price=Decimal("1000000"))], db=db_session
        )
        reloaded = await service.get_invoice(created.id, db=db_session)

        assert updated.subtotal == Decimal("2000000.00")
        assert updated.vat_amount == Decimal("220000")
        assert reloaded.total_amount == Decimal("2220000.00")
        assert len(reloaded.lines) == 1
        assert reloaded.invoice_number == created.invoice_number

    @pytest.mark.asyncio
    async def test_only_drafts_are_editable(self, service, db_session, sample_invoice_create, issue_time):
        created = await service.create_invoice(sample_invoice_create, db=db_session, now=issue_time)
        await service.update_status(created.id, InvoiceStatus.FINALIZED, UserRole.FINANCE_STAFF, db=db_session)

        with pytest.raises(InvoiceWorkflowError):
            await service.update_invoice_lines(created.id, [_line()], db=db_session)

    @pytest.mark.asyncio
    async def test_unknown_invoice(self, service, db_session):
        with pytest.raises(InvoiceNotFoundError):
            await service.update_invoice_lines("nonexistent-id", [_line()], db=db_session)


@pytest.mark.unit
@pytest.mark.requires_db
class TestStatusWorkflow:
    """Test InvoiceService.update_status"""

    def test_allowed_transitions(self):
        assert allowed_transitions(InvoiceStatus.DRAFT) == {InvoiceStatus.FINALIZED, InvoiceStatus.CANCELLED}
        assert allowed_transitions(InvoiceStatus.PAID) == set()

    @pytest.mark.asyncio
    async def test_finalize_then_pay(self, service, db_session, sample_invoice_create, issue_time):
        created = await service.create_invoice(sample_invoice_create, db=db_session, now=issue_time)

        finalized = await service.update_status(
            created.id, InvoiceStatus.FINALIZED, UserRole.FINANCE_STAFF, db=db_session
        )
        paid = await service.update_status(
            created.id, InvoiceStatus.PAID, UserRole.FINANCE_SUPERVISOR, db=db_session
        )

        assert finalized.status == InvoiceStatus.FINALIZED
        assert paid.status == InvoiceStatus.PAID
        assert len(paid.lines) == 3

    @pytest.mark.asyncio
    async def test_staff_cannot_mark_paid(self, service, db_session, sample_invoice_create, issue_time):
        created = await service.create_invoice(sample_invoice_create, db=db_session, now=issue_time)
        await service.update_status(created.id, InvoiceStatus.FINALIZED, UserRole.FINANCE_STAFF, db=db_session)

        with pytest.raises(InvoicePermissionError):
            await service.update_status(created.id, InvoiceStatus.PAID, UserRole.FINANCE_STAFF, db=db_session)

        invoice = await service.get_invoice(created.id, db=db_session)
        assert invoice.status == InvoiceStatus.FINALIZED

    @pytest.mark.asyncio
    async def test_draft_cannot_be_paid(self, service, db_session, sample_invoice_create, issue_time):
        created = await service.create_invoice(sample_invoice_create, db=db_session, now=issue_time)

        with pytest.raises(InvoiceWorkflowError, match="from draft to paid"):
            await service.update_status(created.id, InvoiceStatus.PAID, UserRole.ADMIN, db=db_session)

    @pytest.mark.asyncio
    async def test_terminal_states(self, service, db_session, sample_invoice_create, issue_time):
        """Test cancelled invoices cannot be reopened"""
        created = await service.create_invoice(sample_invoice_create, db=db_session, now=issue_time)
        await service.update_status(created.id, InvoiceStatus.CANCELLED, UserRole.ADMIN, db=db_session)

        with pytest.raises(InvoiceWorkflowError):
            await service.update_status(created.id, InvoiceStatus.DRAFT, UserRole.ADMIN, db=db_session)

    @pytest.mark.asyncio
    async def test_finalized_back_to_draft(self, service, db_session, sample_invoice_create, issue_time):
        created = await service.create_invoice(sample_invoice_create, db=db_session, now=issue_time)
        await service.update_status(created.id, InvoiceStatus.FINALIZED, UserRole.FINANCE_STAFF, db=db_session)

        reopened = await service.update_status(
            created.id, InvoiceStatus.DRAFT, UserRole.FINANCE_STAFF, db=db_session
        )

        assert reopened.status == InvoiceStatus.DRAFT

    @pytest.mark.asyncio
    async def test_unknown_invoice(self, service, db_session):
        with pytest.raises(InvoiceNotFoundError):
            await service.update_status("nonexistent-id", InvoiceStatus.FINALIZED, UserRole.ADMIN, db=db_session)


@pytest.mark.unit
@pytest.mark.requires_db
class TestDeleteAndPrint:
    """Test delete_invoice and mark_printed"""

    @pytest.mark.asyncio
    async def test_delete_draft(self, service, db_session, sample_invoice_create, issue_time):
        created = await service.create_invoice(sample_invoice_create, db=db_session, now=issue_time)

        await service.delete_invoice(created.id, db=db_session)

        assert await service.get_invoice(created.id, db=db_session) is None

    @pytest.mark.asyncio
    async def test_paid_invoice_is_kept(self, service, db_session, sample_invoice_create, issue_time):
        created = await service.create_invoice(sample_invoice_create, db=db_session, now=issue_time)
        await service.update_status(created.id, InvoiceStatus.FINALIZED, UserRole.ADMIN, db=db_session)
        await service.update_status(created.id, InvoiceStatus.PAID, UserRole.ADMIN, db=db_session)

        with pytest.raises(InvoiceWorkflowError, match="Cannot delete paid invoice"):
            await service.delete_invoice(created.id, db=db_session)

    @pytest.mark.asyncio
    async def test_delete_unknown(self, service, db_session):
        with pytest.raises(InvoiceNotFoundError):
            await service.delete_invoice("nonexistent-id", db=db_session)

    @pytest.mark.asyncio
    async def test_mark_printed(self, service, db_session, sample_invoice_create, issue_time):
        created = await service.create_invoice(sample_invoice_create, db=db_session, now=issue_time)

        assert await service.mark_printed(created.id, db=db_session) is True
        assert await service.mark_printed(created.id, db=db_session) is True
        assert await service.mark_printed("nonexistent-id", db=db_session) is False

        invoice = await service.get_invoice(created.id, db=db_session)
        assert invoice.printed_count == 2
        assert invoice.last_printed_at is not None
