"""Invoice persistence and status workflow"""

from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional, Set
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
import logging

from tka_invoice.calculations.invoice import calculate_invoice_totals
from tka_invoice.calculations.line_items import calculate_line_total, validate_line_item
from tka_invoice.config import settings
from tka_invoice.models.database import AsyncSessionLocal
from tka_invoice.models.db_models import Invoice as InvoiceDB
from tka_invoice.models.db_utils import db_to_pydantic_invoice, line_to_db
from tka_invoice.models.invoice import (
    Invoice as InvoicePydantic,
    InvoiceCreate,
    InvoiceLine,
    InvoiceStatus,
    UserRole,
)
from tka_invoice.services.sequence_service import InvoiceNumberSequencer

logger = logging.getLogger(__name__)


STATUS_TRANSITIONS: Dict[InvoiceStatus, Set[InvoiceStatus]] = {
    InvoiceStatus.DRAFT: {InvoiceStatus.FINALIZED, InvoiceStatus.CANCELLED},
    InvoiceStatus.FINALIZED: {InvoiceStatus.PAID, InvoiceStatus.CANCELLED, InvoiceStatus.DRAFT},
    InvoiceStatus.PAID: set(),
    InvoiceStatus.CANCELLED: set(),
}

PAYMENT_ROLES = {UserRole.ADMIN, UserRole.FINANCE_SUPERVISOR}


class InvoiceServiceError(Exception):
    """Base class for invoice service errors"""


class InvoiceNotFoundError(InvoiceServiceError):
    def __init__(self, invoice_id: str):
        super().__init__(f"Invoice not found: {invoice_id}")
        self.invoice_id = invoice_id


class InvoiceValidationError(InvoiceServiceError):
    """Raised with every line/totals rule the input violated"""

    def __init__(self, errors: List[str]):
        super().__init__("; ".join(errors))
        self.errors = errors


class InvoiceWorkflowError(InvoiceServiceError):
    """Operation not allowed in the invoice's current status"""


class InvoicePermissionError(InvoiceServiceError):
    """Role may not perform the requested transition"""


def allowed_transitions(status: InvoiceStatus) -> Set[InvoiceStatus]:
    return STATUS_TRANSITIONS.get(InvoiceStatus(status), set())


class InvoiceService:
    """Async service that persists invoices with totals from the calculation core"""

    def __init__(
        self,
        sequencer: Optional[InvoiceNumberSequencer] = None,
        session_factory: Optional[async_sessionmaker] = None,
    ):
        self.session_factory = session_factory or AsyncSessionLocal
        self.sequencer = sequencer or InvoiceNumberSequencer(session_factory=self.session_factory)

    def _session(self, db: Optional[AsyncSession]):
        if db:
            return db, False
        return self.session_factory(), True

    @staticmethod
    def _prepare_lines(lines: List[InvoiceLine], vat_percentage: Decimal):
        """Validate lines, number them, and compute totals"""
        errors = []
        if not lines:
            errors.append("Invoice must have at least one line")
        if not (0 <= vat_percentage <= 100):
            errors.append("VAT percentage must be between 0 and 100")

        for index, line in enumerate(lines, start=1):
            result = validate_line_item(line)
            errors.extend(f"Line {index}: {error}" for error in result.errors)

        if errors:
            raise InvoiceValidationError(errors)

        rows = []
        for index, line in enumerate(lines, start=1):
            line_total = calculate_line_total(line.quantity, line.unit_price, line.custom_price)
            numbered = line.model_copy(update={
                "baris": line.baris if line.baris is not None else index,
                "line_order": line.line_order if line.line_order is not None else index,
            })
            rows.append(line_to_db(numbered, line_total))

        totals = calculate_invoice_totals(lines, vat_percentage)
        return rows, totals

    async def create_invoice(
        self,
        data: InvoiceCreate,
        created_by: Optional[str] = None,
        db: Optional[AsyncSession] = None,
        now: Optional[datetime] = None,
    ) -> InvoicePydantic:
        """
        Create a draft invoice.

        The invoice number is allocated in the same transaction as the
        invoice insert, so a rollback does not leave a number attached to
        nothing.

        Raises:
            InvoiceValidationError: when any line or the VAT rate is invalid
        """
        vat_percentage = Decimal(str(
            data.vat_percentage if data.vat_percentage is not None else settings.VAT_DEFAULT_PERCENTAGE
        ))
        rows, totals = self._prepare_lines(data.lines, vat_percentage)

        session, should_close = self._session(db)
        try:
            invoice_number = await self.sequencer.generate_invoice_number(db=session, now=now)
            timestamp = datetime.utcnow()

            invoice_db = InvoiceDB(
                invoice_number=invoice_number,
                company_id=data.company_id,
                invoice_date=data.invoice_date,
                subtotal=totals.subtotal,
                vat_percentage=totals.vat_percentage,
                vat_amount=totals.vat_amount,
                total_amount=totals.total_amount,
                status=InvoiceStatus.DRAFT.value,
                notes=data.notes,
                bank_account_id=data.bank_account_id,
                printed_count=0,
                created_by=created_by,
                created_at=timestamp,
                updated_at=timestamp,
                lines=rows,
            )
            session.add(invoice_db)
            await session.commit()

            logger.info(
                f"Created invoice {invoice_number} for company {data.company_id}: "
                f"{len(rows)} lines, total {totals.total_amount}"
            )
            return db_to_pydantic_invoice(invoice_db)

        except Exception as e:
            await session.rollback()
            logger.error(f"Error creating invoice for company {data.company_id}: {e}", exc_info=True)
            raise
        finally:
            if should_close:
                await session.close()

    async def _load(self, session: AsyncSession, invoice_id: str) -> Optional[InvoiceDB]:
        result = await session.execute(
            select(InvoiceDB)
            .where(InvoiceDB.id == invoice_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_invoice(
        self,
        invoice_id: str,
        db: Optional[AsyncSession] = None
    ) -> Optional[InvoicePydantic]:
        """Get invoice with its lines, or None if not found"""
        session, should_close = self._session(db)
        try:
            invoice_db = await self._load(session, invoice_id)
            return db_to_pydantic_invoice(invoice_db) if invoice_db else None
        except Exception as e:
            logger.error(f"Error getting invoice {invoice_id}: {e}", exc_info=True)
            raise
        finally:
            if should_close:
                await session.close()

    async def list_invoices(
        self,
        skip: int = 0,
        limit: int = 20,
        status: Optional[InvoiceStatus] = None,
        company_id: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        search: Optional[str] = None,
        db: Optional[AsyncSession] = None
    ) -> List[InvoicePydantic]:
        """
        List invoices, newest invoice date first.

        date_from and date_to are inclusive bounds on the invoice date; search
        matches any part of the invoice number, ignoring case.
        """
        session, should_close = self._session(db)
        try:
            query = select(InvoiceDB)
            if status:
                query = query.where(InvoiceDB.status == InvoiceStatus(status).value)
            if company_id:
                query = query.where(InvoiceDB.company_id == company_id)
            if date_from:
                query = query.where(InvoiceDB.invoice_date >= date_from)
            if date_to:
                query = query.where(InvoiceDB.invoice_date <= date_to)
            if search:
                query = query.where(InvoiceDB.invoice_number.ilike(f"%{search}%"))
            query = query.order_by(InvoiceDB.invoice_date.desc(), InvoiceDB.invoice_number.desc())
            query = query.offset(skip).limit(limit)

            result = await session.execute(query)
            return [db_to_pydantic_invoice(inv) for inv in result.scalars().all()]
        except Exception as e:
            logger.error(f"Error listing invoices: {e}", exc_info=True)
            raise
        finally:
            if should_close:
                await session.close()

    async def update_invoice_lines(
        self,
        invoice_id: str,
        lines: List[InvoiceLine],
        vat_percentage: Optional[Decimal] = None,
        db: Optional[AsyncSession] = None
    ) -> InvoicePydantic:
        """Replace the lines of a draft invoice and recompute its totals"""
        session, should_close = self._session(db)
        try:
            invoice_db = await self._load(session, invoice_id)
            if not invoice_db:
                raise InvoiceNotFoundError(invoice_id)
            if invoice_db.status != InvoiceStatus.DRAFT.value:
                raise InvoiceWorkflowError(
                    f"Lines can only be edited on draft invoices (invoice is {invoice_db.status})"
                )

            percentage = Decimal(str(vat_percentage)) if vat_percentage is not None else invoice_db.vat_percentage
            rows, totals = self._prepare_lines(lines, Decimal(str(percentage)))

            invoice_db.lines = rows
            invoice_db.subtotal = totals.subtotal
            invoice_db.vat_percentage = totals.vat_percentage
            invoice_db.vat_amount = totals.vat_amount
            invoice_db.total_amount = totals.total_amount
            invoice_db.updated_at = datetime.utcnow()

            await session.commit()
            logger.info(f"Replaced lines of invoice {invoice_db.invoice_number}, total {totals.total_amount}")
            return db_to_pydantic_invoice(invoice_db)

        except InvoiceServiceError:
            await session.rollback()
            raise
        except Exception as e:
            await session.rollback()
            logger.error(f"Error updating lines of invoice {invoice_id}: {e}", exc_info=True)
            raise
        finally:
            if should_close:
                await session.close()

    async def update_status(
        self,
        invoice_id: str,
        new_status: InvoiceStatus,
        role: UserRole,
        db: Optional[AsyncSession] = None
    ) -> InvoicePydantic:
        """
        Move an invoice to a new status.

        Uses a single conditional UPDATE (WHERE status IN allowed sources) so
        two concurrent transitions cannot both succeed.

        Raises:
            InvoicePermissionError: marking paid without a payment role
            InvoiceWorkflowError: transition not allowed from current status
            InvoiceNotFoundError: unknown invoice
        """
        new_status = InvoiceStatus(new_status)
        role = UserRole(role)

        if new_status == InvoiceStatus.PAID and role not in PAYMENT_ROLES:
            raise InvoicePermissionError(f"Role {role.value} cannot mark invoices as paid")

        sources = [status.value for status, targets in STATUS_TRANSITIONS.items() if new_status in targets]

        session, should_close = self._session(db)
        try:
            result = await session.execute(
                update(InvoiceDB)
                .where(InvoiceDB.id == invoice_id, InvoiceDB.status.in_(sources))
                .values(status=new_status.value, updated_at=datetime.utcnow())
                .execution_options(synchronize_session=False)
            )

            if result.rowcount == 0:
                await session.rollback()
                current = await self._load(session, invoice_id)
                if current is None:
                    raise InvoiceNotFoundError(invoice_id)
                raise InvoiceWorkflowError(
                    f"Cannot change invoice {current.invoice_number} from {current.status} to {new_status.value}"
                )

            await session.commit()
            invoice_db = await self._load(session, invoice_id)
            logger.info(f"Invoice {invoice_db.invoice_number} status updated to {new_status.value}")
            return db_to_pydantic_invoice(invoice_db)

        except InvoiceServiceError:
            raise
        except Exception as e:
            await session.rollback()
            logger.error(f"Error updating status of invoice {invoice_id}: {e}", exc_info=True)
            raise
        finally:
            if should_close:
                await session.close()

    async def delete_invoice(
        self,
        invoice_id: str,
        db: Optional[AsyncSession] = None
    ) -> None:
        """Delete an invoice and its lines; paid invoices are kept"""
        session, should_close = self._session(db)
        try:
            invoice_db = await self._load(session, invoice_id)
            if not invoice_db:
                raise InvoiceNotFoundError(invoice_id)
            if invoice_db.status == InvoiceStatus.PAID.value:
                raise InvoiceWorkflowError("Cannot delete paid invoice")

            await session.delete(invoice_db)
            await session.commit()
            logger.info(f"Deleted invoice {invoice_db.invoice_number}")

        except InvoiceServiceError:
            raise
        except Exception as e:
            await session.rollback()
            logger.error(f"Error deleting invoice {invoice_id}: {e}", exc_info=True)
            raise
        finally:
            if should_close:
                await session.close()

    async def mark_printed(
        self,
        invoice_id: str,
        db: Optional[AsyncSession] = None
    ) -> bool:
        """Count a print of the invoice; False if the invoice does not exist"""
        session, should_close = self._session(db)
        try:
            result = await session.execute(
                update(InvoiceDB)
                .where(InvoiceDB.id == invoice_id)
                .values(
                    printed_count=InvoiceDB.printed_count + 1,
                    last_printed_at=datetime.utcnow(),
                )
                .execution_options(synchronize_session=False)
            )
            await session.commit()
            return result.rowcount > 0
        except Exception as e:
            await session.rollback()
            logger.error(f"Error recording print of invoice {invoice_id}: {e}", exc_info=True)
            raise
        finally:
            if should_close:
                await session.close()
