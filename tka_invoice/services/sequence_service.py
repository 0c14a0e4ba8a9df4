"""Sequential invoice numbering per (year, month)

Numbers look like INV-25-03-007, followed by the sequence's suffix when it has
one. The counter lives in the invoice_sequences table and is advanced with a
single UPDATE ... RETURNING, so concurrent request handlers (possibly in
different processes) never receive the same number. A number allocated inside
a caller's transaction is released again if that transaction rolls back;
numbers burnt by failed commits only leave gaps.
"""

from datetime import datetime
from typing import Optional, Tuple
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
import logging

from tka_invoice.config import settings
from tka_invoice.models.database import AsyncSessionLocal
from tka_invoice.models.db_models import InvoiceSequence
from tka_invoice.utils.retry import async_retry_with_backoff

logger = logging.getLogger(__name__)

MAX_ALLOCATION_ATTEMPTS = 3


def format_invoice_number(prefix: str, year: int, month: int, number: int, suffix: str = "") -> str:
    """
    Format PREFIX-YY-MM-NNN followed by the suffix, if any.

    Examples:
        >>> format_invoice_number("INV", 2025, 3, 7)
        'INV-25-03-007'
        >>> format_invoice_number("INV", 2025, 3, 7, "/TKA")
        'INV-25-03-007/TKA'
    """
    return f"{prefix}-{year % 100:02d}-{month:02d}-{number:03d}{suffix}"


class InvoiceNumberSequencer:
    """Allocates invoice numbers from the invoice_sequences table"""

    def __init__(
        self,
        session_factory: Optional[async_sessionmaker] = None,
        prefix: Optional[str] = None,
        suffix: Optional[str] = None,
    ):
        """
        Args:
            session_factory: Session factory used when no session is passed in
            prefix: Prefix for sequences created by this sequencer
            suffix: Suffix for sequences created by this sequencer (may be empty)
        """
        self.session_factory = session_factory or AsyncSessionLocal
        self.prefix = prefix or settings.INVOICE_NUMBER_PREFIX
        self.suffix = settings.INVOICE_NUMBER_SUFFIX if suffix is None else suffix

    async def _increment(self, session: AsyncSession, year: int, month: int) -> Optional[Tuple[int, str, str]]:
        """Atomically bump an existing counter; None when the row does not exist"""
        stmt = (
            update(InvoiceSequence)
            .where(InvoiceSequence.year == year, InvoiceSequence.month == month)
            .values(
                current_number=InvoiceSequence.current_number + 1,
                updated_at=datetime.utcnow(),
            )
            .returning(InvoiceSequence.current_number, InvoiceSequence.prefix, InvoiceSequence.suffix)
            .execution_options(synchronize_session=False)
        )
        row = (await session.execute(stmt)).first()
        if row is None:
            return None
        return row.current_number, row.prefix, row.suffix

    async def _allocate(self, session: AsyncSession, year: int, month: int) -> Tuple[int, str, str]:
        for attempt in range(MAX_ALLOCATION_ATTEMPTS):
            allocated = await self._increment(session, year, month)
            if allocated is not None:
                return allocated

            # First issuance this month. The unique (year, month) constraint
            # decides between concurrent creators; the loser bumps the winner's row.
            try:
                async with session.begin_nested():
                    session.add(InvoiceSequence(
                        year=year,
                        month=month,
                        current_number=1,
                        prefix=self.prefix,
                        suffix=self.suffix,
                    ))
                logger.info(f"Started invoice sequence for {year}-{month:02d}")
                return 1, self.prefix, self.suffix
            except IntegrityError:
                logger.info(
                    f"Sequence {year}-{month:02d} created concurrently, "
                    f"retrying increment (attempt {attempt + 1})"
                )

        raise RuntimeError(f"Could not allocate invoice number for {year}-{month:02d}")

    @async_retry_with_backoff(max_retries=5, exceptions=(IntegrityError, OperationalError))
    async def _allocate_in_own_session(self, year: int, month: int) -> Tuple[int, str, str]:
        async with self.session_factory() as session:
            try:
                allocated = await self._allocate(session, year, month)
                await session.commit()
                return allocated
            except Exception:
                await session.rollback()
                raise

    async def generate_invoice_number(
        self,
        db: Optional[AsyncSession] = None,
        now: Optional[datetime] = None,
    ) -> str:
        """
        Allocate the next invoice number for the month of `now`.

        Args:
            db: Caller's session. The caller owns the transaction and must
                commit it together with the invoice insert.
            now: Issuance time (defaults to the current local time)

        Returns:
            Formatted invoice number
        """
        now = now or datetime.now()

        try:
            if db is not None:
                number, prefix, suffix = await self._allocate(db, now.year, now.month)
            else:
                number, prefix, suffix = await self._allocate_in_own_session(now.year, now.month)
        except Exception as e:
            logger.error(f"Error allocating invoice number for {now:%Y-%m}: {e}", exc_info=True)
            raise

        invoice_number = format_invoice_number(prefix, now.year, now.month, number, suffix)
        logger.info(f"Allocated invoice number {invoice_number}")
        return invoice_number

    async def peek_next_number(
        self,
        db: Optional[AsyncSession] = None,
        now: Optional[datetime] = None,
    ) -> str:
        """Next invoice number without consuming it (for display only)"""
        now = now or datetime.now()

        if db:
            session = db
            should_close = False
        else:
            session = self.session_factory()
            should_close = True

        try:
            result = await session.execute(
                select(InvoiceSequence.current_number, InvoiceSequence.prefix, InvoiceSequence.suffix).where(
                    InvoiceSequence.year == now.year,
                    InvoiceSequence.month == now.month,
                )
            )
            row = result.first()
            current = row.current_number if row else 0
            prefix = row.prefix if row else self.prefix
            suffix = row.suffix if row else self.suffix
            return format_invoice_number(prefix, now.year, now.month, current + 1, suffix)
        finally:
            if should_close:
                await session.close()
