"""Pytest configuration and shared fixtures"""

import pytest
import os
import sys
from typing import AsyncGenerator
from datetime import date, datetime
from decimal import Decimal
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from tka_invoice.models.database import Base, engine_connect_args
from tka_invoice.models import db_models  # noqa: F401
from tka_invoice.models.invoice import InvoiceCreate, InvoiceLine


# Test database setup (SQLite in-memory)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

test_engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
    echo=False
)

TestingSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False
)


@pytest.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Create a fresh database session for each test

    Yields:
        Async database session
    """
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestingSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def session_factory(db_session) -> async_sessionmaker:
    """Session factory bound to the in-memory test database (tables created)"""
    return TestingSessionLocal


@pytest.fixture
async def file_session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker, None]:
    """
    Session factory on a file-backed SQLite database.

    Unlike the in-memory StaticPool engine, every session gets its own
    connection, so concurrent sessions contend for locks as separate
    processes would.
    """
    url = f"sqlite+aiosqlite:///{tmp_path / 'invoices.db'}"
    engine = create_async_engine(url, connect_args=engine_connect_args(url))
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
def issue_time() -> datetime:
    return datetime(2025, 3, 15, 9, 30, 0)


@pytest.fixture
def sample_lines() -> list:
    """Two workers billed on one printed row, one on a second row"""
    return [
        InvoiceLine(
            baris=1,
            tka_id="tka-001",
            job_description_id="job-supervisor",
            custom_job_name="Site Supervisor",
            quantity=1,
            unit_price=Decimal("7500000"),
        ),
        InvoiceLine(
            baris=1,
            tka_id="tka-002",
            job_description_id="job-supervisor",
            quantity=1,
            unit_price=Decimal("7500000"),
            custom_price=Decimal("7000000"),
        ),
        InvoiceLine(
            baris=2,
            tka_id="tka-003",
            job_description_id="job-welder",
            custom_job_name="Welder",
            quantity=2,
            unit_price=Decimal("3250000.50"),
        ),
    ]


@pytest.fixture
def sample_invoice_create(sample_lines) -> InvoiceCreate:
    """Invoice payload whose totals are 21,000,001.00 + 2,310,000 PPN"""
    return InvoiceCreate(
        company_id="company-abc",
        invoice_date=date(2025, 3, 15),
        notes="Maret 2025",
        bank_account_id="bank-bca-01",
        lines=sample_lines,
    )
