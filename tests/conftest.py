from collections.abc import AsyncGenerator
from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from academy_ledger.core.database.base import Base
from academy_ledger.core.database import build_engine, configure_sqlite_engine, get_db
from academy_ledger.main import app
from academy_ledger.modules.invoices.schemas import InvoiceCreate, InvoiceLineCreate
from academy_ledger.modules.invoices.service import InvoiceService
from academy_ledger.modules.students.models import Student, TaxCondition

# Test database URL (in-memory SQLite for speed, or use test PostgreSQL)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

test_engine = configure_sqlite_engine(create_async_engine(TEST_DATABASE_URL, echo=False))
test_async_session = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


@pytest.fixture(autouse=True)
async def setup_database():
    """Create tables before each test and drop after."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get test database session."""
    async with test_async_session() as session:
        yield session


@pytest.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Get test HTTP client with overridden database dependency."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
async def file_sessions(tmp_path) -> AsyncGenerator[async_sessionmaker, None]:
    """Session factory over a file-backed database, for tests that need several connections."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


async def create_student(
    db_session: AsyncSession,
    first_name: str = "Lucia",
    last_name: str = "Fernandez",
    tax_condition: TaxCondition = TaxCondition.FINAL_CONSUMER,
) -> Student:
    """Insert a student directly and commit."""
    student = Student(
        first_name=first_name,
        last_name=last_name,
        tax_condition=tax_condition.value,
        is_active=True,
    )
    db_session.add(student)
    await db_session.commit()
    return student


async def create_invoice(
    db_session: AsyncSession,
    student_id: int,
    *amounts: Decimal | str,
    billing_period: str = "2026-03",
    as_draft: bool = False,
):
    """Create an invoice through the service with one line per amount."""
    return await InvoiceService(db_session).create_invoice(
        InvoiceCreate(
            student_id=student_id,
            billing_period=billing_period,
            lines=[
                InvoiceLineCreate(
                    description=f"Monthly tuition #{position + 1}",
                    quantity=1,
                    unit_price=Decimal(str(amount)),
                )
                for position, amount in enumerate(amounts)
            ],
            as_draft=as_draft,
        )
    )


@pytest.fixture
async def student(db_session: AsyncSession) -> Student:
    """A final-consumer student (category B invoices)."""
    return await create_student(db_session)


@pytest.fixture
async def other_student(db_session: AsyncSession) -> Student:
    return await create_student(db_session, first_name="Martin", last_name="Sosa")
