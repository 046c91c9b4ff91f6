"""
FinTrace Forensics - Test Configuration

Pytest fixtures and configuration.
"""

import os

# Settings are read at import time; point them at an in-memory database
os.environ.setdefault("DATABASE_URL_ASYNC", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-forensics")
os.environ.setdefault("DEBUG", "false")

from datetime import datetime, timezone
from decimal import Decimal
from typing import AsyncGenerator, List
from uuid import uuid4

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

import fintrace.models  # noqa: F401
from fintrace.database import Base, get_async_session
from fintrace.models.forensic import Investigation
from fintrace.models.transaction import LedgerTransaction, TransactionType
from fintrace.models.user import User
from fintrace.services.investigation_service import InvestigationService
from fintrace.utils.security import create_access_token
from main import app


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database for each test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with session_factory() as session:
        yield session
        await session.rollback()

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with database session override."""

    async def override_get_session():
        yield db_session

    app.dependency_overrides[get_async_session] = override_get_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ===========================================
# DATA FIXTURES
# ===========================================

async def _create_user(db_session: AsyncSession, email: str, full_name: str) -> User:
    user = User(id=uuid4(), email=email, full_name=full_name, is_active=True)
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    """Investigator who owns the test investigation and ledger."""
    return await _create_user(db_session, "investigator@example.com", "Dana Investigator")


@pytest_asyncio.fixture
async def other_user(db_session: AsyncSession) -> User:
    """A second user with no access to the test investigation."""
    return await _create_user(db_session, "outsider@example.com", "Sam Outsider")


@pytest_asyncio.fixture
async def auth_headers(test_user: User) -> dict:
    token = create_access_token({"sub": str(test_user.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def other_auth_headers(other_user: User) -> dict:
    token = create_access_token({"sub": str(other_user.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def test_investigation(db_session: AsyncSession, test_user: User) -> Investigation:
    service = InvestigationService(db_session)
    return await service.create_investigation(
        user_id=test_user.id,
        title="Vendor kickback review",
        allegations="Payments to a shell vendor",
        investigation_period_start=datetime(2024, 1, 1, tzinfo=timezone.utc),
        investigation_period_end=datetime(2024, 12, 31, tzinfo=timezone.utc),
        lead_investigator="Dana Investigator",
    )


def make_ledger_transaction(
    user: User,
    amount: str,
    when: datetime,
    description: str = "Office supplies for Q1 operations",
    title: str = "Acme Supplies",
    transaction_type: TransactionType = TransactionType.EXPENSE,
) -> LedgerTransaction:
    return LedgerTransaction(
        id=uuid4(),
        user_id=user.id,
        title=title,
        description=description,
        amount=Decimal(amount),
        transaction_type=transaction_type,
        transaction_date=when,
    )


@pytest_asyncio.fixture
async def ledger_transactions(db_session: AsyncSession, test_user: User) -> List[LedgerTransaction]:
    """
    A small ledger with known signals:
    - two exact duplicates (Tuesday, business hours)
    - one large round consulting payment on a Saturday
    - one late-night transaction
    """
    transactions = [
        make_ledger_transaction(test_user, "-1234.56", datetime(2024, 3, 5, 10, 0)),
        make_ledger_transaction(test_user, "-1234.56", datetime(2024, 3, 5, 15, 30)),
        make_ledger_transaction(
            test_user, "-75000.00", datetime(2024, 3, 9, 11, 0),
            description="consulting", title="Shell Advisory LLC",
        ),
        make_ledger_transaction(
            test_user, "-312.40", datetime(2024, 3, 6, 23, 15),
            description="Late courier charge", title="FastCourier",
        ),
        make_ledger_transaction(
            test_user, "5200.75", datetime(2024, 3, 7, 9, 0),
            description="Customer invoice settlement", title="Client Co",
            transaction_type=TransactionType.INCOME,
        ),
    ]
    db_session.add_all(transactions)
    await db_session.commit()
    return transactions
