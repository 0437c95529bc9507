"""
Test configuration and fixtures for the ledger tests.
"""
import pytest
from typing import AsyncGenerator, Any, Dict, List

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool, NullPool
from httpx import AsyncClient, ASGITransport

from main import app
from app.core.database import Base, get_db, get_session_factory
from app.modules.accounts.models import Account, AccountStatusEnum
from app.modules.notifications.services import NotificationSink, get_notification_sink
from app.modules.transactions.services import TransactionService


# ============================================================
# Database Fixtures
# ============================================================

# Use SQLite for testing (in-memory)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def test_engine():
    """Create test database engine"""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker:
    """Session factory handed to the transaction engine"""
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False
    )


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for each test"""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def file_engine(tmp_path):
    """
    File-backed database where every session gets its own connection,
    so concurrent writers really interleave.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}",
        connect_args={"timeout": 30},
        poolclass=NullPool,
        echo=False
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def file_session_factory(file_engine) -> async_sessionmaker:
    return async_sessionmaker(
        file_engine,
        class_=AsyncSession,
        expire_on_commit=False
    )


# ============================================================
# Notification Fixtures
# ============================================================

class RecordingSink(NotificationSink):
    """Keeps every published event in memory"""

    def __init__(self):
        self.events: List[Dict[str, Any]] = []

    async def publish(self, event: Dict[str, Any]) -> None:
        self.events.append(event)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


# ============================================================
# Service Fixtures
# ============================================================

@pytest.fixture
def service(session_factory, sink) -> TransactionService:
    """Transaction engine over the in-memory database"""
    return TransactionService(session_factory, notification_sink=sink)


async def create_account(factory: async_sessionmaker, owner_name: str = "Test Owner",
                         status: AccountStatusEnum = AccountStatusEnum.ACTIVE) -> Account:
    async with factory() as session:
        account = Account(owner_name=owner_name, status=status)
        session.add(account)
        await session.commit()
        await session.refresh(account)
        return account


@pytest.fixture
def make_account(session_factory):
    """Factory for extra accounts on the in-memory database"""
    async def _make(owner_name: str = "Other Owner", status: AccountStatusEnum = AccountStatusEnum.ACTIVE):
        return await create_account(session_factory, owner_name, status)
    return _make


@pytest.fixture
async def test_account(session_factory) -> Account:
    """Create an active account with an empty ledger"""
    return await create_account(session_factory)


@pytest.fixture
async def file_account(file_session_factory) -> Account:
    return await create_account(file_session_factory)


# ============================================================
# HTTP Fixtures
# ============================================================

@pytest.fixture
async def client(db_session, session_factory, sink) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database and sink overrides"""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_notification_sink] = lambda: sink

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
