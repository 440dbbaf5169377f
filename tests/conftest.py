"""
Test configuration and fixtures.

Provides:
- In-memory SQLite database with the full schema
- Database session with savepoint (rollback after each test)
- HTTPX AsyncClient against the FastAPI app
"""
import os
from typing import AsyncGenerator, Generator

# Point the app at an in-memory database before anything reads settings
os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["GITHUB_TOKEN"] = ""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.orm import Session

from backoffice.core.deps import get_db
from backoffice.db.base import Base
from backoffice.db.models import Client, Quote
from backoffice.db.session import SessionLocal, engine
from backoffice.main import app

from factories import make_quote


# =============================================================================
# Configuration
# =============================================================================

# pysqlite does its own transaction handling; take it over so SAVEPOINT works
@event.listens_for(engine, "connect")
def _sqlite_connect(dbapi_connection, connection_record):
    dbapi_connection.isolation_level = None


@event.listens_for(engine, "begin")
def _sqlite_begin(conn):
    conn.exec_driver_sql("BEGIN")


@pytest.fixture(scope="session", autouse=True)
def schema() -> Generator[None, None, None]:
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


# =============================================================================
# Database Fixtures (Savepoint pattern)
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Creates a database session with savepoint for test isolation.

    Service code calls commit() freely; each commit only releases a
    savepoint and the outer transaction is rolled back at the end.
    """
    connection = engine.connect()
    transaction = connection.begin()
    session = SessionLocal(bind=connection, join_transaction_mode="create_savepoint")

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture(scope="function")
def test_client_row(db: Session) -> Client:
    """Create a test client (customer)."""
    row = Client(name="Acme Corp", email="billing@acme.test")
    db.add(row)
    db.flush()
    return row


@pytest.fixture(scope="function")
def quote(db: Session, test_client_row: Client) -> Quote:
    """Create a DRAFT quote backed by the acme/website repository."""
    return make_quote(db, test_client_row)


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture(scope="function")
async def client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """Unauthenticated AsyncClient sharing the test session."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as c:
        yield c

    app.dependency_overrides.clear()
