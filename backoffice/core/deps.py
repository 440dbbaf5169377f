"""FastAPI dependencies for database and tracker access."""

from typing import AsyncGenerator, Generator

import httpx
from sqlalchemy.orm import Session

from backoffice.db.session import SessionLocal
from backoffice.services import github_service


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


async def get_tracker_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    """HTTP client for the GitHub tracker, closed after the request."""
    async with github_service.build_client() as client:
        yield client
