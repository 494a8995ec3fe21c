"""FastAPI dependencies."""

from typing import Generator

from fastapi import Request
from sqlalchemy.orm import Session

from casefile.core.cache import CacheStore
from casefile.db.session import SessionLocal


def get_db() -> Generator[Session, None, None]:
    """Request-scoped session, closed once the response is sent."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_cache(request: Request) -> CacheStore:
    """Cache store built once at startup and kept on app.state."""
    return request.app.state.cache
