"""FastAPI dependencies."""

from typing import Generator

from fastapi import Header, HTTPException
from sqlalchemy.orm import Session

from lexdesk.core.config import settings
from lexdesk.db.session import SessionLocal


def get_db() -> Generator[Session, None, None]:
    """Yield a database session, closed after the request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def verify_internal_secret(x_internal_secret: str = Header(...)) -> None:
    """Verify the internal secret header for cron-driven endpoints."""
    expected = settings.INTERNAL_SECRET
    if not expected:
        raise HTTPException(status_code=501, detail="INTERNAL_SECRET not configured")
    if x_internal_secret != expected:
        raise HTTPException(status_code=403, detail="Invalid internal secret")
