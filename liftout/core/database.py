# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""SQLAlchemy engine factory."""
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from liftout.core.config import settings


def build_engine(url: str | None = None) -> Engine:
    """Pooled engine for DATABASE_URL (or an explicit url)."""
    return create_engine(
        url or settings.DATABASE_URL,
        pool_pre_ping=True,
        pool_size=settings.POOL_SIZE,
        max_overflow=settings.MAX_OVERFLOW,
        pool_recycle=settings.POOL_RECYCLE,
    )
