"""Engine, session factory and declarative base for the shift book tables."""

from collections.abc import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from ..config import Settings, settings


def build_engine(config: Settings) -> Engine:
    """Pooled engine for PostgreSQL; SQLite URLs get the driver's default pool."""
    url = config.effective_database_url
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(
        url,
        pool_size=config.db_pool_size,
        max_overflow=config.db_max_overflow,
        pool_recycle=config.db_pool_recycle_seconds,
        pool_pre_ping=True,
    )


engine = build_engine(settings)

SessionLocal = sessionmaker(bind=engine)


class Base(DeclarativeBase):
    pass


def get_db() -> Generator[Session, None, None]:
    """Request-scoped session; routes commit, anything uncommitted is rolled back on close."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
