"""Database engine and session management"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from vaniga_score.config import settings
from vaniga_score.infrastructure.database.models import Base


def build_engine(database_url: str) -> Engine:
    """
    Create an engine for the configured backend.

    SQLite (local runs, tests) needs cross-thread access for the ASGI
    threadpool; server databases get a bounded pool recycled hourly.
    """
    if database_url.startswith("sqlite"):
        return create_engine(database_url, connect_args={"check_same_thread": False})

    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=10,
        pool_recycle=3600,
    )


engine = build_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind: Engine | None = None) -> None:
    """Create missing tables"""
    Base.metadata.create_all(bind=bind or engine)


def get_db() -> Session:
    """Dependency injection for database sessions"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
