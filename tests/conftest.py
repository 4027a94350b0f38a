"""Pytest fixtures for testing"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_vaniga.db")

import uuid
import pytest
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from vaniga_score.api.main import create_app
from vaniga_score.infrastructure.database.models import Base, Business
from vaniga_score.infrastructure.database.repositories import BusinessRepository
from vaniga_score.infrastructure.database.session import get_db
from vaniga_score.domain.models import Transaction, TransactionKind
from vaniga_score.services.coordinator import MutationCoordinator
from vaniga_score.utils.date_utils import utcnow


# Test database
TEST_DATABASE_URL = "sqlite:///./test_vaniga.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


@pytest.fixture
def business(db: Session) -> Business:
    """Freshly registered business: no transactions, score 300"""
    business = BusinessRepository(db).create_business("Lakshmi Stores", "Lakshmi")
    db.commit()
    return business


@pytest.fixture
def other_business(db: Session) -> Business:
    business = BusinessRepository(db).create_business("Murugan Textiles")
    db.commit()
    return business


@pytest.fixture
def coordinator(db: Session) -> MutationCoordinator:
    return MutationCoordinator(db, score_window_days=30, loan_threshold=650, counterparty_match="exact")


@pytest.fixture
def as_of() -> datetime:
    return utcnow()


@pytest.fixture
def make_txn() -> Callable[..., Transaction]:
    """Build in-memory transactions for scoring tests"""

    def _make(
        kind: TransactionKind,
        amount,
        occurred_at: datetime | None = None,
        days_ago: int = 0,
        counterparty_name: str | None = None,
    ) -> Transaction:
        when = occurred_at or (utcnow() - timedelta(days=days_ago))
        return Transaction(
            transaction_id=uuid.uuid4(),
            business_id=uuid.UUID(int=1),
            kind=kind,
            amount=Decimal(str(amount)),
            occurred_at=when,
            counterparty_name=counterparty_name,
        )

    return _make
