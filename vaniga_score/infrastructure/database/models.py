"""SQLAlchemy ORM models for businesses, the ledger and customer aggregates"""

import uuid
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()

Money = Numeric(14, 2)


class Business(Base):
    """Merchant account holding the cached score state"""

    __tablename__ = "business"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    business_name = Column(String(100), nullable=False)
    owner_name = Column(String(100), nullable=True)
    score = Column(Integer, nullable=False, default=300)
    loan_eligible = Column(Boolean, nullable=False, default=False)
    score_updated_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    transactions = relationship("LedgerTransaction", back_populates="business", cascade="all, delete-orphan")
    customers = relationship("CustomerAggregate", back_populates="business", cascade="all, delete-orphan")


class CustomerAggregate(Base):
    """Per-counterparty rollup of credit given and payments received"""

    __tablename__ = "customer_aggregate"
    __table_args__ = (UniqueConstraint("business_id", "name_key", name="uq_customer_business_name_key"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    business_id = Column(Uuid, ForeignKey("business.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    name_key = Column(String(100), nullable=False)
    total_credit_given = Column(Money, nullable=False, default=0)
    total_payment_received = Column(Money, nullable=False, default=0)
    outstanding_balance = Column(Money, nullable=False, default=0)
    last_transaction_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    business = relationship("Business", back_populates="customers")
    transactions = relationship("LedgerTransaction", back_populates="customer")


class LedgerTransaction(Base):
    """Single credit, payment or expense entry"""

    __tablename__ = "ledger_transaction"
    __table_args__ = (Index("ix_ledger_transaction_business_occurred", "business_id", "occurred_at"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    business_id = Column(Uuid, ForeignKey("business.id", ondelete="CASCADE"), nullable=False)
    customer_id = Column(Uuid, ForeignKey("customer_aggregate.id", ondelete="SET NULL"), nullable=True, index=True)
    kind = Column(String(32), nullable=False)
    amount = Column(Money, nullable=False)
    counterparty_name = Column(String(100), nullable=True)
    description = Column(Text, nullable=True)
    category = Column(String(32), nullable=True)
    tax_amount = Column(Money, nullable=False, default=0)
    payment_method = Column(String(32), nullable=False, default="CASH")
    occurred_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=func.now())

    business = relationship("Business", back_populates="transactions")
    customer = relationship("CustomerAggregate", back_populates="transactions")
