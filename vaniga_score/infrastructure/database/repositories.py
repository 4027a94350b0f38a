"""Data access layer for businesses, ledger transactions and customer aggregates"""

import uuid
from datetime import datetime
from typing import List, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from vaniga_score.infrastructure.database.models import Business, CustomerAggregate, LedgerTransaction
from vaniga_score.domain.models import (
    CounterpartyTotals,
    ExpenseCategory,
    PaymentMethod,
    Transaction,
    TransactionDraft,
    TransactionKind,
)
from vaniga_score.utils.date_utils import ensure_utc, utcnow
from vaniga_score.utils.decimal_utils import coerce_decimal


def to_domain(row: LedgerTransaction) -> Transaction:
    """Convert an ORM row to the domain dataclass the scoring engine consumes"""
    return Transaction(
        transaction_id=row.id,
        business_id=row.business_id,
        kind=TransactionKind(row.kind),
        amount=coerce_decimal(row.amount),
        occurred_at=ensure_utc(row.occurred_at),
        counterparty_name=row.counterparty_name,
        description=row.description,
        category=ExpenseCategory(row.category) if row.category else None,
        tax_amount=coerce_decimal(row.tax_amount),
        payment_method=PaymentMethod(row.payment_method),
        customer_id=row.customer_id,
    )


class BusinessRepository:
    """Repository for business records and their cached score"""

    def __init__(self, db: Session):
        self.db = db

    def create_business(self, business_name: str, owner_name: Optional[str] = None) -> Business:
        """Persist a new business with the starting score"""
        business = Business(business_name=business_name, owner_name=owner_name, score=300, loan_eligible=False)
        self.db.add(business)
        self.db.flush()
        return business

    def get_business(self, business_id: uuid.UUID) -> Optional[Business]:
        return self.db.get(Business, business_id)

    def save_score(self, business: Business, score: int, loan_eligible: bool) -> Business:
        """Overwrite the cached score state (last writer wins)"""
        business.score = score
        business.loan_eligible = loan_eligible
        business.score_updated_at = utcnow()
        self.db.flush()
        return business


class TransactionRepository:
    """Repository for ledger transactions"""

    def __init__(self, db: Session):
        self.db = db

    def create_transaction(
        self,
        business_id: uuid.UUID,
        draft: TransactionDraft,
        customer_id: Optional[uuid.UUID] = None,
    ) -> LedgerTransaction:
        """Persist a validated draft"""
        row = LedgerTransaction(
            business_id=business_id,
            customer_id=customer_id,
            kind=TransactionKind(draft.kind).value,
            amount=draft.amount,
            counterparty_name=draft.counterparty_name,
            description=draft.description,
            category=draft.category.value if draft.category else None,
            tax_amount=draft.tax_amount,
            payment_method=PaymentMethod(draft.payment_method).value,
            occurred_at=ensure_utc(draft.occurred_at or utcnow()),
        )
        self.db.add(row)
        self.db.flush()  # Get ID without committing
        return row

    def replace_fields(
        self,
        row: LedgerTransaction,
        draft: TransactionDraft,
        customer_id: Optional[uuid.UUID],
    ) -> LedgerTransaction:
        """Overwrite every mutable field of an existing row"""
        row.kind = TransactionKind(draft.kind).value
        row.amount = draft.amount
        row.counterparty_name = draft.counterparty_name
        row.description = draft.description
        row.category = draft.category.value if draft.category else None
        row.tax_amount = draft.tax_amount
        row.payment_method = PaymentMethod(draft.payment_method).value
        row.occurred_at = ensure_utc(draft.occurred_at or row.occurred_at)
        row.customer_id = customer_id
        self.db.flush()
        return row

    def get_transaction(self, transaction_id: uuid.UUID) -> Optional[LedgerTransaction]:
        return self.db.get(LedgerTransaction, transaction_id)

    def delete_transaction(self, row: LedgerTransaction) -> None:
        self.db.delete(row)
        self.db.flush()

    def get_window(self, business_id: uuid.UUID, start: datetime, end: datetime) -> List[LedgerTransaction]:
        """Transactions with start <= occurred_at <= end, served by the (business_id, occurred_at) index"""
        return (
            self.db.query(LedgerTransaction)
            .filter(
                LedgerTransaction.business_id == business_id,
                LedgerTransaction.occurred_at >= start,
                LedgerTransaction.occurred_at <= end,
            )
            .all()
        )

    def get_transactions_by_business(
        self,
        business_id: uuid.UUID,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        kind: Optional[TransactionKind] = None,
        limit: Optional[int] = None,
    ) -> List[LedgerTransaction]:
        """Newest-first listing with optional date range and kind filters"""
        query = self.db.query(LedgerTransaction).filter(LedgerTransaction.business_id == business_id)
        if start is not None:
            query = query.filter(LedgerTransaction.occurred_at >= start)
        if end is not None:
            query = query.filter(LedgerTransaction.occurred_at <= end)
        if kind is not None:
            query = query.filter(LedgerTransaction.kind == TransactionKind(kind).value)
        query = query.order_by(LedgerTransaction.occurred_at.desc())
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def get_transactions_by_customer(self, customer_id: uuid.UUID) -> List[LedgerTransaction]:
        return (
            self.db.query(LedgerTransaction)
            .filter(LedgerTransaction.customer_id == customer_id)
            .all()
        )


class CustomerRepository:
    """Repository for customer aggregates"""

    def __init__(self, db: Session):
        self.db = db

    def get_customer(self, customer_id: uuid.UUID) -> Optional[CustomerAggregate]:
        return self.db.get(CustomerAggregate, customer_id)

    def get_by_name_key(self, business_id: uuid.UUID, name_key: str) -> Optional[CustomerAggregate]:
        return (
            self.db.query(CustomerAggregate)
            .filter(CustomerAggregate.business_id == business_id, CustomerAggregate.name_key == name_key)
            .first()
        )

    def create_customer(self, business_id: uuid.UUID, name: str, name_key: str) -> CustomerAggregate:
        """Create an aggregate with zeroed totals"""
        customer = CustomerAggregate(
            business_id=business_id,
            name=name,
            name_key=name_key,
            total_credit_given=0,
            total_payment_received=0,
            outstanding_balance=0,
        )
        self.db.add(customer)
        self.db.flush()
        return customer

    def get_or_create_customer(self, business_id: uuid.UUID, name: str, name_key: str) -> CustomerAggregate:
        """
        Look up a customer by name key, creating it if missing.

        The insert runs in a savepoint: if a concurrent writer created the
        same (business_id, name_key) first, only the savepoint is rolled back
        and the winner's row is returned, so the caller's pending ledger write
        survives.
        """
        customer = self.get_by_name_key(business_id, name_key)
        if customer is not None:
            return customer

        try:
            with self.db.begin_nested():
                return self.create_customer(business_id, name, name_key)
        except IntegrityError:
            customer = self.get_by_name_key(business_id, name_key)
            if customer is None:
                raise
            return customer

    def get_customers_by_business(self, business_id: uuid.UUID) -> List[CustomerAggregate]:
        return (
            self.db.query(CustomerAggregate)
            .filter(CustomerAggregate.business_id == business_id)
            .order_by(CustomerAggregate.name.asc())
            .all()
        )

    def save_totals(self, customer: CustomerAggregate, totals: CounterpartyTotals) -> CustomerAggregate:
        """Overwrite totals with a fresh rollup"""
        customer.total_credit_given = totals.total_credit_given
        customer.total_payment_received = totals.total_payment_received
        customer.outstanding_balance = totals.outstanding_balance
        customer.last_transaction_at = totals.last_transaction_at
        self.db.flush()
        return customer
