"""Read-only views over the ledger: listings, dashboard stats, score breakdown"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Tuple
from sqlalchemy.orm import Session

from vaniga_score.config import settings
from vaniga_score.domain.models import (
    DashboardStats,
    ScoreResult,
    Transaction,
    TransactionKind,
)
from vaniga_score.domain.exceptions import ForbiddenError, NotFoundError
from vaniga_score.domain.scoring import compute_score
from vaniga_score.infrastructure.database.models import Business, CustomerAggregate
from vaniga_score.infrastructure.database.repositories import (
    BusinessRepository,
    CustomerRepository,
    TransactionRepository,
    to_domain,
)
from vaniga_score.services.coordinator import require_business
from vaniga_score.utils.date_utils import utcnow, window_start


def summarize(transactions: List[Transaction]) -> DashboardStats:
    """Totals per kind; pending amount is credit given not yet collected"""
    given = sum((t.amount for t in transactions if t.kind == TransactionKind.CREDIT_GIVEN), Decimal("0"))
    received = sum((t.amount for t in transactions if t.kind == TransactionKind.PAYMENT_RECEIVED), Decimal("0"))
    expenses = sum((t.amount for t in transactions if t.kind == TransactionKind.EXPENSE), Decimal("0"))

    return DashboardStats(
        total_credit_given=given,
        total_payment_received=received,
        total_expenses=expenses,
        pending_amount=given - received,
        transaction_count=len(transactions),
    )


class LedgerQueries:
    """Queries scoped to one business; never write"""

    def __init__(self, db: Session, score_window_days: int | None = None):
        self.businesses = BusinessRepository(db)
        self.transactions = TransactionRepository(db)
        self.customers = CustomerRepository(db)
        self.score_window_days = score_window_days or settings.score_window_days

    def get_business(self, business_id: uuid.UUID) -> Business:
        return require_business(self.businesses, business_id)

    def get_transaction(self, business_id: uuid.UUID, transaction_id: uuid.UUID) -> Transaction:
        row = self.transactions.get_transaction(transaction_id)
        if row is None:
            raise NotFoundError(f"Transaction {transaction_id} not found")
        if row.business_id != business_id:
            raise ForbiddenError(f"Transaction {transaction_id} belongs to another business")
        return to_domain(row)

    def list_transactions(
        self,
        business_id: uuid.UUID,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        kind: Optional[TransactionKind] = None,
        limit: Optional[int] = None,
    ) -> List[Transaction]:
        """Newest first, at most `limit` (default from settings)"""
        require_business(self.businesses, business_id)
        rows = self.transactions.get_transactions_by_business(
            business_id,
            start=start,
            end=end,
            kind=kind,
            limit=limit or settings.transaction_list_limit,
        )
        return [to_domain(r) for r in rows]

    def list_customers(self, business_id: uuid.UUID) -> List[CustomerAggregate]:
        require_business(self.businesses, business_id)
        return self.customers.get_customers_by_business(business_id)

    def get_dashboard_stats(
        self,
        business_id: uuid.UUID,
        window_days: int | None = None,
        as_of: datetime | None = None,
    ) -> Tuple[DashboardStats, ScoreResult]:
        """
        Stats over the last `window_days` plus a freshly computed breakdown.

        The breakdown always covers the scoring window, whatever window the
        stats were asked for, so it matches the persisted score.
        """
        require_business(self.businesses, business_id)
        as_of = as_of or utcnow()
        window_days = window_days or self.score_window_days

        stats_rows = [
            to_domain(r)
            for r in self.transactions.get_window(business_id, window_start(as_of, window_days), as_of)
        ]
        if window_days == self.score_window_days:
            score_rows = stats_rows
        else:
            score_rows = [
                to_domain(r)
                for r in self.transactions.get_window(
                    business_id, window_start(as_of, self.score_window_days), as_of
                )
            ]

        return summarize(stats_rows), compute_score(score_rows, as_of)
