"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from vaniga_score.domain.models import (
    ExpenseCategory,
    PaymentMethod,
    ScoreResult,
    Transaction,
    TransactionKind,
)
from vaniga_score.utils.decimal_utils import round_half_up


class BusinessCreateRequest(BaseModel):
    """Request body for POST /v1/businesses"""

    business_name: str = Field(..., min_length=1, max_length=100, description="Trading name")
    owner_name: Optional[str] = Field(None, max_length=100)


class BusinessResponse(BaseModel):
    """Business identity with its cached score state"""

    business_id: str
    business_name: str
    owner_name: Optional[str] = None
    score: int
    loan_eligible: bool


class TransactionCreateRequest(BaseModel):
    """Request body for POST /v1/transactions"""

    kind: TransactionKind
    amount: Decimal = Field(..., ge=0, description="Amount in currency units")
    counterparty_name: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    category: Optional[ExpenseCategory] = None
    tax_amount: Optional[Decimal] = Field(None, ge=0)
    payment_method: PaymentMethod = PaymentMethod.CASH
    occurred_at: Optional[datetime] = None


class TransactionUpdateRequest(BaseModel):
    """Request body for PUT /v1/transactions/{id}; only fields sent are changed"""

    kind: Optional[TransactionKind] = None
    amount: Optional[Decimal] = Field(None, ge=0)
    counterparty_name: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    category: Optional[ExpenseCategory] = None
    tax_amount: Optional[Decimal] = Field(None, ge=0)
    payment_method: Optional[PaymentMethod] = None
    occurred_at: Optional[datetime] = None


class TransactionSchema(BaseModel):
    """Single ledger entry"""

    transaction_id: str
    kind: TransactionKind
    amount: float
    counterparty_name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[ExpenseCategory] = None
    tax_amount: float = 0.0
    payment_method: PaymentMethod
    occurred_at: datetime
    customer_id: Optional[str] = None

    @classmethod
    def from_domain(cls, txn: Transaction) -> "TransactionSchema":
        return cls(
            transaction_id=str(txn.transaction_id),
            kind=txn.kind,
            amount=float(txn.amount),
            counterparty_name=txn.counterparty_name,
            description=txn.description,
            category=txn.category,
            tax_amount=float(txn.tax_amount),
            payment_method=txn.payment_method,
            occurred_at=txn.occurred_at,
            customer_id=str(txn.customer_id) if txn.customer_id else None,
        )


class TransactionMutationResponse(BaseModel):
    """Response for POST and PUT /v1/transactions"""

    transaction: TransactionSchema
    updated_score: int
    loan_eligible: bool
    score_stale: bool = False


class TransactionDeleteResponse(BaseModel):
    """Response for DELETE /v1/transactions/{id}"""

    updated_score: int
    loan_eligible: bool
    score_stale: bool = False


class TransactionListResponse(BaseModel):
    """Response for GET /v1/transactions"""

    count: int
    transactions: List[TransactionSchema]


class BreakdownSchema(BaseModel):
    base: int
    volume: int
    consistency: int
    health: int


class MetricsSchema(BaseModel):
    total_volume: float
    active_days: int
    collection_rate: int


class ScoreBreakdownSchema(BaseModel):
    """Score with per-component points rounded for display"""

    score: int
    breakdown: BreakdownSchema
    metrics: MetricsSchema

    @classmethod
    def from_result(cls, result: ScoreResult) -> "ScoreBreakdownSchema":
        return cls(
            score=result.score,
            breakdown=BreakdownSchema(
                base=result.breakdown.base,
                volume=round_half_up(result.breakdown.volume),
                consistency=result.breakdown.consistency,
                health=round_half_up(result.breakdown.health),
            ),
            metrics=MetricsSchema(
                total_volume=float(result.metrics.total_volume),
                active_days=result.metrics.active_days,
                collection_rate=result.metrics.collection_rate_percent,
            ),
        )


class DashboardStatsSchema(BaseModel):
    total_credit_given: float
    total_payment_received: float
    total_expenses: float
    pending_amount: float
    transaction_count: int


class DashboardResponse(BaseModel):
    """Response for GET /v1/dashboard/stats"""

    stats: DashboardStatsSchema
    score_breakdown: ScoreBreakdownSchema


class CustomerSchema(BaseModel):
    """Customer aggregate"""

    customer_id: str
    name: str
    total_credit_given: float
    total_payment_received: float
    outstanding_balance: float
    last_transaction_at: Optional[datetime] = None


class CustomerListResponse(BaseModel):
    """Response for GET /v1/customers"""

    count: int
    customers: List[CustomerSchema]


class CustomerRefreshRequest(BaseModel):
    """Request body for POST /v1/customers/refresh"""

    name: str = Field(..., min_length=1, max_length=100, description="Counterparty name")


class ResyncResponse(BaseModel):
    """Response for POST /v1/admin/businesses/{id}/resync"""

    business_id: str
    relinked_transactions: int
    refreshed_customers: List[str]
    score: int
    loan_eligible: bool
