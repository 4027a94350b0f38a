"""Domain models - pure Python dataclasses representing business entities"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional


class TransactionKind(str, Enum):
    """Kind of business event recorded in the ledger"""

    CREDIT_GIVEN = "CREDIT_GIVEN"
    PAYMENT_RECEIVED = "PAYMENT_RECEIVED"
    EXPENSE = "EXPENSE"


class ExpenseCategory(str, Enum):
    """Expense bucket, meaningful only for EXPENSE transactions"""

    RENT = "RENT"
    INVENTORY = "INVENTORY"
    UTILITIES = "UTILITIES"
    SALARIES = "SALARIES"
    TRANSPORT = "TRANSPORT"
    MARKETING = "MARKETING"
    OTHER = "OTHER"


class PaymentMethod(str, Enum):
    """How the money moved"""

    CASH = "CASH"
    DIGITAL_TRANSFER = "DIGITAL_TRANSFER"
    PENDING = "PENDING"


# Kinds that count as revenue-side activity and roll up into customer balances
COUNTERPARTY_KINDS = frozenset({TransactionKind.CREDIT_GIVEN, TransactionKind.PAYMENT_RECEIVED})


@dataclass
class Transaction:
    """One recorded business event"""

    transaction_id: uuid.UUID
    business_id: uuid.UUID
    kind: TransactionKind
    amount: Decimal
    occurred_at: datetime
    counterparty_name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[ExpenseCategory] = None
    tax_amount: Decimal = Decimal("0")
    payment_method: PaymentMethod = PaymentMethod.CASH
    customer_id: Optional[uuid.UUID] = None


@dataclass
class TransactionDraft:
    """Unvalidated field values for a new or updated transaction"""

    kind: Optional[TransactionKind] = None
    amount: Optional[Decimal] = None
    counterparty_name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[ExpenseCategory] = None
    tax_amount: Optional[Decimal] = None
    payment_method: Optional[PaymentMethod] = None
    occurred_at: Optional[datetime] = None


@dataclass
class WindowFactors:
    """Metrics extracted from a scoring window"""

    total_credit_given: Decimal
    total_payment_received: Decimal
    total_volume: Decimal
    active_days: int
    transaction_count: int


@dataclass
class ScoreBreakdown:
    """Per-component contribution to the score"""

    base: int
    volume: Decimal
    consistency: int
    health: Decimal


@dataclass
class ScoreMetrics:
    """Raw window metrics reported alongside the score"""

    total_volume: Decimal
    active_days: int
    collection_rate_percent: int


@dataclass
class ScoreResult:
    """Output of the scoring engine"""

    score: int
    breakdown: ScoreBreakdown
    metrics: ScoreMetrics


@dataclass
class CounterpartyTotals:
    """Rollup of one counterparty's credit and payments"""

    total_credit_given: Decimal
    total_payment_received: Decimal
    outstanding_balance: Decimal
    last_transaction_at: Optional[datetime]


@dataclass
class DashboardStats:
    """Totals shown on the dashboard for a window"""

    total_credit_given: Decimal
    total_payment_received: Decimal
    total_expenses: Decimal
    pending_amount: Decimal
    transaction_count: int


@dataclass
class MutationResult:
    """Outcome of a ledger mutation echoed back to the caller"""

    updated_score: int
    loan_eligible: bool
    score_stale: bool = False
    transaction: Optional[Transaction] = None


@dataclass
class ResyncResult:
    """Outcome of a full aggregate and score rebuild"""

    business_id: uuid.UUID
    relinked_transactions: int
    refreshed_customers: list = field(default_factory=list)
    score: int = 300
    loan_eligible: bool = False
