"""VanigaScore engine - maps a 30-day transaction window to a 300-900 score"""

from datetime import datetime
from decimal import Decimal
from typing import Iterable, List

from vaniga_score.domain.models import (
    ScoreBreakdown,
    ScoreMetrics,
    ScoreResult,
    Transaction,
    TransactionKind,
    WindowFactors,
    COUNTERPARTY_KINDS,
)
from vaniga_score.utils.date_utils import calendar_day
from vaniga_score.utils.decimal_utils import round_half_up

BASE_SCORE = 300
MAX_SCORE = 900

VOLUME_RATE = Decimal("0.05")
VOLUME_CAP = Decimal("250")

POINTS_PER_ACTIVE_DAY = 10
CONSISTENCY_CAP = 300

HEALTH_CAP = Decimal("50")


def analyze_window(transactions: Iterable[Transaction]) -> WindowFactors:
    """
    Extract the raw metrics the score is built from.

    - Volume counts revenue-side kinds only; expenses are cost, not capacity
    - Active days are distinct UTC calendar dates, regardless of kind
    """
    txns: List[Transaction] = list(transactions)

    given = sum((t.amount for t in txns if t.kind == TransactionKind.CREDIT_GIVEN), Decimal("0"))
    received = sum((t.amount for t in txns if t.kind == TransactionKind.PAYMENT_RECEIVED), Decimal("0"))
    volume = sum((t.amount for t in txns if t.kind in COUNTERPARTY_KINDS), Decimal("0"))
    active_days = len({calendar_day(t.occurred_at) for t in txns})

    return WindowFactors(
        total_credit_given=given,
        total_payment_received=received,
        total_volume=volume,
        active_days=active_days,
        transaction_count=len(txns),
    )


def volume_component(total_volume: Decimal) -> Decimal:
    """0.05 points per currency unit, capped at 250"""
    return min(total_volume * VOLUME_RATE, VOLUME_CAP)


def consistency_component(active_days: int) -> int:
    """10 points per active day, capped at 300"""
    return min(active_days * POINTS_PER_ACTIVE_DAY, CONSISTENCY_CAP)


def health_component(given: Decimal, received: Decimal) -> Decimal:
    """
    Collection efficiency, capped at 50.

    A business that only collects and never extends credit is maximally
    healthy; one with neither contributes nothing.
    """
    if given > 0:
        return min(received / given * HEALTH_CAP, HEALTH_CAP)
    if received > 0:
        return HEALTH_CAP
    return Decimal("0")


def collection_rate_percent(given: Decimal, received: Decimal) -> int:
    """Payments received as a percentage of credit given, for reporting"""
    if given > 0:
        return round_half_up(received / given * 100)
    if received > 0:
        return 100
    return 0


def clamp_score(raw: int) -> int:
    return min(max(raw, BASE_SCORE), MAX_SCORE)


def compute_score(transactions: Iterable[Transaction], as_of: datetime) -> ScoreResult:
    """
    Main entry point: score a business from its trailing transaction window.

    `transactions` must already be limited to one business and to
    [as_of - window, as_of]; this function performs no I/O and never raises
    on well-formed input. `as_of` is accepted so callers state the window
    they filtered against.

    Score = clamp(round(300 + volume + consistency + health), 300, 900), with
    rounding applied once to the final sum.
    """
    factors = analyze_window(transactions)

    if factors.transaction_count == 0:
        return ScoreResult(
            score=BASE_SCORE,
            breakdown=ScoreBreakdown(base=BASE_SCORE, volume=Decimal("0"), consistency=0, health=Decimal("0")),
            metrics=ScoreMetrics(total_volume=Decimal("0"), active_days=0, collection_rate_percent=0),
        )

    volume = volume_component(factors.total_volume)
    consistency = consistency_component(factors.active_days)
    health = health_component(factors.total_credit_given, factors.total_payment_received)

    score = clamp_score(round_half_up(BASE_SCORE + volume + consistency + health))

    return ScoreResult(
        score=score,
        breakdown=ScoreBreakdown(base=BASE_SCORE, volume=volume, consistency=consistency, health=health),
        metrics=ScoreMetrics(
            total_volume=factors.total_volume,
            active_days=factors.active_days,
            collection_rate_percent=collection_rate_percent(
                factors.total_credit_given, factors.total_payment_received
            ),
        ),
    )
