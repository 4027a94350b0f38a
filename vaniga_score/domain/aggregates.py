"""Customer aggregate rollup and counterparty identity resolution"""

import re
from decimal import Decimal
from typing import Iterable, Optional

from vaniga_score.domain.models import CounterpartyTotals, Transaction, TransactionKind

MATCH_MODES = ("exact", "trim", "casefold")

_WHITESPACE = re.compile(r"\s+")


def counterparty_key(name: str, mode: str = "exact") -> str:
    """
    Map a free-text counterparty name to the key customers are stored under.

    - exact: name as given (case-sensitive)
    - trim: surrounding whitespace removed, inner runs collapsed to one space
    - casefold: trim, then case-folded
    """
    if mode not in MATCH_MODES:
        raise ValueError(f"Unknown counterparty match mode: {mode}")
    if mode == "exact":
        return name
    key = _WHITESPACE.sub(" ", name.strip())
    if mode == "casefold":
        key = key.casefold()
    return key


def rollup_counterparty(transactions: Iterable[Transaction]) -> CounterpartyTotals:
    """
    Recompute one counterparty's totals from its ledger entries.

    Only CREDIT_GIVEN and PAYMENT_RECEIVED contribute; outstanding balance
    is always given - received.
    """
    given = Decimal("0")
    received = Decimal("0")
    last_seen = None

    for txn in transactions:
        if txn.kind == TransactionKind.CREDIT_GIVEN:
            given += txn.amount
        elif txn.kind == TransactionKind.PAYMENT_RECEIVED:
            received += txn.amount
        else:
            continue
        if last_seen is None or txn.occurred_at > last_seen:
            last_seen = txn.occurred_at

    return CounterpartyTotals(
        total_credit_given=given,
        total_payment_received=received,
        outstanding_balance=given - received,
        last_transaction_at=last_seen,
    )


def qualifies_for_rollup(kind: Optional[TransactionKind], counterparty_name: Optional[str]) -> bool:
    """Whether a transaction feeds a customer aggregate"""
    return bool(counterparty_name) and kind in (TransactionKind.CREDIT_GIVEN, TransactionKind.PAYMENT_RECEIVED)
