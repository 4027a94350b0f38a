"""Ingestion checks for ledger transactions"""

from decimal import Decimal, InvalidOperation

from vaniga_score.domain.exceptions import InvalidInputError
from vaniga_score.domain.models import (
    ExpenseCategory,
    PaymentMethod,
    TransactionDraft,
    TransactionKind,
)

MAX_COUNTERPARTY_NAME_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 500

# Amounts are stored as NUMERIC(14, 2)
AMOUNT_QUANTUM = Decimal("0.01")
MAX_AMOUNT = Decimal("1E12")


def _as_enum(enum_cls, value, field_name: str):
    if value is None or isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise InvalidInputError(f"{value!r} is not a valid {field_name}")


def _as_amount(value, field_name: str) -> Decimal:
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidInputError(f"{field_name} must be a number")
    if not amount.is_finite():
        raise InvalidInputError(f"{field_name} must be a finite number")
    if amount < 0:
        raise InvalidInputError(f"{field_name} cannot be negative")
    if amount >= MAX_AMOUNT:
        raise InvalidInputError(f"{field_name} must be less than {MAX_AMOUNT:,.0f}")
    if amount != amount.quantize(AMOUNT_QUANTUM):
        raise InvalidInputError(f"{field_name} cannot have more than 2 decimal places")
    return amount


def _clean_text(value, field_name: str, max_length: int):
    if value is None:
        return None
    text = str(value).strip()
    if len(text) > max_length:
        raise InvalidInputError(f"{field_name} cannot exceed {max_length} characters")
    return text or None


def validate_draft(draft: TransactionDraft) -> TransactionDraft:
    """
    Check and normalize a transaction before it is written.

    Raises InvalidInputError for a missing kind or amount, amounts that are
    negative or would not survive storage unchanged (more than two decimal
    places, more than 12 integer digits), out-of-enum values and over-long
    text. Returns a normalized copy: enums coerced, text trimmed, expense category defaulted to OTHER, payment
    method defaulted to CASH, tax defaulted to 0.
    """
    if draft.kind is None:
        raise InvalidInputError("Transaction kind is required")
    if draft.amount is None:
        raise InvalidInputError("Transaction amount is required")

    kind = _as_enum(TransactionKind, draft.kind, "transaction kind")
    category = _as_enum(ExpenseCategory, draft.category, "expense category")
    payment_method = _as_enum(PaymentMethod, draft.payment_method, "payment method")

    if kind == TransactionKind.EXPENSE and category is None:
        category = ExpenseCategory.OTHER

    return TransactionDraft(
        kind=kind,
        amount=_as_amount(draft.amount, "amount"),
        counterparty_name=_clean_text(draft.counterparty_name, "counterparty name", MAX_COUNTERPARTY_NAME_LENGTH),
        description=_clean_text(draft.description, "description", MAX_DESCRIPTION_LENGTH),
        category=category,
        tax_amount=_as_amount(draft.tax_amount, "tax amount") if draft.tax_amount is not None else Decimal("0"),
        payment_method=payment_method or PaymentMethod.CASH,
        occurred_at=draft.occurred_at,
    )
