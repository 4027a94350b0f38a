"""Unit tests for transaction ingestion checks"""

import pytest
from decimal import Decimal
from vaniga_score.domain.exceptions import InvalidInputError
from vaniga_score.domain.models import ExpenseCategory, PaymentMethod, TransactionDraft, TransactionKind
from vaniga_score.domain.validation import validate_draft


def test_missing_kind_rejected():
    with pytest.raises(InvalidInputError, match="kind"):
        validate_draft(TransactionDraft(amount=Decimal("10")))


def test_missing_amount_rejected():
    with pytest.raises(InvalidInputError, match="amount"):
        validate_draft(TransactionDraft(kind=TransactionKind.EXPENSE))


def test_negative_amount_rejected():
    with pytest.raises(InvalidInputError, match="negative"):
        validate_draft(TransactionDraft(kind=TransactionKind.CREDIT_GIVEN, amount=Decimal("-1")))


def test_negative_tax_rejected():
    with pytest.raises(InvalidInputError):
        validate_draft(TransactionDraft(kind=TransactionKind.EXPENSE, amount=Decimal("1"), tax_amount=Decimal("-5")))


@pytest.mark.parametrize("amount", ["10.555", "0.001", "1000000000000", "9999999999999.99"])
def test_amount_that_would_change_in_storage_rejected(amount):
    with pytest.raises(InvalidInputError):
        validate_draft(TransactionDraft(kind=TransactionKind.CREDIT_GIVEN, amount=Decimal(amount)))


def test_tax_with_too_many_decimals_rejected():
    with pytest.raises(InvalidInputError, match="decimal places"):
        validate_draft(
            TransactionDraft(kind=TransactionKind.EXPENSE, amount=Decimal("10"), tax_amount=Decimal("1.005"))
        )


@pytest.mark.parametrize("amount", ["10.55", "10.500", "999999999999.99", "1E+3"])
def test_storable_amount_accepted_unchanged(amount):
    clean = validate_draft(TransactionDraft(kind=TransactionKind.CREDIT_GIVEN, amount=Decimal(amount)))

    assert clean.amount == Decimal(amount)


def test_unknown_kind_string_rejected():
    with pytest.raises(InvalidInputError):
        validate_draft(TransactionDraft(kind="LOAN_TAKEN", amount=Decimal("1")))


def test_overlong_counterparty_rejected():
    with pytest.raises(InvalidInputError):
        validate_draft(
            TransactionDraft(kind=TransactionKind.CREDIT_GIVEN, amount=Decimal("1"), counterparty_name="x" * 101)
        )


def test_defaults_and_normalization():
    clean = validate_draft(
        TransactionDraft(kind="EXPENSE", amount=0, counterparty_name="  Landlord  ", description="   ")
    )

    assert clean.kind is TransactionKind.EXPENSE
    assert clean.amount == Decimal("0")
    assert clean.category is ExpenseCategory.OTHER
    assert clean.payment_method is PaymentMethod.CASH
    assert clean.tax_amount == Decimal("0")
    assert clean.counterparty_name == "Landlord"
    assert clean.description is None


def test_category_not_defaulted_for_revenue_kinds():
    clean = validate_draft(TransactionDraft(kind=TransactionKind.PAYMENT_RECEIVED, amount=Decimal("10")))

    assert clean.category is None
