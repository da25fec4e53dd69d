from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from lendbook.core.errors import ValidationFailure
from lendbook.models.loan import LoanRecord, LoanStatus, Payment, Unresolved
from lendbook.utils.loan_validation import (
    validate_borrower_name,
    validate_forced_status,
    validate_interest_rate,
    validate_patch,
    validate_payment_amount,
    validate_principal,
)

NOW = datetime(2026, 6, 1, tzinfo=timezone.utc)


def make_loan(principal="100") -> LoanRecord:
    return LoanRecord.open(
        lender_id="lender-1",
        identity=Unresolved(name="alice"),
        principal=Decimal(principal),
        interest_rate=Decimal("0"),
        start_date=NOW,
        due_date=NOW + timedelta(days=10),
    )


@pytest.mark.parametrize("value", [0, "-1", Decimal("-0.01")])
def test_principal_must_be_positive(value):
    with pytest.raises(ValidationFailure):
        validate_principal(value)


@pytest.mark.parametrize("value", ["abc", "NaN", "Infinity", None])
def test_principal_must_be_a_finite_number(value):
    with pytest.raises(ValidationFailure):
        validate_principal(value)


def test_principal_accepts_decimal_strings():
    assert validate_principal("250.75") == Decimal("250.75")


@pytest.mark.parametrize("value", [
    "1000.000000000000000000000000000000001",
    "0.12345678901234567890123456789012345678",
    "0.0000001",
])
def test_amounts_reject_more_than_six_decimal_places(value):
    with pytest.raises(ValidationFailure, match="decimal places"):
        validate_principal(value)
    with pytest.raises(ValidationFailure, match="decimal places"):
        validate_payment_amount(value)


@pytest.mark.parametrize("value", ["1e15", "123456789012345678901234567890", "-1e40"])
def test_amounts_reject_oversized_values(value):
    with pytest.raises(ValidationFailure, match="too large"):
        validate_interest_rate(value)


def test_amounts_at_the_bounds_are_kept_exactly():
    largest = "999999999999999.999999"

    assert validate_principal(largest) == Decimal(largest)
    assert validate_payment_amount("0.000001") == Decimal("0.000001")


def test_interest_rate_may_be_zero_but_not_negative():
    assert validate_interest_rate(0) == Decimal("0")
    with pytest.raises(ValidationFailure):
        validate_interest_rate("-0.5")


@pytest.mark.parametrize("value", [0, "-5"])
def test_payment_amount_must_be_positive(value):
    with pytest.raises(ValidationFailure):
        validate_payment_amount(value)


@pytest.mark.parametrize("value", [None, "", "   "])
def test_borrower_name_is_required(value):
    with pytest.raises(ValidationFailure):
        validate_borrower_name(value)


def test_patch_rejects_unknown_fields():
    with pytest.raises(ValidationFailure, match="lender_id"):
        validate_patch({"lender_id": "someone-else"})


def test_patch_rejects_derived_fields():
    with pytest.raises(ValidationFailure):
        validate_patch({"total_paid": Decimal("10")})


@pytest.mark.parametrize("field", ["principal", "borrower_name", "due_date"])
def test_patch_cannot_clear_required_fields(field):
    with pytest.raises(ValidationFailure, match="cannot be cleared"):
        validate_patch({field: None})


def test_patch_allows_clearing_description_and_drops_empty_status():
    cleaned = validate_patch({"description": None, "status": None})

    assert cleaned == {"description": None}


def test_patch_normalises_amounts():
    cleaned = validate_patch({"principal": "300", "interest_rate": 2})

    assert cleaned["principal"] == Decimal("300")
    assert cleaned["interest_rate"] == Decimal("2")


def test_patch_validates_principal():
    with pytest.raises(ValidationFailure):
        validate_patch({"principal": Decimal("0")})


def test_patch_requires_real_dates():
    with pytest.raises(ValidationFailure):
        validate_patch({"due_date": "tomorrow"})


def test_patch_treats_naive_dates_as_utc():
    cleaned = validate_patch({"due_date": datetime(2026, 7, 1, 12, 0)})

    assert cleaned["due_date"] == datetime(2026, 7, 1, 12, 0, tzinfo=timezone.utc)


def test_forced_status_rejects_pending():
    with pytest.raises(ValidationFailure, match="reserved"):
        validate_forced_status(make_loan(), "pending")


def test_forced_status_rejects_unknown_value():
    with pytest.raises(ValidationFailure):
        validate_forced_status(make_loan(), "forgiven")


def test_forced_status_on_paid_off_loan_must_stay_completed():
    paid = make_loan("100").with_payment(Payment(amount=Decimal("100"), date=NOW), NOW)

    with pytest.raises(ValidationFailure, match="fully paid"):
        validate_forced_status(paid, LoanStatus.ACTIVE)
    assert validate_forced_status(paid, "completed") == LoanStatus.COMPLETED


def test_forced_status_allows_defaulted():
    assert validate_forced_status(make_loan(), "defaulted") == LoanStatus.DEFAULTED
