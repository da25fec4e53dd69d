"""Loan input validation.

All checks run before a record is touched, so a failure never leaves
partial state behind.
"""
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from lendbook.core.errors import ValidationFailure
from lendbook.models.base import as_decimal, as_utc
from lendbook.models.loan import LoanRecord, LoanStatus

UPDATABLE_FIELDS = {
    "principal",
    "interest_rate",
    "due_date",
    "start_date",
    "status",
    "description",
    "borrower_name",
}
REQUIRED_FIELDS = UPDATABLE_FIELDS - {"description", "status"}

# Amounts and their sums stay exact in Decimal128 within these bounds
MAX_AMOUNT = Decimal("1e15")
AMOUNT_QUANTUM = Decimal("0.000001")


def _decimal(value: Any, field: str) -> Decimal:
    try:
        amount = Decimal(str(as_decimal(value)))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationFailure(f"{field} must be a number: {value!r}")
    if not amount.is_finite():
        raise ValidationFailure(f"{field} must be finite: {value!r}")
    if abs(amount) >= MAX_AMOUNT:
        raise ValidationFailure(f"{field} is too large: {value!r}")
    if amount != amount.quantize(AMOUNT_QUANTUM):
        raise ValidationFailure(f"{field} has more than 6 decimal places: {value!r}")
    return amount


def validate_principal(value: Any) -> Decimal:
    """Principal must be strictly positive."""
    principal = _decimal(value, "principal")
    if principal <= 0:
        raise ValidationFailure(f"principal must be positive: {principal}")
    return principal


def validate_interest_rate(value: Any) -> Decimal:
    rate = _decimal(value, "interest_rate")
    if rate < 0:
        raise ValidationFailure(f"interest_rate cannot be negative: {rate}")
    return rate


def validate_payment_amount(value: Any) -> Decimal:
    amount = _decimal(value, "amount")
    if amount <= 0:
        raise ValidationFailure(f"Payment amount must be positive: {amount}")
    return amount


def validate_borrower_name(value: Optional[str]) -> str:
    if value is None or not value.strip():
        raise ValidationFailure("borrower_name is required")
    return value


def validate_date(value: Any, field: str) -> datetime:
    if not isinstance(value, datetime):
        raise ValidationFailure(f"{field} is required")
    return as_utc(value)


def validate_forced_status(record: LoanRecord, status: Any) -> LoanStatus:
    """
    Validate an administrative status override.

    Rules:
    - status must be one of the known values
    - pending is reserved and cannot be set
    - a paid-off loan can only be completed
    """
    try:
        status = LoanStatus(status)
    except ValueError:
        raise ValidationFailure(f"Unknown status: {status!r}")

    if status == LoanStatus.PENDING:
        raise ValidationFailure("Status 'pending' is reserved and cannot be set")

    if record.remaining_amount <= 0 and status != LoanStatus.COMPLETED:
        raise ValidationFailure(
            f"Loan is fully paid; status must stay completed, not {status.value}"
        )
    return status


def validate_patch(patch: dict) -> dict:
    """
    Validate a field-update patch and return it with normalised values.

    Rules:
    - only updatable fields may appear
    - required fields cannot be cleared
    - amounts and dates follow the same rules as at creation
    """
    unknown = set(patch) - UPDATABLE_FIELDS
    if unknown:
        raise ValidationFailure(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

    for field in REQUIRED_FIELDS & set(patch):
        if patch[field] is None:
            raise ValidationFailure(f"{field} cannot be cleared")

    cleaned = dict(patch)
    if "principal" in cleaned:
        cleaned["principal"] = validate_principal(cleaned["principal"])
    if "interest_rate" in cleaned:
        cleaned["interest_rate"] = validate_interest_rate(cleaned["interest_rate"])
    if "borrower_name" in cleaned:
        cleaned["borrower_name"] = validate_borrower_name(cleaned["borrower_name"])
    for field in ("start_date", "due_date"):
        if field in cleaned:
            cleaned[field] = validate_date(cleaned[field], field)
    if cleaned.get("status") is None:
        cleaned.pop("status", None)
    return cleaned
