"""
Loan model - one lender-to-borrower loan with its payment history.

Design principles:
- lender_id is set once at creation and never reassigned
- borrower is known by free-text name; borrower_id is a resolution snapshot
- total_paid, remaining_amount and status are derived from payments
- payments are append-only and kept in append order
- every mutation returns a new record; persistence happens elsewhere
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, NamedTuple, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from lendbook.models.base import _utcnow, as_decimal, as_utc


class LoanStatus(str, Enum):
    PENDING = "pending"  # reserved; nothing transitions into it
    ACTIVE = "active"
    COMPLETED = "completed"
    OVERDUE = "overdue"
    DEFAULTED = "defaulted"  # administrative override only


class LoanRole(str, Enum):
    LENDER = "lender"
    BORROWER = "borrower"


@dataclass(frozen=True)
class Resolved:
    """Borrower name matched to an account."""
    ref: str
    name: str


@dataclass(frozen=True)
class Unresolved:
    """Borrower known only by name."""
    name: str


BorrowerIdentity = Union[Resolved, Unresolved]


class Payment(BaseModel):
    amount: Decimal
    date: datetime = Field(default_factory=_utcnow)
    notes: Optional[str] = None

    _decimal = field_validator("amount", mode="before")(as_decimal)
    _utc = field_validator("date")(as_utc)


class Derivation(NamedTuple):
    total_paid: Decimal
    remaining_amount: Decimal
    status: LoanStatus


def derive(
    principal: Decimal,
    payments: List[Payment],
    due_date: datetime,
    now: datetime,
    previous_status: LoanStatus,
    track_overdue: bool = True,
) -> Derivation:
    """
    Recompute balances and status from the payment history.

    Only forward transitions are computed: a paid-off loan becomes
    completed, an unpaid loan past its due date becomes overdue, and any
    other status is left as it was. Overpayment is not an error; the
    remaining amount simply goes negative.
    """
    total_paid = sum((p.amount for p in payments), Decimal("0"))
    remaining_amount = principal - total_paid

    if remaining_amount <= 0:
        status = LoanStatus.COMPLETED
    elif track_overdue and due_date < now and previous_status != LoanStatus.COMPLETED:
        status = LoanStatus.OVERDUE
    else:
        status = previous_status

    return Derivation(total_paid, remaining_amount, status)


class LoanRecord(BaseModel):
    """
    A loan and its derived state.

    Invariants (after every committed mutation):
    - total_paid == sum(payments.amount)
    - remaining_amount == principal - total_paid
    - remaining_amount <= 0 implies status == completed
    """
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(default=None, validation_alias="_id")

    # Parties
    lender_id: str
    borrower_name: str
    borrower_id: Optional[str] = None

    # Terms
    principal: Decimal
    interest_rate: Decimal  # stored only
    start_date: datetime
    due_date: datetime
    description: Optional[str] = None

    # Derived
    status: LoanStatus = LoanStatus.ACTIVE
    payments: List[Payment] = Field(default_factory=list)
    total_paid: Decimal = Decimal("0")
    remaining_amount: Decimal

    # Optimistic concurrency token, bumped by the store on every write
    version: int = 0

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    _decimals = field_validator(
        "principal", "interest_rate", "total_paid", "remaining_amount", mode="before"
    )(as_decimal)
    _utc = field_validator("start_date", "due_date", "created_at", "updated_at")(as_utc)

    @classmethod
    def open(
        cls,
        lender_id: str,
        identity: BorrowerIdentity,
        principal: Decimal,
        interest_rate: Decimal,
        start_date: datetime,
        due_date: datetime,
        description: Optional[str] = None,
    ) -> "LoanRecord":
        """A fresh loan: active, nothing paid."""
        return cls(
            lender_id=lender_id,
            borrower_name=identity.name,
            borrower_id=identity.ref if isinstance(identity, Resolved) else None,
            principal=principal,
            interest_rate=interest_rate,
            start_date=start_date,
            due_date=due_date,
            description=description,
            status=LoanStatus.ACTIVE,
            payments=[],
            total_paid=Decimal("0"),
            remaining_amount=principal,
        )

    @property
    def borrower_identity(self) -> BorrowerIdentity:
        if self.borrower_id is not None:
            return Resolved(ref=self.borrower_id, name=self.borrower_name)
        return Unresolved(name=self.borrower_name)

    def is_lender(self, user_id: str) -> bool:
        return self.lender_id == user_id

    def is_borrower(self, user_id: str, username: str) -> bool:
        return (
            (self.borrower_id is not None and self.borrower_id == user_id)
            or self.borrower_name == username
        )

    def with_identity(self, identity: BorrowerIdentity) -> "LoanRecord":
        """Replace the borrower name and its resolution in one step."""
        return self.model_copy(update={
            "borrower_name": identity.name,
            "borrower_id": identity.ref if isinstance(identity, Resolved) else None,
        })

    def with_payment(self, payment: Payment, now: datetime) -> "LoanRecord":
        payments = [*self.payments, payment]
        derived = derive(self.principal, payments, self.due_date, now, self.status)
        return self.model_copy(update={"payments": payments, **derived._asdict()})

    def with_terms(self, changes: dict, now: datetime) -> "LoanRecord":
        """
        Apply term changes (principal, dates, rate, description).

        Balances follow the new principal; the overdue transition is left
        to the next payment.
        """
        updated = self.model_copy(update=changes)
        derived = derive(
            updated.principal, updated.payments, updated.due_date, now,
            updated.status, track_overdue=False,
        )
        return updated.model_copy(update=derived._asdict())

    def with_status(self, status: LoanStatus) -> "LoanRecord":
        return self.model_copy(update={"status": status})
