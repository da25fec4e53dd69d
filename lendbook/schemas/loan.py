from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from lendbook.models.loan import LoanRecord, LoanRole, LoanStatus


class LoanCreate(BaseModel):
    """Request body to record a new loan."""
    borrower_name: str = Field(..., min_length=1)
    principal: Decimal
    interest_rate: Decimal
    start_date: datetime
    due_date: datetime
    description: Optional[str] = None


class LoanUpdate(BaseModel):
    """Request body to replace loan fields; only fields sent are applied."""
    borrower_name: Optional[str] = None
    principal: Optional[Decimal] = None
    interest_rate: Optional[Decimal] = None
    start_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    status: Optional[LoanStatus] = None
    description: Optional[str] = None


class PaymentCreate(BaseModel):
    """Request body to record a repayment."""
    amount: Decimal
    date: datetime
    notes: Optional[str] = None


class StatusOverride(BaseModel):
    status: LoanStatus


class PaymentResponse(BaseModel):
    amount: Decimal
    date: datetime
    notes: Optional[str] = None


class LoanResponse(BaseModel):
    """Loan response."""
    id: str
    lender_id: str
    borrower_name: str
    borrower_id: Optional[str] = None
    principal: Decimal
    interest_rate: Decimal
    start_date: datetime
    due_date: datetime
    status: LoanStatus
    description: Optional[str] = None
    payments: List[PaymentResponse]
    total_paid: Decimal
    remaining_amount: Decimal
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_record(cls, record: LoanRecord, **extra) -> "LoanResponse":
        return cls.model_validate({**record.model_dump(exclude={"version"}), **extra})


class LoanCreatedResponse(LoanResponse):
    borrower_exists: bool


class LoanWithRole(LoanResponse):
    role: LoanRole


class LoanHistoryResponse(BaseModel):
    success: bool = True
    count: int
    data: List[LoanWithRole]


class BorrowerProfile(BaseModel):
    """Public profile shown when looking up a prospective borrower."""
    id: str
    username: str
    full_name: str
    father_name: str = ""
    phone_number: str
    village: str
    address: str = ""


class BorrowerLookupResponse(BaseModel):
    success: bool = True
    exists: bool
    user: Optional[BorrowerProfile] = None
    message: Optional[str] = None
