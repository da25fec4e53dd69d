from fastapi import APIRouter, Depends, status

from lendbook.core.auth import get_current_user
from lendbook.db.mongo import get_db
from lendbook.models.user import UserInDB, UserResponse
from lendbook.schemas.loan import (
    BorrowerLookupResponse,
    BorrowerProfile,
    LoanCreate,
    LoanCreatedResponse,
    LoanHistoryResponse,
    LoanResponse,
    LoanUpdate,
    LoanWithRole,
    PaymentCreate,
    StatusOverride,
)
from lendbook.services.identity import IdentityResolver
from lendbook.services.ledger_service import LedgerService

router = APIRouter(prefix="/transactions", tags=["transactions"])


def _profile(user: UserInDB) -> BorrowerProfile:
    return BorrowerProfile(
        id=str(user.id),
        username=user.username,
        full_name=user.full_name,
        father_name=user.father_name or "",
        phone_number=user.phone_number,
        village=user.village,
        address=user.address or ""
    )


@router.post("", response_model=LoanCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_loan(
    payload: LoanCreate,
    current_user: UserResponse = Depends(get_current_user),
    db = Depends(get_db)
):
    """Record a loan made by the current user."""
    record = await LedgerService(db).create_loan(current_user, payload)
    return LoanCreatedResponse.from_record(record, borrower_exists=record.borrower_id is not None)


@router.get("", response_model=LoanHistoryResponse)
async def list_loans(
    current_user: UserResponse = Depends(get_current_user),
    db = Depends(get_db)
):
    """All loans the current user lent or borrowed, newest first."""
    views = await LedgerService(db).history_for(current_user)
    return LoanHistoryResponse(
        count=len(views),
        data=[LoanWithRole.from_record(view.record, role=view.role) for view in views]
    )


@router.get("/check-borrower/{username}", response_model=BorrowerLookupResponse)
async def check_borrower(
    username: str,
    current_user: UserResponse = Depends(get_current_user),
    db = Depends(get_db)
):
    """Check whether a borrower username belongs to an account."""
    user = await IdentityResolver(db).find_account(username)
    if user:
        return BorrowerLookupResponse(exists=True, user=_profile(user))
    return BorrowerLookupResponse(
        exists=False,
        message="Username not found. Do you want to continue with this username?"
    )


@router.get("/check-phone/{phone_number}", response_model=BorrowerLookupResponse)
async def check_phone(
    phone_number: str,
    current_user: UserResponse = Depends(get_current_user),
    db = Depends(get_db)
):
    """Check whether a phone number belongs to an account."""
    user = await IdentityResolver(db).find_account_by_contact(phone_number)
    if user:
        return BorrowerLookupResponse(exists=True, user=_profile(user))
    return BorrowerLookupResponse(
        exists=False,
        message="Phone number not found. Do you want to continue with this phone number?"
    )


@router.get("/{loan_id}", response_model=LoanWithRole)
async def get_loan(
    loan_id: str,
    current_user: UserResponse = Depends(get_current_user),
    db = Depends(get_db)
):
    """Get a loan the current user lent or borrowed."""
    view = await LedgerService(db).get_loan(loan_id, current_user)
    return LoanWithRole.from_record(view.record, role=view.role)


@router.put("/{loan_id}", response_model=LoanResponse)
async def update_loan(
    loan_id: str,
    payload: LoanUpdate,
    current_user: UserResponse = Depends(get_current_user),
    db = Depends(get_db)
):
    """Update loan fields (lender only)."""
    record = await LedgerService(db).update_loan(
        loan_id, current_user, payload.model_dump(exclude_unset=True)
    )
    return LoanResponse.from_record(record)


@router.put("/{loan_id}/status", response_model=LoanResponse)
async def force_loan_status(
    loan_id: str,
    payload: StatusOverride,
    current_user: UserResponse = Depends(get_current_user),
    db = Depends(get_db)
):
    """Override the loan status until the next payment (lender only)."""
    record = await LedgerService(db).force_status(loan_id, current_user, payload.status)
    return LoanResponse.from_record(record)


@router.delete("/{loan_id}")
async def delete_loan(
    loan_id: str,
    current_user: UserResponse = Depends(get_current_user),
    db = Depends(get_db)
):
    """Delete a loan (lender only)."""
    await LedgerService(db).delete_loan(loan_id, current_user)
    return {"success": True, "message": "Loan removed"}


@router.post("/{loan_id}/payment", response_model=LoanResponse)
async def add_payment(
    loan_id: str,
    payload: PaymentCreate,
    current_user: UserResponse = Depends(get_current_user),
    db = Depends(get_db)
):
    """Record a repayment (lender or borrower)."""
    record = await LedgerService(db).add_payment(
        loan_id, current_user, payload.amount, payload.date, payload.notes
    )
    return LoanResponse.from_record(record)
