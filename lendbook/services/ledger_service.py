from datetime import datetime
from typing import Awaitable, Callable, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from lendbook.core.config import settings
from lendbook.core.errors import NotFound, WriteConflict
from lendbook.core.logging import get_logger
from lendbook.models.base import _utcnow
from lendbook.models.loan import LoanRecord, LoanStatus, Payment, Resolved
from lendbook.models.user import UserResponse
from lendbook.repositories.loan_repo import LoanRepository
from lendbook.schemas.loan import LoanCreate
from lendbook.services.access import Operation, authorize, primary_role
from lendbook.services.history import HistoryComposer, LoanView
from lendbook.services.identity import IdentityResolver
from lendbook.utils.loan_validation import (
    validate_borrower_name,
    validate_forced_status,
    validate_interest_rate,
    validate_patch,
    validate_payment_amount,
    validate_principal,
)

logger = get_logger(__name__)

Change = Callable[[LoanRecord], Awaitable[LoanRecord]]


class LedgerService:
    """
    Loan operations for an authenticated user.

    Mutations are read-authorize-compute-write cycles guarded by the
    record version; a lost race re-reads and re-applies the change a
    bounded number of times.
    """

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        clock: Callable[[], datetime] = _utcnow,
        write_attempts: Optional[int] = None,
    ):
        self.loans = LoanRepository(db)
        self.identity = IdentityResolver(db)
        self.history = HistoryComposer(db)
        self.clock = clock
        self.write_attempts = write_attempts or settings.LEDGER_WRITE_ATTEMPTS

    async def create_loan(self, lender: UserResponse, data: LoanCreate) -> LoanRecord:
        borrower_name = validate_borrower_name(data.borrower_name)
        principal = validate_principal(data.principal)
        interest_rate = validate_interest_rate(data.interest_rate)

        identity = await self.identity.identify(borrower_name)
        record = LoanRecord.open(
            lender_id=lender.id,
            identity=identity,
            principal=principal,
            interest_rate=interest_rate,
            start_date=data.start_date,
            due_date=data.due_date,
            description=data.description,
        )
        record = await self.loans.insert(record)
        logger.info(
            "Loan %s created by %s for %r (borrower %s)",
            record.id, lender.id, borrower_name,
            "resolved" if isinstance(identity, Resolved) else "unresolved",
            extra={"loan_id": record.id, "user_id": lender.id},
        )
        return record

    async def get_loan(self, loan_id: str, user: UserResponse) -> LoanView:
        record = await self._load(loan_id)
        roles = authorize(record, user, Operation.READ)
        return LoanView(record, primary_role(roles))

    async def history_for(self, user: UserResponse) -> List[LoanView]:
        return await self.history.history_for(user)

    async def add_payment(
        self,
        loan_id: str,
        user: UserResponse,
        amount,
        date: datetime,
        notes: Optional[str] = None,
    ) -> LoanRecord:
        """Append a payment and re-derive. Not idempotent."""
        payment = Payment(amount=validate_payment_amount(amount), date=date, notes=notes)

        async def change(record: LoanRecord) -> LoanRecord:
            return record.with_payment(payment, self.clock())

        record = await self._mutate(loan_id, user, Operation.PAY, change)
        logger.info(
            "Payment of %s recorded on loan %s by %s; remaining %s, status %s",
            payment.amount, record.id, user.id, record.remaining_amount, record.status.value,
            extra={"loan_id": record.id, "user_id": user.id},
        )
        return record

    async def update_loan(self, loan_id: str, user: UserResponse, patch: dict) -> LoanRecord:
        """
        Replace loan fields (lender only).

        A borrower_name in the patch is always re-resolved, so a name whose
        account appeared later becomes linked and a name with no account
        clears the link. A status in the patch is an override and follows
        the force_status rules.
        """
        cleaned = validate_patch(patch)
        terms = {
            k: v for k, v in cleaned.items() if k not in ("status", "borrower_name")
        }

        async def change(record: LoanRecord) -> LoanRecord:
            updated = record.with_terms(terms, self.clock()) if terms else record
            if "borrower_name" in cleaned:
                identity = await self.identity.identify(cleaned["borrower_name"])
                updated = updated.with_identity(identity)
                logger.info(
                    "Loan %s borrower re-resolved to %r (%s)",
                    record.id, identity.name,
                    "resolved" if isinstance(identity, Resolved) else "unresolved",
                    extra={"loan_id": record.id, "user_id": user.id},
                )
            if "status" in cleaned:
                updated = updated.with_status(validate_forced_status(updated, cleaned["status"]))
            return updated

        return await self._mutate(loan_id, user, Operation.UPDATE, change)

    async def force_status(self, loan_id: str, user: UserResponse, status: LoanStatus) -> LoanRecord:
        """
        Administrative status override (lender only).

        Ephemeral: the next payment re-derives status from the balance.
        """
        async def change(record: LoanRecord) -> LoanRecord:
            return record.with_status(validate_forced_status(record, status))

        record = await self._mutate(loan_id, user, Operation.UPDATE, change)
        logger.info(
            "Loan %s status forced to %s by %s", record.id, record.status.value, user.id,
            extra={"loan_id": record.id, "user_id": user.id},
        )
        return record

    async def delete_loan(self, loan_id: str, user: UserResponse) -> None:
        record = await self._load(loan_id)
        authorize(record, user, Operation.DELETE)
        if not await self.loans.delete(loan_id):
            raise NotFound("Loan not found")
        logger.info(
            "Loan %s deleted by %s", loan_id, user.id,
            extra={"loan_id": loan_id, "user_id": user.id},
        )

    async def _load(self, loan_id: str) -> LoanRecord:
        record = await self.loans.get(loan_id)
        if record is None:
            raise NotFound("Loan not found")
        return record

    async def _mutate(
        self, loan_id: str, user: UserResponse, operation: Operation, change: Change
    ) -> LoanRecord:
        for attempt in range(1, self.write_attempts + 1):
            record = await self._load(loan_id)
            authorize(record, user, operation)
            saved = await self.loans.compare_and_set(await change(record))
            if saved is not None:
                return saved
            logger.warning(
                "Write conflict on loan %s (attempt %d/%d)", loan_id, attempt, self.write_attempts,
                extra={"loan_id": loan_id, "user_id": user.id},
            )
        raise WriteConflict(f"Loan {loan_id} changed concurrently; retry the operation")
