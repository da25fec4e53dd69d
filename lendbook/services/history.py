from typing import Iterable, List, NamedTuple

from motor.motor_asyncio import AsyncIOMotorDatabase

from lendbook.models.loan import LoanRecord, LoanRole
from lendbook.models.user import UserResponse
from lendbook.repositories.loan_repo import LoanRepository


class LoanView(NamedTuple):
    record: LoanRecord
    role: LoanRole


def compose_history(
    lent: Iterable[LoanRecord],
    borrowed_by_ref: Iterable[LoanRecord],
    borrowed_by_name: Iterable[LoanRecord],
) -> List[LoanView]:
    """
    Merge the three lookups into one role-tagged list, newest first.

    The two borrower sets are disjoint by query, so nothing repeats within
    a role. A self-loan shows up twice, once per role.
    """
    views = [LoanView(r, LoanRole.LENDER) for r in lent]
    views += [LoanView(r, LoanRole.BORROWER) for r in borrowed_by_ref]
    views += [LoanView(r, LoanRole.BORROWER) for r in borrowed_by_name]
    views.sort(key=lambda view: view.record.created_at, reverse=True)
    return views


class HistoryComposer:
    """Reconstructs a user's loans from both sides of the relationship."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.loans = LoanRepository(db)

    async def history_for(self, user: UserResponse) -> List[LoanView]:
        lent = await self.loans.find_by_lender(user.id)
        borrowed_by_ref = await self.loans.find_by_borrower_id(user.id)
        borrowed_by_name = await self.loans.find_by_borrower_name(
            user.username, exclude_borrower_id=user.id
        )
        return compose_history(lent, borrowed_by_ref, borrowed_by_name)
