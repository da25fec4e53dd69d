"""Per-record roles and the operation authorization matrix."""

from enum import Enum
from typing import Set

from lendbook.core.errors import Unauthorized
from lendbook.models.loan import LoanRecord, LoanRole
from lendbook.models.user import UserResponse


class Operation(str, Enum):
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    PAY = "pay"


ALLOWED_ROLES = {
    Operation.READ: {LoanRole.LENDER, LoanRole.BORROWER},
    Operation.UPDATE: {LoanRole.LENDER},
    Operation.DELETE: {LoanRole.LENDER},
    Operation.PAY: {LoanRole.LENDER, LoanRole.BORROWER},
}


def roles_for(record: LoanRecord, user: UserResponse) -> Set[LoanRole]:
    roles = set()
    if record.is_lender(user.id):
        roles.add(LoanRole.LENDER)
    if record.is_borrower(user.id, user.username):
        roles.add(LoanRole.BORROWER)
    return roles


def primary_role(roles: Set[LoanRole]) -> LoanRole:
    """Lender wins when a user holds both roles on a record."""
    return LoanRole.LENDER if LoanRole.LENDER in roles else LoanRole.BORROWER


def authorize(record: LoanRecord, user: UserResponse, operation: Operation) -> Set[LoanRole]:
    """Return the caller's roles, or raise Unauthorized if none qualify."""
    roles = roles_for(record, user)
    if not roles & ALLOWED_ROLES[operation]:
        raise Unauthorized(f"Not authorized to {operation.value} this loan")
    return roles
