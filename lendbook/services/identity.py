from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from lendbook.models.loan import BorrowerIdentity, Resolved, Unresolved
from lendbook.models.user import UserInDB
from lendbook.repositories.user_repo import UserRepository


class IdentityResolver:
    """
    Matches free-text borrower names to accounts.

    Plain reads with no lock: an account registered right after a loan
    names it stays unresolved until the borrower name is next updated.
    A missing account is a normal outcome (None); store faults propagate
    as StoreUnavailable.
    """

    def __init__(self, db: AsyncIOMotorDatabase):
        self.users = UserRepository(db)

    async def find_account(self, name: str) -> Optional[UserInDB]:
        return await self.users.get_user_by_username(name)

    async def find_account_by_contact(self, contact: str) -> Optional[UserInDB]:
        return await self.users.get_user_by_phone(contact)

    async def resolve(self, name: str) -> Optional[str]:
        """Account id whose display name is exactly ``name``."""
        user = await self.find_account(name)
        return str(user.id) if user else None

    async def resolve_by_contact(self, contact: str) -> Optional[str]:
        """Account id registered with this phone number."""
        user = await self.find_account_by_contact(contact)
        return str(user.id) if user else None

    async def identify(self, name: str) -> BorrowerIdentity:
        ref = await self.resolve(name)
        if ref is None:
            return Unresolved(name=name)
        return Resolved(ref=ref, name=name)
