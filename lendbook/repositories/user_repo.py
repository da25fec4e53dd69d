from motor.motor_asyncio import AsyncIOMotorDatabase
from bson import ObjectId
from datetime import datetime, timezone
from lendbook.models.user import UserCreate, UserInDB
from lendbook.core.security import hash_password
from lendbook.repositories.base import store_call

class UserRepository:
    """Account directory operations."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db["users"]

    @store_call
    async def create_user(self, user_data: UserCreate) -> UserInDB:
        """Create a new account."""
        now = datetime.now(timezone.utc)
        user_dict = user_data.model_dump(exclude={"password"})
        user_dict.update({
            "password_hash": hash_password(user_data.password),
            "created_at": now,
            "updated_at": now
        })

        result = await self.collection.insert_one(user_dict)
        user_dict["_id"] = result.inserted_id
        return UserInDB(**user_dict)

    @store_call
    async def get_user_by_email(self, email: str) -> UserInDB | None:
        """Get account by email."""
        user = await self.collection.find_one({"email": email})
        if user:
            return UserInDB(**user)
        return None

    @store_call
    async def get_user_by_username(self, username: str) -> UserInDB | None:
        """Get account by exact display name."""
        user = await self.collection.find_one({"username": username})
        if user:
            return UserInDB(**user)
        return None

    @store_call
    async def get_user_by_phone(self, phone_number: str) -> UserInDB | None:
        """Get account by phone number."""
        user = await self.collection.find_one({"phone_number": phone_number})
        if user:
            return UserInDB(**user)
        return None

    @store_call
    async def get_user_by_id(self, user_id: str) -> UserInDB | None:
        """Get account by ID."""
        if not ObjectId.is_valid(user_id):
            return None
        user = await self.collection.find_one({"_id": ObjectId(user_id)})
        if user:
            return UserInDB(**user)
        return None
