from pydantic import BaseModel, EmailStr, Field, ConfigDict
from datetime import datetime
from typing import Optional
from bson import ObjectId

class UserBase(BaseModel):
    """Base account schema."""
    username: str = Field(..., min_length=3, max_length=20)
    email: EmailStr
    full_name: str = Field(..., min_length=1, max_length=100)
    father_name: Optional[str] = None
    phone_number: str = Field(..., min_length=1, max_length=32)
    village: str = Field(..., min_length=1, max_length=100)
    address: Optional[str] = None

class UserCreate(UserBase):
    """Account registration schema."""
    password: str = Field(..., min_length=6)

class UserResponse(UserBase):
    """Account response schema."""
    id: str = Field(validation_alias="_id", serialization_alias="id")
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(
        populate_by_name=True,
        from_attributes=True
    )

    @classmethod
    def from_db(cls, user: "UserInDB") -> "UserResponse":
        return cls(
            id=str(user.id),
            username=user.username,
            email=user.email,
            full_name=user.full_name,
            father_name=user.father_name,
            phone_number=user.phone_number,
            village=user.village,
            address=user.address,
            created_at=user.created_at,
            updated_at=user.updated_at
        )

class UserInDB(BaseModel):
    """Account database schema."""
    id: ObjectId = Field(alias="_id")
    username: str
    email: str
    full_name: str
    father_name: Optional[str] = None
    phone_number: str
    village: str
    address: Optional[str] = None
    password_hash: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(
        populate_by_name=True,
        from_attributes=True,
        arbitrary_types_allowed=True
    )
