from fastapi import APIRouter, HTTPException, status, Depends
from pydantic import BaseModel, EmailStr
from lendbook.models.user import UserCreate, UserResponse
from lendbook.db.mongo import get_db
from lendbook.repositories.user_repo import UserRepository
from lendbook.core.auth import create_access_token, get_current_user
from lendbook.core.logging import get_logger
from lendbook.core.security import verify_password

router = APIRouter(prefix="/auth", tags=["auth"])
logger = get_logger(__name__)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


def _token_response(user) -> dict:
    return {
        "access_token": create_access_token(str(user.id)),
        "token_type": "bearer",
        "user": UserResponse.from_db(user).model_dump(mode="json", by_alias=True)
    }

@router.post("/register", response_model=dict, status_code=status.HTTP_201_CREATED)
async def register(user_data: UserCreate, db = Depends(get_db)):
    """Create a new account."""
    user_repo = UserRepository(db)

    if await user_repo.get_user_by_email(user_data.email):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User with this email already exists"
        )

    if await user_repo.get_user_by_username(user_data.username):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username is already taken"
        )

    user = await user_repo.create_user(user_data)
    logger.info("Account %s registered as %r", user.id, user.username)
    return _token_response(user)

@router.post("/login", response_model=dict)
async def login(credentials: LoginRequest, db = Depends(get_db)):
    """Login with email and password."""
    user = await UserRepository(db).get_user_by_email(credentials.email)
    if not user or not verify_password(credentials.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password"
        )

    return _token_response(user)

@router.get("/me", response_model=UserResponse)
async def get_me(current_user: UserResponse = Depends(get_current_user)):
    """Get current user details."""
    return current_user
