from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from lendbook.core.auth import create_access_token
from lendbook.db.mongo import get_db
from lendbook.main import app
from lendbook.models.user import UserCreate, UserResponse
from lendbook.repositories.user_repo import UserRepository
from lendbook.schemas.loan import LoanCreate


@pytest.fixture
def test_db():
    """Fresh in-memory database per test."""
    return AsyncMongoMockClient()["lendbook_test"]


@pytest.fixture
def test_client(test_db):
    """API client wired to the in-memory database (no startup hooks)."""
    app.dependency_overrides[get_db] = lambda: test_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def account_data(username: str, phone_number: str) -> dict:
    return {
        "username": username,
        "email": f"{username}@example.com",
        "password": "secret123",
        "full_name": username.title(),
        "phone_number": phone_number,
        "village": "Rampur",
    }


async def create_account(db, username: str, phone_number: str) -> UserResponse:
    user = await UserRepository(db).create_user(UserCreate(**account_data(username, phone_number)))
    return UserResponse.from_db(user)


def loan_data(borrower_name: str, principal="1000", due_in_days: int = 30, **extra) -> LoanCreate:
    now = datetime.now(timezone.utc)
    return LoanCreate(
        borrower_name=borrower_name,
        principal=Decimal(principal),
        interest_rate=Decimal("5"),
        start_date=now,
        due_date=now + timedelta(days=due_in_days),
        **extra
    )


@pytest_asyncio.fixture
async def lender(test_db):
    return await create_account(test_db, "lender", "9000000001")


@pytest_asyncio.fixture
async def borrower(test_db):
    return await create_account(test_db, "borrower", "9000000002")


@pytest_asyncio.fixture
async def stranger(test_db):
    return await create_account(test_db, "stranger", "9000000003")


@pytest.fixture
def register(test_client):
    """Register an account over HTTP and return (auth headers, user json)."""

    def _register(username: str, phone_number: str):
        response = test_client.post("/api/auth/register", json=account_data(username, phone_number))
        assert response.status_code == 201, response.text
        body = response.json()
        return {"Authorization": f"Bearer {body['access_token']}"}, body["user"]

    return _register


@pytest.fixture
def auth_headers():
    def _headers(user: UserResponse) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return _headers
