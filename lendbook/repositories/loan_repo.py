"""
LoanRepository - persistence for loan records.

Storage shape:
- lender_id / borrower_id as ObjectId, borrower_name as plain text
- money as Decimal128
- version is bumped on every write; updates are compare-and-set on it

Lookups return records in no particular order.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, List, Optional

from bson import Decimal128, ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from lendbook.models.loan import LoanRecord
from lendbook.repositories.base import store_call

_REF_FIELDS = ("lender_id", "borrower_id")


def _encode(value: Any) -> Any:
    if isinstance(value, Decimal):
        return Decimal128(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _encode(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_encode(v) for v in value]
    return value


def _to_document(record: LoanRecord) -> dict:
    doc = _encode(record.model_dump(exclude={"id"}))
    for field in _REF_FIELDS:
        if doc.get(field) is not None:
            doc[field] = ObjectId(doc[field])
    return doc


def _from_document(doc: dict) -> LoanRecord:
    doc["_id"] = str(doc["_id"])
    for field in _REF_FIELDS:
        if doc.get(field) is not None:
            doc[field] = str(doc[field])
    return LoanRecord(**doc)


class LoanRepository:
    """Repository for loan records."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db["loans"]

    @store_call
    async def insert(self, record: LoanRecord) -> LoanRecord:
        """Persist a new record and return it with its id."""
        now = datetime.now(timezone.utc)
        record = record.model_copy(update={"created_at": now, "updated_at": now, "version": 0})
        doc = _to_document(record)
        result = await self.collection.insert_one(doc)
        return record.model_copy(update={"id": str(result.inserted_id)})

    @store_call
    async def get(self, loan_id: str) -> Optional[LoanRecord]:
        """Get a record by id; malformed ids simply find nothing."""
        if not ObjectId.is_valid(loan_id):
            return None
        doc = await self.collection.find_one({"_id": ObjectId(loan_id)})
        if doc:
            return _from_document(doc)
        return None

    @store_call
    async def find_by_lender(self, lender_id: str) -> List[LoanRecord]:
        return await self._find({"lender_id": ObjectId(lender_id)})

    @store_call
    async def find_by_borrower_id(self, borrower_id: str) -> List[LoanRecord]:
        return await self._find({"borrower_id": ObjectId(borrower_id)})

    @store_call
    async def find_by_borrower_name(
        self, borrower_name: str, exclude_borrower_id: Optional[str] = None
    ) -> List[LoanRecord]:
        """
        Records naming this borrower.

        With exclude_borrower_id, records already resolved to that account
        are left out; unresolved records and records resolved elsewhere
        are kept.
        """
        query: dict = {"borrower_name": borrower_name}
        if exclude_borrower_id is not None:
            query["borrower_id"] = {"$ne": ObjectId(exclude_borrower_id)}
        return await self._find(query)

    @store_call
    async def compare_and_set(self, record: LoanRecord) -> Optional[LoanRecord]:
        """
        Write record back if nobody else has written since it was read.

        Returns the stored record, or None when the version moved on (or
        the record was deleted) in the meantime.
        """
        now = datetime.now(timezone.utc)
        doc = _to_document(record)
        for field in ("version", "created_at"):
            doc.pop(field, None)
        doc["updated_at"] = now

        result = await self.collection.update_one(
            {"_id": ObjectId(record.id), "version": record.version},
            {"$set": doc, "$inc": {"version": 1}}
        )
        if result.matched_count == 0:
            return None
        return record.model_copy(update={"version": record.version + 1, "updated_at": now})

    @store_call
    async def delete(self, loan_id: str) -> bool:
        """Remove a record unconditionally."""
        if not ObjectId.is_valid(loan_id):
            return False
        result = await self.collection.delete_one({"_id": ObjectId(loan_id)})
        return result.deleted_count > 0

    async def _find(self, query: dict) -> List[LoanRecord]:
        docs = await self.collection.find(query).to_list(None)
        return [_from_document(doc) for doc in docs]
