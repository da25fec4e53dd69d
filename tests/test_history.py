from datetime import datetime, timedelta, timezone

import pytest
from bson import ObjectId

from lendbook.models.loan import LoanRole
from lendbook.services.history import HistoryComposer, compose_history
from lendbook.services.ledger_service import LedgerService
from conftest import create_account, loan_data

T0 = datetime(2026, 1, 1, tzinfo=timezone.utc)


async def backdate(db, loan_id: str, minutes: int):
    """Pin created_at so ordering does not depend on clock resolution."""
    await db["loans"].update_one(
        {"_id": ObjectId(loan_id)},
        {"$set": {"created_at": T0 + timedelta(minutes=minutes)}}
    )


@pytest.mark.asyncio
async def test_history_tags_roles_and_orders_newest_first(test_db, lender, borrower):
    service = LedgerService(test_db)
    lent = await service.create_loan(borrower, loan_data("someone"))
    borrowed = await service.create_loan(lender, loan_data("borrower"))
    await backdate(test_db, lent.id, 1)
    await backdate(test_db, borrowed.id, 2)

    views = await HistoryComposer(test_db).history_for(borrower)

    assert [(v.record.id, v.role) for v in views] == [
        (borrowed.id, LoanRole.BORROWER),
        (lent.id, LoanRole.LENDER),
    ]


@pytest.mark.asyncio
async def test_history_includes_unresolved_and_stale_records_once(test_db, lender):
    service = LedgerService(test_db)
    unresolved = await service.create_loan(lender, loan_data("alice"))
    alice = await create_account(test_db, "alice", "9000000009")
    resolved = await service.create_loan(lender, loan_data("alice"))
    # resolved to some other account that later gave up the name
    stale = await service.create_loan(lender, loan_data("alice"))
    await test_db["loans"].update_one(
        {"_id": ObjectId(stale.id)}, {"$set": {"borrower_id": ObjectId()}}
    )

    views = await HistoryComposer(test_db).history_for(alice)

    ids = [v.record.id for v in views]
    assert sorted(ids) == sorted([unresolved.id, resolved.id, stale.id])
    assert all(v.role == LoanRole.BORROWER for v in views)


@pytest.mark.asyncio
async def test_self_loan_appears_once_per_role(test_db, lender):
    record = await LedgerService(test_db).create_loan(lender, loan_data("lender"))

    views = await HistoryComposer(test_db).history_for(lender)

    assert [v.record.id for v in views] == [record.id, record.id]
    assert {v.role for v in views} == {LoanRole.LENDER, LoanRole.BORROWER}


@pytest.mark.asyncio
async def test_history_excludes_other_peoples_loans(test_db, lender, borrower, stranger):
    await LedgerService(test_db).create_loan(lender, loan_data("borrower"))

    assert await HistoryComposer(test_db).history_for(stranger) == []


def test_compose_history_sorts_across_sets():
    class Stub:
        def __init__(self, name, minutes):
            self.name = name
            self.created_at = T0 + timedelta(minutes=minutes)

    old_lent, new_borrowed, mid_named = Stub("a", 1), Stub("b", 3), Stub("c", 2)

    views = compose_history([old_lent], [new_borrowed], [mid_named])

    assert [(v.record.name, v.role) for v in views] == [
        ("b", LoanRole.BORROWER),
        ("c", LoanRole.BORROWER),
        ("a", LoanRole.LENDER),
    ]
