from __future__ import annotations

from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

from statement_import.errors import PersistError
from statement_import.models import Assignment, DateRange, FlowDirection
from statement_import.persistence import SqlLedgerStore
from tests.helpers.db import (
    bootstrap_sqlite_db,
    count_transactions,
    insert_ledger_transaction,
    seed_directory,
)
from tests.helpers.factories import card_rows, make_session

FOOD = Assignment("food", "food.restaurants", "nubank_credit")


@pytest.fixture
def db_url(tmp_path: Path) -> str:
    url = bootstrap_sqlite_db(tmp_path / "ledger.db")
    seed_directory(database_url=url)
    return url


def _candidate(description: str = "Padaria", when: str = "2025-01-15", amount: str = "12.50"):
    cand = make_session(card_rows((when, amount, description))).candidates[0]
    cand.assignment = FOOD
    return cand


@pytest.mark.asyncio
async def test_insert_and_query_fingerprints(db_url: str):
    store = SqlLedgerStore(db_url)
    cand = _candidate()
    tx_id = await store.insert_transaction(cand)
    assert tx_id > 0
    assert count_transactions(database_url=db_url, account_id="acc-card") == 1

    inside = await store.query_fingerprints("acc-card", DateRange(date(2025, 1, 1), date(2025, 1, 31)))
    outside = await store.query_fingerprints("acc-card", DateRange(date(2025, 2, 1), date(2025, 2, 28)))
    other_account = await store.query_fingerprints("acc-x", DateRange(date(2025, 1, 1), date(2025, 1, 31)))
    assert inside == {cand.fingerprint}
    assert outside == set()
    assert other_account == set()


@pytest.mark.asyncio
async def test_duplicate_fingerprint_becomes_persist_error(db_url: str):
    store = SqlLedgerStore(db_url)
    await store.insert_transaction(_candidate())
    again = _candidate()
    again.position = 7
    with pytest.raises(PersistError) as ei:
        await store.insert_transaction(again)
    assert ei.value.position == 7
    assert ei.value.__cause__ is not None
    assert count_transactions(database_url=db_url) == 1


@pytest.mark.asyncio
async def test_subcategory_must_belong_to_category(db_url: str):
    store = SqlLedgerStore(db_url)
    cand = _candidate()
    cand.assignment = Assignment("transport", "food.restaurants", "pix")
    with pytest.raises(PersistError, match="does not belong"):
        await store.insert_transaction(cand)
    assert count_transactions(database_url=db_url) == 0


@pytest.mark.asyncio
async def test_unknown_directory_ids_are_rejected(db_url: str):
    store = SqlLedgerStore(db_url)
    cand = _candidate()
    cand.assignment = Assignment("food", "food.restaurants", "bitcoin")
    with pytest.raises(PersistError, match="payment method"):
        await store.insert_transaction(cand)


@pytest.mark.asyncio
async def test_find_historical_assignment_prefers_latest_complete_row(db_url: str):
    store = SqlLedgerStore(db_url)
    insert_ledger_transaction(
        database_url=db_url,
        account_id="acc-card",
        fingerprint="a" * 64,
        tx_date=date(2024, 11, 1),
        amount=Decimal("10.00"),
        description="Padaria Central",
        category_id="food",
        subcategory_id="food.groceries",
        payment_method_id="pix",
    )
    insert_ledger_transaction(
        database_url=db_url,
        account_id="acc-card",
        fingerprint="b" * 64,
        tx_date=date(2024, 12, 1),
        amount=Decimal("11.00"),
        description="Padaria Central",
        category_id="food",
        subcategory_id="food.restaurants",
        payment_method_id="nubank_credit",
    )
    insert_ledger_transaction(
        database_url=db_url,
        account_id="acc-card",
        fingerprint="c" * 64,
        tx_date=date(2024, 12, 2),
        amount=Decimal("12.00"),
        description="Padaria Central",
    )

    hit = await store.find_historical_assignment("acc-card", "Padaria Central")
    assert hit == Assignment("food", "food.restaurants", "nubank_credit")
    assert await store.find_historical_assignment("acc-card", "padaria central") is None
    assert await store.find_historical_assignment("acc-other", "Padaria Central") is None


@pytest.mark.asyncio
async def test_directory_listing(db_url: str):
    store = SqlLedgerStore(db_url)
    outflow = await store.list_categories(FlowDirection.OUTFLOW)
    inflow = await store.list_categories(FlowDirection.INFLOW)
    assert [c.id for c in outflow] == ["food", "transport", "transfers"]
    assert [c.id for c in inflow] == ["salary", "transfers"]

    subs = await store.list_subcategories("food")
    assert sorted(s.id for s in subs) == ["food.groceries", "food.restaurants"]

    methods = await store.list_payment_methods()
    by_id = {m.id: m for m in methods}
    assert by_id["pix"].kind == "pix"
    assert by_id["old_debit"].is_active is False


@pytest.mark.asyncio
async def test_find_historical_assignment_keeps_rows_without_subcategory(db_url: str):
    store = SqlLedgerStore(db_url)
    insert_ledger_transaction(
        database_url=db_url,
        account_id="acc-card",
        fingerprint="d" * 64,
        tx_date=date(2024, 12, 5),
        amount=Decimal("9.00"),
        description="Feira livre",
        category_id="food",
        payment_method_id="cash",
    )
    hit = await store.find_historical_assignment("acc-card", "Feira livre")
    assert hit == Assignment("food", None, "cash")
