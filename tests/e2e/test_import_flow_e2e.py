from __future__ import annotations

import textwrap
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest
from ledger_db.client import session_scope
from ledger_db.models import LedgerTransaction
from sqlalchemy import select

from statement_import.errors import FormatMismatch, StatementImportError
from statement_import.fingerprint import compute_fingerprint
from statement_import.models import (
    AccountKind,
    Assignment,
    ClassificationStatus,
    FlowDirection,
    ImportAccount,
)
from statement_import.persistence import SqlLedgerStore
from statement_import.workflows import ImportFlow, prepare_import
from tests.helpers.db import (
    bootstrap_sqlite_db,
    count_transactions,
    insert_ledger_transaction,
    seed_directory,
)
from tests.helpers.factories import card_rows, make_session

CARD = ImportAccount(id="nubank-card", kind=AccountKind.CREDIT_CARD)
BUSINESS = ImportAccount(id="conta-simples", kind=AccountKind.CHECKING)

CONTA_SIMPLES_CSV = textwrap.dedent(
    """\
    CONTA SIMPLES
    Empresa: ACME LTDA
    CNPJ: 12.345.678/0001-90
    Agência: 0001
    Conta: 12345-6
    Período: 01/10/2025 a 08/10/2025

    Data hora;Histórico;Crédito R$;Débito R$;Saldo R$;Descrição;Categoria;CPF/CNPJ Origem/Destino
    08/10/2025 16:20:00;PIX Enviado;;15.000,00;132.652,59;Fornecedor;Compras;12.345.678/0001-90
    07/10/2025 13:35:00;Recebimento PIX;30.000,00;;147.652,59;Cliente;Vendas;98.765.432/0001-10
    07/10/2025 09:00:00;Tarifa PIX;;1,50;117.652,59;;;
    """
)


@pytest.fixture
def db_url(tmp_path: Path) -> str:
    url = bootstrap_sqlite_db(tmp_path / "ledger-e2e.db")
    seed_directory(database_url=url)
    return url


def _ledger_rows(db_url: str, account_id: str) -> list[LedgerTransaction]:
    with session_scope(database_url=db_url) as s:
        stmt = (
            select(LedgerTransaction)
            .where(LedgerTransaction.account_id == account_id)
            .order_by(LedgerTransaction.id)
        )
        return list(s.execute(stmt).scalars())


@pytest.mark.asyncio
async def test_three_rows_one_store_duplicate_commit_two(db_url: str):
    # A previous import already stored the Uber trip.
    existing = make_session(card_rows(("2025-01-15", "150.00", "Uber Trip São Paulo")), account=CARD)
    insert_ledger_transaction(
        database_url=db_url,
        account_id=CARD.id,
        fingerprint=compute_fingerprint(existing.candidates[0]),
        tx_date=date(2025, 1, 15),
        amount=Decimal("150.00"),
        description="Uber Trip São Paulo",
    )

    store = SqlLedgerStore(db_url)
    flow = ImportFlow(store, directory=store)
    headers = ["date", "amount", "title"]
    rows = card_rows(
        ("2025-01-15", "150.00", "Uber Trip São Paulo"),
        ("2025-01-14", "45.50", "iFood - Restaurante"),
        ("2025-01-16", "89.90", "Mercado Pão de Açúcar"),
    )
    session = await flow.start(headers, rows, account=CARD, template_id="nubank_card")

    statuses = [c.status for c in session]
    assert statuses.count(ClassificationStatus.DUPLICATE) == 1
    assert session.get(0).is_duplicate
    summary = flow.engine.summarize()
    assert (summary.pending, summary.duplicate) == (2, 1)
    # Card accounts get the credit payment method prefilled.
    assert session.get(1).assignment.payment_method_id == "nubank_credit"

    flow.engine.classify(1, Assignment("food", "food.restaurants", "nubank_credit"))
    flow.engine.classify(2, Assignment("food", "food.groceries", "nubank_credit"))
    flow.engine.toggle_selection(1, True)
    flow.engine.toggle_selection(2, True)

    report = await flow.commit()

    assert (report.committed, report.failed) == (2, 0)
    assert flow.session is None
    stored = _ledger_rows(db_url, CARD.id)
    assert len(stored) == 3
    assert {r.description for r in stored[1:]} == {"iFood - Restaurante", "Mercado Pão de Açúcar"}
    assert all(r.flow == FlowDirection.OUTFLOW.value for r in stored[1:])
    assert stored[1].source_template == "nubank_card"


@pytest.mark.asyncio
async def test_conta_simples_csv_import_with_history(db_url: str):
    insert_ledger_transaction(
        database_url=db_url,
        account_id=BUSINESS.id,
        fingerprint="f" * 64,
        tx_date=date(2025, 9, 1),
        amount=Decimal("1.50"),
        description="Tarifa PIX",
        category_id="transfers",
        subcategory_id="transfers.pix",
        payment_method_id="pix",
    )
    store = SqlLedgerStore(db_url)
    flow = ImportFlow(store, directory=store)

    session = await flow.start_from_csv(CONTA_SIMPLES_CSV, account=BUSINESS, template_id="conta_simples")

    sent, received, fee = session.candidates
    assert (sent.amount, sent.flow) == (Decimal("15000.00"), FlowDirection.OUTFLOW)
    assert (received.amount, received.flow) == (Decimal("30000.00"), FlowDirection.INFLOW)
    assert sent.date_with_time == "2025-10-08T16:20:00"
    assert sent.reference == "12.345.678/0001-90"
    assert fee.status is ClassificationStatus.RECOGNIZED
    assert fee.assignment == Assignment("transfers", "transfers.pix", "pix")
    assert fee.selected is True

    opts = await flow.engine.category_options(received.position, store)
    assert [c.id for c in opts.categories] == ["salary", "transfers"]

    flow.engine.classify(sent.position, Assignment("transfers", "transfers.pix", "pix"))
    flow.engine.classify(received.position, Assignment("salary", "salary.monthly", "pix"))
    flow.engine.toggle_selection(received.position, True)

    report = await flow.commit()
    assert (report.committed, report.failed) == (3, 0)
    assert count_transactions(database_url=db_url, account_id=BUSINESS.id) == 4


@pytest.mark.asyncio
async def test_failed_commit_keeps_session_for_retry(db_url: str):
    store = SqlLedgerStore(db_url)
    flow = ImportFlow(store)
    rows = card_rows(("2025-02-01", "10.00", "Padaria"), ("2025-02-02", "20.00", "Farmácia"))
    await flow.start(["date", "amount", "title"], rows, account=CARD, template_id="nubank_card")

    flow.engine.classify(0, Assignment("food", "food.groceries", "pix"))
    # Subcategory from another category: rejected by the store.
    flow.engine.classify(1, Assignment("transport", "food.groceries", "pix"))

    first = await flow.commit()
    assert (first.committed, first.failed) == (1, 1)
    assert flow.session is not None

    flow.engine.classify(1, Assignment("transport", "transport.rides", "pix"))
    second = await flow.commit()
    assert (second.committed, second.failed) == (1, 0)
    assert flow.session is None
    assert count_transactions(database_url=db_url, account_id=CARD.id) == 2


@pytest.mark.asyncio
async def test_reimporting_the_same_statement_flags_everything(db_url: str):
    store = SqlLedgerStore(db_url)
    rows = card_rows(("2025-03-01", "10.00", "Padaria"), ("2025-03-02", "20.00", "Farmácia"))

    flow = ImportFlow(store)
    await flow.start(["date", "amount", "title"], rows, account=CARD, template_id="nubank_card")
    for pos in (0, 1):
        flow.engine.classify(pos, Assignment("food", "food.groceries", "pix"))
    assert (await flow.commit()).ok

    again = await prepare_import(["date", "amount", "title"], rows, account=CARD, store=store)
    assert all(c.is_duplicate for c in again)
    # Duplicates are never preselected.
    assert not any(c.selected for c in again)


@pytest.mark.asyncio
async def test_new_import_replaces_active_session_and_abandon(db_url: str):
    store = SqlLedgerStore(db_url)
    flow = ImportFlow(store)
    headers = ["date", "amount", "title"]
    first = await flow.start(headers, card_rows(("2025-04-01", "1.00", "a")), account=CARD)
    second = await flow.start(headers, card_rows(("2025-04-02", "2.00", "b")), account=CARD)
    assert flow.session is second and first is not second

    with pytest.raises(FormatMismatch):
        await flow.start(["x", "y"], [{"x": "1", "y": "2"}], account=CARD)
    assert flow.session is second

    flow.abandon()
    assert flow.session is None
    with pytest.raises(StatementImportError):
        await flow.commit()
    assert count_transactions(database_url=db_url) == 0


@pytest.mark.asyncio
async def test_conta_simples_category_column_classifies_rows(db_url: str):
    csv_text = textwrap.dedent(
        """\
        CONTA SIMPLES
        Empresa: ACME LTDA
        CNPJ: 12.345.678/0001-90
        Agência: 0001
        Conta: 12345-6
        Período: 01/10/2025 a 08/10/2025

        Data hora;Histórico;Crédito R$;Débito R$;Saldo R$;Descrição;Categoria;CPF/CNPJ Origem/Destino
        08/10/2025 12:10:00;Restaurante Sabor;;85,40;1.000,00;Almoço equipe;FOOD;
        08/10/2025 12:30:00;Recebimento PIX;2.500,00;;3.500,00;Cliente;Marketing;
        """
    )
    store = SqlLedgerStore(db_url)
    flow = ImportFlow(store, directory=store)

    session = await flow.start_from_csv(csv_text, account=BUSINESS, template_id="conta_simples")
    lunch, received = session.candidates

    assert lunch.bank_category == "FOOD"
    assert lunch.status is ClassificationStatus.RECOGNIZED
    # Category from the bank, payment method prefilled for the account.
    assert lunch.assignment == Assignment("food", None, "pix")
    assert received.status is ClassificationStatus.PENDING

    flow.engine.set_subcategory(lunch.position, "food.restaurants")
    flow.engine.toggle_selection(received.position, False)
    report = await flow.commit()
    assert (report.committed, report.failed) == (1, 0)
    stored = _ledger_rows(db_url, BUSINESS.id)
    assert [(r.category_id, r.subcategory_id) for r in stored] == [("food", "food.restaurants")]
