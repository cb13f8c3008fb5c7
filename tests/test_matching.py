from __future__ import annotations

import pytest

from statement_import.duplicates import resolve_duplicates
from statement_import.ledger import CategoryOption
from statement_import.matching import BankCategoryMatcher, HistoricalMatcher, match_category_name
from statement_import.models import Assignment, ClassificationStatus, FlowDirection
from tests.helpers.factories import CHECKING, make_session
from tests.helpers.stores import InMemoryLedger

SPLIT_HEADERS = (
    "Data hora",
    "Histórico",
    "Crédito R$",
    "Débito R$",
    "Saldo R$",
    "Descrição",
    "Categoria",
    "CPF/CNPJ Origem/Destino",
)

CATEGORIES = [
    CategoryOption(id="cat-food", name="Alimentação", flow_kind="outflow"),
    CategoryOption(id="cat-sales", name="Vendas de serviços", flow_kind="inflow"),
    CategoryOption(id="cat-fees", name="Tarifas", flow_kind="outflow"),
    CategoryOption(id="cat-transfers", name="Transferências", flow_kind="both"),
]


def _row(when: str, history: str, credit: str, debit: str, bank_category: str) -> dict[str, str]:
    values = [when, history, credit, debit, "1000,00", "", bank_category, ""]
    return dict(zip(SPLIT_HEADERS, values, strict=True))


def _conta_simples_session(*rows: dict[str, str]):
    return make_session(list(rows), headers=SPLIT_HEADERS, template_id="conta_simples", account=CHECKING)


@pytest.mark.parametrize(
    ("label", "expected"),
    [
        ("ALIMENTACAO", "cat-food"),
        ("  alimentação ", "cat-food"),
        ("Vendas", "cat-sales"),
        ("Tarifas bancárias", "cat-fees"),
        ("Marketing", None),
        ("", None),
    ],
)
def test_match_category_name(label, expected):
    assert match_category_name(label, CATEGORIES) == expected


def test_exact_name_wins_over_containment():
    categories = [
        CategoryOption(id="a", name="Impostos e taxas", flow_kind="outflow"),
        CategoryOption(id="b", name="Impostos", flow_kind="outflow"),
    ]
    assert match_category_name("impostos", categories) == "b"


def test_bank_category_is_carried_on_candidates():
    session = _conta_simples_session(
        _row("08/10/2025 16:20:00", "Compra", "", "50,00", "Alimentação"),
        _row("08/10/2025 16:21:00", "Compra", "", "60,00", "  "),
    )
    a, b = session.candidates
    assert a.bank_category == "Alimentação"
    assert b.bank_category is None


@pytest.mark.asyncio
async def test_bank_category_marks_rows_recognized():
    store = InMemoryLedger(categories=list(CATEGORIES))
    session = _conta_simples_session(
        _row("08/10/2025 16:20:00", "Restaurante", "", "50,00", "Alimentação"),
        _row("08/10/2025 17:00:00", "Recebimento PIX", "900,00", "", "Vendas"),
        _row("08/10/2025 18:00:00", "Compra", "", "10,00", "Marketing"),
    )
    # Inflow categories are not offered for outflows.
    session.candidates[2].bank_category = "Vendas"

    report = await resolve_duplicates(session, store, BankCategoryMatcher(store))

    food, sales, other = session.candidates
    assert food.status is ClassificationStatus.RECOGNIZED
    assert food.assignment == Assignment("cat-food", None, None)
    assert sales.flow is FlowDirection.INFLOW
    assert sales.assignment.category_id == "cat-sales"
    assert other.status is ClassificationStatus.PENDING
    assert report.recognized == 2


@pytest.mark.asyncio
async def test_bank_category_takes_priority_and_keeps_history_payment_method():
    store = InMemoryLedger(categories=list(CATEGORIES))
    history = _conta_simples_session(
        _row("01/09/2025 09:00:00", "Restaurante", "", "40,00", ""),
        _row("01/09/2025 10:00:00", "Tarifa PIX", "", "1,50", ""),
    )
    history.candidates[0].assignment = Assignment("cat-transfers", "transfers.pix", "pix")
    history.candidates[1].assignment = Assignment("cat-fees", "fees.pix", "pix")
    store.preload(history.candidates)

    session = _conta_simples_session(
        _row("08/10/2025 16:20:00", "Restaurante", "", "50,00", "Alimentação"),
        _row("08/10/2025 16:30:00", "Tarifa PIX", "", "1,50", "Tarifas"),
    )
    matcher = BankCategoryMatcher(store, fallback=HistoricalMatcher(store))
    await resolve_duplicates(session, store, matcher)

    restaurant, fee = session.candidates
    # Different category than the history: the subcategory does not carry over.
    assert restaurant.assignment == Assignment("cat-food", None, "pix")
    # Same category: the full history assignment is kept.
    assert fee.assignment == Assignment("cat-fees", "fees.pix", "pix")
    assert restaurant.status is fee.status is ClassificationStatus.RECOGNIZED


@pytest.mark.asyncio
async def test_rows_without_bank_category_fall_back_to_history():
    store = InMemoryLedger(categories=list(CATEGORIES))
    history = _conta_simples_session(_row("01/09/2025 09:00:00", "Aluguel", "", "900,00", ""))
    history.candidates[0].assignment = Assignment("cat-transfers", "transfers.pix", "pix")
    store.preload(history.candidates)

    session = _conta_simples_session(_row("01/10/2025 09:00:00", "Aluguel", "", "900,00", ""))
    matcher = BankCategoryMatcher(store, fallback=HistoricalMatcher(store))
    await resolve_duplicates(session, store, matcher)
    assert session.candidates[0].assignment == Assignment("cat-transfers", "transfers.pix", "pix")
