"""Boundary contracts with the ledger and the category directory.

The pipeline never talks to a database directly. Hosts pass objects that
satisfy these protocols; ``statement_import.persistence.SqlLedgerStore`` is the
bundled SQLAlchemy implementation of both.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from .models import Assignment, DateRange, FlowDirection, TransactionCandidate


@runtime_checkable
class LedgerStore(Protocol):
    async def query_fingerprints(self, account_id: str, date_range: DateRange) -> set[str]:
        """Fingerprints already stored for ``account_id`` within ``date_range``."""
        ...

    async def insert_transaction(self, candidate: TransactionCandidate) -> int:
        """Persist one classified candidate and return the new transaction id.

        Raises ``PersistError`` when the store rejects the row.
        """
        ...

    async def find_historical_assignment(
        self, account_id: str, description: str
    ) -> Assignment | None:
        """Assignment of the most recent fully classified transaction with this exact description."""
        ...


# ---------------------------------------------------------------------------
# Category directory
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CategoryOption:
    id: str
    name: str
    flow_kind: str = "both"


@dataclass(frozen=True, slots=True)
class SubcategoryOption:
    id: str
    category_id: str
    name: str


@dataclass(frozen=True, slots=True)
class PaymentMethodOption:
    id: str
    name: str
    kind: str = "other"
    is_active: bool = True


@runtime_checkable
class CategoryDirectory(Protocol):
    async def list_categories(self, flow: FlowDirection) -> Sequence[CategoryOption]:
        """Active categories applicable to ``flow`` (flow-specific or ``both``)."""
        ...

    async def list_subcategories(self, category_id: str) -> Sequence[SubcategoryOption]: ...

    async def list_payment_methods(self) -> Sequence[PaymentMethodOption]: ...


__all__ = [
    "LedgerStore",
    "CategoryDirectory",
    "CategoryOption",
    "SubcategoryOption",
    "PaymentMethodOption",
]
