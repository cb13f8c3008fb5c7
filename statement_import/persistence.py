"""SQLAlchemy-backed ledger store and category directory.

Reads and writes the tables owned by the companion ``ledger_db`` package. The
pipeline is async while SQLAlchemy sessions here are sync, so every call runs
its work in a worker thread with ``asyncio.to_thread`` and one short
``session_scope`` per call. Each insert is its own transaction; nothing here
batches rows across candidates.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import TypeVar

from ledger_db.client import session_scope
from ledger_db.models import (
    LedgerCategory,
    LedgerPaymentMethod,
    LedgerSubcategory,
    LedgerTransaction,
)
from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import PersistError
from .ledger import CategoryOption, PaymentMethodOption, SubcategoryOption
from .logging_setup import get_logger
from .models import Assignment, DateRange, FlowDirection, TransactionCandidate

logger = get_logger("statement_import.persistence")

T = TypeVar("T")


class SqlLedgerStore:
    """``LedgerStore`` and ``CategoryDirectory`` over a SQL database.

    Parameters
    ----------
    database_url:
        SQLAlchemy URL. ``None`` falls back to ``DATABASE_URL``.
    """

    def __init__(self, database_url: str | None = None) -> None:
        self.database_url = database_url

    async def _run(self, fn: Callable[[Session], T]) -> T:
        def work() -> T:
            with session_scope(database_url=self.database_url) as session:
                return fn(session)

        return await asyncio.to_thread(work)

    # -- LedgerStore -------------------------------------------------------

    async def query_fingerprints(self, account_id: str, date_range: DateRange) -> set[str]:
        stmt = (
            select(LedgerTransaction.fingerprint_sha256)
            .where(LedgerTransaction.account_id == account_id)
            .where(LedgerTransaction.date >= date_range.start)
            .where(LedgerTransaction.date <= date_range.end)
        )
        return await self._run(lambda s: set(s.execute(stmt).scalars().all()))

    async def insert_transaction(self, candidate: TransactionCandidate) -> int:
        a = candidate.assignment

        def insert(session: Session) -> int:
            _check_assignment(session, a)
            row = LedgerTransaction(
                account_id=candidate.account_id,
                fingerprint_sha256=candidate.fingerprint,
                external_reference=candidate.reference,
                date=candidate.date,
                occurred_time=candidate.time,
                amount=candidate.amount,
                flow=candidate.flow.value,
                description=candidate.description,
                category_id=a.category_id,
                subcategory_id=a.subcategory_id,
                payment_method_id=a.payment_method_id,
                source_template=candidate.source_template,
            )
            session.add(row)
            session.flush()
            return row.id

        try:
            tx_id = await self._run(insert)
        except PersistError as exc:
            exc.position = candidate.position
            raise
        except SQLAlchemyError as exc:
            raise PersistError(
                f"ledger rejected candidate {candidate.position}: {exc.__class__.__name__}",
                position=candidate.position,
            ) from exc
        logger.debug("Inserted ledger transaction %d (position %d)", tx_id, candidate.position)
        return tx_id

    async def find_historical_assignment(
        self, account_id: str, description: str
    ) -> Assignment | None:
        stmt = (
            select(
                LedgerTransaction.category_id,
                LedgerTransaction.subcategory_id,
                LedgerTransaction.payment_method_id,
            )
            .where(LedgerTransaction.account_id == account_id)
            .where(LedgerTransaction.description == description)
            .where(LedgerTransaction.category_id.is_not(None))
            .where(LedgerTransaction.payment_method_id.is_not(None))
            .order_by(LedgerTransaction.created_at.desc(), LedgerTransaction.id.desc())
            .limit(1)
        )
        row = await self._run(lambda s: s.execute(stmt).first())
        if row is None:
            return None
        return Assignment(category_id=row[0], subcategory_id=row[1], payment_method_id=row[2])

    # -- CategoryDirectory -------------------------------------------------

    async def list_categories(self, flow: FlowDirection) -> list[CategoryOption]:
        stmt = (
            select(LedgerCategory)
            .where(LedgerCategory.is_active.is_(True))
            .where(or_(LedgerCategory.flow_kind == flow.value, LedgerCategory.flow_kind == "both"))
            .order_by(LedgerCategory.sort_order, LedgerCategory.name)
        )

        def load(session: Session) -> list[CategoryOption]:
            return [
                CategoryOption(id=c.id, name=c.name, flow_kind=c.flow_kind)
                for c in session.execute(stmt).scalars()
            ]

        return await self._run(load)

    async def list_subcategories(self, category_id: str) -> list[SubcategoryOption]:
        stmt = (
            select(LedgerSubcategory)
            .where(LedgerSubcategory.category_id == category_id)
            .where(LedgerSubcategory.is_active.is_(True))
            .order_by(LedgerSubcategory.name)
        )

        def load(session: Session) -> list[SubcategoryOption]:
            return [
                SubcategoryOption(id=s.id, category_id=s.category_id, name=s.name)
                for s in session.execute(stmt).scalars()
            ]

        return await self._run(load)

    async def list_payment_methods(self) -> list[PaymentMethodOption]:
        stmt = select(LedgerPaymentMethod).order_by(LedgerPaymentMethod.name)

        def load(session: Session) -> list[PaymentMethodOption]:
            return [
                PaymentMethodOption(id=m.id, name=m.name, kind=m.kind, is_active=m.is_active)
                for m in session.execute(stmt).scalars()
            ]

        return await self._run(load)


def _check_assignment(session: Session, a: Assignment) -> None:
    # Foreign keys are not enforced by every backend (SQLite by default), and
    # the subcategory/category pairing is not a key at all.
    if a.category_id is not None and session.get(LedgerCategory, a.category_id) is None:
        raise PersistError(f"unknown category: {a.category_id!r}")
    if a.payment_method_id is not None and session.get(LedgerPaymentMethod, a.payment_method_id) is None:
        raise PersistError(f"unknown payment method: {a.payment_method_id!r}")
    if a.subcategory_id is not None:
        sub = session.get(LedgerSubcategory, a.subcategory_id)
        if sub is None:
            raise PersistError(f"unknown subcategory: {a.subcategory_id!r}")
        if sub.category_id != a.category_id:
            raise PersistError(
                f"subcategory {a.subcategory_id!r} does not belong to category {a.category_id!r}"
            )


__all__ = ["SqlLedgerStore"]
