"""Deterministic recognition of previously classified transactions.

Two sources are used: the ledger history of the account (exact description)
and the category label a bank exports with each row, matched by name against
the category directory.
"""

from __future__ import annotations

import unicodedata
from collections.abc import Sequence
from typing import Protocol

from .ledger import CategoryDirectory, CategoryOption, LedgerStore
from .logging_setup import get_logger
from .models import Assignment, FlowDirection, TransactionCandidate

logger = get_logger("statement_import.matching")


class AssignmentMatcher(Protocol):
    async def match(self, candidate: TransactionCandidate) -> Assignment | None: ...


def _usable(found: Assignment | None) -> bool:
    return found is not None and bool(found.category_id and found.payment_method_id)


class HistoricalMatcher:
    """Reuse the classification of the latest ledger transaction with the same description.

    Lookups are exact (description and account); results are memoized per
    description so a statement with many repeated merchants queries once.
    A past row counts as a match once it has a category and a payment method;
    the subcategory is optional and stays for the review step to fill.
    """

    def __init__(self, store: LedgerStore) -> None:
        self._store = store
        self._memo: dict[tuple[str, str], Assignment | None] = {}

    async def match(self, candidate: TransactionCandidate) -> Assignment | None:
        if not candidate.description:
            return None
        key = (candidate.account_id, candidate.description)
        if key not in self._memo:
            found = await self._store.find_historical_assignment(*key)
            self._memo[key] = found if _usable(found) else None
        hit = self._memo[key]
        if hit is not None:
            logger.debug("Recognized %r from history", candidate.description)
        return hit


def _fold_name(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(c for c in decomposed if not unicodedata.combining(c)).casefold().strip()


def match_category_name(bank_name: str, categories: Sequence[CategoryOption]) -> str | None:
    """Return the id of the category whose name matches ``bank_name``.

    Names are compared accent- and case-insensitively. An exact match wins;
    otherwise the first category whose name contains, or is contained in,
    the bank's label is used.
    """

    wanted = _fold_name(bank_name)
    if not wanted:
        return None
    folded = [(c, _fold_name(c.name)) for c in categories]
    for c, name in folded:
        if name == wanted:
            return c.id
    for c, name in folded:
        if name and (name in wanted or wanted in name):
            return c.id
    return None


class BankCategoryMatcher:
    """Classify from the category label some banks export next to each row.

    The label (``TransactionCandidate.bank_category``) is matched against the
    directory categories for the candidate's flow. A bank category takes
    priority over ``fallback`` (usually a ``HistoricalMatcher``); the fallback
    still contributes its payment method, and its subcategory when both agree
    on the category.
    """

    def __init__(
        self, directory: CategoryDirectory, fallback: AssignmentMatcher | None = None
    ) -> None:
        self._directory = directory
        self._fallback = fallback
        self._categories: dict[FlowDirection, list[CategoryOption]] = {}

    async def _category_id(self, candidate: TransactionCandidate) -> str | None:
        if candidate.flow not in self._categories:
            self._categories[candidate.flow] = list(
                await self._directory.list_categories(candidate.flow)
            )
        return match_category_name(candidate.bank_category or "", self._categories[candidate.flow])

    async def match(self, candidate: TransactionCandidate) -> Assignment | None:
        base = await self._fallback.match(candidate) if self._fallback is not None else None
        if not candidate.bank_category:
            return base
        category_id = await self._category_id(candidate)
        if category_id is None:
            return base
        if base is not None and base.category_id == category_id:
            return base
        logger.debug("Bank category %r mapped to %s", candidate.bank_category, category_id)
        return Assignment(
            category_id=category_id,
            subcategory_id=None,
            payment_method_id=base.payment_method_id if base is not None else None,
        )


__all__ = ["AssignmentMatcher", "HistoricalMatcher", "BankCategoryMatcher", "match_category_name"]
