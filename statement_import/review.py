"""Interactive classification of an import session.

``ClassificationEngine`` is the only way the review step mutates candidates.
Every operation addresses a candidate by its ``position`` and is a no-op on
duplicates, which stay unselected and read-only until the session ends.

The engine holds no I/O of its own; option lookups go through a
``CategoryDirectory`` supplied by the caller.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, replace

from .ledger import CategoryDirectory, CategoryOption, PaymentMethodOption, SubcategoryOption
from .logging_setup import get_logger, session_logger
from .models import (
    AccountKind,
    Assignment,
    ClassificationStatus,
    ClassificationSummary,
    TransactionCandidate,
)
from .session import ImportSession

logger = get_logger("statement_import.review")

_EDITABLE = (ClassificationStatus.PENDING, ClassificationStatus.RECOGNIZED)


@dataclass(frozen=True, slots=True)
class CategoryOptions:
    """Choices offered for one candidate: categories for its flow and the
    subcategories of its current category (empty when none is chosen)."""

    categories: tuple[CategoryOption, ...]
    subcategories: tuple[SubcategoryOption, ...]


def _merge(current: Assignment, update: Assignment) -> Assignment:
    category = update.category_id or current.category_id
    subcategory = update.subcategory_id or current.subcategory_id
    if update.category_id and update.category_id != current.category_id and not update.subcategory_id:
        # Subcategories belong to one category; a new category invalidates the old one.
        subcategory = None
    if subcategory and not category:
        raise ValueError("a subcategory requires a category")
    return Assignment(
        category_id=category,
        subcategory_id=subcategory,
        payment_method_id=update.payment_method_id or current.payment_method_id,
    )


class ClassificationEngine:
    """Review operations over one ``ImportSession``."""

    def __init__(self, session: ImportSession) -> None:
        self.session = session
        self._log = session_logger(logger, session.session_id)

    def _editable(self, position: int) -> TransactionCandidate | None:
        cand = self.session.get(position)
        if cand.is_duplicate:
            self._log.debug("Ignoring edit of duplicate at position %d", position)
            return None
        return cand

    # -- selection ---------------------------------------------------------

    def toggle_selection(self, position: int, included: bool) -> bool:
        """Include or exclude a candidate from the commit; False for duplicates."""

        cand = self._editable(position)
        if cand is None:
            return False
        cand.selected = included
        return True

    def select_all(self, included: bool = True) -> int:
        """Apply ``included`` to every non-duplicate candidate; return how many."""

        count = 0
        for cand in self.session:
            if not cand.is_duplicate:
                cand.selected = included
                count += 1
        return count

    # -- assignment --------------------------------------------------------

    def classify(self, position: int, assignment: Assignment) -> bool:
        """Merge ``assignment`` into the candidate's current one.

        Fields left as ``None`` keep their current value. Choosing a different
        category clears the previous subcategory unless ``assignment`` also
        names one. The candidate becomes ``USER_CLASSIFIED``.

        Returns ``False`` (and changes nothing) for duplicates.
        """

        cand = self._editable(position)
        if cand is None:
            return False
        cand.assignment = _merge(cand.assignment, assignment)
        if cand.status in _EDITABLE:
            cand.status = ClassificationStatus.USER_CLASSIFIED
        return True

    def set_category(self, position: int, category_id: str) -> bool:
        return self.classify(position, Assignment(category_id=category_id))

    def set_subcategory(self, position: int, subcategory_id: str) -> bool:
        return self.classify(position, Assignment(subcategory_id=subcategory_id))

    def set_payment_method(self, position: int, payment_method_id: str) -> bool:
        return self.classify(position, Assignment(payment_method_id=payment_method_id))

    def prefill_payment_method(self, methods: Sequence[PaymentMethodOption]) -> int:
        """Fill the suggested payment method into candidates that lack one.

        Status is left untouched so prefilled rows still count as pending.
        Returns the number of candidates updated.
        """

        count = 0
        for cand in self.session:
            if cand.is_duplicate or cand.assignment.payment_method_id:
                continue
            method = suggest_payment_method(methods, cand.account_kind)
            if method is None:
                break
            cand.assignment = replace(cand.assignment, payment_method_id=method.id)
            count += 1
        return count

    # -- progress ----------------------------------------------------------

    def summarize(self) -> ClassificationSummary:
        recognized = pending = duplicate = selected = 0
        for cand in self.session:
            if cand.status is ClassificationStatus.DUPLICATE:
                duplicate += 1
                continue
            if cand.status is ClassificationStatus.PENDING:
                pending += 1
            else:
                recognized += 1
            if cand.selected:
                selected += 1
        return ClassificationSummary(
            recognized=recognized, pending=pending, duplicate=duplicate, selected=selected
        )

    def committable(self) -> list[TransactionCandidate]:
        """Selected, non-duplicate candidates not committed yet, in source order."""

        return [
            c for c in self.session if c.selected and not c.is_duplicate and not c.is_committed
        ]

    # -- options -----------------------------------------------------------

    async def category_options(self, position: int, directory: CategoryDirectory) -> CategoryOptions:
        cand = self.session.get(position)
        categories = tuple(await directory.list_categories(cand.flow))
        subcategories: tuple[SubcategoryOption, ...] = ()
        if cand.assignment.category_id:
            subcategories = tuple(await directory.list_subcategories(cand.assignment.category_id))
        return CategoryOptions(categories=categories, subcategories=subcategories)


def suggest_payment_method(
    methods: Sequence[PaymentMethodOption], account_kind: AccountKind
) -> PaymentMethodOption | None:
    """Pick the payment method to preselect for an account.

    Card accounts prefer a ``credit`` method; otherwise (or when no credit
    method exists) a PIX method wins, then the first active method.
    """

    active = [m for m in methods if m.is_active]
    if not active:
        return None
    if account_kind.is_card:
        for m in active:
            if m.kind == "credit":
                return m
    for m in active:
        if m.kind == "pix" or "pix" in m.name.casefold():
            return m
    return active[0]


__all__ = ["CategoryOptions", "ClassificationEngine", "suggest_payment_method"]
