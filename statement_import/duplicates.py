"""Duplicate screening against the ledger and within the batch.

``resolve_duplicates`` is the first step that talks to the ledger store. It
looks up the fingerprints already stored for the account over the batch's
date range (one query per account), then walks the candidates in source order:

- a candidate whose fingerprint is already stored, or repeats an earlier
  candidate of the same batch, becomes ``DUPLICATE`` and is deselected (the
  first occurrence is kept);
- a candidate seen for the first time gets its default status (``PENDING`` or
  ``RECOGNIZED`` through the optional matcher) and default selection;
- a candidate screened by an earlier run keeps the user's decisions.

Running it again over the same store state changes nothing.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from itertools import groupby

from .ledger import LedgerStore
from .logging_setup import get_logger
from .matching import AssignmentMatcher
from .models import ClassificationStatus, DateRange, TransactionCandidate
from .session import ImportSession
from .signals import selected_by_default

logger = get_logger("statement_import.duplicates")


@dataclass(frozen=True, slots=True)
class DuplicateReport:
    stored: int
    in_batch: int
    recognized: int

    @property
    def duplicates(self) -> int:
        return self.stored + self.in_batch


async def _screen_fresh(cand: TransactionCandidate, matcher: AssignmentMatcher | None) -> bool:
    """Apply default status and selection; return True when recognized."""

    recognized = False
    cand.status = ClassificationStatus.PENDING
    if matcher is not None:
        hit = await matcher.match(cand)
        if hit is not None:
            cand.assignment = hit
            cand.status = ClassificationStatus.RECOGNIZED
            recognized = True
    cand.selected = selected_by_default(cand.entry_signal)
    cand.screened = True
    return recognized


async def resolve_duplicates(
    session_or_candidates: ImportSession | Iterable[TransactionCandidate],
    store: LedgerStore,
    matcher: AssignmentMatcher | None = None,
) -> DuplicateReport:
    """Flag duplicates in place and apply default status/selection.

    Parameters
    ----------
    session_or_candidates:
        An ``ImportSession`` or any iterable of candidates (mutated in place).
    store:
        Ledger store consulted for existing fingerprints.
    matcher:
        Optional hook that recognizes fresh candidates from history (e.g.
        ``HistoricalMatcher``).
    """

    candidates = list(session_or_candidates)
    stored_hits = batch_hits = recognized = 0

    ordered = sorted(candidates, key=lambda c: c.account_id)
    for account_id, group in groupby(ordered, key=lambda c: c.account_id):
        items = sorted(group, key=lambda c: c.position)
        span = DateRange(min(c.date for c in items), max(c.date for c in items))
        stored = await store.query_fingerprints(account_id, span)

        seen: set[str] = set()
        for cand in items:
            if cand.is_committed:
                # Its own insert put the fingerprint in the store.
                seen.add(cand.fingerprint)
                continue

            if cand.fingerprint in stored or cand.fingerprint in seen:
                if cand.fingerprint in stored:
                    stored_hits += 1
                else:
                    batch_hits += 1
                cand.status = ClassificationStatus.DUPLICATE
                cand.selected = False
                cand.screened = True
                continue

            seen.add(cand.fingerprint)
            if cand.screened and not cand.is_duplicate:
                continue
            if await _screen_fresh(cand, matcher):
                recognized += 1

    report = DuplicateReport(stored=stored_hits, in_batch=batch_hits, recognized=recognized)
    logger.info(
        "Duplicate screening: %d candidate(s), %d already stored, %d repeated in batch, %d recognized",
        len(candidates),
        report.stored,
        report.in_batch,
        report.recognized,
    )
    return report


__all__ = ["DuplicateReport", "resolve_duplicates"]
