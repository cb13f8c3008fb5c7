"""The caller-owned handle that carries one import through the pipeline."""

from __future__ import annotations

import uuid
from collections.abc import Iterator
from dataclasses import dataclass, field

from .errors import RowError
from .models import DateRange, ImportAccount, TransactionCandidate
from .normalizers import RowAdvisory
from .resolver import ResolvedFormat


@dataclass(slots=True)
class ImportSession:
    """State of one statement import, from normalized rows to commit.

    Candidates are kept in source order; ``position`` is unique within the
    session and is the handle used by the review operations.
    """

    account: ImportAccount
    resolved: ResolvedFormat
    candidates: list[TransactionCandidate]
    diagnostics: tuple[RowError, ...] = ()
    advisories: tuple[RowAdvisory, ...] = ()
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])

    def __iter__(self) -> Iterator[TransactionCandidate]:
        return iter(self.candidates)

    def __len__(self) -> int:
        return len(self.candidates)

    def get(self, position: int) -> TransactionCandidate:
        for c in self.candidates:
            if c.position == position:
                return c
        raise KeyError(f"no candidate at position {position}")

    def date_range(self) -> DateRange | None:
        if not self.candidates:
            return None
        dates = [c.date for c in self.candidates]
        return DateRange(min(dates), max(dates))


__all__ = ["ImportSession"]
