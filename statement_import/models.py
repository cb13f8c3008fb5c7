"""Data models shared by the import pipeline stages.

Raw rows stay opaque (``RawRow``) until the format resolver has produced a
field map; from then on every stage works with the typed objects defined here.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, time
from decimal import Decimal
from enum import StrEnum

# ---------------------------------------------------------------------------
# Raw input
# ---------------------------------------------------------------------------

type RawRow = Mapping[str, str]
"""One line of a decoded statement export, keyed by the source's column names."""


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class AccountKind(StrEnum):
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    CHECKING = "checking"
    SAVINGS = "savings"
    CASH = "cash"
    INVESTMENT = "investment"

    @property
    def is_card(self) -> bool:
        """Card accounts report charges as positive amounts."""
        return self in (AccountKind.CREDIT_CARD, AccountKind.DEBIT_CARD)


class FlowDirection(StrEnum):
    INFLOW = "inflow"
    OUTFLOW = "outflow"


class ClassificationStatus(StrEnum):
    PENDING = "pending"
    RECOGNIZED = "recognized"
    USER_CLASSIFIED = "user_classified"
    DUPLICATE = "duplicate"


class EntrySignal(StrEnum):
    """What a statement line most likely represents (see ``signals``)."""

    PAYMENT_CREDIT = "payment_credit"
    ACCOUNTING_ADJUSTMENT = "accounting_adjustment"
    FEE_INTEREST = "fee_interest"
    REAL_EXPENSE = "real_expense"


# ---------------------------------------------------------------------------
# Accounts and classification
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ImportAccount:
    """The ledger account a statement is imported into."""

    id: str
    kind: AccountKind


@dataclass(frozen=True, slots=True)
class Assignment:
    """Category, subcategory and payment method chosen for a candidate.

    Any field may be ``None`` while the user is still classifying; the
    committer requires all three.
    """

    category_id: str | None = None
    subcategory_id: str | None = None
    payment_method_id: str | None = None

    @property
    def is_complete(self) -> bool:
        return bool(self.category_id and self.subcategory_id and self.payment_method_id)

    def missing_fields(self) -> tuple[str, ...]:
        names = ("category_id", "subcategory_id", "payment_method_id")
        return tuple(n for n in names if not getattr(self, n))


@dataclass(frozen=True, slots=True)
class DateRange:
    """Inclusive calendar range used to scope ledger fingerprint lookups."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError(f"DateRange end {self.end} precedes start {self.start}")


# ---------------------------------------------------------------------------
# Candidates
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class TransactionCandidate:
    """A normalized statement row moving through dedup, review and commit.

    ``position`` is the 0-based index of the source row and identifies the
    candidate inside its session. ``reference`` keeps a source-provided
    identifier for display/storage only; identity is ``fingerprint``.
    """

    position: int
    date: date
    time: time | None
    amount: Decimal
    flow: FlowDirection
    description: str
    account_id: str
    account_kind: AccountKind
    fingerprint: str = ""
    reference: str | None = None
    # Category label exported by the bank, when the layout has one.
    bank_category: str | None = None
    source_template: str | None = None
    entry_signal: EntrySignal = EntrySignal.REAL_EXPENSE
    status: ClassificationStatus = ClassificationStatus.PENDING
    assignment: Assignment = field(default_factory=Assignment)
    selected: bool = False
    # Set once duplicate screening has applied the default status/selection.
    screened: bool = False
    transaction_id: int | None = None

    @property
    def is_duplicate(self) -> bool:
        return self.status is ClassificationStatus.DUPLICATE

    @property
    def is_committed(self) -> bool:
        return self.transaction_id is not None

    @property
    def date_with_time(self) -> str:
        """ISO date, plus ``THH:MM:SS`` when the source carried a time of day."""
        if self.time is None:
            return self.date.isoformat()
        return f"{self.date.isoformat()}T{self.time.isoformat(timespec='seconds')}"


@dataclass(frozen=True, slots=True)
class ClassificationSummary:
    """Progress counters for the review step.

    ``recognized`` includes user-classified candidates.
    """

    recognized: int
    pending: int
    duplicate: int
    selected: int = 0

    @property
    def total(self) -> int:
        return self.recognized + self.pending + self.duplicate


__all__ = [
    "RawRow",
    "AccountKind",
    "FlowDirection",
    "ClassificationStatus",
    "EntrySignal",
    "ImportAccount",
    "Assignment",
    "DateRange",
    "TransactionCandidate",
    "ClassificationSummary",
]
