"""Raw rows → canonical transaction candidates.

Each row is normalized independently: a bad date or amount becomes a
``RowError`` diagnostic and the remaining rows continue. Only a batch in which
no row survives is rejected as a whole (``NoUsableRows``).

Amounts are canonicalized to non-negative ``Decimal`` values with a separate
flow direction. For a single signed amount column, the meaning of the sign
depends on the account kind: card statements list charges as positive values,
bank accounts list deposits as positive values.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from functools import cache

from .errors import AmbiguousFlow, InvalidAmount, InvalidDate, NoUsableRows, RowError
from .fingerprint import compute_fingerprint
from .logging_setup import get_logger
from .models import AccountKind, FlowDirection, ImportAccount, RawRow, TransactionCandidate
from .resolver import LogicalField, ResolvedFormat
from .signals import detect_entry_signal
from .templates import LocaleConventions

logger = get_logger("statement_import.normalizers")

# ---------------------------------------------------------------------------
# Helpers (date/amount parsing)
# ---------------------------------------------------------------------------

# ISO dates go through ``fromisoformat`` (fractional seconds, ``Z`` and offsets
# included); the day-first patterns below are tried in order after that.
_ISO_DATE = re.compile(r"\d{4}-\d{2}-\d{2}")
_ISO_DATE_TIME = re.compile(r"\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}.*")
_DAY_FIRST_FORMATS: tuple[tuple[str, bool], ...] = (
    ("%d/%m/%Y", False),
    ("%d-%m-%Y", False),
    ("%d/%m/%Y %H:%M:%S", True),
    ("%d/%m/%Y %H:%M", True),
)

_CURRENCY_MARKERS = ("R$", "US$", "$", "€", "£")
# Brazilian notation ("150,00", "1.234,56") read in a dot-decimal context.
_COMMA_DECIMAL = re.compile(r"\d{1,3}(?:\.\d{3})+,\d{1,2}|\d+,\d{1,2}")


@cache
def _amount_pattern(decimal_sep: str, thousands_sep: str) -> re.Pattern[str]:
    dec = re.escape(decimal_sep)
    thou = re.escape(thousands_sep)
    # Thousands separators only count between complete groups of three digits.
    return re.compile(rf"\d{{1,3}}(?:{thou}\d{{3}})+(?:{dec}\d+)?|\d+(?:{dec}\d+)?")


def parse_date(raw: str) -> tuple[date, time | None]:
    """Parse a statement date, keeping the time of day when the source has one.

    A zone suffix is dropped; the wall-clock time of the statement is kept.
    Raises ``ValueError`` when no supported pattern matches.
    """

    s = raw.strip()
    if _ISO_DATE.fullmatch(s):
        return date.fromisoformat(s), None
    if _ISO_DATE_TIME.fullmatch(s):
        dt = datetime.fromisoformat(s)
        return dt.date(), dt.time()
    for fmt, has_time in _DAY_FIRST_FORMATS:
        try:
            dt = datetime.strptime(s, fmt)
        except ValueError:
            continue
        return dt.date(), (dt.time() if has_time else None)
    raise ValueError(f"unsupported date: {raw!r}")


def _strip_marker(s: str) -> str:
    for marker in _CURRENCY_MARKERS:
        if s.startswith(marker):
            return s[len(marker) :]
    return s


def parse_decimal(
    raw: str, locale: LocaleConventions, *, comma_decimal_fallback: bool = False
) -> Decimal:
    """Parse a signed amount written with the locale's separators.

    Whitespace and a currency marker are stripped, then at most one sign
    (``+``/``-``) or one pair of accounting parentheses. The remaining digits
    must use the locale's decimal separator and, if any, its thousands
    separator between groups of three digits. Anything else raises
    ``ValueError``.

    Parameters
    ----------
    comma_decimal_fallback:
        Also accept ``"150,00"``/``"1.234,56"`` under a dot-decimal locale.
        Used for generic detection, where the real convention is unknown.
    """

    s = _strip_marker("".join(raw.split()))
    if not s:
        raise ValueError("amount is empty")

    negative = False
    if s[0] in "+-":
        negative = s[0] == "-"
        s = _strip_marker(s[1:])
    elif s.startswith("(") and s.endswith(")"):
        negative = True
        s = _strip_marker(s[1:-1])

    dec, thou = locale.decimal_separator, locale.thousands_separator
    if _amount_pattern(dec, thou).fullmatch(s):
        normalized = s.replace(thou, "").replace(dec, ".")
    elif comma_decimal_fallback and dec == "." and _COMMA_DECIMAL.fullmatch(s):
        normalized = s.replace(".", "").replace(",", ".")
    else:
        raise ValueError(f"invalid amount: {raw!r}")
    try:
        d = Decimal(normalized)
    except InvalidOperation as exc:
        raise ValueError(f"invalid amount: {raw!r}") from exc
    return -d if negative else d


def _direction_for_signed(value: Decimal, kind: AccountKind) -> FlowDirection:
    # Zero follows the positive branch.
    positive = value >= 0
    if kind.is_card:
        return FlowDirection.OUTFLOW if positive else FlowDirection.INFLOW
    return FlowDirection.INFLOW if positive else FlowDirection.OUTFLOW


def _cell(row: RawRow, column: str | None) -> str:
    if column is None:
        return ""
    return row.get(column) or ""


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RowAdvisory:
    """Non-fatal remark about an accepted row (e.g. empty description)."""

    index: int
    code: str
    message: str


@dataclass(frozen=True, slots=True)
class NormalizationResult:
    candidates: list[TransactionCandidate]
    diagnostics: tuple[RowError, ...] = ()
    advisories: tuple[RowAdvisory, ...] = ()
    total_rows: int = 0
    skipped_blank: int = 0


# ---------------------------------------------------------------------------
# Row normalization
# ---------------------------------------------------------------------------


def _amount_and_flow(
    row: RawRow, index: int, resolved: ResolvedFormat, kind: AccountKind
) -> tuple[Decimal, FlowDirection]:
    loc = resolved.locale
    # Generic detection cannot know the decimal convention of the source.
    lenient = resolved.template_id is None
    if resolved.uses_credit_debit:
        raw_credit = _cell(row, resolved.column(LogicalField.CREDIT)).strip()
        raw_debit = _cell(row, resolved.column(LogicalField.DEBIT)).strip()
        values: list[Decimal] = []
        for raw in (raw_credit, raw_debit):
            if not raw:
                values.append(Decimal(0))
                continue
            try:
                values.append(parse_decimal(raw, loc, comma_decimal_fallback=lenient))
            except ValueError:
                raise InvalidAmount(raw, index) from None
        credit, debit = values
        if (credit != 0) == (debit != 0):
            raise AmbiguousFlow(index, raw_credit, raw_debit)
        if credit != 0:
            return abs(credit), FlowDirection.INFLOW
        return abs(debit), FlowDirection.OUTFLOW

    raw_amount = _cell(row, resolved.column(LogicalField.AMOUNT))
    try:
        value = parse_decimal(raw_amount, loc, comma_decimal_fallback=lenient)
    except ValueError:
        raise InvalidAmount(raw_amount, index) from None
    return abs(value), _direction_for_signed(value, kind)


def normalize_row(
    row: RawRow,
    index: int,
    resolved: ResolvedFormat,
    account: ImportAccount,
) -> TransactionCandidate:
    """Normalize one row; raises a ``RowError`` subclass on bad input."""

    raw_date = _cell(row, resolved.column(LogicalField.DATE))
    try:
        d, t = parse_date(raw_date)
    except ValueError:
        raise InvalidDate(raw_date, index) from None

    amount, flow = _amount_and_flow(row, index, resolved, account.kind)
    description = _cell(row, resolved.column(LogicalField.DESCRIPTION)).strip()
    reference = _cell(row, resolved.column(LogicalField.IDENTIFIER)).strip() or None
    bank_category = _cell(row, resolved.column(LogicalField.BANK_CATEGORY)).strip() or None

    candidate = TransactionCandidate(
        position=index,
        date=d,
        time=t,
        amount=amount,
        flow=flow,
        description=description,
        account_id=account.id,
        account_kind=account.kind,
        reference=reference,
        bank_category=bank_category,
        source_template=resolved.template_id,
        entry_signal=detect_entry_signal(description, flow),
    )
    candidate.fingerprint = compute_fingerprint(candidate)
    return candidate


def normalize_rows(
    rows: Sequence[RawRow],
    resolved: ResolvedFormat,
    account: ImportAccount,
) -> NormalizationResult:
    """Normalize a batch of rows into candidates plus diagnostics.

    Fully blank rows are skipped silently; their index is still consumed so
    positions keep pointing at source rows.

    Raises
    ------
    NoUsableRows
        When not a single row could be normalized.
    """

    candidates: list[TransactionCandidate] = []
    diagnostics: list[RowError] = []
    advisories: list[RowAdvisory] = []
    blank = 0

    for index, row in enumerate(rows):
        if all(not (v or "").strip() for v in row.values()):
            blank += 1
            continue
        try:
            cand = normalize_row(row, index, resolved, account)
        except RowError as exc:
            logger.debug("Rejected %s", exc)
            diagnostics.append(exc)
            continue
        if not cand.description:
            advisories.append(RowAdvisory(index, "empty_description", "row has no description"))
        if cand.amount == 0:
            advisories.append(RowAdvisory(index, "zero_amount", "row amount is zero"))
        candidates.append(cand)

    if not candidates:
        logger.warning(
            "No usable rows: %d read, %d rejected, %d blank", len(rows), len(diagnostics), blank
        )
        raise NoUsableRows(diagnostics, len(rows))

    logger.info(
        "Normalized %d of %d row(s) (%d rejected, %d advisory)",
        len(candidates),
        len(rows),
        len(diagnostics),
        len(advisories),
    )
    return NormalizationResult(
        candidates=candidates,
        diagnostics=tuple(diagnostics),
        advisories=tuple(advisories),
        total_rows=len(rows),
        skipped_blank=blank,
    )


__all__ = [
    "RowAdvisory",
    "NormalizationResult",
    "parse_date",
    "parse_decimal",
    "normalize_row",
    "normalize_rows",
]
