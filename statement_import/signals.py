"""Flag what a statement line most likely represents.

Card statements mix real purchases with bill payments, refunds, interest and
bank-internal adjustments. The signal is a keyword heuristic over the
description (accent- and case-insensitive) plus the flow direction; it only
drives the default selection of a candidate, never its classification.
"""

from __future__ import annotations

import re
import unicodedata

from .models import EntrySignal, FlowDirection

_PAYMENT_CREDIT = re.compile(
    r"pagamento|payment|credito|\bcredit|estorno|refund|reembolso|encerramento|settlement"
)
_ADJUSTMENT = re.compile(r"saldo em atraso|credito de atraso|ajuste|adjustment")
_FEE_INTEREST = re.compile(r"juro|\biof\b|multa|tarifa|taxa|interest|\bfees?\b|late charge")


def _fold(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(c for c in decomposed if not unicodedata.combining(c)).casefold()


def detect_entry_signal(description: str, flow: FlowDirection) -> EntrySignal:
    """Classify a line as payment/credit, adjustment, fee/interest or real expense.

    Checks run in that order; payment/credit only applies to inflows.
    """

    text = _fold(description)
    if flow is FlowDirection.INFLOW and _PAYMENT_CREDIT.search(text):
        return EntrySignal.PAYMENT_CREDIT
    if _ADJUSTMENT.search(text):
        return EntrySignal.ACCOUNTING_ADJUSTMENT
    if _FEE_INTEREST.search(text):
        return EntrySignal.FEE_INTEREST
    return EntrySignal.REAL_EXPENSE


def selected_by_default(signal: EntrySignal) -> bool:
    """Real expenses and financial costs are preselected; the rest is opt-in."""

    return signal in (EntrySignal.REAL_EXPENSE, EntrySignal.FEE_INTEREST)


__all__ = ["detect_entry_signal", "selected_by_default"]
