"""Content fingerprint used as the identity of an imported transaction.

The fingerprint is a SHA-256 hex digest over the canonical date-with-time, the
full trimmed description and the absolute amount rounded to cents. It is
deterministic and salt-free, and deliberately ignores source-provided
identifiers: the same purchase exported twice (even by different templates)
produces the same fingerprint.
"""

from __future__ import annotations

import hashlib
from decimal import ROUND_HALF_UP, Decimal

from .models import TransactionCandidate

_CENT = Decimal("0.01")


def fingerprint_payload(date_with_time: str, description: str, amount: Decimal) -> str:
    """Return the exact string that gets hashed."""

    q = abs(amount).quantize(_CENT, rounding=ROUND_HALF_UP)
    return f"{date_with_time}_{description.strip()}_{q:.2f}"


def compute_fingerprint(candidate: TransactionCandidate) -> str:
    """Compute the 64-char hex fingerprint of ``candidate``."""

    payload = fingerprint_payload(candidate.date_with_time, candidate.description, candidate.amount)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


__all__ = ["fingerprint_payload", "compute_fingerprint"]
