from __future__ import annotations

import hashlib
from dataclasses import replace
from datetime import date, time
from decimal import Decimal

from statement_import.fingerprint import compute_fingerprint, fingerprint_payload
from statement_import.models import AccountKind, FlowDirection, TransactionCandidate


def _cand(**overrides) -> TransactionCandidate:
    base = TransactionCandidate(
        position=0,
        date=date(2025, 1, 15),
        time=None,
        amount=Decimal("150.00"),
        flow=FlowDirection.OUTFLOW,
        description="Uber Trip São Paulo",
        account_id="acc-1",
        account_kind=AccountKind.CREDIT_CARD,
    )
    return replace(base, **overrides)


def test_payload_format_and_half_up_rounding():
    assert fingerprint_payload("2025-01-15", "  Uber  ", Decimal("10.005")) == "2025-01-15_Uber_10.01"
    assert fingerprint_payload("2025-01-15T16:20:00", "x", Decimal("7")) == "2025-01-15T16:20:00_x_7.00"


def test_fingerprint_is_sha256_hex_of_payload():
    expected = hashlib.sha256("2025-01-15_Uber Trip São Paulo_150.00".encode()).hexdigest()
    fp = compute_fingerprint(_cand())
    assert fp == expected
    assert len(fp) == 64
    assert int(fp, 16) >= 0


def test_deterministic_and_independent_of_source_identifiers():
    a = _cand(reference="nubank-1", position=3, source_template="nubank_card")
    b = _cand(reference="other-id", position=9, source_template=None)
    assert compute_fingerprint(a) == compute_fingerprint(b)


def test_flow_does_not_change_identity():
    a = _cand(flow=FlowDirection.OUTFLOW)
    b = _cand(flow=FlowDirection.INFLOW)
    assert compute_fingerprint(a) == compute_fingerprint(b)


def test_discriminates_on_each_identity_field():
    base = compute_fingerprint(_cand())
    assert compute_fingerprint(_cand(description="Uber Trip Sao Paulo")) != base
    assert compute_fingerprint(_cand(amount=Decimal("150.01"))) != base
    assert compute_fingerprint(_cand(date=date(2025, 1, 16))) != base
    assert compute_fingerprint(_cand(time=time(0, 0))) != base


def test_amount_equal_after_rounding_collides():
    assert compute_fingerprint(_cand(amount=Decimal("150.001"))) == compute_fingerprint(
        _cand(amount=Decimal("150.00"))
    )
