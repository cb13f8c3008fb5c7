"""Pytest configuration for test isolation.

Tests must not pick up a developer's ledger through ``DATABASE_URL`` or a
custom template seed, and SQLite engines cached by ``ledger_db.client`` must
not leak between tests (each test gets its own temporary database file).
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from ledger_db.client import dispose_engines


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("DATABASE_URL", "STATEMENT_IMPORT_LOG_LEVEL", "STATEMENT_IMPORT_TEMPLATES"):
        # setenv first so monkeypatch also undoes values a test loads from a .env file.
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


@pytest.fixture(autouse=True)
def _dispose_engines() -> Iterator[None]:
    yield
    dispose_engines()
