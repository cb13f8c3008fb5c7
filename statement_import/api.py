"""Stable import surface for the pipeline operations.

Each stage lives in its own module; this module only re-exports them so hosts
can depend on one path. The SQL-backed store (``statement_import.persistence``)
is deliberately not imported here to keep SQLAlchemy out of the import cost of
hosts that bring their own ``LedgerStore``.
"""

from __future__ import annotations

from .committer import CommitReport, commit_session
from .config import ImportSettings, load_settings
from .duplicates import DuplicateReport, resolve_duplicates
from .fingerprint import compute_fingerprint
from .ingest.csv_reader import read_statement_file, read_statement_rows
from .matching import BankCategoryMatcher, HistoricalMatcher
from .normalizers import NormalizationResult, normalize_rows
from .resolver import ResolvedFormat, resolve_format
from .review import ClassificationEngine, suggest_payment_method
from .signals import detect_entry_signal
from .templates import default_registry, load_registry
from .workflows.import_flow import ImportFlow, prepare_import, prepare_import_from_csv

__all__ = [
    "default_registry",
    "load_registry",
    "read_statement_rows",
    "read_statement_file",
    "resolve_format",
    "ResolvedFormat",
    "normalize_rows",
    "NormalizationResult",
    "compute_fingerprint",
    "detect_entry_signal",
    "resolve_duplicates",
    "DuplicateReport",
    "HistoricalMatcher",
    "BankCategoryMatcher",
    "ClassificationEngine",
    "suggest_payment_method",
    "commit_session",
    "CommitReport",
    "prepare_import",
    "prepare_import_from_csv",
    "ImportFlow",
    "ImportSettings",
    "load_settings",
]
