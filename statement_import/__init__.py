"""Public interface for the ``statement_import`` package.

This module exposes the pipeline operations and the public models/errors as
the stable import surface. There is no runtime logic here, only re-exports.
"""

from .api import (
    BankCategoryMatcher,
    ClassificationEngine,
    CommitReport,
    DuplicateReport,
    HistoricalMatcher,
    ImportFlow,
    ImportSettings,
    NormalizationResult,
    ResolvedFormat,
    commit_session,
    compute_fingerprint,
    default_registry,
    detect_entry_signal,
    load_registry,
    load_settings,
    normalize_rows,
    prepare_import,
    prepare_import_from_csv,
    read_statement_file,
    read_statement_rows,
    resolve_duplicates,
    resolve_format,
    suggest_payment_method,
)
from .errors import (
    AmbiguousFlow,
    FormatMismatch,
    IncompleteAssignment,
    InvalidAmount,
    InvalidDate,
    NoUsableRows,
    PersistError,
    RowError,
    StatementImportError,
    TemplateNotFound,
)
from .models import (
    AccountKind,
    Assignment,
    ClassificationStatus,
    ClassificationSummary,
    DateRange,
    EntrySignal,
    FlowDirection,
    ImportAccount,
    RawRow,
    TransactionCandidate,
)
from .session import ImportSession

__all__ = [
    # API
    "default_registry",
    "load_registry",
    "read_statement_rows",
    "read_statement_file",
    "resolve_format",
    "normalize_rows",
    "compute_fingerprint",
    "detect_entry_signal",
    "resolve_duplicates",
    "ClassificationEngine",
    "suggest_payment_method",
    "commit_session",
    "prepare_import",
    "prepare_import_from_csv",
    "ImportFlow",
    "load_settings",
    "ImportSettings",
    "HistoricalMatcher",
    "BankCategoryMatcher",
    # Results
    "ResolvedFormat",
    "NormalizationResult",
    "DuplicateReport",
    "CommitReport",
    "ImportSession",
    # Models / types
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
    # Errors
    "StatementImportError",
    "TemplateNotFound",
    "FormatMismatch",
    "RowError",
    "InvalidDate",
    "InvalidAmount",
    "AmbiguousFlow",
    "NoUsableRows",
    "IncompleteAssignment",
    "PersistError",
]
