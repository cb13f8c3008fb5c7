"""Exception taxonomy for the statement import pipeline.

File-level problems (``FormatMismatch``, ``NoUsableRows``) abort an import
attempt. Row-level problems (``RowError`` subclasses) are collected as
diagnostics while sibling rows continue. Commit-time problems
(``IncompleteAssignment``, ``PersistError``) affect a single candidate.
"""

from __future__ import annotations

from collections.abc import Sequence


class StatementImportError(Exception):
    """Base class for every error raised by ``statement_import``."""


class TemplateNotFound(StatementImportError, LookupError):
    def __init__(self, template_id: str) -> None:
        super().__init__(f"unknown bank template: {template_id!r}")
        self.template_id = template_id


class FormatMismatch(StatementImportError):
    """The header of a batch cannot be mapped to the required logical fields.

    Attributes
    ----------
    template_id:
        Template that was requested, or ``None`` for generic detection.
    expected_header:
        Example header line of the requested template (empty when generic).
    found_headers:
        Header names present in the batch, in source order.
    missing:
        Logical fields that could not be resolved (e.g. ``"date"``).
    suggestion:
        Id of another registered template that fits the found headers, when
        one exists. This is a hint, not a guarantee.
    """

    def __init__(
        self,
        *,
        template_id: str | None,
        expected_header: str,
        found_headers: Sequence[str],
        missing: Sequence[str],
        suggestion: str | None = None,
    ) -> None:
        self.template_id = template_id
        self.expected_header = expected_header
        self.found_headers = tuple(found_headers)
        self.missing = tuple(missing)
        self.suggestion = suggestion

        target = f"template {template_id!r}" if template_id else "generic detection"
        msg = (
            f"header does not match {target}: missing {', '.join(self.missing) or 'columns'}. "
            f"Found: {', '.join(self.found_headers) or '(none)'}"
        )
        if expected_header:
            msg += f". Expected something like: {expected_header}"
        if suggestion:
            msg += f". This looks like {suggestion!r}"
        super().__init__(msg)


# ---------------------------------------------------------------------------
# Row-level diagnostics
# ---------------------------------------------------------------------------


class RowError(StatementImportError):
    """A single source row could not be normalized.

    ``index`` is the 0-based position of the row in the batch.
    """

    def __init__(self, index: int, message: str) -> None:
        super().__init__(f"row {index + 1}: {message}")
        self.index = index


class InvalidDate(RowError):
    def __init__(self, raw: str, index: int) -> None:
        super().__init__(index, f"unsupported date {raw!r}")
        self.raw = raw


class InvalidAmount(RowError):
    def __init__(self, raw: str, index: int) -> None:
        super().__init__(index, f"invalid amount {raw!r}")
        self.raw = raw


class AmbiguousFlow(RowError):
    def __init__(self, index: int, credit: str = "", debit: str = "") -> None:
        super().__init__(
            index,
            f"exactly one of credit/debit must be non-zero (credit={credit!r}, debit={debit!r})",
        )
        self.credit = credit
        self.debit = debit


class NoUsableRows(StatementImportError):
    """Raised when not a single row of a batch could be normalized."""

    def __init__(self, diagnostics: Sequence[RowError], total_rows: int) -> None:
        self.diagnostics = tuple(diagnostics)
        self.total_rows = total_rows
        super().__init__(
            f"no usable transactions: {total_rows} row(s) read, "
            f"{len(self.diagnostics)} rejected"
        )


# ---------------------------------------------------------------------------
# Commit-time errors
# ---------------------------------------------------------------------------


class IncompleteAssignment(StatementImportError):
    def __init__(self, position: int, missing: Sequence[str]) -> None:
        self.position = position
        self.missing = tuple(missing)
        super().__init__(
            f"candidate {position} is selected but lacks {', '.join(self.missing)}"
        )


class PersistError(StatementImportError):
    """The ledger store rejected one candidate."""

    def __init__(self, message: str, *, position: int | None = None) -> None:
        super().__init__(message)
        self.position = position


__all__ = [
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
