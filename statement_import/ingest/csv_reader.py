"""Decode CSV statement exports into raw rows.

Parsing follows RFC 4180 rules via the stdlib :mod:`csv` module (quoted fields
with embedded separators and newlines, doubled quotes). The field separator and
the number of preamble lines come from the template's locale conventions; some
banks prepend a company header block above the real column header.
"""

from __future__ import annotations

import csv
import io
from os import PathLike
from pathlib import Path
from typing import NamedTuple

from ..logging_setup import get_logger
from ..templates import LocaleConventions

logger = get_logger("statement_import.ingest.csv_reader")


class StatementRows(NamedTuple):
    """Header names (trimmed, source order) and the data rows keyed by them."""

    headers: tuple[str, ...]
    rows: list[dict[str, str]]


def _skip_preamble(text: str, count: int) -> str:
    if count <= 0:
        return text
    # Keep original line endings so quoted newlines after the header survive.
    lines = text.splitlines(keepends=True)
    if count >= len(lines):
        raise csv.Error(
            f"statement has {len(lines)} line(s); cannot skip {count} preamble line(s)"
        )
    return "".join(lines[count:])


def read_statement_rows(text: str, locale: LocaleConventions | None = None) -> StatementRows:
    """Parse decoded CSV text into ``StatementRows``.

    Parameters
    ----------
    text:
        Full file contents, already decoded. A leading BOM is ignored.
    locale:
        Conventions of the source template; defaults to comma-separated with no
        preamble.

    Raises
    ------
    csv.Error
        When the text has no header row or fewer lines than the preamble.
    """

    loc = locale or LocaleConventions()
    body = _skip_preamble(text.removeprefix("\ufeff"), loc.header_rows_to_skip)

    with io.StringIO(body, newline="") as f:
        reader = csv.reader(f, delimiter=loc.field_separator)
        header_row = next(reader, None)
        if not header_row or all(not h.strip() for h in header_row):
            raise csv.Error("CSV appears to have no header row")
        headers = tuple(h.strip() for h in header_row)

        rows: list[dict[str, str]] = []
        blank = 0
        for values in reader:
            if all(not v.strip() for v in values):
                blank += 1
                continue
            # Short rows are padded; cells beyond the header are dropped.
            row = {h: (values[i] if i < len(values) else "") for i, h in enumerate(headers) if h}
            rows.append(row)

    if blank:
        logger.debug("Dropped %d blank line(s)", blank)
    logger.debug("Read %d row(s) with %d column(s)", len(rows), len(headers))
    return StatementRows(headers=headers, rows=rows)


def read_statement_file(
    path: str | PathLike[str], locale: LocaleConventions | None = None
) -> StatementRows:
    """Read and parse a statement export from disk using the locale's encoding."""

    loc = locale or LocaleConventions()
    p = Path(path)
    encoding = "utf-8-sig" if loc.encoding.lower().replace("_", "-") == "utf-8" else loc.encoding
    with p.open("r", encoding=encoding, newline="") as f:
        text = f.read()
    return read_statement_rows(text, loc)


__all__ = ["StatementRows", "read_statement_rows", "read_statement_file"]
