"""Input helpers that turn exported statement files into raw rows."""

from __future__ import annotations

from .csv_reader import read_statement_file, read_statement_rows

__all__ = ["read_statement_rows", "read_statement_file"]
