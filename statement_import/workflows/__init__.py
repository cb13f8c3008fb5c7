"""High-level orchestration of the import pipeline."""

from __future__ import annotations

from .import_flow import ImportFlow, prepare_import, prepare_import_from_csv

__all__ = ["ImportFlow", "prepare_import", "prepare_import_from_csv"]
