"""Bank template catalog.

A template describes how one bank lays out its statement export: which column
names carry each logical field (in priority order), the locale conventions of
the file, and the help text shown to users picking a bank.

Templates are loaded from a versioned JSON seed packaged under
``statement_import/ingest/seeds`` and validated with Pydantic. They are frozen
once loaded; ``TemplateRegistry`` only hands out the same immutable objects.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Iterator
from enum import StrEnum
from functools import cache
from importlib import resources
from os import PathLike
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .errors import TemplateNotFound
from .logging_setup import get_logger
from .models import AccountKind

logger = get_logger("statement_import.templates")

SEED_RESOURCE = "seeds/bank_templates.v1.json"
SEED_SCHEMA_VERSION = 1


class TemplateCategory(StrEnum):
    CARD = "card"
    ACCOUNT = "account"

    @classmethod
    def for_account(cls, kind: AccountKind) -> TemplateCategory:
        return cls.CARD if kind.is_card else cls.ACCOUNT


# ---------------------------------------------------------------------------
# Seed schema
# ---------------------------------------------------------------------------


def _clean_aliases(v: tuple[str, ...]) -> tuple[str, ...]:
    cleaned = tuple(a.strip() for a in v if a.strip())
    if not cleaned:
        raise ValueError("alias list must contain at least one non-empty name")
    return cleaned


class CreditDebitColumns(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    credit: tuple[str, ...]
    debit: tuple[str, ...]

    @field_validator("credit", "debit")
    @classmethod
    def _non_empty(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        return _clean_aliases(v)


class TemplateColumns(BaseModel):
    """Alias lists per logical field; earlier aliases win."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    date: tuple[str, ...]
    amount: tuple[str, ...] | None = None
    credit_debit: CreditDebitColumns | None = None
    description: tuple[str, ...]
    identifier: tuple[str, ...] = ()
    # Bank-side category label, used for automatic classification.
    category: tuple[str, ...] = ()

    @field_validator("date", "description")
    @classmethod
    def _required_aliases(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        return _clean_aliases(v)

    @field_validator("amount")
    @classmethod
    def _optional_aliases(cls, v: tuple[str, ...] | None) -> tuple[str, ...] | None:
        if v is None:
            return None
        return _clean_aliases(v)

    @field_validator("identifier", "category")
    @classmethod
    def _optional_list_aliases(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(a.strip() for a in v if a.strip())

    @model_validator(mode="after")
    def _amount_or_split(self) -> TemplateColumns:
        if self.amount is None and self.credit_debit is None:
            raise ValueError("template columns must declare 'amount' or 'credit_debit'")
        return self


class LocaleConventions(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    field_separator: str = ","
    decimal_separator: str = "."
    header_rows_to_skip: int = Field(default=0, ge=0)
    encoding: str = "utf-8"

    @field_validator("field_separator")
    @classmethod
    def _single_char(cls, v: str) -> str:
        if len(v) != 1:
            raise ValueError("field_separator must be a single character")
        return v

    @field_validator("decimal_separator")
    @classmethod
    def _known_decimal(cls, v: str) -> str:
        if v not in {".", ","}:
            raise ValueError("decimal_separator must be '.' or ','")
        return v

    @property
    def thousands_separator(self) -> str:
        return "." if self.decimal_separator == "," else ","


class TemplateInstructions(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", str_strip_whitespace=True)

    tutorial_url: str = ""
    summary: str


class TemplateExample(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    headers: str
    lines: tuple[str, ...] = ()


class BankTemplate(BaseModel):
    """One bank export layout."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str
    display_name: str
    category: TemplateCategory
    columns: TemplateColumns
    locale: LocaleConventions = LocaleConventions()
    min_columns: int = Field(default=1, ge=1)
    instructions: TemplateInstructions
    example: TemplateExample
    generic: bool = False

    @field_validator("id", "display_name")
    @classmethod
    def _non_blank(cls, v: str) -> str:
        s = v.strip()
        if not s:
            raise ValueError("must be a non-empty string")
        return s


class _SeedFile(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    schema_version: int
    templates: list[BankTemplate]

    @field_validator("schema_version")
    @classmethod
    def _supported_version(cls, v: int) -> int:
        if v != SEED_SCHEMA_VERSION:
            raise ValueError(f"unsupported template seed schema_version: {v}")
        return v


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class TemplateRegistry:
    """Read-only, ordered collection of bank templates."""

    def __init__(self, templates: Iterable[BankTemplate]) -> None:
        items = tuple(templates)
        by_id: dict[str, BankTemplate] = {}
        for t in items:
            if t.id in by_id:
                raise ValueError(f"duplicate template id: {t.id!r}")
            by_id[t.id] = t
        generics = [t for t in items if t.generic]
        if len(generics) > 1:
            raise ValueError("at most one generic template may be registered")
        self._templates = items
        self._by_id = by_id

    @classmethod
    def from_payload(cls, payload: Any) -> TemplateRegistry:
        """Validate a decoded seed document and build a registry from it."""

        seed = _SeedFile.model_validate(payload)
        return cls(seed.templates)

    def __iter__(self) -> Iterator[BankTemplate]:
        return iter(self._templates)

    def __len__(self) -> int:
        return len(self._templates)

    def __contains__(self, template_id: object) -> bool:
        return template_id in self._by_id

    def get_by_id(self, template_id: str) -> BankTemplate:
        try:
            return self._by_id[template_id]
        except KeyError:
            raise TemplateNotFound(template_id) from None

    def list_all(self) -> tuple[BankTemplate, ...]:
        return self._templates

    def list_by_category(self, category: TemplateCategory | AccountKind | str) -> tuple[BankTemplate, ...]:
        """Templates for a template category, or for the category an account kind implies."""

        if isinstance(category, AccountKind):
            wanted = TemplateCategory.for_account(category)
        else:
            wanted = TemplateCategory(category)
        return tuple(t for t in self._templates if t.category is wanted)

    def list_bank_templates(self) -> tuple[BankTemplate, ...]:
        """Bank-specific templates only (the generic fallback excluded)."""

        return tuple(t for t in self._templates if not t.generic)

    def generic(self) -> BankTemplate:
        for t in self._templates:
            if t.generic:
                return t
        raise TemplateNotFound("generic")


def load_registry(path: str | PathLike[str]) -> TemplateRegistry:
    """Load a registry from a seed JSON file on disk."""

    p = Path(path)
    with p.open("r", encoding="utf-8") as f:
        payload = json.load(f)
    registry = TemplateRegistry.from_payload(payload)
    logger.info("Loaded %d bank template(s) from %s", len(registry), p)
    return registry


@cache
def default_registry() -> TemplateRegistry:
    """Return the registry built from the packaged seed (loaded once)."""

    seed = resources.files("statement_import.ingest").joinpath(SEED_RESOURCE)
    payload = json.loads(seed.read_text(encoding="utf-8"))
    registry = TemplateRegistry.from_payload(payload)
    logger.debug("Loaded %d packaged bank template(s)", len(registry))
    return registry


__all__ = [
    "TemplateCategory",
    "CreditDebitColumns",
    "TemplateColumns",
    "LocaleConventions",
    "TemplateInstructions",
    "TemplateExample",
    "BankTemplate",
    "TemplateRegistry",
    "load_registry",
    "default_registry",
]
