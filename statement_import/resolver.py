"""Map a batch's header names onto the logical transaction fields.

``resolve_format`` is pure: it looks only at header names (never at row
values) and either returns a ``ResolvedFormat`` or raises ``FormatMismatch``.
Header names are compared after trimming and case folding, and the alias order
of the template (or of the generic priority lists) decides which column wins
when several match.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import StrEnum
from types import MappingProxyType

from .errors import FormatMismatch
from .templates import BankTemplate, LocaleConventions, TemplateRegistry, default_registry


class LogicalField(StrEnum):
    DATE = "date"
    AMOUNT = "amount"
    CREDIT = "credit"
    DEBIT = "debit"
    DESCRIPTION = "description"
    IDENTIFIER = "identifier"
    BANK_CATEGORY = "bank_category"


type FieldMap = Mapping[LogicalField, str]


@dataclass(frozen=True, slots=True)
class ResolvedFormat:
    """Outcome of format resolution for one batch.

    ``field_map`` values are the concrete (untrimmed) header names as they
    appear in the rows. ``template_id`` is ``None`` for generic detection.
    """

    field_map: FieldMap
    locale: LocaleConventions
    template_id: str | None = None

    @property
    def uses_credit_debit(self) -> bool:
        return LogicalField.AMOUNT not in self.field_map

    def column(self, field: LogicalField) -> str | None:
        return self.field_map.get(field)


# Fixed priority lists used when no template was chosen.
_GENERIC_ALIASES: dict[LogicalField, tuple[str, ...]] = {
    LogicalField.DATE: ("Data", "date", "Data hora", "Data lançamento", "Data Lancamento"),
    LogicalField.AMOUNT: ("Valor", "amount", "Valor R$", "value"),
    LogicalField.CREDIT: ("Crédito", "Credito", "Crédito R$", "Credito R$", "credit"),
    LogicalField.DEBIT: ("Débito", "Debito", "Débito R$", "Debito R$", "debit"),
    LogicalField.DESCRIPTION: (
        "Descrição",
        "title",
        "Descricao",
        "Histórico",
        "Historico",
        "description",
    ),
    LogicalField.IDENTIFIER: ("Identificador", "id", "identifier", "Documento"),
}


def _fold(name: str) -> str:
    return name.strip().casefold()


def _header_index(headers: Sequence[str]) -> dict[str, str]:
    # First occurrence wins when two headers fold to the same key.
    index: dict[str, str] = {}
    for h in headers:
        index.setdefault(_fold(h), h)
    return index


def _pick(index: Mapping[str, str], aliases: Sequence[str] | None) -> str | None:
    if not aliases:
        return None
    for alias in aliases:
        hit = index.get(_fold(alias))
        if hit is not None:
            return hit
    return None


def _match(
    headers: Sequence[str],
    aliases: Mapping[LogicalField, Sequence[str] | None],
    *,
    min_columns: int = 1,
) -> tuple[dict[LogicalField, str], list[str]]:
    """Return the field map and the names of unresolved required fields."""

    index = _header_index(headers)
    found: dict[LogicalField, str] = {}
    for field in LogicalField:
        hit = _pick(index, aliases.get(field))
        if hit is not None:
            found[field] = hit

    missing: list[str] = []
    if LogicalField.DATE not in found:
        missing.append(LogicalField.DATE.value)

    if LogicalField.AMOUNT in found:
        # A single signed amount column takes precedence over a credit/debit split.
        found.pop(LogicalField.CREDIT, None)
        found.pop(LogicalField.DEBIT, None)
    elif LogicalField.CREDIT in found and LogicalField.DEBIT in found:
        pass
    elif aliases.get(LogicalField.AMOUNT):
        missing.append(LogicalField.AMOUNT.value)
    else:
        missing.extend(
            f.value for f in (LogicalField.CREDIT, LogicalField.DEBIT) if f not in found
        )

    if LogicalField.DESCRIPTION not in found:
        missing.append(LogicalField.DESCRIPTION.value)

    non_blank = sum(1 for h in headers if h.strip())
    if non_blank < min_columns:
        missing.append(f"columns (found {non_blank}, need at least {min_columns})")

    return found, missing


def _template_aliases(template: BankTemplate) -> dict[LogicalField, tuple[str, ...] | None]:
    cols = template.columns
    split = cols.credit_debit
    return {
        LogicalField.DATE: cols.date,
        LogicalField.AMOUNT: cols.amount,
        LogicalField.CREDIT: split.credit if split else None,
        LogicalField.DEBIT: split.debit if split else None,
        LogicalField.DESCRIPTION: cols.description,
        LogicalField.IDENTIFIER: cols.identifier,
        LogicalField.BANK_CATEGORY: cols.category,
    }


def _fits(template: BankTemplate, headers: Sequence[str]) -> bool:
    _, missing = _match(headers, _template_aliases(template), min_columns=template.min_columns)
    return not missing


def suggest_template(
    headers: Sequence[str],
    *,
    exclude: str | None = None,
    registry: TemplateRegistry | None = None,
) -> str | None:
    """Return the id of the first bank template the headers satisfy, if any."""

    reg = registry or default_registry()
    for t in reg.list_bank_templates():
        if t.id != exclude and _fits(t, headers):
            return t.id
    return None


def resolve_format(
    headers: Sequence[str],
    template: BankTemplate | None = None,
    *,
    registry: TemplateRegistry | None = None,
) -> ResolvedFormat:
    """Resolve ``headers`` against ``template`` or the generic priority lists.

    Parameters
    ----------
    headers:
        Column names of the batch, in source order.
    template:
        Template chosen by the user. ``None`` runs generic detection with
        default locale conventions (``.`` decimal, ``,`` separator, no preamble).
    registry:
        Registry consulted for the mismatch suggestion; defaults to the
        packaged catalog.

    Raises
    ------
    FormatMismatch
        When a required logical field cannot be resolved, or the header has
        fewer columns than the template's ``min_columns``.
    """

    if template is None:
        found, missing = _match(headers, _GENERIC_ALIASES)
        if missing:
            raise FormatMismatch(
                template_id=None,
                expected_header="",
                found_headers=list(headers),
                missing=missing,
                suggestion=suggest_template(headers, registry=registry),
            )
        return ResolvedFormat(field_map=MappingProxyType(found), locale=LocaleConventions())

    found, missing = _match(headers, _template_aliases(template), min_columns=template.min_columns)
    if missing:
        raise FormatMismatch(
            template_id=template.id,
            expected_header=template.example.headers,
            found_headers=list(headers),
            missing=missing,
            suggestion=suggest_template(headers, exclude=template.id, registry=registry),
        )
    return ResolvedFormat(
        field_map=MappingProxyType(found),
        locale=template.locale,
        template_id=template.id,
    )


__all__ = [
    "LogicalField",
    "FieldMap",
    "ResolvedFormat",
    "resolve_format",
    "suggest_template",
]
