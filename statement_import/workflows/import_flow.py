"""Workflow orchestrators for the statement import pipeline.

Composes format resolution, row normalization, duplicate screening, review
and commit behind a small importable API:

- ``prepare_import`` runs the non-interactive stages over decoded rows and
  returns a ready-to-review ``ImportSession``;
- ``prepare_import_from_csv`` does the same starting from CSV text;
- ``ImportFlow`` owns the single active session of one user and drives it
  through review and commit.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

from ..committer import CommitReport, commit_session
from ..config import ImportSettings, load_settings
from ..duplicates import resolve_duplicates
from ..errors import StatementImportError
from ..ingest.csv_reader import read_statement_rows
from ..ledger import CategoryDirectory, LedgerStore
from ..logging_setup import configure_logging, get_logger, session_logger
from ..matching import AssignmentMatcher, BankCategoryMatcher, HistoricalMatcher
from ..models import ImportAccount, RawRow
from ..normalizers import normalize_rows
from ..resolver import resolve_format
from ..review import ClassificationEngine
from ..session import ImportSession
from ..templates import BankTemplate, TemplateRegistry, default_registry, load_registry

logger = get_logger("statement_import.workflows.import_flow")


async def prepare_import(
    headers: Sequence[str],
    rows: Sequence[RawRow],
    *,
    account: ImportAccount,
    store: LedgerStore,
    template: BankTemplate | None = None,
    matcher: AssignmentMatcher | None = None,
    use_history: bool = True,
    directory: CategoryDirectory | None = None,
    registry: TemplateRegistry | None = None,
    on_progress: Callable[[str], None] | None = None,
) -> ImportSession:
    """Resolve, normalize and screen a batch of rows.

    Parameters
    ----------
    headers / rows:
        Decoded batch: column names in source order and the rows keyed by them.
    account:
        Ledger account receiving the statement; its kind decides how signed
        amounts map to inflow/outflow.
    store:
        Ledger store used for duplicate screening (and historical recognition).
    template:
        Bank template chosen by the user; ``None`` runs generic detection.
    matcher:
        Recognition hook. When omitted and ``use_history`` is true a
        ``HistoricalMatcher`` over ``store`` is used.
    directory:
        Category directory. When given, a category label exported by the
        bank (e.g. Conta Simples "Categoria") is matched against it and takes
        priority over the history.
    on_progress:
        Optional callable receiving short status lines (e.g., ``print``).

    Raises
    ------
    FormatMismatch, NoUsableRows
        File-level problems; nothing is stored.
    """

    resolved = resolve_format(headers, template, registry=registry)
    result = normalize_rows(rows, resolved, account)
    session = ImportSession(
        account=account,
        resolved=resolved,
        candidates=result.candidates,
        diagnostics=result.diagnostics,
        advisories=result.advisories,
    )
    log = session_logger(logger, session.session_id)
    log.info(
        "Prepared %d candidate(s) for account %s using %s",
        len(session),
        account.id,
        resolved.template_id or "generic detection",
    )
    if on_progress and result.diagnostics:
        on_progress(f"Skipped {len(result.diagnostics)} row(s) that could not be read.")

    if matcher is None and use_history:
        matcher = HistoricalMatcher(store)
    if directory is not None:
        matcher = BankCategoryMatcher(directory, fallback=matcher)
    report = await resolve_duplicates(session, store, matcher)

    if on_progress and report.duplicates:
        on_progress(f"Found {report.duplicates} duplicate(s); they will not be imported.")
    if on_progress and report.recognized:
        on_progress(f"Recognized {report.recognized} transaction(s) from history.")
    return session


async def prepare_import_from_csv(
    csv_text: str,
    *,
    account: ImportAccount,
    store: LedgerStore,
    template: BankTemplate | None = None,
    **kwargs,
) -> ImportSession:
    """CSV text → ``prepare_import`` using the template's locale conventions."""

    parsed = read_statement_rows(csv_text, template.locale if template else None)
    return await prepare_import(
        parsed.headers, parsed.rows, account=account, store=store, template=template, **kwargs
    )


class ImportFlow:
    """One user's import workspace: at most one active session at a time.

    Starting a new import replaces the current session (nothing is merged or
    queued). The session survives failed commits so the user can fix the
    failing rows and retry; it is discarded after a commit without failures or
    by ``abandon``.
    """

    def __init__(
        self,
        store: LedgerStore,
        *,
        directory: CategoryDirectory | None = None,
        registry: TemplateRegistry | None = None,
        matcher: AssignmentMatcher | None = None,
        use_history: bool = True,
    ) -> None:
        self.store = store
        self.directory = directory
        self.registry = registry or default_registry()
        self.matcher = matcher
        self.use_history = use_history
        self._session: ImportSession | None = None
        self._engine: ClassificationEngine | None = None

    @classmethod
    def from_settings(
        cls,
        settings: ImportSettings | None = None,
        *,
        store: LedgerStore | None = None,
        **kwargs,
    ) -> ImportFlow:
        """Build a flow from ``ImportSettings`` (``load_settings()`` when omitted).

        - ``log_level`` configures the package logger when set;
        - ``templates_path`` replaces the packaged template seed;
        - ``database_url`` opens a ``SqlLedgerStore`` (also used as category
          directory) unless ``store`` is passed.

        Remaining keyword arguments go to ``ImportFlow``.
        """

        settings = settings or load_settings()
        if settings.log_level is not None:
            configure_logging(settings.log_level)
        if settings.templates_path is not None:
            registry = load_registry(settings.templates_path)
        else:
            registry = default_registry()
        if store is None:
            # Deferred: only SQL-backed flows need SQLAlchemy.
            from ..persistence import SqlLedgerStore

            sql_store = SqlLedgerStore(settings.database_url)
            store = sql_store
            kwargs.setdefault("directory", sql_store)
        kwargs.setdefault("registry", registry)
        return cls(store, **kwargs)

    @property
    def session(self) -> ImportSession | None:
        return self._session

    @property
    def engine(self) -> ClassificationEngine:
        if self._engine is None:
            raise StatementImportError("no active import session")
        return self._engine

    def _template(self, template_id: str | None) -> BankTemplate | None:
        return self.registry.get_by_id(template_id) if template_id else None

    async def _activate(self, session: ImportSession) -> ImportSession:
        if self._session is not None:
            logger.info(
                "Replacing import session %s with %s", self._session.session_id, session.session_id
            )
        self._session = session
        self._engine = ClassificationEngine(session)
        if self.directory is not None:
            methods = await self.directory.list_payment_methods()
            self._engine.prefill_payment_method(methods)
        return session

    async def start(
        self,
        headers: Sequence[str],
        rows: Sequence[RawRow],
        *,
        account: ImportAccount,
        template_id: str | None = None,
    ) -> ImportSession:
        """Prepare a session from decoded rows and make it the active one.

        On error the previous session (if any) stays active.
        """

        session = await prepare_import(
            headers,
            rows,
            account=account,
            store=self.store,
            template=self._template(template_id),
            matcher=self.matcher,
            use_history=self.use_history,
            directory=self.directory,
            registry=self.registry,
        )
        return await self._activate(session)

    async def start_from_csv(
        self, csv_text: str, *, account: ImportAccount, template_id: str | None = None
    ) -> ImportSession:
        session = await prepare_import_from_csv(
            csv_text,
            account=account,
            store=self.store,
            template=self._template(template_id),
            matcher=self.matcher,
            use_history=self.use_history,
            directory=self.directory,
            registry=self.registry,
        )
        return await self._activate(session)

    async def commit(self) -> CommitReport:
        """Commit the active session; discard it when every row went through."""

        if self._session is None:
            raise StatementImportError("no active import session")
        report = await commit_session(self._session, self.store)
        if report.ok:
            self._discard()
        return report

    def abandon(self) -> None:
        if self._session is not None:
            session_logger(logger, self._session.session_id).info("Import abandoned")
        self._discard()

    def _discard(self) -> None:
        self._session = None
        self._engine = None


__all__ = ["prepare_import", "prepare_import_from_csv", "ImportFlow"]
