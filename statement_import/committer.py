"""Row-by-row commit of the reviewed candidates.

There is no batch transaction: each candidate is inserted on its own and a
failure is recorded without stopping the rest. Candidates that made it into
the ledger carry their ``transaction_id`` afterwards, so committing the same
session again only retries the ones that failed.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .errors import IncompleteAssignment, PersistError, StatementImportError
from .ledger import LedgerStore
from .logging_setup import get_logger, session_logger
from .review import ClassificationEngine
from .session import ImportSession

logger = get_logger("statement_import.committer")


@dataclass(frozen=True, slots=True)
class CommitFailure:
    position: int
    description: str
    error: StatementImportError

    @property
    def reason(self) -> str:
        return str(self.error)


@dataclass(frozen=True, slots=True)
class CommitReport:
    committed: int
    failed: int
    failures: tuple[CommitFailure, ...] = ()
    transaction_ids: dict[int, int] = field(default_factory=dict)
    """Position → new ledger transaction id, for the rows committed by this call."""

    @property
    def ok(self) -> bool:
        return self.failed == 0


async def commit_session(session: ImportSession, store: LedgerStore) -> CommitReport:
    """Insert every committable candidate of ``session`` into ``store``.

    A candidate fails (and the loop continues) when its assignment is
    incomplete, its description is empty, its amount is not greater than
    zero, or the store raises ``PersistError``. Other exceptions propagate.
    """

    log = session_logger(logger, session.session_id)
    engine = ClassificationEngine(session)
    failures: list[CommitFailure] = []
    ids: dict[int, int] = {}

    for cand in engine.committable():
        try:
            if not cand.assignment.is_complete:
                raise IncompleteAssignment(cand.position, cand.assignment.missing_fields())
            if not cand.description.strip():
                raise PersistError(
                    f"candidate {cand.position} description is required",
                    position=cand.position,
                )
            if cand.amount <= 0:
                raise PersistError(
                    f"candidate {cand.position} amount must be greater than zero",
                    position=cand.position,
                )
            tx_id = await store.insert_transaction(cand)
        except (IncompleteAssignment, PersistError) as exc:
            log.warning("Commit failed at position %d: %s", cand.position, exc)
            failures.append(CommitFailure(cand.position, cand.description, exc))
            continue
        cand.transaction_id = tx_id
        ids[cand.position] = tx_id

    report = CommitReport(
        committed=len(ids),
        failed=len(failures),
        failures=tuple(failures),
        transaction_ids=ids,
    )
    log.info("Committed %d transaction(s), %d failed", report.committed, report.failed)
    return report


__all__ = ["CommitFailure", "CommitReport", "commit_session"]
