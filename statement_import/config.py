"""Runtime settings for hosts embedding the import pipeline.

Values come from the process environment, optionally primed from a ``.env``
file via ``python-dotenv``. Existing environment variables always win over the
file so deployments can override local defaults.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from os import PathLike
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

DATABASE_URL_ENV = "DATABASE_URL"
LOG_LEVEL_ENV = "STATEMENT_IMPORT_LOG_LEVEL"
TEMPLATES_ENV = "STATEMENT_IMPORT_TEMPLATES"


@dataclass(frozen=True, slots=True)
class ImportSettings:
    """Resolved settings.

    Attributes
    ----------
    database_url:
        SQLAlchemy URL of the ledger store, or ``None`` when the host wires its
        own ``LedgerStore``.
    log_level:
        Level name handed to ``configure_logging``; ``None`` keeps the default.
    templates_path:
        Alternative bank template seed; ``None`` uses the packaged seed.
    """

    database_url: str | None = None
    log_level: str | None = None
    templates_path: Path | None = None


def _env(name: str) -> str | None:
    v = os.getenv(name)
    if v is None:
        return None
    v = v.strip()
    return v or None


def load_settings(env_file: str | PathLike[str] | None = None) -> ImportSettings:
    """Load settings from the environment, priming it from a ``.env`` file.

    When ``env_file`` is ``None`` the nearest ``.env`` from the current working
    directory upwards is used, if any.
    """

    dotenv_path = str(env_file) if env_file is not None else find_dotenv(usecwd=True)
    if dotenv_path:
        load_dotenv(dotenv_path=dotenv_path, override=False)

    templates = _env(TEMPLATES_ENV)
    return ImportSettings(
        database_url=_env(DATABASE_URL_ENV),
        log_level=_env(LOG_LEVEL_ENV),
        templates_path=Path(templates) if templates else None,
    )


__all__ = [
    "DATABASE_URL_ENV",
    "LOG_LEVEL_ENV",
    "TEMPLATES_ENV",
    "ImportSettings",
    "load_settings",
]
