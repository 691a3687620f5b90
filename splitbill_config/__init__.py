"""
splitbill_config -- runtime settings for the split-bill ledger.

Responsibility:
    Provides ``get_settings()``, the entrypoint for configuration at
    runtime.  Settings come from the packaged ``defaults.yaml``, an
    optional override file (argument or ``SPLITBILL_CONFIG``) and the
    ``SPLITBILL_DATABASE_URL`` environment variable, in that order.

Architecture position:
    Configuration.  Sits beside ``splitbill_kernel``; the kernel never
    imports from here.  Callers read the settings and pass values
    (tolerance, currency symbol, database URL) into kernel constructors.

Failure modes:
    - ``FileNotFoundError`` -- override file does not exist.
    - ``ValueError`` -- malformed values.
"""

from __future__ import annotations

import logging
from pathlib import Path

from splitbill_config.loader import load_settings
from splitbill_config.schema import LedgerSettings

_logger = logging.getLogger("splitbill_kernel.config")

_cached: LedgerSettings | None = None


def get_settings(path: Path | None = None, reload: bool = False) -> LedgerSettings:
    """
    Return the active settings, loading them on first use.

    Passing ``path`` or ``reload=True`` forces a fresh load.
    """
    global _cached

    if _cached is None or reload or path is not None:
        _cached = load_settings(path)
        _logger.info(
            "settings_loaded",
            extra={
                "tolerance": str(_cached.tolerance),
                "log_level": _cached.log_level,
                "database_backend": _cached.database_url.split(":", 1)[0],
            },
        )
    return _cached


def bootstrap(settings: LedgerSettings | None = None):
    """
    Configure kernel logging and the database engine from settings.

    Returns the initialized SQLAlchemy engine.
    """
    from splitbill_kernel.db.engine import init_engine_from_url
    from splitbill_kernel.logging_config import configure_logging

    settings = settings or get_settings()
    configure_logging(level=settings.log_level)
    return init_engine_from_url(settings.database_url, echo=settings.database_echo)


def clear_settings_cache() -> None:
    """Forget cached settings. Used by tests."""
    global _cached
    _cached = None


__all__ = [
    "LedgerSettings",
    "bootstrap",
    "clear_settings_cache",
    "get_settings",
    "load_settings",
]
