"""Process logging configuration for engine entrypoints."""

from __future__ import annotations

import logging
from collections.abc import Iterable

_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
_NOISY_LOGGERS = ("sqlalchemy.engine", "aiosqlite", "asyncio")


def configure_logging(*, level: str, quiet_loggers: Iterable[str] = _NOISY_LOGGERS) -> None:
    """Configure root logging and cap driver loggers at WARNING."""

    normalized_level = level.strip().upper() if level.strip() else "INFO"
    resolved_level = getattr(logging, normalized_level, logging.INFO)

    logging.basicConfig(level=resolved_level, format=_LOG_FORMAT)
    for name in quiet_loggers:
        logging.getLogger(name).setLevel(max(resolved_level, logging.WARNING))
