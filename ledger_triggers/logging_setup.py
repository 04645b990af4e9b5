"""Logging configuration for the ``ledger_triggers`` package.

Library modules only call ``logging.getLogger(__name__)``; the command line
calls ``configure_logging()`` once at startup to attach a single stderr
handler to the package logger.
"""

__copyright__ = "Copyright (C) 2026 slimslickner"
__license__ = "GNU GPLv2"

import logging
import os
import sys
from typing import IO, Optional

_PKG_LOGGER_NAME = "ledger_triggers"
_ENV_LEVEL = "LEDGER_TRIGGERS_LOG_LEVEL"


def _parse_level(level: int | str | None) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        # Numeric strings or level names (INFO/DEBUG/etc.)
        level = level.strip().upper()
        if level.isdigit():
            return int(level)
        numeric = getattr(logging, level, None)
        if isinstance(numeric, int):
            return numeric
    return logging.WARNING


def configure_logging(
    level: int | str | None = None,
    *,
    stream: Optional[IO[str]] = None,
) -> logging.Logger:
    """Attach one ``StreamHandler`` to the package logger.

    Args:
        level: Level as int or name; when None, ``LEDGER_TRIGGERS_LOG_LEVEL``
            or WARNING
        stream: Output stream of the handler, stderr by default

    Returns:
        The package logger
    """
    if level is None:
        level = os.getenv(_ENV_LEVEL)

    logger = logging.getLogger(_PKG_LOGGER_NAME)

    for h in list(logger.handlers):
        logger.removeHandler(h)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter("%(name)s %(levelname)s %(message)s"))

    logger.setLevel(_parse_level(level))
    logger.addHandler(handler)
    logger.propagate = False
    return logger
