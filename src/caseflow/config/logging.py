"""Root logger setup for the caseflow command line."""

from __future__ import annotations

import logging

from .env import optional_env_var
from .errors import ConfigurationError

LOG_LEVEL_VAR = "CASEFLOW_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# log every request or migration step at INFO
_CHATTY_LOGGERS = ("httpx", "httpcore", "alembic.runtime.migration")


def resolve_log_level(default: int = logging.INFO) -> int:
    raw = optional_env_var(LOG_LEVEL_VAR)
    if raw is None:
        return default
    level = logging.getLevelNamesMapping().get(raw.upper())
    if level is None:
        raise ConfigurationError(
            f"{LOG_LEVEL_VAR} is not a log level: {raw!r}", variable=LOG_LEVEL_VAR
        )
    return level


def configure_logging(*, level: int | None = None, force: bool = False) -> None:
    """Configure the root logger for CLI output.

    ``level`` defaults to ``CASEFLOW_LOG_LEVEL`` (INFO when unset). Third-party
    loggers stay at WARNING unless the level is DEBUG.
    """
    resolved = resolve_log_level() if level is None else level
    logging.basicConfig(level=resolved, format=LOG_FORMAT, datefmt="%H:%M:%S", force=force)
    chatty_level = resolved if resolved <= logging.DEBUG else max(resolved, logging.WARNING)
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(chatty_level)
