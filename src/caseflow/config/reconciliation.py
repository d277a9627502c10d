"""Reconciliation engine defaults."""

from __future__ import annotations

import os
import socket
from dataclasses import dataclass
from pathlib import Path

from .env import env_float, env_int, optional_env_var
from .errors import ConfigurationError

DEFAULT_DATE_TOLERANCE_DAYS = 0
DEFAULT_NUMBER_TOLERANCE = 1e-6


@dataclass(frozen=True, slots=True)
class ReconciliationConfig:
    node_id: str
    date_tolerance_days: int = DEFAULT_DATE_TOLERANCE_DAYS
    number_tolerance: float = DEFAULT_NUMBER_TOLERANCE
    workflows_file: Path | None = None
    sync_links_file: Path | None = None


def _default_node_id() -> str:
    return f"{socket.gethostname()}:{os.getpid()}"


def _optional_path(name: str) -> Path | None:
    raw = optional_env_var(name)
    if raw is None:
        return None
    path = Path(raw).expanduser()
    if not path.is_file():
        raise ConfigurationError(f"{name} points to a missing file: {path}", variable=name)
    return path


def get_reconciliation_config() -> ReconciliationConfig:
    tolerance_days = env_int("CASEFLOW_DATE_TOLERANCE_DAYS", DEFAULT_DATE_TOLERANCE_DAYS)
    if tolerance_days < 0:
        raise ConfigurationError(
            "CASEFLOW_DATE_TOLERANCE_DAYS must be non-negative",
            variable="CASEFLOW_DATE_TOLERANCE_DAYS",
        )
    number_tolerance = env_float("CASEFLOW_NUMBER_TOLERANCE", DEFAULT_NUMBER_TOLERANCE)
    if number_tolerance < 0:
        raise ConfigurationError(
            "CASEFLOW_NUMBER_TOLERANCE must be non-negative", variable="CASEFLOW_NUMBER_TOLERANCE"
        )
    return ReconciliationConfig(
        node_id=optional_env_var("CASEFLOW_NODE_ID") or _default_node_id(),
        date_tolerance_days=tolerance_days,
        number_tolerance=number_tolerance,
        workflows_file=_optional_path("CASEFLOW_WORKFLOWS_FILE"),
        sync_links_file=_optional_path("CASEFLOW_SYNC_LINKS_FILE"),
    )
