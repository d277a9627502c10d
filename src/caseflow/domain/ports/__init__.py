"""Domain port definitions for adapters."""

from __future__ import annotations

from .notifier import ChangeHandler, ChangeNotifier, Unsubscribe
from .persistence import (
    CaseEntityRepository,
    ConflictRepository,
    FieldAuditRepository,
    FieldValueRepository,
    MirroredFieldRepository,
    MutableRepository,
    Repository,
    StageAssignmentRepository,
)
from .unit_of_work import (
    CaseRepositories,
    CaseUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
    UnitOfWorkFactory,
)

__all__ = [
    "CaseEntityRepository",
    "CaseRepositories",
    "CaseUnitOfWork",
    "ChangeHandler",
    "ChangeNotifier",
    "ConflictRepository",
    "FieldAuditRepository",
    "FieldValueRepository",
    "MirroredFieldRepository",
    "MutableRepository",
    "Repository",
    "RepositoryCollection",
    "StageAssignmentRepository",
    "UnitOfWork",
    "UnitOfWorkFactory",
    "Unsubscribe",
]
