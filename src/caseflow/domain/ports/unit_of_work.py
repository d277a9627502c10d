"""Unit-of-work abstractions for coordinating repositories."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from types import TracebackType

    from caseflow.domain.ports.persistence import (
        CaseEntityRepository,
        ConflictRepository,
        FieldAuditRepository,
        FieldValueRepository,
        MirroredFieldRepository,
        StageAssignmentRepository,
    )


@runtime_checkable
class RepositoryCollection(Protocol):
    """Marker protocol for groups of repositories managed together."""


@runtime_checkable
class UnitOfWork[TRepositories: RepositoryCollection](Protocol):
    """Generic unit-of-work boundary around a repository collection.

    Leaving the context without ``commit`` discards every staged change.
    """

    @property
    def repositories(self) -> TRepositories: ...  # the repo list itself should be immutable

    def __enter__(self) -> UnitOfWork[TRepositories]: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


@dataclass(slots=True)
class CaseRepositories(RepositoryCollection):
    """Repositories behind the reconciliation and progression core."""

    entities: CaseEntityRepository
    field_values: FieldValueRepository
    conflicts: ConflictRepository
    audit: FieldAuditRepository
    stages: StageAssignmentRepository
    mirrors: MirroredFieldRepository


type CaseUnitOfWork = UnitOfWork[CaseRepositories]
type UnitOfWorkFactory = Callable[[], CaseUnitOfWork]
