"""Ports for persisting domain aggregates.

Reads hand out objects the caller may mutate; a mutation only counts once it is
passed to ``update`` and the unit of work commits. Versioned rows are compared and
swapped at commit, a lost race surfaces as ``ConcurrentModificationError``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from caseflow.domain.model import (
    CaseEntity,
    Conflict,
    FieldAuditEvent,
    FieldValue,
    MirroredField,
    StageAssignment,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> None: ...


@runtime_checkable
class MutableRepository[TEntity](Repository[TEntity], Protocol):
    def update(self, entity: TEntity) -> None: ...


@runtime_checkable
class CaseEntityRepository(MutableRepository[CaseEntity], Protocol):
    """Cases and family members, including soft-deleted ones."""

    def get(self, entity_id: str) -> CaseEntity | None: ...

    def list_for_case(self, case_id: str) -> Sequence[CaseEntity]: ...


@runtime_checkable
class FieldValueRepository(MutableRepository[FieldValue], Protocol):
    def get(self, value_id: UUID) -> FieldValue | None: ...

    def current(self, entity_id: str, field_name: str) -> FieldValue | None: ...

    def current_for_entity(self, entity_id: str) -> Sequence[FieldValue]: ...

    def history(self, entity_id: str, field_name: str) -> Sequence[FieldValue]:
        """All values of the field, oldest first."""
        ...


@runtime_checkable
class ConflictRepository(MutableRepository[Conflict], Protocol):
    def get(self, conflict_id: UUID) -> Conflict | None: ...

    def open_for_field(self, entity_id: str, field_name: str) -> Sequence[Conflict]: ...

    def list_open(
        self,
        *,
        entity_id: str | None = None,
        case_id: str | None = None,
        min_confidence: float | None = None,
    ) -> Sequence[Conflict]:
        """Open conflicts ordered by creation time."""
        ...


@runtime_checkable
class FieldAuditRepository(Repository[FieldAuditEvent], Protocol):
    """Append-only; events are never updated or removed."""

    def history(self, entity_id: str, field_name: str | None = None) -> Sequence[FieldAuditEvent]:
        """Events in the order they were recorded."""
        ...


@runtime_checkable
class StageAssignmentRepository(MutableRepository[StageAssignment], Protocol):
    def current(self, entity_id: str, workflow: str) -> StageAssignment | None: ...

    def current_for_entity(self, entity_id: str) -> Sequence[StageAssignment]: ...

    def history(self, entity_id: str, workflow: str) -> Sequence[StageAssignment]: ...

    def count_current(self, workflow: str, *, case_id: str | None = None) -> dict[str, int]:
        """Current assignments of live entities per stage name; empty stages are absent."""
        ...


@runtime_checkable
class MirroredFieldRepository(MutableRepository[MirroredField], Protocol):
    def get(self, table: str, entity_id: str, field_name: str) -> MirroredField | None: ...

    def list_for_entity(self, table: str, entity_id: str) -> Sequence[MirroredField]: ...
