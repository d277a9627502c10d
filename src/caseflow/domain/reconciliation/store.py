"""Field value store: current values with provenance, history, and the audit log.

Every write runs as one short unit of work while holding the lock for
``(entity_id, field_name)``. Change events are handed to listeners only after the
commit went through and the lock is released.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from caseflow.domain.concurrency import KeyedLocks, check_deadline
from caseflow.domain.errors import EntityNotFoundError
from caseflow.domain.model import (
    DEFAULT_SCHEMAS,
    AuditEventKind,
    ChangeEvent,
    FieldAuditEvent,
    FieldValue,
    ValueSource,
    as_utc,
    utcnow,
)
from caseflow.domain.values import ComparisonPolicy

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator, Mapping
    from datetime import datetime
    from uuid import UUID

    from caseflow.domain.concurrency import Deadline
    from caseflow.domain.model import (
        CaseEntity,
        EntityKind,
        EntitySchema,
        FieldScalar,
        FieldSpec,
    )
    from caseflow.domain.ports import (
        CaseRepositories,
        CaseUnitOfWork,
        ChangeHandler,
        Unsubscribe,
        UnitOfWorkFactory,
    )

log = logging.getLogger(__name__)


@dataclass(slots=True)
class FieldTransaction:
    """Open unit of work for one field, plus the events to emit once it commits."""

    uow: CaseUnitOfWork
    events: list[ChangeEvent] = field(default_factory=list)

    @property
    def repositories(self) -> CaseRepositories:
        return self.uow.repositories


class FieldValueStore:
    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        *,
        node_id: str,
        schemas: Mapping[EntityKind, EntitySchema] = DEFAULT_SCHEMAS,
        policy: ComparisonPolicy | None = None,
        locks: KeyedLocks | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.uow_factory = uow_factory
        self.node_id = node_id
        self.schemas = schemas
        self.policy = policy or ComparisonPolicy()
        self.locks = locks or KeyedLocks()
        self.clock = clock
        self._listeners: list[ChangeHandler] = []

    def subscribe(self, handler: ChangeHandler) -> Unsubscribe:
        self._listeners.append(handler)

        def unsubscribe() -> None:
            if handler in self._listeners:
                self._listeners.remove(handler)

        return unsubscribe

    def emit(self, events: Iterable[ChangeEvent]) -> None:
        for event in events:
            for handler in tuple(self._listeners):
                handler(event)

    @contextmanager
    def transaction(
        self,
        entity_id: str,
        field_name: str,
        *,
        deadline: Deadline | None = None,
    ) -> Iterator[FieldTransaction]:
        """Serialise on ``(entity_id, field_name)`` and commit when the block succeeds."""
        with self.locks.hold(("field", entity_id, field_name), deadline=deadline):
            with self.uow_factory() as uow:
                tx = FieldTransaction(uow)
                yield tx
                check_deadline(deadline, "commit")
                uow.commit()
        self.emit(tx.events)

    def now(self) -> datetime:
        return as_utc(self.clock())

    def require_entity(self, repositories: CaseRepositories, entity_id: str) -> CaseEntity:
        entity = repositories.entities.get(entity_id)
        if entity is None or entity.is_deleted:
            raise EntityNotFoundError(entity_id)
        return entity

    def schema(self, entity: CaseEntity) -> EntitySchema:
        return self.schemas[entity.kind]

    def spec(self, entity: CaseEntity, field_name: str) -> FieldSpec:
        return self.schema(entity).field(field_name)

    def declared_name(self, repositories: CaseRepositories, entity_id: str, field_name: str) -> str:
        """Resolve a field alias of the entity's kind; unknown entities keep the name."""
        entity = repositories.entities.get(entity_id)
        if entity is None:
            return field_name
        return self.schema(entity).declared_name(field_name)

    def schema_for_table(self, table: str) -> EntitySchema | None:
        for schema in self.schemas.values():
            if schema.table == table:
                return schema
        return None

    def current(self, entity_id: str, field_name: str) -> FieldValue | None:
        with self.uow_factory() as uow:
            field_name = self.declared_name(uow.repositories, entity_id, field_name)
            return uow.repositories.field_values.current(entity_id, field_name)

    def values(self, entity_id: str) -> dict[str, FieldScalar]:
        """Current value of every field that has one."""
        with self.uow_factory() as uow:
            self.require_entity(uow.repositories, entity_id)
            current = uow.repositories.field_values.current_for_entity(entity_id)
        return {value.field_name: value.value for value in current}

    def history(self, entity_id: str, field_name: str) -> list[FieldValue]:
        with self.uow_factory() as uow:
            field_name = self.declared_name(uow.repositories, entity_id, field_name)
            return list(uow.repositories.field_values.history(entity_id, field_name))

    def export_field_history(self, entity_id: str, field_name: str | None = None) -> list[FieldAuditEvent]:
        with self.uow_factory() as uow:
            if uow.repositories.entities.get(entity_id) is None:
                raise EntityNotFoundError(entity_id)
            if field_name is not None:
                field_name = self.declared_name(uow.repositories, entity_id, field_name)
            return list(uow.repositories.audit.history(entity_id, field_name))

    def install(
        self,
        tx: FieldTransaction,
        entity: CaseEntity,
        new: FieldValue,
        *,
        previous: FieldValue | None,
        kind: AuditEventKind,
        conflict_id: UUID | None = None,
        notes: str | None = None,
        notify: bool = True,
    ) -> FieldValue:
        """Make ``new`` the current value, keeping ``previous`` as history."""
        repositories = tx.repositories
        if previous is not None:
            previous.supersede(at=new.recorded_at)
            repositories.field_values.update(previous)
        repositories.field_values.add(new)
        self.audit(
            tx, new, kind=kind, actor=new.recorded_by, conflict_id=conflict_id, notes=notes
        )
        if notify:
            tx.events.append(self.change_event(entity, new))
        return new

    def audit(
        self,
        tx: FieldTransaction,
        value: FieldValue,
        *,
        kind: AuditEventKind,
        actor: str | None,
        conflict_id: UUID | None = None,
        notes: str | None = None,
        at: datetime | None = None,
    ) -> None:
        tx.repositories.audit.add(
            FieldAuditEvent(
                entity_id=value.entity_id,
                field_name=value.field_name,
                kind=kind,
                value=value.value,
                source=value.source,
                confidence=value.confidence,
                document_id=value.document_id,
                field_value_id=value.id,
                conflict_id=conflict_id,
                actor=actor,
                notes=notes,
                occurred_at=at or value.updated_at,
            )
        )

    def change_event(self, entity: CaseEntity, value: FieldValue) -> ChangeEvent:
        return ChangeEvent(
            entity_id=entity.id,
            table=self.schema(entity).table,
            field=value.field_name,
            value=value.value,
            timestamp=value.updated_at,
            origin=self.node_id,
            actor=value.updated_by,
            source=value.source,
        )

    def write_if_newer(
        self,
        entity_id: str,
        field_name: str,
        value: FieldScalar,
        *,
        timestamp: datetime,
        actor: str | None,
        source: ValueSource = ValueSource.SYSTEM,
        derived_from: UUID | None = None,
        deadline: Deadline | None = None,
    ) -> bool:
        """Install ``value`` unless the current one is at least as recent as ``timestamp``.

        Used by the sync, which orders writes by timestamp instead of detecting
        conflicts. Nothing is emitted to listeners; the caller publishes.
        """
        timestamp = as_utc(timestamp)
        with self.transaction(entity_id, field_name, deadline=deadline) as tx:
            entity = self.require_entity(tx.repositories, entity_id)
            spec = self.spec(entity, field_name)
            current = tx.repositories.field_values.current(entity_id, field_name)
            if current is not None and current.updated_at >= timestamp:
                return False
            canonical = self.policy.canonical(spec.kind, value)
            notes = f"derived from change {derived_from}" if derived_from else None
            if current is not None and self.policy.equal(spec.kind, current.value, canonical):
                current.corroborate(at=timestamp, actor=actor)
                tx.repositories.field_values.update(current)
                self.audit(tx, current, kind=AuditEventKind.SYNCED, actor=actor, notes=notes)
                return True
            new = FieldValue(
                entity_id=entity_id,
                field_name=spec.name,
                value=canonical,
                source=source,
                recorded_at=timestamp,
                recorded_by=actor,
                updated_at=timestamp,
                updated_by=actor,
            )
            self.install(
                tx,
                entity,
                new,
                previous=current,
                kind=AuditEventKind.SYNCED,
                notes=notes,
                notify=False,
            )
            return True
