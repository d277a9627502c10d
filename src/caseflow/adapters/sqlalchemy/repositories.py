"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from caseflow.adapters.sqlalchemy.mappings import (
    case_entity_table,
    conflict_table,
    field_event_table,
    field_value_table,
    mirrored_field_table,
    stage_assignment_table,
)
from caseflow.domain.errors import ConcurrentModificationError
from caseflow.domain.model import (
    CaseEntity,
    Conflict,
    ConflictState,
    FieldAuditEvent,
    FieldValue,
    MirroredField,
    StageAssignment,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from sqlalchemy.orm import Session


def flush_or_raise(session: Session) -> None:
    """Flush pending changes; lost version checks and duplicate current rows become
    ``ConcurrentModificationError``."""
    try:
        session.flush()
    except (StaleDataError, IntegrityError) as exc:
        session.rollback()
        raise ConcurrentModificationError(str(exc)) from exc


class SqlAlchemyRepository[TEntity]:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: TEntity) -> None:
        self.session.add(entity)

    def update(self, entity: TEntity) -> None:
        self.session.add(entity)


class SqlAlchemyCaseEntityRepository(SqlAlchemyRepository[CaseEntity]):
    def get(self, entity_id: str) -> CaseEntity | None:
        return self.session.get(CaseEntity, entity_id)

    def list_for_case(self, case_id: str) -> Sequence[CaseEntity]:
        stmt = (
            select(CaseEntity)
            .where(case_entity_table.c.case_id == case_id)
            .order_by(case_entity_table.c.created_at, case_entity_table.c.id)
        )
        return list(self.session.execute(stmt).scalars())


class SqlAlchemyFieldValueRepository(SqlAlchemyRepository[FieldValue]):
    def update(self, entity: FieldValue) -> None:
        # the superseded row must reach the database before its successor is inserted
        self.session.add(entity)
        flush_or_raise(self.session)

    def get(self, value_id: UUID) -> FieldValue | None:
        return self.session.get(FieldValue, value_id)

    def current(self, entity_id: str, field_name: str) -> FieldValue | None:
        stmt = (
            select(FieldValue)
            .where(field_value_table.c.entity_id == entity_id)
            .where(field_value_table.c.field_name == field_name)
            .where(field_value_table.c.is_current.is_(True))
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def current_for_entity(self, entity_id: str) -> Sequence[FieldValue]:
        stmt = (
            select(FieldValue)
            .where(field_value_table.c.entity_id == entity_id)
            .where(field_value_table.c.is_current.is_(True))
            .order_by(field_value_table.c.field_name)
        )
        return list(self.session.execute(stmt).scalars())

    def history(self, entity_id: str, field_name: str) -> Sequence[FieldValue]:
        stmt = (
            select(FieldValue)
            .where(field_value_table.c.entity_id == entity_id)
            .where(field_value_table.c.field_name == field_name)
            .order_by(field_value_table.c.recorded_at, field_value_table.c.is_current)
        )
        return list(self.session.execute(stmt).scalars())


class SqlAlchemyConflictRepository(SqlAlchemyRepository[Conflict]):
    def get(self, conflict_id: UUID) -> Conflict | None:
        return self.session.get(Conflict, conflict_id)

    def open_for_field(self, entity_id: str, field_name: str) -> Sequence[Conflict]:
        stmt = (
            select(Conflict)
            .where(conflict_table.c.entity_id == entity_id)
            .where(conflict_table.c.field_name == field_name)
            .where(conflict_table.c.state == ConflictState.OPEN)
            .order_by(conflict_table.c.created_at)
        )
        return list(self.session.execute(stmt).scalars())

    def list_open(
        self,
        *,
        entity_id: str | None = None,
        case_id: str | None = None,
        min_confidence: float | None = None,
    ) -> Sequence[Conflict]:
        stmt = select(Conflict).where(conflict_table.c.state == ConflictState.OPEN)
        if entity_id is not None:
            stmt = stmt.where(conflict_table.c.entity_id == entity_id)
        if case_id is not None:
            stmt = stmt.where(conflict_table.c.case_id == case_id)
        if min_confidence is not None:
            stmt = stmt.where(conflict_table.c.candidate_confidence >= min_confidence)
        stmt = stmt.order_by(conflict_table.c.created_at)
        return list(self.session.execute(stmt).scalars())


class SqlAlchemyFieldAuditRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: FieldAuditEvent) -> None:
        self.session.add(entity)

    def history(self, entity_id: str, field_name: str | None = None) -> Sequence[FieldAuditEvent]:
        stmt = select(FieldAuditEvent).where(field_event_table.c.entity_id == entity_id)
        if field_name is not None:
            stmt = stmt.where(field_event_table.c.field_name == field_name)
        stmt = stmt.order_by(field_event_table.c.seq)
        return list(self.session.execute(stmt).scalars())


class SqlAlchemyStageAssignmentRepository(SqlAlchemyRepository[StageAssignment]):
    def update(self, entity: StageAssignment) -> None:
        self.session.add(entity)
        flush_or_raise(self.session)

    def current(self, entity_id: str, workflow: str) -> StageAssignment | None:
        stmt = (
            select(StageAssignment)
            .where(stage_assignment_table.c.entity_id == entity_id)
            .where(stage_assignment_table.c.workflow == workflow)
            .where(stage_assignment_table.c.is_current.is_(True))
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def current_for_entity(self, entity_id: str) -> Sequence[StageAssignment]:
        stmt = (
            select(StageAssignment)
            .where(stage_assignment_table.c.entity_id == entity_id)
            .where(stage_assignment_table.c.is_current.is_(True))
            .order_by(stage_assignment_table.c.workflow)
        )
        return list(self.session.execute(stmt).scalars())

    def history(self, entity_id: str, workflow: str) -> Sequence[StageAssignment]:
        stmt = (
            select(StageAssignment)
            .where(stage_assignment_table.c.entity_id == entity_id)
            .where(stage_assignment_table.c.workflow == workflow)
            .order_by(stage_assignment_table.c.assigned_at, stage_assignment_table.c.is_current)
        )
        return list(self.session.execute(stmt).scalars())

    def count_current(self, workflow: str, *, case_id: str | None = None) -> dict[str, int]:
        stmt = (
            select(stage_assignment_table.c.stage, func.count())
            .select_from(
                stage_assignment_table.join(
                    case_entity_table,
                    case_entity_table.c.id == stage_assignment_table.c.entity_id,
                )
            )
            .where(stage_assignment_table.c.workflow == workflow)
            .where(stage_assignment_table.c.is_current.is_(True))
            .where(case_entity_table.c.deleted_at.is_(None))
            .group_by(stage_assignment_table.c.stage)
        )
        if case_id is not None:
            stmt = stmt.where(stage_assignment_table.c.case_id == case_id)
        counts: Counter[str] = Counter()
        for stage, count in self.session.execute(stmt):
            counts[stage] = count
        return dict(counts)


class SqlAlchemyMirroredFieldRepository(SqlAlchemyRepository[MirroredField]):
    def get(self, table: str, entity_id: str, field_name: str) -> MirroredField | None:
        stmt = (
            select(MirroredField)
            .where(mirrored_field_table.c.table_name == table)
            .where(mirrored_field_table.c.entity_id == entity_id)
            .where(mirrored_field_table.c.field_name == field_name)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def list_for_entity(self, table: str, entity_id: str) -> Sequence[MirroredField]:
        stmt = (
            select(MirroredField)
            .where(mirrored_field_table.c.table_name == table)
            .where(mirrored_field_table.c.entity_id == entity_id)
            .order_by(mirrored_field_table.c.field_name)
        )
        return list(self.session.execute(stmt).scalars())
