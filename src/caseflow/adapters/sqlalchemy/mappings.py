"""SQLAlchemy mapping metadata for the caseflow domain model."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import UTC, datetime
from functools import cache
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Dialect,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
    orm,
    true,
)
from sqlalchemy.orm import configure_mappers

from caseflow.domain.model import (
    AuditEventKind,
    CaseEntity,
    Conflict,
    ConflictDecision,
    ConflictState,
    EntityKind,
    FieldAuditEvent,
    FieldValue,
    MirroredField,
    StageAssignment,
    ValueSource,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

    from caseflow.domain.model import FieldScalar

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class FieldScalarType(TypeDecorator["FieldScalar"]):
    """Field values as JSON text, so numbers and booleans keep their type."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: FieldScalar, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return json.dumps(value, ensure_ascii=False)

    def process_result_value(self, value: str | None, dialect: Dialect) -> FieldScalar:
        _ = dialect
        if value is None:
            return None
        loaded = json.loads(value)
        if isinstance(loaded, str | int | float | bool):
            return loaded
        return json.dumps(loaded, ensure_ascii=False)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

case_entity_table = Table(
    "case_entity",
    mapper_registry.metadata,
    Column("id", String(64), primary_key=True),
    Column("kind", Enum(EntityKind, native_enum=False), nullable=False),
    Column("case_id", String(64), nullable=False, index=True),
    Column("relation", String, nullable=True),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("deleted_at", UTCDateTime(), nullable=True),
)

field_value_table = Table(
    "field_value",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("entity_id", String(64), ForeignKey("case_entity.id"), nullable=False),
    Column("field_name", String(128), nullable=False),
    Column("value", FieldScalarType(), nullable=True),
    Column("source", Enum(ValueSource, native_enum=False), nullable=False),
    Column("confidence", Float, nullable=True),
    Column("document_id", String, nullable=True),
    Column("recorded_at", UTCDateTime(), nullable=False),
    Column("recorded_by", String, nullable=True),
    Column("updated_at", UTCDateTime(), nullable=False),
    Column("updated_by", String, nullable=True),
    Column("is_current", Boolean, nullable=False, default=True),
    Column("superseded_at", UTCDateTime(), nullable=True),
    Column("version", Integer, nullable=False),
    Index("ix_field_value_key", "entity_id", "field_name"),
)

conflict_table = Table(
    "conflict",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("entity_id", String(64), ForeignKey("case_entity.id"), nullable=False),
    Column("case_id", String(64), nullable=False),
    Column("field_name", String(128), nullable=False),
    Column("current_value_id", UUIDColumnType, ForeignKey("field_value.id"), nullable=False),
    Column("candidate_value", FieldScalarType(), nullable=True),
    Column("candidate_source", Enum(ValueSource, native_enum=False), nullable=False),
    Column("candidate_confidence", Float, nullable=True),
    Column("candidate_document_id", String, nullable=True),
    Column("candidate_observed_at", UTCDateTime(), nullable=True),
    Column("state", Enum(ConflictState, native_enum=False), nullable=False),
    Column("decision", Enum(ConflictDecision, native_enum=False), nullable=True),
    Column("notes", Text, nullable=True),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("detected_by", String, nullable=True),
    Column("resolved_at", UTCDateTime(), nullable=True),
    Column("resolved_by", String, nullable=True),
    Column("version", Integer, nullable=False),
    Index("ix_conflict_field", "entity_id", "field_name", "state"),
    Index("ix_conflict_case_state", "case_id", "state"),
)

field_event_table = Table(
    "field_event",
    mapper_registry.metadata,
    # insertion order; not part of the domain object
    Column("seq", Integer, primary_key=True, autoincrement=True),
    Column("id", UUIDColumnType, nullable=False, unique=True),
    Column("entity_id", String(64), nullable=False),
    Column("field_name", String(128), nullable=False),
    Column("kind", Enum(AuditEventKind, native_enum=False), nullable=False),
    Column("value", FieldScalarType(), nullable=True),
    Column("source", Enum(ValueSource, native_enum=False), nullable=True),
    Column("confidence", Float, nullable=True),
    Column("document_id", String, nullable=True),
    Column("field_value_id", UUIDColumnType, nullable=True),
    Column("conflict_id", UUIDColumnType, nullable=True),
    Column("actor", String, nullable=True),
    Column("notes", Text, nullable=True),
    Column("occurred_at", UTCDateTime(), nullable=False),
    Index("ix_field_event_key", "entity_id", "field_name"),
)

stage_assignment_table = Table(
    "stage_assignment",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("entity_id", String(64), ForeignKey("case_entity.id"), nullable=False),
    Column("case_id", String(64), nullable=False),
    Column("workflow", String(64), nullable=False),
    Column("stage", String(64), nullable=False),
    Column("ordinal", Integer, nullable=False),
    Column("is_current", Boolean, nullable=False, default=True),
    Column("assigned_at", UTCDateTime(), nullable=False),
    Column("assigned_by", String, nullable=True),
    Column("previous_stage", String(64), nullable=True),
    Column("reverted", Boolean, nullable=False, default=False),
    Column("reason", Text, nullable=True),
    Column("version", Integer, nullable=False),
    Index("ix_stage_assignment_key", "entity_id", "workflow"),
    Index("ix_stage_assignment_workflow_stage", "workflow", "stage"),
)

mirrored_field_table = Table(
    "mirrored_field",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("table_name", String(64), nullable=False),
    Column("entity_id", String(64), ForeignKey("case_entity.id"), nullable=False),
    Column("field_name", String(128), nullable=False),
    Column("value", FieldScalarType(), nullable=True),
    Column("updated_at", UTCDateTime(), nullable=False),
    Column("origin", String, nullable=True),
    Column("version", Integer, nullable=False),
    UniqueConstraint("table_name", "entity_id", "field_name", name="uq_mirrored_field_key"),
)

# at most one current row per key, also across processes
Index(
    "uq_field_value_current",
    field_value_table.c.entity_id,
    field_value_table.c.field_name,
    unique=True,
    sqlite_where=field_value_table.c.is_current == true(),
    postgresql_where=field_value_table.c.is_current == true(),
)
Index(
    "uq_stage_assignment_current",
    stage_assignment_table.c.entity_id,
    stage_assignment_table.c.workflow,
    unique=True,
    sqlite_where=stage_assignment_table.c.is_current == true(),
    postgresql_where=stage_assignment_table.c.is_current == true(),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(CaseEntity, case_entity_table)
    mapper_registry.map_imperatively(
        FieldValue,
        field_value_table,
        version_id_col=field_value_table.c.version,
    )
    mapper_registry.map_imperatively(
        Conflict,
        conflict_table,
        version_id_col=conflict_table.c.version,
    )
    mapper_registry.map_imperatively(
        FieldAuditEvent,
        field_event_table,
        primary_key=[field_event_table.c.id],
        exclude_properties=["seq"],
    )
    mapper_registry.map_imperatively(
        StageAssignment,
        stage_assignment_table,
        version_id_col=stage_assignment_table.c.version,
    )
    mapper_registry.map_imperatively(
        MirroredField,
        mirrored_field_table,
        properties={"table": mirrored_field_table.c.table_name},
        version_id_col=mirrored_field_table.c.version,
    )

    configure_mappers()
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
