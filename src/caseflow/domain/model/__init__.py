"""Public domain model surface."""

from __future__ import annotations

from caseflow.domain.model.audit import FieldAuditEvent
from caseflow.domain.model.conflicts import Conflict, confidence_band
from caseflow.domain.model.entity import CaseEntity, as_utc, utcnow
from caseflow.domain.model.enums import (
    AuditEventKind,
    ConfidenceBand,
    ConflictDecision,
    ConflictState,
    DetectionOutcome,
    EntityKind,
    FieldKind,
    ValueSource,
)
from caseflow.domain.model.fields import Candidate, FieldScalar, FieldValue, coerce_source
from caseflow.domain.model.schema import (
    CASE_SCHEMA,
    DEFAULT_SCHEMAS,
    FAMILY_MEMBER_SCHEMA,
    EntitySchema,
    FieldSpec,
    schema_for,
)
from caseflow.domain.model.stages import (
    StageAssignment,
    Workflow,
    WorkflowProgress,
    WorkflowStage,
)
from caseflow.domain.model.sync import (
    ChangeEvent,
    FieldRef,
    MirroredField,
    SyncLink,
    SyncResult,
    SyncWrite,
)

__all__ = [  # noqa: RUF022
    # entities
    "CaseEntity",
    "as_utc",
    "utcnow",
    # enums
    "AuditEventKind",
    "ConfidenceBand",
    "ConflictDecision",
    "ConflictState",
    "DetectionOutcome",
    "EntityKind",
    "FieldKind",
    "ValueSource",
    # schema
    "CASE_SCHEMA",
    "DEFAULT_SCHEMAS",
    "FAMILY_MEMBER_SCHEMA",
    "EntitySchema",
    "FieldSpec",
    "schema_for",
    # field values
    "Candidate",
    "FieldScalar",
    "FieldValue",
    "coerce_source",
    "Conflict",
    "confidence_band",
    "FieldAuditEvent",
    # progression
    "StageAssignment",
    "Workflow",
    "WorkflowProgress",
    "WorkflowStage",
    # sync
    "ChangeEvent",
    "FieldRef",
    "MirroredField",
    "SyncLink",
    "SyncResult",
    "SyncWrite",
]
