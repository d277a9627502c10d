"""Append-only audit trail for field-level events."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from caseflow.domain.model.entity import utcnow

if TYPE_CHECKING:
    from datetime import datetime

    from caseflow.domain.model.enums import AuditEventKind, ValueSource
    from caseflow.domain.model.fields import FieldScalar


@dataclass(eq=False, kw_only=True)
class FieldAuditEvent:
    """One thing that happened to ``(entity_id, field_name)``. Never updated."""

    entity_id: str
    field_name: str
    kind: AuditEventKind
    value: FieldScalar = None
    source: ValueSource | None = None
    confidence: float | None = None
    document_id: str | None = None
    field_value_id: UUID | None = None
    conflict_id: UUID | None = None
    actor: str | None = None
    notes: str | None = None
    occurred_at: datetime = field(default_factory=utcnow)
    id: UUID = field(default_factory=uuid4)
