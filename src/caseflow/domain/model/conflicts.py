"""Conflicts between the current value of a field and a competing candidate."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from caseflow.domain.model.entity import utcnow
from caseflow.domain.model.enums import (
    ConfidenceBand,
    ConflictDecision,
    ConflictState,
    ValueSource,
)

if TYPE_CHECKING:
    from datetime import datetime

    from caseflow.domain.model.fields import FieldScalar

HIGH_CONFIDENCE = 0.9
MEDIUM_CONFIDENCE = 0.75


def confidence_band(confidence: float | None) -> ConfidenceBand:
    if confidence is None:
        return ConfidenceBand.UNKNOWN
    if confidence >= HIGH_CONFIDENCE:
        return ConfidenceBand.HIGH
    if confidence >= MEDIUM_CONFIDENCE:
        return ConfidenceBand.MEDIUM
    return ConfidenceBand.LOW


@dataclass(eq=False, kw_only=True)
class Conflict:
    """An unresolved disagreement on one field.

    A conflict leaves ``open`` exactly once, either ``resolved`` or ``ignored``;
    both terminal states are final.
    """

    entity_id: str
    case_id: str
    field_name: str
    current_value_id: UUID
    candidate_value: FieldScalar
    candidate_source: ValueSource
    candidate_confidence: float | None = None
    candidate_document_id: str | None = None
    candidate_observed_at: datetime | None = None
    state: ConflictState = ConflictState.OPEN
    decision: ConflictDecision | None = None
    notes: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    detected_by: str | None = None
    resolved_at: datetime | None = None
    resolved_by: str | None = None
    id: UUID = field(default_factory=uuid4)
    version: int = 0

    @property
    def is_open(self) -> bool:
        return self.state is ConflictState.OPEN

    @property
    def confidence_band(self) -> ConfidenceBand:
        return confidence_band(self.candidate_confidence)

    def close(
        self,
        decision: ConflictDecision,
        *,
        actor: str,
        at: datetime,
        notes: str | None = None,
    ) -> None:
        self.decision = decision
        self.state = (
            ConflictState.IGNORED if decision is ConflictDecision.IGNORE else ConflictState.RESOLVED
        )
        self.resolved_at = at
        self.resolved_by = actor
        if notes is not None:
            self.notes = notes
