"""Field values with provenance, and the candidates competing with them."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from caseflow.domain.errors import InvalidCandidateError, InvalidSourceError
from caseflow.domain.model.entity import as_utc, utcnow
from caseflow.domain.model.enums import ValueSource

if TYPE_CHECKING:
    from caseflow.domain.model.schema import FieldSpec

type FieldScalar = str | int | float | bool | None


def coerce_source(source: object) -> ValueSource:
    if isinstance(source, ValueSource):
        return source
    if isinstance(source, str):
        try:
            return ValueSource(source.strip().lower())
        except ValueError:
            raise InvalidSourceError(source) from None
    raise InvalidSourceError(source)


def check_confidence(source: ValueSource, confidence: float | None) -> None:
    if confidence is None:
        return
    if source is not ValueSource.OCR:
        raise InvalidCandidateError(f"Confidence is only meaningful for OCR values, got {source}")
    if not 0.0 <= confidence <= 1.0:
        raise InvalidCandidateError(f"Confidence must be within [0, 1], got {confidence}")


@dataclass(frozen=True, kw_only=True)
class Candidate:
    """A value proposed for a field by a human, the OCR pipeline, or the system."""

    value: FieldScalar | date
    source: ValueSource
    confidence: float | None = None
    document_id: str | None = None
    observed_at: datetime | None = None
    actor: str | None = None

    def __post_init__(self) -> None:
        if isinstance(self.value, date):
            object.__setattr__(self, "value", self.value.isoformat())
        if self.observed_at is not None:
            object.__setattr__(self, "observed_at", as_utc(self.observed_at))
        object.__setattr__(self, "source", coerce_source(self.source))
        check_confidence(self.source, self.confidence)


@dataclass(eq=False, kw_only=True)
class FieldValue:
    """One recorded value of ``(entity_id, field_name)``.

    Only ``updated_at``/``updated_by`` (corroboration) and the current flag change
    after creation. A replaced value stays in place as history.
    """

    entity_id: str
    field_name: str
    value: FieldScalar
    source: ValueSource
    confidence: float | None = None
    document_id: str | None = None
    recorded_at: datetime = field(default_factory=utcnow)
    recorded_by: str | None = None
    updated_at: datetime = field(default_factory=utcnow)
    updated_by: str | None = None
    is_current: bool = True
    superseded_at: datetime | None = None
    id: UUID = field(default_factory=uuid4)
    version: int = 0

    def __post_init__(self) -> None:
        self.source = coerce_source(self.source)
        check_confidence(self.source, self.confidence)

    @classmethod
    def from_candidate(
        cls,
        entity_id: str,
        spec: FieldSpec,
        candidate: Candidate,
        *,
        at: datetime,
        value: FieldScalar,
    ) -> FieldValue:
        return cls(
            entity_id=entity_id,
            field_name=spec.name,
            value=value,
            source=candidate.source,
            confidence=candidate.confidence,
            document_id=candidate.document_id,
            recorded_at=at,
            recorded_by=candidate.actor,
            updated_at=at,
            updated_by=candidate.actor,
        )

    def corroborate(self, *, at: datetime, actor: str | None) -> None:
        self.updated_at = max(self.updated_at, at)
        self.updated_by = actor

    def supersede(self, *, at: datetime) -> None:
        self.is_current = False
        self.superseded_at = at
