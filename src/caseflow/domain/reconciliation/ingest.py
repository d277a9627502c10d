"""Feed OCR extractions through conflict detection, one field at a time."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from caseflow.domain.errors import (
    EntityNotFoundError,
    InvalidCandidateError,
    InvalidSourceError,
    UnknownFieldError,
)
from caseflow.domain.model import Candidate, DetectionOutcome, ValueSource

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime

    from caseflow.domain.errors import CaseflowError
    from caseflow.domain.model import Conflict, FieldScalar
    from caseflow.domain.reconciliation.detect import ConflictDetector

log = logging.getLogger(__name__)

REJECTABLE_ERRORS = (
    EntityNotFoundError,
    InvalidCandidateError,
    InvalidSourceError,
    UnknownFieldError,
)


@dataclass(frozen=True, slots=True, kw_only=True)
class OcrExtraction:
    entity_id: str
    field_name: str
    value: FieldScalar
    confidence: float | None = None
    document_id: str | None = None
    observed_at: datetime | None = None
    source: ValueSource | str = ValueSource.OCR


@dataclass(frozen=True, slots=True)
class RejectedExtraction:
    extraction: OcrExtraction
    error: CaseflowError


@dataclass(slots=True)
class IngestSummary:
    outcomes: Counter[DetectionOutcome] = field(default_factory=Counter)
    conflicts: list[Conflict] = field(default_factory=list)
    rejected: list[RejectedExtraction] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return sum(self.outcomes.values())


def ingest(
    detector: ConflictDetector,
    extractions: Iterable[OcrExtraction],
    *,
    actor: str | None = None,
) -> IngestSummary:
    """Evaluate each extraction on its own.

    Invalid tuples are collected in ``rejected`` and do not stop the batch; any
    other error (lost race, deadline, storage failure) propagates, leaving earlier
    tuples applied.
    """
    summary = IngestSummary()
    for extraction in extractions:
        try:
            candidate = Candidate(
                value=extraction.value,
                source=extraction.source,  # pyright: ignore[reportArgumentType]
                confidence=extraction.confidence,
                document_id=extraction.document_id,
                observed_at=extraction.observed_at,
                actor=actor,
            )
            detection = detector.evaluate(extraction.entity_id, extraction.field_name, candidate)
        except REJECTABLE_ERRORS as exc:
            log.warning(
                "Rejected extraction %s.%s from document %s: %s",
                extraction.entity_id,
                extraction.field_name,
                extraction.document_id,
                exc,
            )
            summary.rejected.append(RejectedExtraction(extraction, exc))
            continue
        summary.outcomes[detection.outcome] += 1
        conflict = detection.conflict
        if conflict is not None and all(seen.id != conflict.id for seen in summary.conflicts):
            summary.conflicts.append(conflict)
    log.info(
        "Ingested %d extractions (%s), %d rejected",
        summary.processed,
        ", ".join(f"{outcome}={count}" for outcome, count in sorted(summary.outcomes.items())),
        len(summary.rejected),
    )
    return summary
