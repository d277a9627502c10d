from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from caseflow.domain.errors import (
    EntityNotFoundError,
    InvalidCandidateError,
    InvalidSourceError,
    UnknownFieldError,
)
from caseflow.domain.model import Candidate, DetectionOutcome, ValueSource
from caseflow.domain.reconciliation import OcrExtraction

if TYPE_CHECKING:
    from caseflow.domain.engine import CaseflowEngine


def _extraction(field_name: str, value: object, **kwargs: object) -> OcrExtraction:
    kwargs.setdefault("entity_id", "case-1")
    kwargs.setdefault("confidence", 0.9)
    kwargs.setdefault("document_id", "passport-scan-1")
    return OcrExtraction(field_name=field_name, value=value, **kwargs)  # pyright: ignore[reportArgumentType]


def test_batch_counts_every_outcome(engine: CaseflowEngine) -> None:
    engine.evaluate(
        "case-1",
        "applicant_last_name",
        Candidate(value="Kowalski", source=ValueSource.MANUAL, actor="agent"),
    )
    engine.evaluate(
        "case-1",
        "applicant_first_name",
        Candidate(value="Jan", source=ValueSource.MANUAL, actor="agent"),
    )

    summary = engine.ingest(
        [
            _extraction("applicant_dob", "12.03.1961"),
            _extraction("applicant_first_name", "JAN"),
            _extraction("applicant_last_name", "Kowalsky"),
            _extraction("applicant_last_name", "kowalsky", document_id="passport-scan-2"),
        ],
        actor="ocr-job",
    )

    assert summary.outcomes == {
        DetectionOutcome.ACCEPTED: 1,
        DetectionOutcome.CORROBORATED: 1,
        DetectionOutcome.CONFLICT: 2,
    }
    assert summary.processed == 4
    assert len(summary.conflicts) == 1
    assert summary.rejected == []
    current = engine.store.current("case-1", "applicant_dob")
    assert current is not None
    assert current.value == "1961-03-12"
    assert current.recorded_by == "ocr-job"


def test_invalid_extractions_do_not_stop_the_batch(engine: CaseflowEngine) -> None:
    summary = engine.ingest(
        [
            _extraction("applicant_shoe_size", "42"),
            _extraction("applicant_pob", "Lublin", entity_id="unknown-case"),
            _extraction("applicant_pob", "Lublin", confidence=1.7),
            _extraction("applicant_pob", "Lublin", source="fax"),
            _extraction("applicant_pob", "Lublin"),
        ]
    )

    assert summary.processed == 1
    assert [type(rejected.error) for rejected in summary.rejected] == [
        UnknownFieldError,
        EntityNotFoundError,
        InvalidCandidateError,
        InvalidSourceError,
    ]
    current = engine.store.current("case-1", "applicant_pob")
    assert current is not None
    assert current.value == "Lublin"


def test_other_errors_propagate(engine: CaseflowEngine) -> None:
    def explode(*_: object, **__: object) -> None:
        raise RuntimeError("storage offline")

    engine.detector.evaluate = explode  # type: ignore[method-assign]

    with pytest.raises(RuntimeError, match="storage offline"):
        engine.ingest([_extraction("applicant_pob", "Lublin")])
