from __future__ import annotations

import io
import json
from typing import TYPE_CHECKING

import pytest

from caseflow.adapters.realtime import HttpChangeNotifier
from caseflow.app import build_engine, build_notifier, ingest_ocr_file, write_history
from caseflow.config import ReconciliationConfig
from caseflow.domain.model import Candidate, DetectionOutcome, ValueSource

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from caseflow.domain.engine import CaseflowEngine
    from tests.helpers.fakes import FakeUnitOfWork


def test_build_engine_uses_configured_tolerances(
    uow_factory: Callable[[], FakeUnitOfWork],
) -> None:
    config = ReconciliationConfig(node_id="worker-1", date_tolerance_days=1)

    engine = build_engine(unit_of_work_factory=uow_factory, config=config)
    engine.evaluate(
        "case-1", "applicant_dob", Candidate(value="1990-05-01", source=ValueSource.MANUAL)
    )
    detection = engine.evaluate(
        "case-1",
        "applicant_dob",
        Candidate(value="02.05.1990", source=ValueSource.OCR, confidence=0.8),
    )

    assert engine.sync.node_id == "worker-1"
    assert detection.outcome is DetectionOutcome.CORROBORATED
    assert "translation" in engine.stages.registry


def test_build_notifier_follows_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("CASEFLOW_REALTIME_URL", raising=False)
    assert build_notifier() is None

    monkeypatch.setenv("CASEFLOW_REALTIME_URL", "https://realtime.example.com")
    monkeypatch.setenv("CASEFLOW_REALTIME_KEY", "secret")
    assert isinstance(build_notifier(), HttpChangeNotifier)


def test_ingest_ocr_file_with_several_batches(engine: CaseflowEngine, tmp_path: Path) -> None:
    path = tmp_path / "batches.json"
    path.write_text(
        json.dumps(
            [
                {
                    "document_id": "birth-cert-7",
                    "entity_id": "case-1",
                    "processed_at": "2025-03-04T10:15:00Z",
                    "extractions": [{"field": "applicant_pob", "value": "Lublin", "confidence": 0.9}],
                },
                {
                    "document_id": "marriage-cert-2",
                    "entity_id": "member-1",
                    "extractions": [{"field": "marriage_place", "value": "Lwów", "confidence": 0.6}],
                },
            ]
        ),
        encoding="utf-8",
    )

    summary = ingest_ocr_file(engine, path)

    assert summary.outcomes == {DetectionOutcome.ACCEPTED: 2}
    assert engine.store.values("member-1") == {"marriage_place": "Lwów"}


def test_write_history_emits_json_lines(engine: CaseflowEngine) -> None:
    engine.evaluate(
        "case-1", "children_count", Candidate(value="3", source=ValueSource.MANUAL, actor="agent")
    )
    buffer = io.StringIO()

    count = write_history(engine.export_field_history("case-1"), buffer)

    (line,) = buffer.getvalue().splitlines()
    record = json.loads(line)
    assert count == 1
    assert record["field_name"] == "children_count"
    assert record["value"] == 3
    assert record["source"] == "manual"
    assert record["occurred_at"].startswith("2025-03-01T09:00:00")
