"""The engine end to end on the SQLAlchemy unit of work."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from caseflow.domain.engine import CaseflowEngine, assemble_engine
from caseflow.domain.errors import AlreadyResolvedError, StageOrderViolation
from caseflow.domain.model import (
    AuditEventKind,
    Candidate,
    ConflictDecision,
    DetectionOutcome,
    ValueSource,
)
from caseflow.domain.reconciliation import OcrExtraction
from tests.helpers.fakes import ManualClock

if TYPE_CHECKING:
    from collections.abc import Callable

    from caseflow.adapters.sqlalchemy import SqlAlchemyCaseUnitOfWork
    from caseflow.domain.progression import StageRegistry
    from caseflow.domain.sync import SyncLinkRegistry


@pytest.fixture
def sql_engine(
    sqlite_unit_of_work: Callable[[], SqlAlchemyCaseUnitOfWork],
    registry: StageRegistry,
    links: SyncLinkRegistry,
) -> CaseflowEngine:
    engine = assemble_engine(
        sqlite_unit_of_work,
        registry=registry,
        links=links,
        node_id="node-sql",
        clock=ManualClock(),
    )
    engine.cases.register_case("case-1")
    engine.cases.register_member("member-1", "case-1", relation="grandfather")
    return engine


def test_reconciliation_round_trip(sql_engine: CaseflowEngine) -> None:
    sql_engine.evaluate(
        "case-1",
        "applicant_pob",
        Candidate(value="WARSAW", source=ValueSource.MANUAL, actor="agent"),
    )
    summary = sql_engine.ingest(
        [
            OcrExtraction(
                entity_id="case-1",
                field_name="applicant_pob",
                value="Warszawa",
                confidence=0.93,
                document_id="birth-cert-7",
            ),
            OcrExtraction(
                entity_id="member-1",
                field_name="birth_date",
                value="03.11.1921",
                confidence=0.71,
                document_id="birth-cert-8",
            ),
        ],
        actor="ocr-job",
    )
    assert summary.outcomes == {DetectionOutcome.CONFLICT: 1, DetectionOutcome.ACCEPTED: 1}
    (conflict,) = sql_engine.list_open_conflicts(case_id="case-1")

    resolved = sql_engine.resolve(conflict.id, ConflictDecision.ACCEPT_OCR, actor="reviewer")

    assert resolved.version == 2
    with pytest.raises(AlreadyResolvedError):
        sql_engine.resolve(conflict.id, ConflictDecision.IGNORE, actor="reviewer")
    assert sql_engine.store.values("case-1") == {"applicant_pob": "Warszawa"}
    assert sql_engine.store.values("member-1") == {"birth_date": "1921-11-03"}
    history = sql_engine.store.history("case-1", "applicant_pob")
    assert [(value.value, value.is_current) for value in history] == [
        ("WARSAW", False),
        ("Warszawa", True),
    ]
    assert [event.kind for event in sql_engine.export_field_history("case-1", "applicant_pob")] == [
        AuditEventKind.RECORDED,
        AuditEventKind.CONFLICT_OPENED,
        AuditEventKind.CONFLICT_RESOLVED,
    ]
    intake = sql_engine.sync.target("intake_data", "place_of_birth").read("case-1", "place_of_birth")
    assert intake is not None
    assert intake[0] == "Warszawa"


def test_stage_progression(sql_engine: CaseflowEngine) -> None:
    sql_engine.advance("case-1", "archives", "request_prepared", actor="agent")
    sql_engine.advance("member-1", "archives", "request_prepared", actor="agent")
    sql_engine.advance("case-1", "archives", "awaiting_response", actor="agent")

    with pytest.raises(StageOrderViolation):
        sql_engine.advance("case-1", "archives", "archives_identified", actor="agent")

    counts = sql_engine.aggregate("archives", "case-1")
    assert counts["request_prepared"] == 1
    assert counts["awaiting_response"] == 1
    assert sum(counts.values()) == 2
    history = sql_engine.stages.stage_history("case-1", "archives")
    assert [(entry.stage, entry.is_current) for entry in history] == [
        ("request_prepared", False),
        ("awaiting_response", True),
    ]

    sql_engine.cases.retire("member-1")
    assert sum(sql_engine.aggregate("archives").values()) == 1


def test_intake_write_reaches_master(sql_engine: CaseflowEngine) -> None:
    result = sql_engine.sync.record("intake_data", "case-1", "sex", "Mężczyzna", actor="client")

    assert result.accepted
    current = sql_engine.store.current("case-1", "applicant_sex")
    assert current is not None
    assert current.value == "M"
