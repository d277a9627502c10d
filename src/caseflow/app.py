"""Application orchestration entry points."""

from __future__ import annotations

import json
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING

from caseflow.adapters.ocr import parse_batches, translate_batches
from caseflow.adapters.realtime import HttpChangeNotifier
from caseflow.adapters.sqlalchemy.unit_of_work import SqlAlchemyCaseUnitOfWork, is_started, startup
from caseflow.config import get_realtime_config, get_reconciliation_config, optional_env_var
from caseflow.domain.engine import assemble_engine
from caseflow.domain.progression import load_workflows
from caseflow.domain.sync import load_sync_links
from caseflow.domain.values import ComparisonPolicy

if TYPE_CHECKING:
    from collections.abc import Iterable
    from typing import TextIO

    from caseflow.config import ReconciliationConfig
    from caseflow.domain.engine import CaseflowEngine
    from caseflow.domain.model import FieldAuditEvent
    from caseflow.domain.ports import ChangeNotifier, UnitOfWorkFactory
    from caseflow.domain.reconciliation import IngestSummary


log = getLogger(__name__)


def build_notifier() -> ChangeNotifier | None:
    """HTTP broadcast notifier when a realtime endpoint is configured, else None."""
    if optional_env_var("CASEFLOW_REALTIME_URL") is None:
        log.info("No realtime endpoint configured; changes stay local")
        return None
    return HttpChangeNotifier(get_realtime_config())


def build_engine(
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    notifier: ChangeNotifier | None = None,
    config: ReconciliationConfig | None = None,
) -> CaseflowEngine:
    """Assemble the engine on the configured database and registries."""

    effective_config = config or get_reconciliation_config()
    if unit_of_work_factory is None:
        if not is_started():
            startup()
        unit_of_work_factory = SqlAlchemyCaseUnitOfWork
    registry = load_workflows(effective_config.workflows_file)
    links = load_sync_links(effective_config.sync_links_file)
    log.info(
        "Building engine: node=%s, workflows=%d, sync links=%d",
        effective_config.node_id,
        len(registry),
        len(links),
    )
    return assemble_engine(
        unit_of_work_factory,
        registry=registry,
        links=links,
        node_id=effective_config.node_id,
        notifier=notifier,
        policy=ComparisonPolicy(
            date_tolerance_days=effective_config.date_tolerance_days,
            number_tolerance=effective_config.number_tolerance,
        ),
    )


def ingest_ocr_file(
    engine: CaseflowEngine,
    path: Path,
    *,
    actor: str | None = None,
) -> IngestSummary:
    """Validate an OCR batch file and run every extraction through detection."""

    batches = parse_batches(Path(path).read_bytes())
    extractions = translate_batches(batches)
    log.info("Ingesting %d extractions from %d batches in %s", len(extractions), len(batches), path)
    return engine.ingest(extractions, actor=actor)


def audit_event_record(event: FieldAuditEvent) -> dict[str, object]:
    return {
        "id": str(event.id),
        "entity_id": event.entity_id,
        "field_name": event.field_name,
        "kind": str(event.kind),
        "value": event.value,
        "source": str(event.source) if event.source is not None else None,
        "confidence": event.confidence,
        "document_id": event.document_id,
        "field_value_id": str(event.field_value_id) if event.field_value_id else None,
        "conflict_id": str(event.conflict_id) if event.conflict_id else None,
        "actor": event.actor,
        "notes": event.notes,
        "occurred_at": event.occurred_at.isoformat(),
    }


def write_history(events: Iterable[FieldAuditEvent], output: TextIO) -> int:
    """Write audit events as JSON lines; returns the number written."""

    count = 0
    for event in events:
        output.write(json.dumps(audit_event_record(event), ensure_ascii=False))
        output.write("\n")
        count += 1
    return count
