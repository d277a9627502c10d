"""Facade composing reconciliation, progression and sync behind one object."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from caseflow.domain.cases import CaseDirectory
from caseflow.domain.concurrency import KeyedLocks
from caseflow.domain.model import DEFAULT_SCHEMAS, utcnow
from caseflow.domain.progression import StageTracker
from caseflow.domain.reconciliation import (
    ConflictDetector,
    ConflictResolver,
    FieldValueStore,
    ingest,
)
from caseflow.domain.sync import FieldValueTarget, MirrorTableTarget, SyncCoordinator
from caseflow.domain.values import ComparisonPolicy

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping
    from datetime import datetime
    from uuid import UUID

    from caseflow.domain.concurrency import Deadline
    from caseflow.domain.model import (
        Candidate,
        ChangeEvent,
        Conflict,
        ConflictDecision,
        EntityKind,
        EntitySchema,
        FieldAuditEvent,
        StageAssignment,
        SyncResult,
    )
    from caseflow.domain.ports import ChangeNotifier, UnitOfWorkFactory
    from caseflow.domain.progression import StageRegistry
    from caseflow.domain.reconciliation import Detection, IngestSummary, OcrExtraction
    from caseflow.domain.sync import SyncLinkRegistry


@dataclass(slots=True)
class CaseflowEngine:
    """Entry point for request handlers, ingestion jobs and the CLI.

    Safe to share between threads; every operation opens its own unit of work.
    """

    cases: CaseDirectory
    store: FieldValueStore
    detector: ConflictDetector
    resolver: ConflictResolver
    stages: StageTracker
    sync: SyncCoordinator

    def detect(
        self,
        entity_id: str,
        field_name: str,
        candidate: Candidate,
        *,
        deadline: Deadline | None = None,
    ) -> Conflict | None:
        return self.detector.detect(entity_id, field_name, candidate, deadline=deadline)

    def evaluate(
        self,
        entity_id: str,
        field_name: str,
        candidate: Candidate,
        *,
        deadline: Deadline | None = None,
    ) -> Detection:
        return self.detector.evaluate(entity_id, field_name, candidate, deadline=deadline)

    def resolve(
        self,
        conflict_id: UUID,
        decision: ConflictDecision | str,
        *,
        actor: str,
        notes: str | None = None,
        deadline: Deadline | None = None,
    ) -> Conflict:
        return self.resolver.resolve(
            conflict_id, decision, actor=actor, notes=notes, deadline=deadline
        )

    def ingest(self, extractions: Iterable[OcrExtraction], *, actor: str | None = None) -> IngestSummary:
        return ingest(self.detector, extractions, actor=actor)

    def advance(
        self,
        entity_id: str,
        workflow: str,
        target_stage: str,
        *,
        actor: str,
        allow_revert: bool = False,
        reason: str | None = None,
        deadline: Deadline | None = None,
    ) -> StageAssignment:
        return self.stages.advance(
            entity_id,
            workflow,
            target_stage,
            actor=actor,
            allow_revert=allow_revert,
            reason=reason,
            deadline=deadline,
        )

    def aggregate(self, workflow: str, case_id: str | None = None) -> dict[str, int]:
        return self.stages.aggregate(workflow, case_id)

    def propagate(self, change: ChangeEvent, *, deadline: Deadline | None = None) -> SyncResult:
        return self.sync.propagate(change, deadline=deadline)

    def list_open_conflicts(
        self,
        *,
        entity_id: str | None = None,
        case_id: str | None = None,
        min_confidence: float | None = None,
    ) -> list[Conflict]:
        with self.store.uow_factory() as uow:
            return list(
                uow.repositories.conflicts.list_open(
                    entity_id=entity_id,
                    case_id=case_id,
                    min_confidence=min_confidence,
                )
            )

    def get_conflict(self, conflict_id: UUID) -> Conflict | None:
        with self.store.uow_factory() as uow:
            return uow.repositories.conflicts.get(conflict_id)

    def export_field_history(self, entity_id: str, field_name: str | None = None) -> list[FieldAuditEvent]:
        return self.store.export_field_history(entity_id, field_name)


def assemble_engine(
    uow_factory: UnitOfWorkFactory,
    *,
    registry: StageRegistry,
    links: SyncLinkRegistry,
    node_id: str,
    notifier: ChangeNotifier | None = None,
    policy: ComparisonPolicy | None = None,
    schemas: Mapping[EntityKind, EntitySchema] = DEFAULT_SCHEMAS,
    clock: Callable[[], datetime] = utcnow,
) -> CaseflowEngine:
    """Wire the components; local field changes flow into the sync coordinator."""
    locks = KeyedLocks()
    store = FieldValueStore(
        uow_factory,
        node_id=node_id,
        schemas=schemas,
        policy=policy or ComparisonPolicy(),
        locks=locks,
        clock=clock,
    )
    targets: dict[str, FieldValueTarget | MirrorTableTarget] = {}
    field_target = FieldValueTarget(store)
    for schema in schemas.values():
        targets[schema.table] = field_target
    for table in links.tables():
        targets.setdefault(table, MirrorTableTarget(table, uow_factory, locks=locks))
    sync = SyncCoordinator(links, targets, node_id=node_id, notifier=notifier, clock=clock)
    store.subscribe(sync.on_local_change)
    return CaseflowEngine(
        cases=CaseDirectory(uow_factory, clock=clock),
        store=store,
        detector=ConflictDetector(store),
        resolver=ConflictResolver(store),
        stages=StageTracker(uow_factory, registry, locks=locks, clock=clock),
        sync=sync,
    )
