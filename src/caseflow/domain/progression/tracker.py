"""Stage assignments per entity and workflow, and the counts derived from them."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from caseflow.domain.concurrency import KeyedLocks, check_deadline
from caseflow.domain.errors import EntityNotFoundError, StageOrderViolation
from caseflow.domain.model import StageAssignment, WorkflowProgress, as_utc, utcnow

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from caseflow.domain.concurrency import Deadline
    from caseflow.domain.ports import UnitOfWorkFactory
    from caseflow.domain.progression.registry import StageRegistry

log = logging.getLogger(__name__)


class StageTracker:
    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        registry: StageRegistry,
        *,
        locks: KeyedLocks | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.uow_factory = uow_factory
        self.registry = registry
        self.locks = locks or KeyedLocks()
        self.clock = clock

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
        """Move ``entity_id`` to ``target_stage`` of ``workflow``.

        Stages only move forward unless ``allow_revert`` is set; a revert is stored
        with ``reverted=True`` and logged. Asking for the current stage returns the
        current assignment unchanged.
        """
        definition = self.registry.workflow(workflow)
        target = definition.stage(target_stage)
        with self.locks.hold(("stage", entity_id, workflow), deadline=deadline):
            with self.uow_factory() as uow:
                repositories = uow.repositories
                entity = repositories.entities.get(entity_id)
                if entity is None or entity.is_deleted:
                    raise EntityNotFoundError(entity_id)
                current = repositories.stages.current(entity_id, workflow)
                if current is not None and current.stage == target.name:
                    return current
                reverted = False
                if current is not None and target.ordinal < current.ordinal:
                    if not allow_revert:
                        raise StageOrderViolation(workflow, current.stage, target.name)
                    reverted = True

                now = as_utc(self.clock())
                if current is not None:
                    current.is_current = False
                    repositories.stages.update(current)
                assignment = StageAssignment(
                    entity_id=entity_id,
                    case_id=entity.case_id,
                    workflow=workflow,
                    stage=target.name,
                    ordinal=target.ordinal,
                    assigned_at=now,
                    assigned_by=actor,
                    previous_stage=current.stage if current is not None else None,
                    reverted=reverted,
                    reason=reason,
                )
                repositories.stages.add(assignment)
                check_deadline(deadline, "commit")
                uow.commit()

        if reverted:
            log.warning(
                "Reverted %s in %s from %s to %s by %s: %s",
                entity_id,
                workflow,
                assignment.previous_stage,
                assignment.stage,
                actor,
                reason or "no reason given",
            )
        else:
            log.info(
                "Moved %s in %s from %s to %s by %s",
                entity_id,
                workflow,
                assignment.previous_stage,
                assignment.stage,
                actor,
            )
        return assignment

    def current(self, entity_id: str, workflow: str) -> StageAssignment | None:
        self.registry.workflow(workflow)
        with self.uow_factory() as uow:
            return uow.repositories.stages.current(entity_id, workflow)

    def aggregate(self, workflow: str, case_id: str | None = None) -> dict[str, int]:
        """Entities per stage, in stage order, with empty stages included."""
        definition = self.registry.workflow(workflow)
        with self.uow_factory() as uow:
            counts = uow.repositories.stages.count_current(workflow, case_id=case_id)
        return {stage.name: counts.get(stage.name, 0) for stage in definition.stages}

    def stage_history(self, entity_id: str, workflow: str) -> list[StageAssignment]:
        self.registry.workflow(workflow)
        with self.uow_factory() as uow:
            return list(uow.repositories.stages.history(entity_id, workflow))

    def progress(self, entity_id: str) -> dict[str, WorkflowProgress]:
        """Where ``entity_id`` stands in every registered workflow."""
        with self.uow_factory() as uow:
            if uow.repositories.entities.get(entity_id) is None:
                raise EntityNotFoundError(entity_id)
            current = {
                assignment.workflow: assignment
                for assignment in uow.repositories.stages.current_for_entity(entity_id)
            }
        progress: dict[str, WorkflowProgress] = {}
        for definition in self.registry:
            assignment = current.get(definition.name)
            progress[definition.name] = WorkflowProgress(
                workflow=definition.name,
                stage=assignment.stage if assignment is not None else None,
                ordinal=assignment.ordinal if assignment is not None else None,
                total_stages=len(definition.stages),
            )
        return progress
