"""Workflows, their ordered stages, and stage assignments."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from caseflow.domain.errors import UnknownStageError
from caseflow.domain.model.entity import utcnow

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(frozen=True, slots=True, kw_only=True)
class WorkflowStage:
    name: str
    label: str
    ordinal: int
    milestone: bool = False
    client_visible: bool = True


@dataclass(frozen=True, slots=True, kw_only=True)
class Workflow:
    """A named, strictly linear sequence of stages.

    Ordinals are the position in ``stages`` (starting at 0), so the order is the
    declaration order and never depends on string comparison.
    """

    name: str
    label: str
    stages: tuple[WorkflowStage, ...]

    def stage(self, name: str) -> WorkflowStage:
        for stage in self.stages:
            if stage.name == name:
                return stage
        raise UnknownStageError(self.name, name)

    @property
    def first(self) -> WorkflowStage:
        return self.stages[0]

    @property
    def last(self) -> WorkflowStage:
        return self.stages[-1]

    def milestones(self) -> tuple[WorkflowStage, ...]:
        return tuple(stage for stage in self.stages if stage.milestone)

    def client_visible(self) -> tuple[WorkflowStage, ...]:
        return tuple(stage for stage in self.stages if stage.client_visible)

    def stage_names(self) -> tuple[str, ...]:
        return tuple(stage.name for stage in self.stages)


@dataclass(eq=False, kw_only=True)
class StageAssignment:
    """Stage of one entity in one workflow. Replaced assignments stay as history."""

    entity_id: str
    case_id: str
    workflow: str
    stage: str
    ordinal: int
    is_current: bool = True
    assigned_at: datetime = field(default_factory=utcnow)
    assigned_by: str | None = None
    previous_stage: str | None = None
    reverted: bool = False
    reason: str | None = None
    id: UUID = field(default_factory=uuid4)
    version: int = 0


@dataclass(frozen=True, slots=True, kw_only=True)
class WorkflowProgress:
    workflow: str
    stage: str | None
    ordinal: int | None
    total_stages: int

    @property
    def completion(self) -> float:
        """Share of the workflow done; the last stage counts as complete."""
        if self.ordinal is None:
            return 0.0
        return (self.ordinal + 1) / self.total_stages
