"""Error taxonomy of the reconciliation and progression core.

None of these are retried inside the core. ``ConcurrentModificationError`` is the
one error the immediate caller is expected to handle by re-reading and retrying.
"""

from __future__ import annotations


class CaseflowError(Exception):
    """Base class for all domain errors."""


class EntityNotFoundError(CaseflowError):
    def __init__(self, entity_id: str) -> None:
        super().__init__(f"Unknown or deleted entity: {entity_id}")
        self.entity_id = entity_id


class UnknownFieldError(CaseflowError):
    def __init__(self, field_name: str, *, entity_kind: str | None = None) -> None:
        scope = f" for entity kind {entity_kind!r}" if entity_kind else ""
        super().__init__(f"Field {field_name!r} is not declared{scope}")
        self.field_name = field_name
        self.entity_kind = entity_kind


class InvalidSourceError(CaseflowError):
    def __init__(self, source: object) -> None:
        super().__init__(f"Invalid value source: {source!r}")
        self.source = source


class InvalidCandidateError(CaseflowError):
    """Raised for candidate values with inconsistent provenance (e.g. confidence)."""


class ConflictNotFoundError(CaseflowError):
    def __init__(self, conflict_id: object) -> None:
        super().__init__(f"Unknown conflict: {conflict_id}")
        self.conflict_id = conflict_id


class AlreadyResolvedError(CaseflowError):
    def __init__(self, conflict_id: object, state: str) -> None:
        super().__init__(f"Conflict {conflict_id} is already {state}")
        self.conflict_id = conflict_id
        self.state = state


class UnknownWorkflowError(CaseflowError):
    def __init__(self, workflow: str) -> None:
        super().__init__(f"Unknown workflow: {workflow!r}")
        self.workflow = workflow


class UnknownStageError(CaseflowError):
    def __init__(self, workflow: str, stage: str) -> None:
        super().__init__(f"Unknown stage {stage!r} in workflow {workflow!r}")
        self.workflow = workflow
        self.stage = stage


class StageOrderViolation(CaseflowError):
    def __init__(self, workflow: str, current: str, target: str) -> None:
        super().__init__(
            f"Cannot move {workflow!r} back from {current!r} to {target!r} without a revert"
        )
        self.workflow = workflow
        self.current = current
        self.target = target


class SyncLinkMissingError(CaseflowError):
    def __init__(self, table: str, field_name: str) -> None:
        super().__init__(f"No sync link declared for {table}.{field_name}")
        self.table = table
        self.field_name = field_name


class ConcurrentModificationError(CaseflowError):
    """Raised when an optimistic compare-and-swap loses a race."""


class DeadlineExceededError(CaseflowError):
    """Raised when a caller-supplied deadline expires before commit."""


class InvalidRegistryError(CaseflowError):
    """Raised when workflow or sync link definitions are malformed."""


class InvalidDecisionError(CaseflowError, ValueError):
    """Raised for an unknown decision, or one that names a side the conflict lacks."""

    def __init__(self, decision: object, reason: str | None = None) -> None:
        super().__init__(reason or f"Invalid conflict decision: {decision!r}")
        self.decision = decision
