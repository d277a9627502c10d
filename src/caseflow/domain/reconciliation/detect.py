"""Conflict detection: decide what a candidate value does to a field."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from caseflow.domain.model import (
    AuditEventKind,
    Conflict,
    DetectionOutcome,
    FieldValue,
)

if TYPE_CHECKING:
    from caseflow.domain.concurrency import Deadline
    from caseflow.domain.model import CaseEntity, Candidate, FieldSpec
    from caseflow.domain.reconciliation.store import FieldTransaction, FieldValueStore

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Detection:
    outcome: DetectionOutcome
    field_value: FieldValue | None = None
    conflict: Conflict | None = None


class ConflictDetector:
    """Compare candidates against the current value of a field.

    - no current value: the candidate becomes current
    - equal value: the current value is corroborated
    - same source: last write wins, unless the candidate is older than the current value
    - different source: a conflict is opened and the current value stays
    """

    def __init__(self, store: FieldValueStore) -> None:
        self.store = store

    def detect(
        self,
        entity_id: str,
        field_name: str,
        candidate: Candidate,
        *,
        deadline: Deadline | None = None,
    ) -> Conflict | None:
        return self.evaluate(entity_id, field_name, candidate, deadline=deadline).conflict

    def evaluate(
        self,
        entity_id: str,
        field_name: str,
        candidate: Candidate,
        *,
        deadline: Deadline | None = None,
    ) -> Detection:
        store = self.store
        # the lock is keyed by the declared name, so aliases are resolved first
        with store.uow_factory() as uow:
            field_name = store.declared_name(uow.repositories, entity_id, field_name)
        with store.transaction(entity_id, field_name, deadline=deadline) as tx:
            entity = store.require_entity(tx.repositories, entity_id)
            spec = store.spec(entity, field_name)
            return self._evaluate(tx, entity, spec, candidate)

    def _evaluate(
        self,
        tx: FieldTransaction,
        entity: CaseEntity,
        spec: FieldSpec,
        candidate: Candidate,
    ) -> Detection:
        store = self.store
        policy = store.policy
        at = candidate.observed_at or store.now()
        value = policy.canonical(spec.kind, candidate.value)
        current = tx.repositories.field_values.current(entity.id, spec.name)

        if current is None:
            new = FieldValue.from_candidate(entity.id, spec, candidate, at=at, value=value)
            store.install(tx, entity, new, previous=None, kind=AuditEventKind.RECORDED)
            return Detection(DetectionOutcome.ACCEPTED, field_value=new)

        if policy.equal(spec.kind, current.value, value):
            current.corroborate(at=at, actor=candidate.actor)
            tx.repositories.field_values.update(current)
            store.audit(
                tx,
                current,
                kind=AuditEventKind.CORROBORATED,
                actor=candidate.actor,
                notes=f"corroborated by {candidate.source}",
                at=at,
            )
            return Detection(DetectionOutcome.CORROBORATED, field_value=current)

        if current.source is candidate.source:
            if candidate.observed_at is not None and candidate.observed_at < current.updated_at:
                log.warning(
                    "Rejected stale %s write to %s.%s observed at %s (current updated at %s)",
                    candidate.source,
                    entity.id,
                    spec.name,
                    candidate.observed_at.isoformat(),
                    current.updated_at.isoformat(),
                )
                store.audit(
                    tx,
                    current,
                    kind=AuditEventKind.STALE_REJECTED,
                    actor=candidate.actor,
                    notes=f"stale value {value!r} observed at {candidate.observed_at.isoformat()}",
                    at=store.now(),
                )
                return Detection(DetectionOutcome.STALE, field_value=current)
            new = FieldValue.from_candidate(entity.id, spec, candidate, at=at, value=value)
            store.install(
                tx,
                entity,
                new,
                previous=current,
                kind=AuditEventKind.SUPERSEDED,
                notes=f"replaces {current.id}",
            )
            return Detection(DetectionOutcome.SUPERSEDED, field_value=new)

        for existing in tx.repositories.conflicts.open_for_field(entity.id, spec.name):
            if existing.candidate_source is candidate.source and policy.equal(
                spec.kind, existing.candidate_value, value
            ):
                log.debug("Candidate for %s.%s already pending in %s", entity.id, spec.name, existing.id)
                return Detection(DetectionOutcome.CONFLICT, field_value=current, conflict=existing)

        conflict = Conflict(
            entity_id=entity.id,
            case_id=entity.case_id,
            field_name=spec.name,
            current_value_id=current.id,
            candidate_value=value,
            candidate_source=candidate.source,
            candidate_confidence=candidate.confidence,
            candidate_document_id=candidate.document_id,
            candidate_observed_at=candidate.observed_at,
            created_at=store.now(),
            detected_by=candidate.actor,
        )
        tx.repositories.conflicts.add(conflict)
        store.audit(
            tx,
            current,
            kind=AuditEventKind.CONFLICT_OPENED,
            actor=candidate.actor,
            conflict_id=conflict.id,
            notes=f"{candidate.source} candidate {value!r}",
            at=conflict.created_at,
        )
        log.info(
            "Opened conflict %s on %s.%s: %s %r vs %s %r",
            conflict.id,
            entity.id,
            spec.name,
            current.source,
            current.value,
            candidate.source,
            value,
        )
        return Detection(DetectionOutcome.CONFLICT, field_value=current, conflict=conflict)
