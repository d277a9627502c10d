"""Conflict resolution: apply a reviewer decision exactly once."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from caseflow.domain.errors import (
    AlreadyResolvedError,
    ConcurrentModificationError,
    ConflictNotFoundError,
    InvalidDecisionError,
)
from caseflow.domain.model import (
    AuditEventKind,
    ConflictDecision,
    FieldValue,
    ValueSource,
)

if TYPE_CHECKING:
    from uuid import UUID

    from caseflow.domain.concurrency import Deadline
    from caseflow.domain.model import CaseEntity, Conflict
    from caseflow.domain.reconciliation.store import FieldTransaction, FieldValueStore

log = logging.getLogger(__name__)


def coerce_decision(decision: object) -> ConflictDecision:
    if isinstance(decision, ConflictDecision):
        return decision
    if isinstance(decision, str):
        try:
            return ConflictDecision(decision.strip().lower())
        except ValueError:
            raise InvalidDecisionError(decision) from None
    raise InvalidDecisionError(decision)


def keeps_current(conflict: Conflict, current: FieldValue, decision: ConflictDecision) -> bool:
    """Whether ``decision`` picks the current value over the conflict's candidate.

    ``accept_ocr`` picks the OCR side and ``keep_manual`` the manual one, whichever of
    the two is current. Between OCR and system values ``keep_manual`` picks the system
    value.
    """
    candidate_source = conflict.candidate_source
    if decision is ConflictDecision.ACCEPT_OCR:
        if candidate_source is ValueSource.OCR:
            return False
        if current.source is ValueSource.OCR:
            return True
        raise InvalidDecisionError(
            decision, f"Conflict {conflict.id} has no OCR value to accept"
        )
    if ValueSource.MANUAL in (current.source, candidate_source):
        return current.source is ValueSource.MANUAL
    return current.source is not ValueSource.OCR


class ConflictResolver:
    def __init__(self, store: FieldValueStore) -> None:
        self.store = store

    def resolve(
        self,
        conflict_id: UUID,
        decision: ConflictDecision | str,
        *,
        actor: str,
        notes: str | None = None,
        deadline: Deadline | None = None,
    ) -> Conflict:
        """Close an open conflict.

        ``accept_ocr`` makes the OCR side current, ``keep_manual`` the manual side,
        whether that side is the current value or the candidate. ``ignore`` leaves the
        value alone. The first two refuse to act on a field whose current value
        changed after the conflict was opened.
        """
        decision = coerce_decision(decision)
        store = self.store
        # the field is only known after reading the conflict; re-read under the lock
        with store.uow_factory() as uow:
            conflict = uow.repositories.conflicts.get(conflict_id)
        if conflict is None:
            raise ConflictNotFoundError(conflict_id)

        with store.transaction(conflict.entity_id, conflict.field_name, deadline=deadline) as tx:
            conflict = tx.repositories.conflicts.get(conflict_id)
            if conflict is None:
                raise ConflictNotFoundError(conflict_id)
            if not conflict.is_open:
                raise AlreadyResolvedError(conflict_id, conflict.state.value)
            entity = store.require_entity(tx.repositories, conflict.entity_id)
            self._apply(tx, entity, conflict, decision, actor=actor, notes=notes)
        log.info(
            "Conflict %s on %s.%s %s by %s (%s)",
            conflict.id,
            conflict.entity_id,
            conflict.field_name,
            conflict.state,
            actor,
            decision,
        )
        return conflict

    def _apply(
        self,
        tx: FieldTransaction,
        entity: CaseEntity,
        conflict: Conflict,
        decision: ConflictDecision,
        *,
        actor: str,
        notes: str | None,
    ) -> None:
        store = self.store
        repositories = tx.repositories
        now = store.now()
        current = repositories.field_values.current(conflict.entity_id, conflict.field_name)

        if decision is ConflictDecision.IGNORE:
            conflict.close(decision, actor=actor, at=now, notes=notes)
            repositories.conflicts.update(conflict)
            if current is not None:
                store.audit(
                    tx,
                    current,
                    kind=AuditEventKind.CONFLICT_IGNORED,
                    actor=actor,
                    conflict_id=conflict.id,
                    notes=notes,
                    at=now,
                )
                tx.events.append(store.change_event(entity, current))
            return

        if current is None or current.id != conflict.current_value_id:
            raise ConcurrentModificationError(
                f"{conflict.entity_id}.{conflict.field_name} changed since conflict "
                f"{conflict.id} was opened"
            )
        keep = keeps_current(conflict, current, decision)
        conflict.close(decision, actor=actor, at=now, notes=notes)
        repositories.conflicts.update(conflict)

        if keep:
            current.corroborate(at=now, actor=actor)
            repositories.field_values.update(current)
            store.audit(
                tx,
                current,
                kind=AuditEventKind.CONFLICT_RESOLVED,
                actor=actor,
                conflict_id=conflict.id,
                notes=notes,
                at=now,
            )
            tx.events.append(store.change_event(entity, current))
            return

        spec = store.spec(entity, conflict.field_name)
        chosen = FieldValue(
            entity_id=conflict.entity_id,
            field_name=spec.name,
            value=conflict.candidate_value,
            source=conflict.candidate_source,
            confidence=conflict.candidate_confidence,
            document_id=conflict.candidate_document_id,
            recorded_at=now,
            recorded_by=actor,
            updated_at=now,
            updated_by=actor,
        )
        store.install(
            tx,
            entity,
            chosen,
            previous=current,
            kind=AuditEventKind.CONFLICT_RESOLVED,
            conflict_id=conflict.id,
            notes=notes,
        )
