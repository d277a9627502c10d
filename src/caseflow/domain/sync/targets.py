"""Tables the sync coordinator can write to.

Master data lives in the field value store; any other table is mirrored as plain
``MirroredField`` rows. Both only accept a write that is newer than what they hold.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from caseflow.domain.concurrency import KeyedLocks, check_deadline
from caseflow.domain.errors import EntityNotFoundError
from caseflow.domain.model import MirroredField, ValueSource, as_utc

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

    from caseflow.domain.concurrency import Deadline
    from caseflow.domain.model import FieldScalar
    from caseflow.domain.ports import UnitOfWorkFactory
    from caseflow.domain.reconciliation.store import FieldValueStore

log = logging.getLogger(__name__)


@runtime_checkable
class SyncTarget(Protocol):
    def read(self, entity_id: str, field_name: str) -> tuple[FieldScalar, datetime] | None:
        """Stored value and its timestamp, if any."""
        ...

    def write_if_newer(
        self,
        entity_id: str,
        field_name: str,
        value: FieldScalar,
        *,
        timestamp: datetime,
        origin: str,
        actor: str | None = None,
        source: ValueSource | None = None,
        derived_from: UUID | None = None,
        deadline: Deadline | None = None,
    ) -> bool:
        """Store ``value`` unless the stored timestamp is not older; return whether it was stored."""
        ...


class FieldValueTarget:
    """Writes into the field value store, bypassing conflict detection."""

    def __init__(self, store: FieldValueStore) -> None:
        self.store = store

    def read(self, entity_id: str, field_name: str) -> tuple[FieldScalar, datetime] | None:
        current = self.store.current(entity_id, field_name)
        if current is None:
            return None
        return current.value, current.updated_at

    def write_if_newer(
        self,
        entity_id: str,
        field_name: str,
        value: FieldScalar,
        *,
        timestamp: datetime,
        origin: str,
        actor: str | None = None,
        source: ValueSource | None = None,
        derived_from: UUID | None = None,
        deadline: Deadline | None = None,
    ) -> bool:
        return self.store.write_if_newer(
            entity_id,
            field_name,
            value,
            timestamp=timestamp,
            actor=actor or origin,
            source=source or ValueSource.SYSTEM,
            derived_from=derived_from,
            deadline=deadline,
        )


class MirrorTableTarget:
    """Last-writer-wins copy of a derived table such as ``intake_data``."""

    def __init__(
        self,
        table: str,
        uow_factory: UnitOfWorkFactory,
        *,
        locks: KeyedLocks | None = None,
    ) -> None:
        self.table = table
        self.uow_factory = uow_factory
        self.locks = locks or KeyedLocks()

    def read(self, entity_id: str, field_name: str) -> tuple[FieldScalar, datetime] | None:
        with self.uow_factory() as uow:
            row = uow.repositories.mirrors.get(self.table, entity_id, field_name)
        if row is None:
            return None
        return row.value, row.updated_at

    def values(self, entity_id: str) -> dict[str, FieldScalar]:
        with self.uow_factory() as uow:
            rows = uow.repositories.mirrors.list_for_entity(self.table, entity_id)
        return {row.field_name: row.value for row in rows}

    def write_if_newer(
        self,
        entity_id: str,
        field_name: str,
        value: FieldScalar,
        *,
        timestamp: datetime,
        origin: str,
        actor: str | None = None,
        source: ValueSource | None = None,
        derived_from: UUID | None = None,
        deadline: Deadline | None = None,
    ) -> bool:
        timestamp = as_utc(timestamp)
        with self.locks.hold(("mirror", self.table, entity_id, field_name), deadline=deadline):
            with self.uow_factory() as uow:
                repositories = uow.repositories
                entity = repositories.entities.get(entity_id)
                if entity is None or entity.is_deleted:
                    raise EntityNotFoundError(entity_id)
                row = repositories.mirrors.get(self.table, entity_id, field_name)
                if row is not None and row.updated_at >= timestamp:
                    return False
                if row is None:
                    row = MirroredField(
                        table=self.table,
                        entity_id=entity_id,
                        field_name=field_name,
                        value=value,
                        updated_at=timestamp,
                        origin=origin,
                    )
                    repositories.mirrors.add(row)
                else:
                    row.value = value
                    row.updated_at = timestamp
                    row.origin = origin
                    repositories.mirrors.update(row)
                check_deadline(deadline, "commit")
                uow.commit()
        log.debug("Wrote %s.%s for %s (derived from %s)", self.table, field_name, entity_id, derived_from)
        return True
