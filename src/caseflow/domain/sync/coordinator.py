"""Bidirectional sync between master data and derived tables.

Each write is ordered by its timestamp: a target is only written when what it
holds is older than the change. Writes made on behalf of another change carry
``derived_from`` and are never propagated again, and events that come back from
the notifier with this node's origin are dropped, so changes cannot loop.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING

from caseflow.domain.errors import SyncLinkMissingError
from caseflow.domain.model import (
    ChangeEvent,
    SyncResult,
    SyncWrite,
    ValueSource,
    as_utc,
    utcnow,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from datetime import datetime

    from caseflow.domain.concurrency import Deadline
    from caseflow.domain.model import FieldScalar
    from caseflow.domain.ports import ChangeNotifier, Unsubscribe
    from caseflow.domain.sync.links import SyncLinkRegistry
    from caseflow.domain.sync.targets import SyncTarget

log = logging.getLogger(__name__)


class SyncCoordinator:
    def __init__(
        self,
        links: SyncLinkRegistry,
        targets: Mapping[str, SyncTarget],
        *,
        node_id: str,
        notifier: ChangeNotifier | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.links = links
        self.targets = dict(targets)
        self.node_id = node_id
        self.notifier = notifier
        self.clock = clock

    def target(self, table: str, field_name: str) -> SyncTarget:
        try:
            return self.targets[table]
        except KeyError:
            raise SyncLinkMissingError(table, field_name) from None

    def propagate(self, change: ChangeEvent, *, deadline: Deadline | None = None) -> SyncResult:
        """Write ``change`` to every field linked with its source field."""
        routes = self.links.routes(change.ref)
        if change.is_derived:
            log.debug("Not propagating derived change %s", change.change_id)
            return SyncResult(change=change)
        writes: list[SyncWrite] = []
        for route in routes:
            value = route.apply(change.value)
            applied = self.target(route.target.table, route.target.field).write_if_newer(
                change.entity_id,
                route.target.field,
                value,
                timestamp=change.timestamp,
                origin=change.origin,
                actor=change.actor,
                source=change.source,
                derived_from=change.change_id,
                deadline=deadline,
            )
            writes.append(SyncWrite(target=route.target, value=value, applied=applied))
            if applied:
                log.debug("Synced %s -> %s for %s", change.ref, route.target, change.entity_id)
        return SyncResult(change=change, writes=tuple(writes))

    def record(
        self,
        table: str,
        entity_id: str,
        field_name: str,
        value: FieldScalar,
        *,
        timestamp: datetime | None = None,
        actor: str | None = None,
        source: ValueSource = ValueSource.MANUAL,
        deadline: Deadline | None = None,
    ) -> SyncResult:
        """Write a local change, then propagate and publish it.

        A write older than what the table already holds is rejected and
        ``accepted`` is False on the result.
        """
        change = ChangeEvent(
            entity_id=entity_id,
            table=table,
            field=field_name,
            value=value,
            timestamp=as_utc(timestamp or self.clock()),
            origin=self.node_id,
            actor=actor,
            source=source,
        )
        stored = self.target(table, field_name).write_if_newer(
            entity_id,
            field_name,
            value,
            timestamp=change.timestamp,
            origin=change.origin,
            actor=actor,
            source=source,
            deadline=deadline,
        )
        if not stored:
            log.warning(
                "Rejected out-of-order write to %s for %s at %s",
                change.ref,
                entity_id,
                change.timestamp.isoformat(),
            )
            return SyncResult(change=change, accepted=False)
        result = (
            self.propagate(change, deadline=deadline)
            if self.links.is_linked(change.ref)
            else SyncResult(change=change)
        )
        self.publish(change)
        return result

    def handle_remote(self, change: ChangeEvent, *, deadline: Deadline | None = None) -> SyncResult:
        """Apply a change published by another node. Nothing is republished."""
        if change.origin == self.node_id:
            log.debug("Skipping own change %s", change.change_id)
            return SyncResult(change=change, accepted=False)
        stored = self.target(change.table, change.field).write_if_newer(
            change.entity_id,
            change.field,
            change.value,
            timestamp=change.timestamp,
            origin=change.origin,
            actor=change.actor,
            source=change.source,
            derived_from=change.derived_from,
            deadline=deadline,
        )
        if change.is_derived or not self.links.is_linked(change.ref):
            return SyncResult(change=change, accepted=stored)
        # propagate even when the source side already had a newer value: the
        # linked side may still be behind, and older writes are skipped per target
        return replace(self.propagate(change, deadline=deadline), accepted=stored)

    def on_local_change(self, change: ChangeEvent) -> None:
        """Listener for the field value store."""
        if change.is_derived:
            return
        if self.links.is_linked(change.ref):
            self.propagate(change)
        self.publish(change)

    def publish(self, change: ChangeEvent) -> None:
        if self.notifier is not None:
            self.notifier.publish(change)

    def listen(self) -> Unsubscribe:
        """Subscribe to the notifier so remote changes are applied here."""
        if self.notifier is None:
            raise RuntimeError("No notifier configured")
        return self.notifier.subscribe(self.handle_remote)
