"""Records exchanged by the bidirectional sync between master and derived tables."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from caseflow.domain.model.entity import utcnow

if TYPE_CHECKING:
    from datetime import datetime

    from caseflow.domain.model.enums import ValueSource
    from caseflow.domain.model.fields import FieldScalar


@dataclass(frozen=True, slots=True)
class FieldRef:
    table: str
    field: str

    def __str__(self) -> str:
        return f"{self.table}.{self.field}"


@dataclass(frozen=True, slots=True, kw_only=True)
class SyncLink:
    """Canonical field paired with a derived field.

    ``transform`` maps canonical values onto the derived side, ``reverse_transform``
    maps derived values back.
    """

    canonical: FieldRef
    derived: FieldRef
    transform: str = "identity"
    reverse_transform: str = "identity"


@dataclass(frozen=True, slots=True, kw_only=True)
class ChangeEvent:
    """A field write, as published to other sessions and consumed by the sync.

    ``derived_from`` is set on writes made by propagation; such events are never
    propagated again.
    """

    entity_id: str
    table: str
    field: str
    value: FieldScalar
    timestamp: datetime
    origin: str
    actor: str | None = None
    source: ValueSource | None = None
    derived_from: UUID | None = None
    change_id: UUID = field(default_factory=uuid4)

    @property
    def ref(self) -> FieldRef:
        return FieldRef(self.table, self.field)

    @property
    def is_derived(self) -> bool:
        return self.derived_from is not None


@dataclass(eq=False, kw_only=True)
class MirroredField:
    """Stored value of a field on a derived table such as ``intake_data``."""

    table: str
    entity_id: str
    field_name: str
    value: FieldScalar
    updated_at: datetime = field(default_factory=utcnow)
    origin: str | None = None
    id: UUID = field(default_factory=uuid4)
    version: int = 0


@dataclass(frozen=True, slots=True, kw_only=True)
class SyncWrite:
    target: FieldRef
    value: FieldScalar
    applied: bool


@dataclass(frozen=True, slots=True, kw_only=True)
class SyncResult:
    """Outcome of one change. ``accepted`` is False when the change lost to a newer one."""

    change: ChangeEvent
    writes: tuple[SyncWrite, ...] = ()
    accepted: bool = True

    @property
    def applied(self) -> tuple[SyncWrite, ...]:
        return tuple(write for write in self.writes if write.applied)
