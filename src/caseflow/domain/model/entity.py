"""Cases and the family members attached to them."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime

from caseflow.domain.model.enums import EntityKind


def utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(eq=False, kw_only=True)
class CaseEntity:
    """Something that owns fields: a case, or a family member of a case.

    Ids come from the hosting backend and never change. Entities are soft-deleted
    only, so conflicts and audit events always have something to point at.
    """

    id: str
    kind: EntityKind
    case_id: str
    relation: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    deleted_at: datetime | None = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def soft_delete(self, *, at: datetime | None = None) -> None:
        if self.deleted_at is None:
            self.deleted_at = at or utcnow()


def as_utc(moment: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC)
