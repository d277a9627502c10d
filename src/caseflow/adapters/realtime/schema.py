"""Pydantic wire schema for field change broadcasts."""

from __future__ import annotations

from datetime import UTC, datetime
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from caseflow.domain.model import ChangeEvent, ValueSource

CHANGE_EVENT_NAME = "field_change"


class RealtimeBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ChangeMessage(RealtimeBaseModel):
    entity_id: str
    table: str
    field: str
    value: str | bool | int | float | None = None
    timestamp: datetime
    origin: str
    actor: str | None = None
    source: ValueSource | None = None
    derived_from: UUID | None = None
    change_id: UUID = Field(default_factory=uuid4)

    @field_validator("timestamp")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    @classmethod
    def from_event(cls, event: ChangeEvent) -> ChangeMessage:
        return cls(
            entity_id=event.entity_id,
            table=event.table,
            field=event.field,
            value=event.value,
            timestamp=event.timestamp,
            origin=event.origin,
            actor=event.actor,
            source=event.source,
            derived_from=event.derived_from,
            change_id=event.change_id,
        )

    def to_event(self) -> ChangeEvent:
        return ChangeEvent(
            entity_id=self.entity_id,
            table=self.table,
            field=self.field,
            value=self.value,
            timestamp=self.timestamp,
            origin=self.origin,
            actor=self.actor,
            source=self.source,
            derived_from=self.derived_from,
            change_id=self.change_id,
        )


class BroadcastMessage(RealtimeBaseModel):
    topic: str
    event: str = CHANGE_EVENT_NAME
    payload: ChangeMessage


class BroadcastRequest(RealtimeBaseModel):
    messages: list[BroadcastMessage]


class InboundBroadcast(RealtimeBaseModel):
    """Webhook body delivered by the broadcast service; bare change messages are accepted too."""

    event: str = CHANGE_EVENT_NAME
    payload: ChangeMessage
