"""Broadcast field changes over HTTP and accept them back from a webhook."""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Mapping
from typing import TYPE_CHECKING

from pydantic import ValidationError

from caseflow.adapters.http_resilience import ResilientClient

from .schema import (
    CHANGE_EVENT_NAME,
    BroadcastMessage,
    BroadcastRequest,
    ChangeMessage,
    InboundBroadcast,
)

if TYPE_CHECKING:
    import httpx

    from caseflow.config.realtime import RealtimeConfig
    from caseflow.domain.model import ChangeEvent
    from caseflow.domain.ports import ChangeHandler, Unsubscribe

log = logging.getLogger(__name__)

BROADCAST_PATH = "/realtime/v1/api/broadcast"


class HttpChangeNotifier:
    """``ChangeNotifier`` over a broadcast endpoint.

    ``publish`` blocks until the broadcast has been accepted. Remote events arrive
    through ``receive``, which the hosting web layer calls with the webhook body.
    """

    def __init__(
        self,
        config: RealtimeConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self._transport = transport
        self._lock = threading.Lock()
        self._handlers: list[ChangeHandler] = []

    def publish(self, event: ChangeEvent) -> None:
        body = BroadcastRequest(
            messages=[
                BroadcastMessage(
                    topic=self.config.topic,
                    event=CHANGE_EVENT_NAME,
                    payload=ChangeMessage.from_event(event),
                )
            ]
        )
        asyncio.run(self._post(body))
        log.debug("Published change %s for %s.%s", event.change_id, event.table, event.field)

    async def _post(self, body: BroadcastRequest) -> None:
        async with ResilientClient(self.config.resilience, transport=self._transport) as client:
            response = await client.post(
                f"{self.config.base_url}{BROADCAST_PATH}",
                json=body.model_dump(mode="json"),
            )
            response.raise_for_status()

    def subscribe(self, handler: ChangeHandler) -> Unsubscribe:
        with self._lock:
            self._handlers.append(handler)

        def unsubscribe() -> None:
            with self._lock:
                if handler in self._handlers:
                    self._handlers.remove(handler)

        return unsubscribe

    def receive(self, payload: Mapping[str, object] | str | bytes) -> ChangeEvent | None:
        """Validate an inbound webhook body and hand the change to subscribers.

        Returns None for other broadcast events. Malformed payloads raise
        ``pydantic.ValidationError``.
        """
        if isinstance(payload, Mapping):
            if "payload" in payload:
                inbound = InboundBroadcast.model_validate(payload)
            else:
                inbound = InboundBroadcast(payload=ChangeMessage.model_validate(payload))
        else:
            try:
                inbound = InboundBroadcast.model_validate_json(payload)
            except ValidationError:
                inbound = InboundBroadcast(payload=ChangeMessage.model_validate_json(payload))
        if inbound.event != CHANGE_EVENT_NAME:
            log.debug("Ignoring broadcast event %s", inbound.event)
            return None
        event = inbound.payload.to_event()
        with self._lock:
            handlers = list(self._handlers)
        for handler in handlers:
            handler(event)
        return event
