"""In-process change bus for a single deployment or for tests."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from caseflow.domain.model import ChangeEvent
    from caseflow.domain.ports import ChangeHandler, Unsubscribe

log = logging.getLogger(__name__)


class InMemoryChangeBus:
    """Delivers every published event synchronously to all subscribers.

    Handlers run on the publishing thread, outside the bus lock, so a handler
    may publish again.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._handlers: list[ChangeHandler] = []
        self.published: list[ChangeEvent] = []

    def publish(self, event: ChangeEvent) -> None:
        with self._lock:
            self.published.append(event)
            handlers = list(self._handlers)
        log.debug("Delivering %s.%s to %d handlers", event.table, event.field, len(handlers))
        for handler in handlers:
            handler(event)

    def subscribe(self, handler: ChangeHandler) -> Unsubscribe:
        with self._lock:
            self._handlers.append(handler)

        def unsubscribe() -> None:
            with self._lock:
                if handler in self._handlers:
                    self._handlers.remove(handler)

        return unsubscribe

    def __len__(self) -> int:
        with self._lock:
            return len(self._handlers)
