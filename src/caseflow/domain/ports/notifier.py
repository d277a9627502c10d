"""Port for broadcasting field changes to other sessions."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from caseflow.domain.model import ChangeEvent

type ChangeHandler = Callable[[ChangeEvent], None]
type Unsubscribe = Callable[[], None]


@runtime_checkable
class ChangeNotifier(Protocol):
    """Publish/subscribe channel for ``ChangeEvent``.

    Delivery is at-least-once and unordered; consumers must tolerate duplicates
    and reordering.
    """

    def publish(self, event: ChangeEvent) -> None: ...

    def subscribe(self, handler: ChangeHandler) -> Unsubscribe: ...
