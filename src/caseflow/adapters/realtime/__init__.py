"""Realtime change notifier adapters."""

from __future__ import annotations

from .client import BROADCAST_PATH, HttpChangeNotifier
from .memory import InMemoryChangeBus
from .schema import ChangeMessage

__all__ = [
    "BROADCAST_PATH",
    "ChangeMessage",
    "HttpChangeNotifier",
    "InMemoryChangeBus",
]
