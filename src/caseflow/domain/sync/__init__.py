"""Bidirectional master/intake field sync."""

from __future__ import annotations

from .coordinator import SyncCoordinator
from .links import (
    TRANSFORMS,
    Route,
    SyncLinkRegistry,
    load_sync_links,
    normalize_gender,
    parse_sync_links,
)
from .targets import FieldValueTarget, MirrorTableTarget, SyncTarget

__all__ = [
    "TRANSFORMS",
    "FieldValueTarget",
    "MirrorTableTarget",
    "Route",
    "SyncCoordinator",
    "SyncLinkRegistry",
    "SyncTarget",
    "load_sync_links",
    "normalize_gender",
    "parse_sync_links",
]
