"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class EntityKind(StrEnum):
    CASE = "case"
    FAMILY_MEMBER = "family_member"


class ValueSource(StrEnum):
    MANUAL = "manual"
    OCR = "ocr"
    SYSTEM = "system"


class FieldKind(StrEnum):
    TEXT = "text"
    DATE = "date"
    NUMBER = "number"
    BOOLEAN = "boolean"


class ConflictState(StrEnum):
    OPEN = "open"
    RESOLVED = "resolved"
    IGNORED = "ignored"


class ConflictDecision(StrEnum):
    """Reviewer decision on a conflict.

    ``ACCEPT_OCR`` makes the OCR side of the conflict current and ``KEEP_MANUAL`` the
    manual side, whichever of them holds the current value.
    """

    ACCEPT_OCR = "accept_ocr"
    KEEP_MANUAL = "keep_manual"
    IGNORE = "ignore"


class ConfidenceBand(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    UNKNOWN = "unknown"


class AuditEventKind(StrEnum):
    RECORDED = "recorded"
    CORROBORATED = "corroborated"
    SUPERSEDED = "superseded"
    STALE_REJECTED = "stale_rejected"
    CONFLICT_OPENED = "conflict_opened"
    CONFLICT_RESOLVED = "conflict_resolved"
    CONFLICT_IGNORED = "conflict_ignored"
    SYNCED = "synced"


class DetectionOutcome(StrEnum):
    ACCEPTED = "accepted"
    CORROBORATED = "corroborated"
    SUPERSEDED = "superseded"
    STALE = "stale"
    CONFLICT = "conflict"
