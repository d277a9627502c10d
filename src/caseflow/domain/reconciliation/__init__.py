"""Field value reconciliation: store, conflict detection, resolution, OCR ingest."""

from __future__ import annotations

from .detect import ConflictDetector, Detection
from .ingest import IngestSummary, OcrExtraction, RejectedExtraction, ingest
from .resolve import ConflictResolver
from .store import FieldTransaction, FieldValueStore

__all__ = [
    "ConflictDetector",
    "ConflictResolver",
    "Detection",
    "FieldTransaction",
    "FieldValueStore",
    "IngestSummary",
    "OcrExtraction",
    "RejectedExtraction",
    "ingest",
]
