"""OCR extraction batch adapter."""

from __future__ import annotations

from .schema import ExtractionPayload, OcrBatchPayload
from .translator import parse_batches, translate_batch, translate_batches

__all__ = [
    "ExtractionPayload",
    "OcrBatchPayload",
    "parse_batches",
    "translate_batch",
    "translate_batches",
]
