"""Translate OCR batch payloads into extraction tuples for ingestion."""

from __future__ import annotations

import json
from datetime import date
from logging import getLogger
from typing import TYPE_CHECKING

from caseflow.domain.reconciliation import OcrExtraction

from .schema import OcrBatchList, OcrBatchPayload

if TYPE_CHECKING:
    from collections.abc import Iterable

log = getLogger(__name__)


def parse_batches(raw: str | bytes) -> list[OcrBatchPayload]:
    """Validate a JSON document holding one batch or a list of batches."""
    document: object = json.loads(raw)
    if isinstance(document, list):
        return OcrBatchList.validate_python(document)
    return [OcrBatchPayload.model_validate(document)]


def translate_batch(batch: OcrBatchPayload) -> list[OcrExtraction]:
    extractions: list[OcrExtraction] = []
    for item in batch.extractions:
        value = item.value.isoformat() if isinstance(item.value, date) else item.value
        extractions.append(
            OcrExtraction(
                entity_id=batch.entity_id,
                field_name=item.field_name,
                value=value,
                confidence=item.confidence,
                document_id=batch.document_id,
                observed_at=batch.processed_at,
            )
        )
    log.debug(
        "Translated %d extractions from document %s", len(extractions), batch.document_id
    )
    return extractions


def translate_batches(batches: Iterable[OcrBatchPayload]) -> list[OcrExtraction]:
    return [extraction for batch in batches for extraction in translate_batch(batch)]
