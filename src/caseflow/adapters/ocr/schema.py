"""Pydantic models describing OCR extraction batches."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


class OcrBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ExtractionPayload(OcrBaseModel):
    field_name: str = Field(alias="field")
    value: str | bool | int | float | date | None = None
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)

    @field_validator("field_name", mode="before")
    @classmethod
    def _strip_field_name(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value

    _normalize_value = field_validator("value", mode="before")(_blank_to_none)


class OcrBatchPayload(OcrBaseModel):
    document_id: str
    entity_id: str
    processed_at: datetime | None = None
    extractions: list[ExtractionPayload] = Field(default_factory=list)


OcrBatchList = TypeAdapter(list[OcrBatchPayload])
