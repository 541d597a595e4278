"""Schemas for the JSON batch emitted by the document/spreadsheet extraction service."""

from __future__ import annotations

import logging
from typing import ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

log = logging.getLogger(__name__)

type ExtractedFinancing = Literal["owned", "financed", "leased"]
type ExtractedCondition = Literal["new", "used"]
type ExtractedConfidence = Literal["high", "medium", "low"]
type ExtractedScalar = str | int | float | None


class ExtractionBaseModel(BaseModel):
    model_config = ConfigDict(extra="allow", alias_generator=to_camel, populate_by_name=True)
    _logged_extra_keys: ClassVar[set[str]] = set()

    def model_post_init(self, _context: object, /) -> None:
        extras = self.__pydantic_extra__
        if not extras:
            return
        new_keys = set(extras).difference(self._logged_extra_keys)
        if not new_keys:
            return
        self._logged_extra_keys.update(new_keys)
        log.warning(
            "Extraction %s: unmodeled keys: %s",
            type(self).__name__,
            ", ".join(sorted(new_keys)),
        )


class ExtractedSourceFile(ExtractionBaseModel):
    file_name: str
    path: str | None = None


class ExtractedEquipment(ExtractionBaseModel):
    make: str = ""
    model: str = ""
    year: int | None = None
    serial_vin: str | None = None
    purchase_date: str | None = None
    purchase_price: float | None = None
    sales_tax: float | None = None
    freight_setup: float | None = None
    financing_type: ExtractedFinancing | None = None
    deposit_amount: float | None = None
    financed_amount: float | None = None
    monthly_payment: float | None = None
    term_months: int | None = None
    buyout_amount: float | None = None
    purchase_condition: ExtractedCondition | None = None
    confidence: ExtractedConfidence = "medium"
    notes: str | None = None
    source_files: list[str | ExtractedSourceFile] = Field(
        default_factory=list[str | ExtractedSourceFile]
    )
    source_document_indices: list[int] = Field(default_factory=list[int])
    suggested_type: Literal["asset", "attachment"] | None = None
    suggested_parent_index: int | None = None
    suggested_category: str | None = None


class ExtractedDocumentSummary(ExtractionBaseModel):
    file_name: str
    fields_found: list[str] = Field(default_factory=list[str])


class ExtractedFieldConflict(ExtractionBaseModel):
    candidate_index: int = 0
    field: str
    values: list[ExtractedScalar] = Field(default_factory=list[ExtractedScalar])
    sources: list[str] = Field(default_factory=list[str])


class ExtractionPayload(ExtractionBaseModel):
    equipment: list[ExtractedEquipment] = Field(default_factory=list[ExtractedEquipment])
    document_summaries: list[ExtractedDocumentSummary] = Field(
        default_factory=list[ExtractedDocumentSummary]
    )
    conflicts: list[ExtractedFieldConflict] = Field(
        default_factory=list[ExtractedFieldConflict]
    )
