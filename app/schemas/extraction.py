from pydantic import Field

from app.schemas.layout_map import CamelModel, LayoutMap
from app.schemas.region import Region


class FieldExtraction(CamelModel):
    """One resolved field and the regions backing it."""

    field_id: str
    value: str
    region_ids: list[str] = Field(default_factory=list)
    rule_id: str
    confidence: float | None = None


class ExtractionResult(CamelModel):
    extracted_data: dict[str, str] = Field(
        default_factory=dict,
        description="Field id to resolved value.",
    )
    extractions: list[FieldExtraction] = Field(default_factory=list)
    matched_rules: list[str] = Field(
        default_factory=list,
        description="Ids of rules that produced a value.",
    )
    unmatched_rules: list[str] = Field(
        default_factory=list,
        description="Ids of fields for which no rule produced a value.",
    )
    errors: list[str] = Field(
        default_factory=list,
        description="Non-fatal warnings collected during resolution.",
    )


class ExtractionRequest(CamelModel):
    regions: list[Region]
    layout_map: LayoutMap
