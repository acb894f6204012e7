from pydantic import Field

from app.schemas.layout_map import CamelModel
from app.schemas.region import Region


class FieldSourceBoxModel(CamelModel):
    id: str
    top: float
    left: float
    right: float
    bottom: float


class FieldSourceEntryModel(CamelModel):
    ids: list[str]
    boxes: list[FieldSourceBoxModel]


class FieldUpdateRequest(CamelModel):
    source_ids: list[str] | None = Field(
        default=None,
        description="Region ids backing the field; empty or null clears it.",
    )


class MappingUpdateModel(CamelModel):
    field_id: str
    source_ids: list[str] | None = None


class BatchUpdateRequest(CamelModel):
    updates: list[MappingUpdateModel] = Field(default_factory=list)


class TransactionRequest(CamelModel):
    updates: list[MappingUpdateModel] = Field(default_factory=list)
    valid_line_numbers: list[int] = Field(
        default_factory=list,
        description="Line numbers still on the order; line-item fields of other lines are purged.",
    )


class SessionCreateRequest(CamelModel):
    regions: list[Region] = Field(default_factory=list)
    vendor_id: str | None = None


class MappingSessionResponse(CamelModel):
    session_id: str
    vendor_id: str | None = None
    field_sources: dict[str, FieldSourceEntryModel] = Field(default_factory=dict)
    can_undo: bool = False
    can_redo: bool = False
    history_depth: int = 0
    future_depth: int = 0
    highlights: dict[str, str] = Field(
        default_factory=dict,
        description="Fields currently flashing, with their stage.",
    )
    dangling_ids: list[str] = Field(default_factory=list)
