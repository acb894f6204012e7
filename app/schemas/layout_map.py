from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from app.schemas.region import Rectangle

RuleType = Literal["anchor", "position", "regexMatch"]
StartingPosition = Literal["topLeft", "topRight", "bottomLeft", "bottomRight"]
MatchMode = Literal["exact", "startsWith", "contains", "endsWith"]

_LEGACY_RULE_TYPES = {
    "regex_match": "regexMatch",
    "regex": "regexMatch",
    "absolute": "position",
}

# positionConfig.direction predates startingPosition
_DIRECTION_TO_CORNER = {
    "": "bottomLeft",
    "bottom": "bottomLeft",
    "below": "bottomLeft",
    "right": "topRight",
    "left": "topLeft",
    "top": "topLeft",
    "above": "topLeft",
}


class CamelModel(BaseModel):
    """Wire models use camelCase names but accept snake_case too."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AnchorConfig(CamelModel):
    aliases: list[str] = Field(
        default_factory=list,
        description="Candidate anchor strings, compared after normalization.",
    )
    search_zone: Rectangle | None = Field(
        default=None,
        description="Zone an anchor must intersect; fractions of the page when right/bottom <= 1.",
    )
    instance: int = Field(default=0, ge=0, description="Zero-based occurrence to use.")
    instance_from: Literal["start", "end"] = "start"
    match_mode: MatchMode = "exact"
    ignore_case: bool = True
    normalize_whitespace: bool = True
    page: int | None = Field(default=None, ge=0, description="Restrict anchors to one page.")

    @field_validator("aliases")
    @classmethod
    def _dedupe_aliases(cls, value: list[str]) -> list[str]:
        seen: set[str] = set()
        ordered: list[str] = []
        for alias in value:
            if alias in seen:
                continue
            seen.add(alias)
            ordered.append(alias)
        return ordered


class OffsetRect(CamelModel):
    """Offset from an anchor corner; negative width/height extend left/up."""

    top: float = 0.0
    left: float = 0.0
    width: float = 0.0
    height: float = 0.0


class PositionConfig(CamelModel):
    starting_position: StartingPosition = "bottomLeft"
    point: OffsetRect = Field(default_factory=OffsetRect)
    page: int | None = Field(
        default=None,
        ge=0,
        description="Page used when the rule has no anchor (defaults to the first page).",
    )
    exclude_anchor: bool = Field(
        default=False,
        description="Leave the anchor region itself out of the zone candidates.",
    )

    @model_validator(mode="before")
    @classmethod
    def _migrate_direction(cls, data: Any) -> Any:
        if not isinstance(data, dict) or "direction" not in data:
            return data
        migrated = dict(data)
        direction = str(migrated.pop("direction") or "").strip().lower()
        if "startingPosition" not in migrated and "starting_position" not in migrated:
            migrated["startingPosition"] = _DIRECTION_TO_CORNER.get(direction, "bottomLeft")
        return migrated


class ValuePattern(CamelModel):
    regex: str
    label: str | None = None
    priority: int = 0


class ParserConfig(CamelModel):
    patterns: list[ValuePattern] = Field(default_factory=list)
    fallback_to_full_text: bool = False


class FieldRule(CamelModel):
    id: str
    priority: int = 0
    rule_type: RuleType = "anchor"
    anchor_config: AnchorConfig | None = None
    position_config: PositionConfig | None = None
    parser_config: ParserConfig | None = None

    @field_validator("rule_type", mode="before")
    @classmethod
    def _migrate_rule_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            return _LEGACY_RULE_TYPES.get(value, value)
        return value


class LayoutMap(CamelModel):
    id: str
    name: str | None = None
    vendor_id: str | None = None
    version: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    field_rules: dict[str, list[FieldRule]] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _migrate_fields_list(cls, data: Any) -> Any:
        """Accept the older ``fields: [{id, rules}]`` layout."""

        if not isinstance(data, dict):
            return data
        if "fieldRules" in data or "field_rules" in data:
            return data
        fields = data.get("fields")
        if not isinstance(fields, list):
            return data
        migrated = {key: value for key, value in data.items() if key != "fields"}
        migrated["fieldRules"] = {
            entry["id"]: entry.get("rules") or []
            for entry in fields
            if isinstance(entry, dict) and entry.get("id")
        }
        return migrated
