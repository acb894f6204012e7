"""Usage: shared region text normalization and alias comparison helpers."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable

from app.schemas.layout_map import AnchorConfig, MatchMode
from app.schemas.region import Region

_WHITESPACE_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class NormalizeConfig:
    collapse_whitespace: bool = True
    lowercase: bool = False

    @classmethod
    def from_anchor(cls, anchor: AnchorConfig | None) -> "NormalizeConfig":
        if anchor is None:
            return cls(lowercase=True)
        return cls(
            collapse_whitespace=anchor.normalize_whitespace,
            lowercase=anchor.ignore_case,
        )


def normalize_text(text: str | None) -> str:
    if not text:
        return ""
    return _WHITESPACE_RE.sub(" ", text).strip()


def fold_text(text: str | None, config: NormalizeConfig) -> str:
    value = normalize_text(text) if config.collapse_whitespace else (text or "")
    if config.lowercase:
        value = value.casefold()
    return value


def text_matches(value: str, alias: str, mode: MatchMode) -> bool:
    """Compare already folded strings under an anchor match mode."""

    if not alias:
        return False
    if mode == "startsWith":
        return value.startswith(alias)
    if mode == "contains":
        return alias in value
    if mode == "endsWith":
        return value.endswith(alias)
    return value == alias


def join_region_text(regions: Iterable[Region]) -> str:
    parts = [normalize_text(region.text) for region in regions]
    return " ".join(part for part in parts if part)
