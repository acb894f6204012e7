"""Usage: resolve vendor layout rules against recognized regions."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable, Sequence

from app.schemas.extraction import ExtractionResult, FieldExtraction
from app.schemas.layout_map import AnchorConfig, FieldRule, LayoutMap, PositionConfig
from app.schemas.region import Rectangle, Region
from app.services.rules.geometry import (
    ZERO_RECT,
    area,
    bounds_of,
    offset_rect,
    overlaps,
    page_extent,
    reading_order_key,
    scale_zone,
)
from app.services.rules.text_normalize import (
    NormalizeConfig,
    fold_text,
    join_region_text,
    normalize_text,
    text_matches,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Candidate:
    text: str
    regions: tuple[Region, ...]


@dataclass
class _Document:
    ordered: list[Region]
    pages: dict[int, list[Region]]
    errors: list[str]


class LayoutRuleResolver:
    """Turns a layout map plus a document's regions into field values.

    Rules for a field run in ascending priority; the first one that yields a
    value wins. Each rule runs the same pipeline: anchor lookup, zone
    narrowing, then pattern matching, skipping the stages it has no config for.
    """

    def resolve(self, layout_map: LayoutMap, regions: Sequence[Region]) -> ExtractionResult:
        document = _index_document(regions)
        extracted: dict[str, str] = {}
        extractions: list[FieldExtraction] = []
        matched_rules: list[str] = []
        unmatched: list[str] = []

        for field_id, rules in layout_map.field_rules.items():
            extraction = self._resolve_field(field_id, rules, document)
            if extraction is None:
                logger.debug("Layout field missing: %s rules=%d", field_id, len(rules))
                unmatched.append(field_id)
                continue
            logger.debug("Layout field extracted: %s rule=%s", field_id, extraction.rule_id)
            extracted[field_id] = extraction.value
            extractions.append(extraction)
            if extraction.rule_id not in matched_rules:
                matched_rules.append(extraction.rule_id)

        if unmatched:
            logger.warning(
                "Layout resolution incomplete: layout=%s unmatched=%s",
                layout_map.id,
                unmatched,
            )
        return ExtractionResult(
            extracted_data=extracted,
            extractions=extractions,
            matched_rules=matched_rules,
            unmatched_rules=unmatched,
            errors=document.errors,
        )

    def _resolve_field(
        self,
        field_id: str,
        rules: list[FieldRule],
        document: _Document,
    ) -> FieldExtraction | None:
        for rule in sorted(rules, key=lambda entry: entry.priority):
            problem = _config_problem(rule)
            if problem:
                document.errors.append(f"{problem}:{rule.id}")
                continue
            extraction = self._apply_rule(field_id, rule, document)
            if extraction is not None:
                return extraction
        return None

    def _apply_rule(
        self,
        field_id: str,
        rule: FieldRule,
        document: _Document,
    ) -> FieldExtraction | None:
        anchor: Region | None = None
        if rule.anchor_config is not None:
            anchor = self._find_anchor(rule.anchor_config, document)
            if anchor is None:
                logger.debug("Anchor not found: field=%s rule=%s", field_id, rule.id)
                return None

        if rule.position_config is not None:
            candidate = self._zone_candidate(rule.position_config, anchor, document)
            if candidate is None:
                logger.debug("Position zone empty: field=%s rule=%s", field_id, rule.id)
                return None
            candidates = [candidate]
        elif anchor is not None:
            candidates = [_Candidate(text=normalize_text(anchor.text), regions=(anchor,))]
        else:
            candidates = [
                _Candidate(text=normalize_text(region.text), regions=(region,))
                for region in document.ordered
                if normalize_text(region.text)
            ]

        return self._extract_value(field_id, rule, candidates, document.errors)

    def _find_anchor(self, config: AnchorConfig, document: _Document) -> Region | None:
        normalize_cfg = NormalizeConfig.from_anchor(config)
        aliases = [fold_text(alias, normalize_cfg) for alias in config.aliases]
        aliases = [alias for alias in aliases if alias]
        if not aliases:
            return None

        matches: list[Region] = []
        for page, page_regions in document.pages.items():
            if config.page is not None and page != config.page:
                continue
            zone = _resolve_zone(config.search_zone, page_regions)
            for region in page_regions:
                value = fold_text(region.text, normalize_cfg)
                if not any(text_matches(value, alias, config.match_mode) for alias in aliases):
                    continue
                if zone is not None and not overlaps(bounds_of(region.points), zone):
                    continue
                matches.append(region)

        if config.instance_from == "end":
            matches.reverse()
        if config.instance >= len(matches):
            return None
        return matches[config.instance]

    def _zone_candidate(
        self,
        config: PositionConfig,
        anchor: Region | None,
        document: _Document,
    ) -> _Candidate | None:
        if anchor is not None:
            origin = bounds_of(anchor.points)
            page = anchor.page
        else:
            origin = ZERO_RECT
            page = config.page if config.page is not None else next(iter(document.pages), 0)

        target = offset_rect(origin, config.starting_position, config.point)
        if area(target) <= 0:
            return None

        hits = [
            region
            for region in document.pages.get(page, [])
            if (anchor is None or not config.exclude_anchor or region.id != anchor.id)
            and overlaps(bounds_of(region.points), target)
        ]
        text = join_region_text(hits)
        if not text:
            return None
        return _Candidate(text=text, regions=tuple(hits))

    def _extract_value(
        self,
        field_id: str,
        rule: FieldRule,
        candidates: list[_Candidate],
        errors: list[str],
    ) -> FieldExtraction | None:
        parser = rule.parser_config
        patterns = parser.patterns if parser else []
        if not patterns:
            for candidate in candidates:
                value = candidate.text.strip()
                if value:
                    return _build_extraction(field_id, rule, value, candidate.regions)
            return None

        for pattern in sorted(patterns, key=lambda entry: entry.priority):
            try:
                compiled = re.compile(pattern.regex)
            except re.error as exc:
                logger.warning("Invalid pattern on rule %s: %s (%s)", rule.id, pattern.regex, exc)
                errors.append(f"invalid_pattern:{rule.id}:{pattern.regex}")
                continue
            for candidate in candidates:
                match = compiled.search(candidate.text)
                if not match:
                    continue
                value = _value_from_match(match)
                if value:
                    return _build_extraction(field_id, rule, value, candidate.regions)

        if parser is not None and parser.fallback_to_full_text:
            for candidate in candidates:
                if candidate.text:
                    return _build_extraction(field_id, rule, candidate.text, candidate.regions)
        return None


def resolve_layout(layout_map: LayoutMap, regions: Sequence[Region]) -> ExtractionResult:
    return LayoutRuleResolver().resolve(layout_map, regions)


def _index_document(regions: Iterable[Region]) -> _Document:
    errors: list[str] = []
    seen: set[str] = set()
    unique: list[Region] = []
    for region in regions:
        if region.id in seen:
            errors.append(f"duplicate_region_id:{region.id}")
            continue
        seen.add(region.id)
        unique.append(region)

    ordered = sorted(unique, key=reading_order_key)
    pages: dict[int, list[Region]] = {}
    for region in ordered:
        pages.setdefault(region.page, []).append(region)
    return _Document(ordered=ordered, pages=pages, errors=errors)


def _config_problem(rule: FieldRule) -> str | None:
    if rule.rule_type == "anchor" and (rule.anchor_config is None or not rule.anchor_config.aliases):
        return "missing_anchor_config"
    if rule.rule_type == "position" and rule.position_config is None:
        return "missing_position_config"
    if rule.rule_type == "regexMatch" and (rule.parser_config is None or not rule.parser_config.patterns):
        return "missing_parser_patterns"
    return None


def _resolve_zone(zone: Rectangle | None, page_regions: list[Region]) -> Rectangle | None:
    if zone is None or area(zone) <= 0:
        return None
    page_width, page_height = page_extent(page_regions)
    return scale_zone(zone, page_width, page_height)


def _build_extraction(
    field_id: str,
    rule: FieldRule,
    value: str,
    regions: tuple[Region, ...],
) -> FieldExtraction:
    confidences = [region.confidence for region in regions]
    confidence = None
    if confidences and all(score is not None for score in confidences):
        confidence = sum(confidences) / len(confidences)
    return FieldExtraction(
        field_id=field_id,
        value=value,
        region_ids=[region.id for region in regions],
        rule_id=rule.id,
        confidence=confidence,
    )


def _value_from_match(match: re.Match[str]) -> str:
    """First capture group that took part in the match, else the whole match.

    ``(a)|(b)`` matching ``b`` yields ``b`` from group 2.
    """

    if match.re.groups:
        for group in match.groups():
            if group is not None:
                return group.strip()
    return match.group(0).strip()
