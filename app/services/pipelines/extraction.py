"""Usage: extraction request boundary (payload check -> layout rules)."""

from __future__ import annotations

import logging
import time
from typing import Any

from app.schemas.extraction import ExtractionRequest, ExtractionResult
from app.services.rules.layout_resolver import LayoutRuleResolver

logger = logging.getLogger(__name__)


class InvalidExtractionRequest(ValueError):
    """Raised for a payload that must not reach the resolver."""


def parse_extraction_request(payload: Any) -> ExtractionRequest:
    """Check the required pieces of a raw request body, then validate it.

    Each missing piece has its own message. Type errors inside otherwise
    complete payloads surface as ``pydantic.ValidationError``.
    """

    if not isinstance(payload, dict):
        raise InvalidExtractionRequest("request body must be a JSON object")
    if not isinstance(payload.get("regions"), list):
        raise InvalidExtractionRequest("regions array is required")
    layout_map = payload.get("layoutMap")
    if layout_map is None:
        raise InvalidExtractionRequest("layoutMap is required")
    if not isinstance(layout_map, dict) or not layout_map.get("id"):
        raise InvalidExtractionRequest("layoutMap.id is required")
    return ExtractionRequest.model_validate(payload)


class LayoutExtractionPipeline:
    """Runs the layout resolver for one validated request."""

    def __init__(self, *, resolver: LayoutRuleResolver | None = None) -> None:
        self.resolver = resolver or LayoutRuleResolver()

    def run(self, request: ExtractionRequest) -> ExtractionResult:
        start_time = time.perf_counter()
        result = self.resolver.resolve(request.layout_map, request.regions)
        logger.info(
            "Extraction finished: layout=%s regions=%d matched=%d unmatched=%d duration=%.4fs",
            request.layout_map.id,
            len(request.regions),
            len(result.extracted_data),
            len(result.unmatched_rules),
            time.perf_counter() - start_time,
        )
        if result.errors:
            logger.warning("Extraction warnings: layout=%s errors=%s", request.layout_map.id, result.errors)
        return result
