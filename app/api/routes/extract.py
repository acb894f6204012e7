import logging
from typing import Any

from fastapi import APIRouter, Body, HTTPException, status
from pydantic import ValidationError

from app.schemas.extraction import ExtractionResult
from app.services.pipelines.extraction import (
    InvalidExtractionRequest,
    LayoutExtractionPipeline,
    parse_extraction_request,
)

router = APIRouter(tags=["extraction"])

logger = logging.getLogger(__name__)


@router.post(
    "/extract",
    summary="Resolve layout rules against document regions",
    response_model=ExtractionResult,
)
async def extract_fields(payload: Any = Body(...)) -> ExtractionResult:
    """Run the layout rule resolver on a `{regions, layoutMap}` payload."""

    try:
        request = parse_extraction_request(payload)
    except InvalidExtractionRequest as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=exc.errors(include_url=False, include_context=False),
        ) from exc

    pipeline = LayoutExtractionPipeline()
    return pipeline.run(request)
