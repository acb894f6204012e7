import logging

from fastapi import APIRouter, HTTPException, status

from app.api.deps import LayoutStoreDep
from app.schemas.layout_map import LayoutMap

router = APIRouter(prefix="/layout-maps", tags=["layout-maps"])

logger = logging.getLogger(__name__)


@router.get("", summary="List vendors with a stored layout map", response_model=list[str])
async def list_layout_maps(layout_store: LayoutStoreDep) -> list[str]:
    return layout_store.list_vendors()


@router.get("/{vendor_id}", summary="Load a vendor layout map", response_model=LayoutMap)
async def get_layout_map(vendor_id: str, layout_store: LayoutStoreDep) -> LayoutMap:
    try:
        layout_map = layout_store.load(vendor_id)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    if layout_map is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No layout map for vendor: {vendor_id}",
        )
    return layout_map


@router.post("", summary="Save a vendor layout map", response_model=LayoutMap)
async def save_layout_map(layout_map: LayoutMap, layout_store: LayoutStoreDep) -> LayoutMap:
    """Persist the map, refreshing its `updatedAt` timestamp."""

    try:
        return layout_store.save(layout_map)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except OSError as exc:  # pragma: no cover - disk failures
        logger.exception("Saving layout map failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save layout map",
        ) from exc
