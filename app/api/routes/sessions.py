import logging

from fastapi import APIRouter, HTTPException, status

from app.api.deps import LayoutStoreDep, SessionRegistryDep
from app.schemas.mapping import (
    BatchUpdateRequest,
    FieldSourceBoxModel,
    FieldSourceEntryModel,
    FieldUpdateRequest,
    MappingSessionResponse,
    SessionCreateRequest,
    TransactionRequest,
)
from app.services.mapping.session import MappingSession, MappingSessionRegistry
from app.services.mapping.store import MappingUpdate
from app.services.rules.layout_resolver import LayoutRuleResolver

router = APIRouter(prefix="/sessions", tags=["sessions"])

logger = logging.getLogger(__name__)


def _get_session(registry: MappingSessionRegistry, session_id: str) -> MappingSession:
    session = registry.get(session_id)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown mapping session: {session_id}",
        )
    return session


def _to_response(session: MappingSession) -> MappingSessionResponse:
    state = session.state
    highlights = {}
    if session.highlighter is not None:
        highlights = {key: stage.value for key, stage in session.highlighter.stages().items()}
    return MappingSessionResponse(
        session_id=session.session_id,
        vendor_id=session.vendor_id,
        field_sources={
            field_id: FieldSourceEntryModel(
                ids=list(entry.ids),
                boxes=[
                    FieldSourceBoxModel(
                        id=box.id,
                        top=box.top,
                        left=box.left,
                        right=box.right,
                        bottom=box.bottom,
                    )
                    for box in entry.boxes
                ],
            )
            for field_id, entry in state.field_sources.items()
        },
        can_undo=state.can_undo,
        can_redo=state.can_redo,
        history_depth=len(state.past),
        future_depth=len(state.future),
        highlights=highlights,
        dangling_ids=session.dangling_ids(),
    )


@router.post(
    "",
    summary="Start a mapping session for one document",
    response_model=MappingSessionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_session(body: SessionCreateRequest, registry: SessionRegistryDep) -> MappingSessionResponse:
    session = registry.create(body.regions, vendor_id=body.vendor_id)
    return _to_response(session)


@router.get("/{session_id}", summary="Current mapping state", response_model=MappingSessionResponse)
async def get_session(session_id: str, registry: SessionRegistryDep) -> MappingSessionResponse:
    return _to_response(_get_session(registry, session_id))


@router.delete("/{session_id}", summary="End a mapping session", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session(session_id: str, registry: SessionRegistryDep) -> None:
    if not registry.close(session_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown mapping session: {session_id}",
        )


@router.put(
    "/{session_id}/fields/{field_id}",
    summary="Set or clear the regions backing one field",
    response_model=MappingSessionResponse,
)
async def update_field(
    session_id: str,
    field_id: str,
    body: FieldUpdateRequest,
    registry: SessionRegistryDep,
) -> MappingSessionResponse:
    session = _get_session(registry, session_id)
    session.update_field(field_id, body.source_ids)
    return _to_response(session)


@router.post(
    "/{session_id}/batch",
    summary="Apply several field updates as one history step",
    response_model=MappingSessionResponse,
)
async def batch_update(
    session_id: str,
    body: BatchUpdateRequest,
    registry: SessionRegistryDep,
) -> MappingSessionResponse:
    session = _get_session(registry, session_id)
    session.batch_update(
        MappingUpdate(field_id=update.field_id, source_ids=update.source_ids)
        for update in body.updates
    )
    return _to_response(session)


@router.post(
    "/{session_id}/transaction",
    summary="Apply updates and purge mappings of removed line items as one history step",
    response_model=MappingSessionResponse,
)
async def apply_transaction(
    session_id: str,
    body: TransactionRequest,
    registry: SessionRegistryDep,
) -> MappingSessionResponse:
    session = _get_session(registry, session_id)
    session.apply_transaction(
        (MappingUpdate(field_id=update.field_id, source_ids=update.source_ids) for update in body.updates),
        body.valid_line_numbers,
    )
    return _to_response(session)


@router.post("/{session_id}/undo", summary="Undo the last mapping change", response_model=MappingSessionResponse)
async def undo(session_id: str, registry: SessionRegistryDep) -> MappingSessionResponse:
    session = _get_session(registry, session_id)
    session.undo()
    return _to_response(session)


@router.post("/{session_id}/redo", summary="Redo the last undone change", response_model=MappingSessionResponse)
async def redo(session_id: str, registry: SessionRegistryDep) -> MappingSessionResponse:
    session = _get_session(registry, session_id)
    session.redo()
    return _to_response(session)


@router.post(
    "/{session_id}/extract/{vendor_id}",
    summary="Resolve a stored layout map and apply it to the session",
    response_model=MappingSessionResponse,
)
async def apply_layout_map(
    session_id: str,
    vendor_id: str,
    registry: SessionRegistryDep,
    layout_store: LayoutStoreDep,
) -> MappingSessionResponse:
    session = _get_session(registry, session_id)
    try:
        layout_map = layout_store.load(vendor_id)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    if layout_map is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No layout map for vendor: {vendor_id}",
        )

    result = LayoutRuleResolver().resolve(layout_map, session.regions)
    session.apply_extraction(result)
    logger.info(
        "Applied layout map %s to session %s: matched=%d unmatched=%s",
        layout_map.id,
        session_id,
        len(result.extracted_data),
        result.unmatched_rules,
    )
    return _to_response(session)
