from typing import Annotated
from fastapi import Depends, HTTPException
from app.services.mapping.session import MappingSessionRegistry
from app.services.rules.layout_loader import LayoutMapStore
from app.state import global_state


async def get_layout_store() -> LayoutMapStore:
    if not global_state.layout_store:
        raise HTTPException(status_code=503, detail="Layout map store not initialized")
    return global_state.layout_store


async def get_session_registry() -> MappingSessionRegistry:
    if global_state.sessions is None:
        raise HTTPException(status_code=503, detail="Mapping sessions not initialized")
    return global_state.sessions


LayoutStoreDep = Annotated[LayoutMapStore, Depends(get_layout_store)]
SessionRegistryDep = Annotated[MappingSessionRegistry, Depends(get_session_registry)]
