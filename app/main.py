import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from app.api.routes.extract import router as extract_router
from app.api.routes.health import router as health_router
from app.api.routes.layout_maps import router as layout_maps_router
from app.api.routes.sessions import router as sessions_router
from app.services.mapping.session import MappingSessionRegistry
from app.services.rules.layout_loader import LayoutMapStore
from app.state import global_state

from app.core.logging import setup_logging

# logging must be ready before the app object exists
setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting PO mapping service...")

    global_state.layout_store = LayoutMapStore()
    logger.info("Layout maps directory: %s", global_state.layout_store.directory)

    global_state.sessions = MappingSessionRegistry()

    logger.info("System ready!")
    yield
    logger.info("Shutting down service...")
    global_state.sessions.close_all()


app = FastAPI(title="PO Mapping Service", lifespan=lifespan)

app.include_router(health_router, prefix="/api")
app.include_router(extract_router, prefix="/api")
app.include_router(layout_maps_router, prefix="/api")
app.include_router(sessions_router, prefix="/api")
