from app.services.mapping.session import MappingSessionRegistry
from app.services.rules.layout_loader import LayoutMapStore


class AppState:
    layout_store: LayoutMapStore | None = None
    sessions: MappingSessionRegistry | None = None


global_state = AppState()
