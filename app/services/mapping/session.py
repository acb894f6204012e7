"""Usage: per-document owner of the live mapping state."""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Iterable, Mapping, Sequence

from app.core.config import settings
from app.schemas.extraction import ExtractionResult
from app.schemas.region import Region
from app.services.highlight.scheduler import HighlightScheduler
from app.services.mapping import store
from app.services.mapping.store import FieldSourceEntry, MappingState, MappingUpdate

logger = logging.getLogger(__name__)


def extraction_updates(result: ExtractionResult) -> list[MappingUpdate]:
    return [
        MappingUpdate(field_id=extraction.field_id, source_ids=list(extraction.region_ids))
        for extraction in result.extractions
    ]


class MappingSession:
    """Holds one document's regions and current ``MappingState``.

    All changes go through the pure functions in ``store``; the session only
    keeps the latest result and flashes the fields a transition touched.
    """

    def __init__(
        self,
        session_id: str,
        regions: Sequence[Region],
        *,
        vendor_id: str | None = None,
        history_limit: int | None = None,
        highlighter: HighlightScheduler | None = None,
    ) -> None:
        self.session_id = session_id
        self.vendor_id = vendor_id
        self.history_limit = settings.history_limit if history_limit is None else history_limit
        self.highlighter = highlighter
        self._regions: dict[str, Region] = {region.id: region for region in regions}
        self._state = store.empty_state()

    @property
    def state(self) -> MappingState:
        return self._state

    @property
    def regions(self) -> list[Region]:
        return list(self._regions.values())

    def update_field(self, field_id: str, source_ids: Sequence[str] | None) -> MappingState:
        next_state = store.update_one(
            self._state,
            field_id,
            source_ids,
            self._regions,
            history_limit=self.history_limit,
        )
        return self._transition(next_state, "update")

    def batch_update(self, updates: Iterable[MappingUpdate]) -> MappingState:
        next_state = store.batch_update(
            self._state,
            updates,
            self._regions,
            history_limit=self.history_limit,
        )
        return self._transition(next_state, "batch")

    def replace_all(self, field_sources: Mapping[str, FieldSourceEntry]) -> MappingState:
        next_state = store.replace_all(self._state, field_sources, history_limit=self.history_limit)
        return self._transition(next_state, "replace")

    def apply_transaction(
        self,
        updates: Iterable[MappingUpdate],
        valid_line_numbers: Iterable[int],
    ) -> MappingState:
        next_state = store.apply_transaction(
            self._state,
            updates,
            valid_line_numbers,
            self._regions,
            history_limit=self.history_limit,
        )
        return self._transition(next_state, "transaction")

    def apply_extraction(self, result: ExtractionResult) -> MappingState:
        return self.batch_update(extraction_updates(result))

    def undo(self) -> MappingState:
        next_state = store.undo(self._state)
        if next_state is not self._state:
            # snapshots keep the boxes they were taken with
            next_state = store.recompute_geometry(next_state, self._regions)
        return self._transition(next_state, "undo")

    def redo(self) -> MappingState:
        next_state = store.redo(self._state)
        if next_state is not self._state:
            next_state = store.recompute_geometry(next_state, self._regions)
        return self._transition(next_state, "redo")

    def set_regions(self, regions: Sequence[Region]) -> MappingState:
        self._regions = {region.id: region for region in regions}
        next_state = store.recompute_geometry(self._state, self._regions)
        return self._transition(next_state, "regions")

    def dangling_ids(self) -> list[str]:
        """Region ids referenced by the mapping but missing from the region set."""

        missing: list[str] = []
        for entry in self._state.field_sources.values():
            for region_id in entry.ids:
                if region_id not in self._regions and region_id not in missing:
                    missing.append(region_id)
        return missing

    def close(self) -> None:
        if self.highlighter is not None:
            self.highlighter.close()

    def _transition(self, next_state: MappingState, action: str) -> MappingState:
        if next_state is self._state:
            logger.debug("Mapping %s ignored (no change): session=%s", action, self.session_id)
            return self._state
        changed = store.changed_fields(self._state.field_sources, next_state.field_sources)
        # a failing flash must leave the previous state in place
        if self.highlighter is not None:
            for field_id in changed:
                self.highlighter.flash(field_id)
        self._state = next_state
        logger.debug(
            "Mapping %s applied: session=%s fields=%s history=%d/%d",
            action,
            self.session_id,
            changed,
            len(next_state.past),
            len(next_state.future),
        )
        return next_state


class MappingSessionRegistry:
    """In-process sessions keyed by a generated id."""

    def __init__(self, *, history_limit: int | None = None, highlight: bool = True) -> None:
        self.history_limit = history_limit
        self.highlight = highlight
        self._sessions: dict[str, MappingSession] = {}

    def create(self, regions: Sequence[Region], *, vendor_id: str | None = None) -> MappingSession:
        session_id = uuid.uuid4().hex
        session = MappingSession(
            session_id,
            regions,
            vendor_id=vendor_id,
            history_limit=self.history_limit,
            highlighter=self._highlighter(),
        )
        self._sessions[session_id] = session
        logger.info("Mapping session created: %s regions=%d", session_id, len(regions))
        return session

    def _highlighter(self) -> HighlightScheduler | None:
        """Scheduler bound to the running loop; sessions created off-loop get none."""

        if not self.highlight:
            return None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop, session highlights disabled")
            return None
        return HighlightScheduler(loop=loop)

    def get(self, session_id: str) -> MappingSession | None:
        return self._sessions.get(session_id)

    def close(self, session_id: str) -> bool:
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.close()
        logger.info("Mapping session closed: %s", session_id)
        return True

    def close_all(self) -> None:
        for session_id in list(self._sessions):
            self.close(session_id)

    def __len__(self) -> int:
        return len(self._sessions)
