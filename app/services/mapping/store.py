"""Usage: field -> source-region mapping with undo/redo history.

Every operation is a pure transition: it takes a ``MappingState`` and returns
either a new one or the very same object when nothing changed. Snapshots held
in ``past``/``future`` are read-only mappings and are never mutated.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping, Sequence, Union

from app.schemas.region import Region
from app.services.rules.geometry import bounds_of

FieldSources = Mapping[str, "FieldSourceEntry"]
RegionLookup = Union[Sequence[Region], Mapping[str, Region], None]

EMPTY_SOURCES: FieldSources = MappingProxyType({})

LINE_ITEM_COLUMNS = ("sku", "description", "quantity", "unitPrice")
_LINE_ITEM_FIELD_RE = re.compile(r"^lineItem-(\d+)-(" + "|".join(LINE_ITEM_COLUMNS) + r")$")


@dataclass(frozen=True)
class FieldSourceBox:
    id: str
    top: float = 0.0
    left: float = 0.0
    right: float = 0.0
    bottom: float = 0.0


@dataclass(frozen=True)
class FieldSourceEntry:
    ids: tuple[str, ...]
    boxes: tuple[FieldSourceBox, ...]


@dataclass(frozen=True)
class MappingUpdate:
    field_id: str
    source_ids: Sequence[str] | None = None


@dataclass(frozen=True)
class LineItemField:
    line_number: int
    column: str


@dataclass(frozen=True)
class MappingState:
    field_sources: FieldSources = field(default_factory=lambda: EMPTY_SOURCES)
    past: tuple[FieldSources, ...] = ()
    future: tuple[FieldSources, ...] = ()

    @property
    def can_undo(self) -> bool:
        return bool(self.past)

    @property
    def can_redo(self) -> bool:
        return bool(self.future)


def empty_state() -> MappingState:
    return MappingState()


def compute_geometry(ids: Iterable[str], regions: RegionLookup = None) -> tuple[FieldSourceBox, ...]:
    """Boxes for ``ids`` in order; unknown ids get a zero-size box."""

    index = _region_index(regions)
    boxes: list[FieldSourceBox] = []
    for region_id in ids:
        region = index.get(region_id)
        if region is None:
            boxes.append(FieldSourceBox(id=region_id))
            continue
        rect = bounds_of(region.points)
        boxes.append(
            FieldSourceBox(
                id=region_id,
                top=rect.top,
                left=rect.left,
                right=rect.right,
                bottom=rect.bottom,
            )
        )
    return tuple(boxes)


def update_one(
    state: MappingState,
    field_id: str,
    source_ids: Sequence[str] | None,
    regions: RegionLookup = None,
    *,
    history_limit: int | None = None,
) -> MappingState:
    """Set or clear one field. Empty ``source_ids`` removes the field."""

    index = _region_index(regions)
    next_sources = _with_updated_field(state.field_sources, field_id, source_ids, index)
    return _commit(state, next_sources, history_limit)


def batch_update(
    state: MappingState,
    updates: Iterable[MappingUpdate],
    regions: RegionLookup = None,
    *,
    history_limit: int | None = None,
) -> MappingState:
    """Apply ``updates`` in order as a single history step (last write wins)."""

    index = _region_index(regions)
    working = state.field_sources
    for update in updates:
        working = _with_updated_field(working, update.field_id, update.source_ids, index)
    return _commit(state, working, history_limit)


def apply_transaction(
    state: MappingState,
    updates: Iterable[MappingUpdate],
    valid_line_numbers: Iterable[int],
    regions: RegionLookup = None,
    *,
    history_limit: int | None = None,
) -> MappingState:
    """Apply ``updates`` and drop line-item fields of removed lines in one step.

    A ``lineItem-<n>-<column>`` field whose line number is not in
    ``valid_line_numbers`` is purged after the updates run, so undo brings
    back both the updates and the purged entries together.
    """

    index = _region_index(regions)
    working = state.field_sources
    for update in updates:
        working = _with_updated_field(working, update.field_id, update.source_ids, index)

    valid = set(valid_line_numbers)
    kept: dict[str, FieldSourceEntry] = {}
    for field_id, entry in working.items():
        parsed = parse_line_item_field(field_id)
        if parsed is not None and parsed.line_number not in valid:
            continue
        kept[field_id] = entry
    if len(kept) != len(working):
        working = MappingProxyType(kept)
    return _commit(state, working, history_limit)


def make_line_item_field(line_number: int, column: str) -> str:
    if column not in LINE_ITEM_COLUMNS:
        raise ValueError(f"Unknown line item column: {column}")
    return f"lineItem-{line_number}-{column}"


def parse_line_item_field(field_id: str) -> LineItemField | None:
    match = _LINE_ITEM_FIELD_RE.match(field_id)
    if not match:
        return None
    return LineItemField(line_number=int(match.group(1)), column=match.group(2))


def replace_all(
    state: MappingState,
    field_sources: Mapping[str, FieldSourceEntry],
    *,
    history_limit: int | None = None,
) -> MappingState:
    cleaned = MappingProxyType({key: entry for key, entry in field_sources.items() if entry.ids})
    return _commit(state, cleaned, history_limit)


def undo(state: MappingState) -> MappingState:
    if not state.past:
        return state
    return MappingState(
        field_sources=state.past[-1],
        past=state.past[:-1],
        future=(state.field_sources,) + state.future,
    )


def redo(state: MappingState) -> MappingState:
    if not state.future:
        return state
    return MappingState(
        field_sources=state.future[0],
        past=state.past + (state.field_sources,),
        future=state.future[1:],
    )


def recompute_geometry(state: MappingState, regions: RegionLookup) -> MappingState:
    """Refresh cached boxes of the live mapping; history is left untouched."""

    index = _region_index(regions)
    refreshed = {
        field_id: FieldSourceEntry(ids=entry.ids, boxes=compute_geometry(entry.ids, index))
        for field_id, entry in state.field_sources.items()
    }
    if refreshed == dict(state.field_sources):
        return state
    return MappingState(
        field_sources=MappingProxyType(refreshed),
        past=state.past,
        future=state.future,
    )


def reverse_index(field_sources: FieldSources) -> dict[str, list[str]]:
    """Region id -> ids of the fields it currently backs."""

    index: dict[str, list[str]] = {}
    for field_id, entry in field_sources.items():
        for region_id in entry.ids:
            index.setdefault(region_id, []).append(field_id)
    return index


def changed_fields(before: FieldSources, after: FieldSources) -> list[str]:
    keys = list(before) + [key for key in after if key not in before]
    return [key for key in keys if before.get(key) != after.get(key)]


def remap_for_insertion(
    field_sources: FieldSources,
    remapped: Sequence[tuple[str, str]],
) -> list[MappingUpdate]:
    """Updates that move sources from old to new field ids.

    All old ids are cleared before any new id is written, so a new id that
    equals another pair's old id is not clobbered. Feed the result to
    ``batch_update``.
    """

    captured = [(old_id, new_id, field_sources.get(old_id)) for old_id, new_id in remapped]
    updates = [MappingUpdate(field_id=old_id) for old_id, _new_id, entry in captured if entry]
    updates.extend(
        MappingUpdate(field_id=new_id, source_ids=entry.ids)
        for _old_id, new_id, entry in captured
        if entry
    )
    return updates


def _with_updated_field(
    prev: FieldSources,
    field_id: str,
    source_ids: Sequence[str] | None,
    index: Mapping[str, Region],
) -> FieldSources:
    if isinstance(source_ids, str):
        source_ids = [source_ids]
    if not source_ids:
        if field_id not in prev:
            return prev
        return MappingProxyType({key: entry for key, entry in prev.items() if key != field_id})

    ids = tuple(source_ids)
    entry = FieldSourceEntry(ids=ids, boxes=compute_geometry(ids, index))
    if prev.get(field_id) == entry:
        return prev
    return MappingProxyType({**prev, field_id: entry})


def _commit(
    state: MappingState,
    next_sources: FieldSources,
    history_limit: int | None,
) -> MappingState:
    if next_sources is state.field_sources or next_sources == state.field_sources:
        return state
    past = state.past + (state.field_sources,)
    if history_limit is not None and history_limit > 0 and len(past) > history_limit:
        past = past[-history_limit:]
    return MappingState(field_sources=next_sources, past=past, future=())


def _region_index(regions: RegionLookup) -> Mapping[str, Region]:
    if regions is None:
        return {}
    if isinstance(regions, Mapping):
        return regions
    return {region.id: region for region in regions}
