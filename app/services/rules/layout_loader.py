"""Usage: load and persist vendor layout maps as JSON files."""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path

from app.core.config import settings
from app.schemas.layout_map import LayoutMap

logger = logging.getLogger(__name__)

LAYOUT_MAP_SUFFIX = "_rules.json"
_VENDOR_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


class LayoutMapStore:
    """Layout maps on disk, one ``<vendorId>_rules.json`` file per vendor."""

    def __init__(self, directory: str | Path | None = None) -> None:
        self.directory = Path(directory or settings.layout_map_dir)

    def path_for(self, vendor_id: str) -> Path:
        if not _VENDOR_ID_RE.match(vendor_id):
            raise ValueError(f"Invalid vendor id: {vendor_id!r}")
        return self.directory / f"{vendor_id}{LAYOUT_MAP_SUFFIX}"

    def load(self, vendor_id: str) -> LayoutMap | None:
        path = self.path_for(vendor_id)
        if not path.exists():
            return None
        data = json.loads(path.read_text(encoding="utf-8"))
        layout_map = LayoutMap.model_validate(data)
        logger.debug("Loaded layout map %s from %s", layout_map.id, path)
        return layout_map

    def save(self, layout_map: LayoutMap) -> LayoutMap:
        """Persist ``layout_map`` and return the stored copy with a fresh ``updatedAt``."""

        if not layout_map.vendor_id:
            raise ValueError("vendorId is required")
        stored = layout_map.model_copy(update={"updated_at": datetime.now(timezone.utc)})
        path = self.path_for(layout_map.vendor_id)
        self.directory.mkdir(parents=True, exist_ok=True)
        payload = stored.model_dump(mode="json", by_alias=True, exclude_none=True)
        path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        logger.info("Saved layout map %s for vendor %s", stored.id, stored.vendor_id)
        return stored

    def list_vendors(self) -> list[str]:
        if not self.directory.exists():
            return []
        return sorted(
            path.name[: -len(LAYOUT_MAP_SUFFIX)]
            for path in self.directory.glob(f"*{LAYOUT_MAP_SUFFIX}")
        )
