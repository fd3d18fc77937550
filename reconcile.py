import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from catalog import CatalogStore
from models import ServerRecord
from overlay_cache import LiveOverlayCache

logger = logging.getLogger(__name__)


def merge_fragment(
    record: ServerRecord,
    fragment: Dict[str, Any],
    log: Optional[logging.Logger] = None,
) -> ServerRecord:
    """Overlay one fragment on a record, dropping fields that fail validation."""
    log = log or logger
    base = record.to_wire()
    overlay = {**fragment, "id": record.id}
    try:
        return ServerRecord.model_validate({**base, **overlay})
    except ValidationError as e:
        invalid = {err["loc"][0] for err in e.errors() if err["loc"]}

    dropped = sorted(str(k) for k in invalid & set(overlay) if k != "id")
    if not dropped:
        log.warning(f"Skipping live data for {record.id}: merged record is invalid")
        return record

    log.warning(f"Ignoring invalid live fields for {record.id}: {', '.join(dropped)}")
    for key in dropped:
        overlay.pop(key)
    try:
        return ServerRecord.model_validate({**base, **overlay})
    except ValidationError as e:
        log.warning(f"Skipping live data for {record.id}: {e.error_count()} invalid field(s)")
        return record


def merge_overlay(
    records: List[ServerRecord],
    entries: Dict[str, Dict[str, Any]],
    log: Optional[logging.Logger] = None,
) -> List[ServerRecord]:
    """Shallow-merge overlay fragments onto catalog records.

    Overlay fields win. Output order and membership follow the catalog.
    """
    if not entries:
        return list(records)

    merged = []
    for record in records:
        fragment = entries.get(record.id)
        merged.append(merge_fragment(record, fragment, log) if fragment else record)
    return merged


class ServerDirectory:
    """The effective server view: catalog plus live overlay"""

    def __init__(self, catalog: CatalogStore, overlay: LiveOverlayCache):
        self.catalog = catalog
        self.overlay = overlay

    async def refresh(self, force: bool = False) -> bool:
        """Refresh the overlay from the configured live data URL"""
        if force:
            self.overlay.force_stale()
        return await self.overlay.refresh(await self.catalog.live_data_url())

    async def effective_servers(self, refresh: bool = True) -> List[ServerRecord]:
        if refresh:
            await self.refresh()
        records = await self.catalog.load()
        return merge_overlay(records, self.overlay.entries)
