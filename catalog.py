"""Persistent catalog store.

The integrations blob is the single durable home of the server catalog.
The legacy flat server list is read once as a migration source, then
removed; its shape is produced on demand by ``legacy_servers()``.
"""
import logging
from typing import Any, List, Optional

from pydantic import ValidationError

from database import Database, INTEGRATIONS_SLOT, SERVERS_SLOT
from models import IntegrationsConfig, ServerRecord

logger = logging.getLogger(__name__)

DEFAULT_SERVERS = [
    # Rust
    {
        "id": "rust-eu-1",
        "name": "Rustaradise | Vanilla+ EU",
        "game": "Rust",
        "region": "EU",
        "ip": "rust1.rustaradise.gg",
        "port": 28015,
        "map": "Procedural 4500",
        "players": 142,
        "maxPlayers": 200,
        "queue": 6,
        "status": "online",
        "lastWipe": "3 days ago",
        "uptimePercent": 99.4,
        "avgPlayers24h": 118,
        "peakPlayers24h": 198,
        "avgLatencyMs": 38,
    },
    {
        "id": "rust-na-2x",
        "name": "Rustaradise | 2x US",
        "game": "Rust",
        "region": "NA",
        "ip": "rust2.rustaradise.gg",
        "port": 28016,
        "map": "Procedural 3500 · 2x",
        "players": 87,
        "maxPlayers": 150,
        "queue": 0,
        "status": "online",
        "lastWipe": "1 day ago",
        "uptimePercent": 98.7,
        "avgPlayers24h": 76,
        "peakPlayers24h": 142,
        "avgLatencyMs": 54,
    },
    # Counter-Strike 2
    {
        "id": "cs2-eu-hub",
        "name": "Rustaradise | CS2 Mirage 24/7",
        "game": "CS2",
        "region": "EU",
        "ip": "cs2-eu.rustaradise.gg",
        "port": 27015,
        "map": "Mirage · 128 tick",
        "players": 18,
        "maxPlayers": 20,
        "queue": 0,
        "status": "online",
        "lastWipe": "Rotations hourly",
        "uptimePercent": 99.9,
        "avgPlayers24h": 16,
        "peakPlayers24h": 20,
        "avgLatencyMs": 24,
    },
    {
        "id": "cs2-na-retake",
        "name": "Rustaradise | CS2 Retakes NA",
        "game": "CS2",
        "region": "NA",
        "ip": "cs2-na.rustaradise.gg",
        "port": 27016,
        "map": "Mixed · Retakes",
        "players": 9,
        "maxPlayers": 10,
        "queue": 0,
        "status": "maintenance",
        "lastWipe": "Today",
        "uptimePercent": 96.2,
        "avgPlayers24h": 8,
        "peakPlayers24h": 10,
        "avgLatencyMs": 32,
    },
    # Minecraft
    {
        "id": "mc-survival",
        "name": "Rustaradise | MC Survival",
        "game": "Minecraft",
        "region": "EU",
        "ip": "mc.rustaradise.gg",
        "port": 25565,
        "map": "1.21 Survival · Claims",
        "players": 34,
        "maxPlayers": 80,
        "queue": 0,
        "status": "online",
        "lastWipe": "Season 3 · 2 weeks ago",
        "uptimePercent": 99.1,
        "avgPlayers24h": 29,
        "peakPlayers24h": 63,
        "avgLatencyMs": 41,
    },
    {
        "id": "other-arena",
        "name": "Rustaradise | Arena Sandbox",
        "game": "Other",
        "region": "EU",
        "ip": "arena.rustaradise.gg",
        "port": 30000,
        "map": "Custom Arena",
        "players": 4,
        "maxPlayers": 24,
        "queue": 0,
        "status": "offline",
        "lastWipe": "Planned",
        "uptimePercent": 80.0,
        "avgPlayers24h": 3,
        "peakPlayers24h": 14,
        "avgLatencyMs": 35,
    },
]


def default_servers() -> List[ServerRecord]:
    return [ServerRecord.model_validate(s) for s in DEFAULT_SERVERS]


def parse_servers(raw: Any) -> Optional[List[ServerRecord]]:
    """Validate a stored server list, or None if it is not one."""
    if not isinstance(raw, list):
        return None
    try:
        return [ServerRecord.model_validate(s) for s in raw]
    except ValidationError as e:
        logger.warning(f"Ignoring stored server list that failed validation: {e.error_count()} error(s)")
        return None


class CatalogStore:
    """Durable catalog of server records backed by named storage slots"""

    def __init__(self, database: Database):
        self.db = database

    async def get_integrations(self) -> IntegrationsConfig:
        """Read the integrations blob, merged over the defaults.

        Malformed content degrades to the defaults field by field.
        """
        defaults = IntegrationsConfig()
        raw = await self.db.get_json(INTEGRATIONS_SLOT)
        if not isinstance(raw, dict):
            return defaults

        merged = {**defaults.to_wire(), **raw}
        servers = parse_servers(merged.get("servers"))
        merged["servers"] = servers if servers is not None else []
        if not isinstance(merged.get("liveDataUrl"), str):
            merged["liveDataUrl"] = defaults.live_data_url

        try:
            return IntegrationsConfig.model_validate(merged)
        except ValidationError as e:
            logger.warning(f"Ignoring integrations that failed validation: {e.error_count()} error(s)")
            defaults.servers = merged["servers"]
            defaults.live_data_url = merged["liveDataUrl"]
            return defaults

    async def save_integrations(self, integrations: IntegrationsConfig) -> None:
        await self.db.set_json(INTEGRATIONS_SLOT, integrations.to_wire())

    async def load(self) -> List[ServerRecord]:
        """Return the catalog.

        Precedence: the integrations catalog when non-empty, then the legacy
        flat list (migrated into the integrations blob), then the built-in
        defaults (persisted).
        """
        integrations = await self.get_integrations()
        if integrations.servers:
            return integrations.servers

        legacy = parse_servers(await self.db.get_json(SERVERS_SLOT))
        if legacy:
            logger.info(f"Migrating {len(legacy)} server(s) from the legacy server list")
            integrations.servers = legacy
            await self.save_integrations(integrations)
            # Migrated once; the integrations blob owns the catalog from now on
            await self.db.delete(SERVERS_SLOT)
            return legacy

        logger.info("No stored catalog, seeding default servers")
        integrations.servers = default_servers()
        await self.save_integrations(integrations)
        return integrations.servers

    async def save(self, records: List[ServerRecord]) -> None:
        """Replace the catalog, keeping the rest of the integrations blob"""
        integrations = await self.get_integrations()
        integrations.servers = list(records)
        await self.save_integrations(integrations)
        logger.info(f"Saved catalog with {len(records)} server(s)")

    async def legacy_servers(self) -> List[dict]:
        """The catalog in the legacy flat-list shape"""
        return [s.to_wire() for s in await self.load()]

    async def live_data_url(self) -> str:
        integrations = await self.get_integrations()
        return integrations.live_data_url
