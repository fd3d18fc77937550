import logging

from catalog import CatalogStore
from database import INTEGRATIONS_SLOT
from models import ServerRecord
from overlay_cache import LiveOverlayCache
from reconcile import ServerDirectory, merge_fragment, merge_overlay

URL = "http://live.example/servers"


def records(server, *ids):
    return [ServerRecord.model_validate(server(i)) for i in ids]


def test_merge_is_field_level(server):
    catalog = [ServerRecord.model_validate(server("a", players=5, region="EU"))]

    merged = merge_overlay(catalog, {"a": {"id": "a", "players": 9}})

    assert merged[0].players == 9
    assert merged[0].region == "EU"
    assert catalog[0].players == 5


def test_merge_keeps_catalog_order_and_membership(server):
    catalog = records(server, "a", "b", "c")
    entries = {
        "c": {"id": "c", "status": "offline"},
        "a": {"id": "a", "map": "Hapis"},
        "zzz": {"id": "zzz", "name": "Not in catalog"},
    }

    merged = merge_overlay(catalog, entries)

    assert [s.id for s in merged] == ["a", "b", "c"]
    assert merged[0].map == "Hapis"
    assert merged[1] == catalog[1]
    assert merged[2].status.value == "offline"


def test_merge_without_overlay_passes_through(server):
    catalog = records(server, "a", "b")

    assert merge_overlay(catalog, {}) == catalog


def test_merge_keeps_unmodelled_overlay_fields(server):
    merged = merge_overlay(records(server, "a"), {"a": {"id": "a", "ping": 12}})

    assert merged[0].to_wire()["ping"] == 12


def test_invalid_field_leaves_catalog_value(server, caplog):
    catalog = records(server, "a", "b")
    entries = {"a": {"id": "a", "players": -3}, "b": {"id": "b", "players": 4}}

    with caplog.at_level(logging.WARNING):
        merged = merge_overlay(catalog, entries)

    assert merged[0].to_wire() == catalog[0].to_wire()
    assert merged[1].players == 4
    assert "Ignoring invalid live fields for a: players" in caplog.text


def test_invalid_field_does_not_discard_valid_ones(server):
    catalog = [ServerRecord.model_validate(server("a", players=5, game="Rust"))]

    merged = merge_overlay(catalog, {"a": {"id": "a", "players": 9, "game": "Valheim", "maxPlayers": 0}})

    assert merged[0].players == 9
    assert merged[0].game.value == "Rust"
    assert merged[0].max_players == 100


def test_fragment_cannot_change_record_id(server):
    catalog = records(server, "a")

    merged = merge_fragment(catalog[0], {"id": "other", "name": "Renamed"})

    assert merged.id == "a"
    assert merged.name == "Renamed"


def test_merge_is_idempotent(server):
    catalog = records(server, "a", "b")
    entries = {"b": {"id": "b", "players": 4}}

    assert merge_overlay(catalog, entries) == merge_overlay(catalog, entries)


async def test_effective_servers_refreshes_then_merges(database, server, stub_fetcher, clock):
    await database.set_json(INTEGRATIONS_SLOT, {
        "servers": [server("a", players=5), server("b", players=6)],
        "liveDataUrl": URL,
    })
    fetcher = stub_fetcher([{"id": "b", "players": 60}])
    directory = ServerDirectory(CatalogStore(database), LiveOverlayCache(fetcher, clock=clock))

    first = await directory.effective_servers()
    second = await directory.effective_servers()

    assert fetcher.calls == [URL]
    assert [s.players for s in first] == [5, 60]
    assert second == first


async def test_forced_refresh_bypasses_ttl(database, server, stub_fetcher, clock):
    await database.set_json(INTEGRATIONS_SLOT, {"servers": [server("a")], "liveDataUrl": URL})
    fetcher = stub_fetcher([{"id": "a", "players": 1}], [{"id": "a", "players": 2}])
    directory = ServerDirectory(CatalogStore(database), LiveOverlayCache(fetcher, clock=clock))

    await directory.refresh()
    await directory.refresh(force=True)

    assert len(fetcher.calls) == 2
    servers = await directory.effective_servers(refresh=False)
    assert servers[0].players == 2


async def test_effective_servers_without_live_url(database, stub_fetcher, clock):
    fetcher = stub_fetcher()
    directory = ServerDirectory(CatalogStore(database), LiveOverlayCache(fetcher, clock=clock))

    servers = await directory.effective_servers()

    assert fetcher.calls == []
    assert len(servers) == 6
