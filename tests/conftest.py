import pytest

from catalog import CatalogStore
from database import Database
from live_data_client import Ignored


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StubFetcher:
    """Records requested URLs and replays queued results"""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = []

    async def __call__(self, url):
        self.calls.append(url)
        if not self.results:
            return Ignored("no stub result queued")
        return self.results.pop(0)


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'listing.db'}"


@pytest.fixture
async def database(database_url):
    database = Database(database_url)
    await database.init_db()
    yield database
    await database.close()


@pytest.fixture
def catalog(database):
    return CatalogStore(database)


@pytest.fixture
def clock():
    return FakeClock()


def make_server(server_id, **fields):
    record = {
        "id": server_id,
        "name": f"Server {server_id}",
        "game": "Rust",
        "region": "EU",
        "map": "Procedural",
        "players": 0,
        "maxPlayers": 100,
        "status": "online",
        "uptimePercent": 100.0,
    }
    record.update(fields)
    return record


@pytest.fixture
def server():
    """Factory for server records in wire shape"""
    return make_server


@pytest.fixture
def stub_fetcher():
    return StubFetcher
