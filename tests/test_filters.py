import pytest

from catalog import default_servers
from filters import filter_servers


@pytest.fixture
def servers():
    return default_servers()


def ids(records):
    return [s.id for s in records]


def test_query_matches_name_or_map_case_insensitively(servers):
    assert ids(filter_servers(servers, "mirage", "all", "all")) == ["cs2-eu-hub"]
    assert ids(filter_servers(servers, "PROCEDURAL")) == ["rust-eu-1", "rust-na-2x"]
    assert ids(filter_servers(servers, "arena")) == ["other-arena"]


def test_empty_query_and_sentinels_match_everything(servers):
    assert filter_servers(servers, "", "all", "all") == servers
    assert filter_servers(servers, None, None, None) == servers


def test_region_and_game_are_exact(servers):
    assert ids(filter_servers(servers, region="NA")) == ["rust-na-2x", "cs2-na-retake"]
    assert ids(filter_servers(servers, game="CS2")) == ["cs2-eu-hub", "cs2-na-retake"]
    assert filter_servers(servers, region="eu") == []


def test_predicates_are_combined(servers):
    assert ids(filter_servers(servers, "rustaradise", "EU", "Rust")) == ["rust-eu-1"]
    assert filter_servers(servers, "mirage", "NA", "all") == []


def test_filter_does_not_modify_input(servers):
    before = list(servers)

    filter_servers(servers, "mc", "EU", "Minecraft")

    assert servers == before
