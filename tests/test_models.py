import warnings

import pytest
from pydantic import ValidationError

from models import CatalogUpdateRequest, IntegrationsUpdateRequest, ServerRecord, UserRecord


def test_server_record_accepts_field_names_and_aliases(server):
    by_alias = ServerRecord.model_validate(server("a", maxPlayers=50))
    fields = server("a")
    del fields["maxPlayers"]
    by_name = ServerRecord(**fields, max_players=50)

    assert by_alias.max_players == by_name.max_players == 50
    assert by_alias.to_wire()["maxPlayers"] == 50


def test_server_record_keeps_unmodelled_live_fields(server):
    record = ServerRecord.model_validate(server("a", country="DE"))

    assert record.to_wire()["country"] == "DE"


def test_server_record_rejects_blank_id(server):
    with pytest.raises(ValidationError):
        ServerRecord.model_validate(server("   "))


def test_integrations_update_strips_url():
    update = IntegrationsUpdateRequest(liveDataUrl="  http://live.example/servers  ")

    assert update.live_data_url == "http://live.example/servers"


def test_catalog_update_rejects_duplicate_ids(server):
    with pytest.raises(ValidationError):
        CatalogUpdateRequest(servers=[server("a"), server("a")])


def test_user_record_keeps_extra_fields():
    user = UserRecord.model_validate({"username": "ann", "theme": "dark"})

    assert user.model_dump()["theme"] == "dark"


def test_subclassing_models_raises_no_deprecation_warnings():
    with warnings.catch_warnings():
        warnings.simplefilter("error", DeprecationWarning)

        class RegionalServer(ServerRecord):
            region_code: str = ""

    assert RegionalServer.model_config["extra"] == "allow"
