"""Unit tests for the read-only SFTPGo listings."""

import pytest

from sftpgo_operator.services import data_sources
from sftpgo_operator.services.adapters import (
    AllowListEntryAdapter,
    EventActionAdapter,
    FolderAdapter,
    RoleAdapter,
    UserAdapter,
)


@pytest.mark.asyncio
async def test_list_users_decodes_records(sftpgo_client):
    for name in ("alice", "bob"):
        await UserAdapter().create(sftpgo_client, {"username": name, "permissions": {"/": "list"}})

    users = await data_sources.list_users(sftpgo_client)

    assert [u["username"] for u in users] == ["alice", "bob"]
    assert users[0]["permissions"] == {"/": "list"}


@pytest.mark.asyncio
async def test_list_roles_empty(sftpgo_client):
    assert await data_sources.list_roles(sftpgo_client) == []


@pytest.mark.asyncio
async def test_list_roles(sftpgo_client):
    await RoleAdapter().create(sftpgo_client, {"name": "auditors"})

    roles = await data_sources.list_roles(sftpgo_client)

    assert roles[0]["name"] == "auditors"


@pytest.mark.asyncio
async def test_folders_come_from_dump(sftpgo_client, fake_sftpgo):
    await FolderAdapter().create(sftpgo_client, {"name": "shared", "mapped_path": "/srv/shared"})

    folders = await data_sources.list_folders(sftpgo_client)

    assert [f["name"] for f in folders] == ["shared"]
    assert folders[0]["mapped_path"] == "/srv/shared"
    request = fake_sftpgo.requests[-1]
    assert request.url.path == "/api/v2/dumpdata"
    assert request.url.params["scopes"] == "folders"


@pytest.mark.asyncio
async def test_event_actions_use_actions_scope(sftpgo_client, fake_sftpgo):
    await EventActionAdapter().create(
        sftpgo_client,
        {"name": "run", "type": 2, "options": {"cmd_config": {"cmd": "/bin/true"}}},
    )

    actions = await data_sources.list_event_actions(sftpgo_client)

    assert actions[0]["name"] == "run"
    assert actions[0]["options"]["cmd_config"]["cmd"] == "/bin/true"
    assert fake_sftpgo.requests[-1].url.params["scopes"] == "actions"


@pytest.mark.asyncio
async def test_ip_list_entries(sftpgo_client):
    adapter = AllowListEntryAdapter()
    await adapter.create(sftpgo_client, {"ipornet": "192.168.1.0/24"})
    await adapter.create(sftpgo_client, {"ipornet": "10.0.0.0/8"})

    entries = await data_sources.list_allowlist_entries(sftpgo_client)

    assert [e["ipornet"] for e in entries] == ["10.0.0.0/8", "192.168.1.0/24"]
    assert await data_sources.list_defender_entries(sftpgo_client) == []


@pytest.mark.asyncio
async def test_get_license(sftpgo_client, fake_sftpgo):
    assert await data_sources.get_license(sftpgo_client) is None

    await sftpgo_client.create("license", {"key": "ABCD-1234"}, expected_status=200)

    license_ = await data_sources.get_license(sftpgo_client)
    assert license_["key"] == "XXXX-1234"


def test_every_list_kind_is_registered():
    assert set(data_sources.DATA_SOURCES) == {
        "users",
        "folders",
        "groups",
        "event_actions",
        "event_rules",
        "roles",
        "admins",
        "defender_entries",
        "allowlist_entries",
        "ratelimiter_safelist_entries",
    }


@pytest.mark.asyncio
async def test_collect_inventory(sftpgo_client):
    await UserAdapter().create(sftpgo_client, {"username": "alice"})
    await RoleAdapter().create(sftpgo_client, {"name": "auditors"})
    await AllowListEntryAdapter().create(sftpgo_client, {"ipornet": "10.0.0.0/8"})

    inventory = await data_sources.collect_inventory(sftpgo_client)

    assert inventory["users"] == 1
    assert inventory["roles"] == 1
    assert inventory["allowlist_entries"] == 1
    assert inventory["folders"] == 0
    assert inventory["license"] == 0
    assert set(inventory) == set(data_sources.DATA_SOURCES) | {"license"}
