"""
Read-only listings of SFTPGo objects.

Every function returns the decoded records of all the objects of one kind,
in the order the server returns them. Users, roles and event rules use
offset pagination; folders, groups, event actions and admins come from a
single-scope backup dump; IP lists use cursor pagination.
"""

from typing import Any

from sftpgo_operator.errors import SFTPGoAPIError
from sftpgo_operator.models.action import EventAction
from sftpgo_operator.models.admin import Admin
from sftpgo_operator.models.common import ResourceModel
from sftpgo_operator.models.folder import Folder
from sftpgo_operator.models.group import Group
from sftpgo_operator.models.ip_list import (
    AllowListEntry,
    DefenderEntry,
    IPListEntry,
    RateLimiterSafeListEntry,
)
from sftpgo_operator.models.license import License
from sftpgo_operator.models.role import Role
from sftpgo_operator.models.rule import EventRule
from sftpgo_operator.models.user import User
from sftpgo_operator.utils.sftpgo_client import SFTPGoClient


def _decode(
    model: type[ResourceModel], items: list[dict[str, Any]] | None
) -> list[dict[str, Any]]:
    return [model.from_wire(item).to_record() for item in items or []]


async def list_users(client: SFTPGoClient) -> list[dict[str, Any]]:
    return _decode(User, await client.list_paged("users"))


async def list_roles(client: SFTPGoClient) -> list[dict[str, Any]]:
    return _decode(Role, await client.list_paged("roles"))


async def list_event_rules(client: SFTPGoClient) -> list[dict[str, Any]]:
    return _decode(EventRule, await client.list_paged("eventrules"))


async def list_folders(client: SFTPGoClient) -> list[dict[str, Any]]:
    dump = await client.dump_data("folders")
    return _decode(Folder, dump.get("folders"))


async def list_groups(client: SFTPGoClient) -> list[dict[str, Any]]:
    dump = await client.dump_data("groups")
    return _decode(Group, dump.get("groups"))


async def list_event_actions(client: SFTPGoClient) -> list[dict[str, Any]]:
    dump = await client.dump_data("actions")
    return _decode(EventAction, dump.get("event_actions"))


async def list_admins(client: SFTPGoClient) -> list[dict[str, Any]]:
    dump = await client.dump_data("admins")
    return _decode(Admin, dump.get("admins"))


async def _list_ip_entries(
    client: SFTPGoClient, model: type[IPListEntry]
) -> list[dict[str, Any]]:
    return _decode(model, await client.list_ip_entries(model.LIST_TYPE))


async def list_defender_entries(client: SFTPGoClient) -> list[dict[str, Any]]:
    return await _list_ip_entries(client, DefenderEntry)


async def list_allowlist_entries(client: SFTPGoClient) -> list[dict[str, Any]]:
    return await _list_ip_entries(client, AllowListEntry)


async def list_ratelimiter_safelist_entries(
    client: SFTPGoClient,
) -> list[dict[str, Any]]:
    return await _list_ip_entries(client, RateLimiterSafeListEntry)


async def get_license(client: SFTPGoClient) -> dict[str, Any] | None:
    """Return the installed license, ``None`` when there is none."""
    try:
        data = await client.get("license")
    except SFTPGoAPIError as e:
        if e.is_not_found:
            return None
        raise
    return License.from_wire(data).to_record()


DATA_SOURCES = {
    "users": list_users,
    "folders": list_folders,
    "groups": list_groups,
    "event_actions": list_event_actions,
    "event_rules": list_event_rules,
    "roles": list_roles,
    "admins": list_admins,
    "defender_entries": list_defender_entries,
    "allowlist_entries": list_allowlist_entries,
    "ratelimiter_safelist_entries": list_ratelimiter_safelist_entries,
}


async def collect_inventory(client: SFTPGoClient) -> dict[str, int]:
    """
    Count the objects of every kind currently defined in SFTPGo.

    The license counts as one object when installed.
    """
    inventory = {kind: len(await source(client)) for kind, source in DATA_SOURCES.items()}
    inventory["license"] = 0 if await get_license(client) is None else 1
    return inventory
