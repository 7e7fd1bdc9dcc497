"""
Lifecycle adapters for every supported kind of SFTPGo object.

Most kinds are plain REST collections and only declare their endpoint. IP
list entries live under a per-list collection and the license is a
singleton that cannot be removed from the server.
"""

import logging
from collections.abc import Mapping
from typing import Any, ClassVar

from sftpgo_operator.constants import (
    ERROR_MISSING_LICENSE_KEY,
    PLURAL_ADMINS,
    PLURAL_ALLOWLIST_ENTRIES,
    PLURAL_DEFENDER_ENTRIES,
    PLURAL_EVENT_ACTIONS,
    PLURAL_EVENT_RULES,
    PLURAL_FOLDERS,
    PLURAL_GROUPS,
    PLURAL_LICENSES,
    PLURAL_RLSAFELIST_ENTRIES,
    PLURAL_ROLES,
    PLURAL_USERS,
)
from sftpgo_operator.errors import SFTPGoAPIError, ValidationError
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
from sftpgo_operator.services.base_adapter import ResourceAdapter, RestResourceAdapter
from sftpgo_operator.utils.sftpgo_client import SFTPGoClient

logger = logging.getLogger(__name__)


class UserAdapter(RestResourceAdapter):
    kind = "user"
    plural = PLURAL_USERS
    model = User
    endpoint = "users"


class FolderAdapter(RestResourceAdapter):
    kind = "folder"
    plural = PLURAL_FOLDERS
    model = Folder
    endpoint = "folders"
    confidential = True


class GroupAdapter(RestResourceAdapter):
    kind = "group"
    plural = PLURAL_GROUPS
    model = Group
    endpoint = "groups"
    confidential = True


class EventActionAdapter(RestResourceAdapter):
    kind = "event_action"
    plural = PLURAL_EVENT_ACTIONS
    model = EventAction
    endpoint = "eventactions"
    confidential = True


class EventRuleAdapter(RestResourceAdapter):
    kind = "event_rule"
    plural = PLURAL_EVENT_RULES
    model = EventRule
    endpoint = "eventrules"


class RoleAdapter(RestResourceAdapter):
    kind = "role"
    plural = PLURAL_ROLES
    model = Role
    endpoint = "roles"


class AdminAdapter(RestResourceAdapter):
    kind = "admin"
    plural = PLURAL_ADMINS
    model = Admin
    endpoint = "admins"
    confidential = True


class IPListEntryAdapter(RestResourceAdapter):
    """Entries of one IP list, addressed as ``iplists/<type>/<ipornet>``."""

    model: ClassVar[type[IPListEntry]]

    @property
    def collection(self) -> str:
        return f"iplists/{self.model.LIST_TYPE}"


class DefenderEntryAdapter(IPListEntryAdapter):
    kind = "defender_entry"
    plural = PLURAL_DEFENDER_ENTRIES
    model = DefenderEntry


class AllowListEntryAdapter(IPListEntryAdapter):
    kind = "allowlist_entry"
    plural = PLURAL_ALLOWLIST_ENTRIES
    model = AllowListEntry


class RateLimiterSafeListEntryAdapter(IPListEntryAdapter):
    kind = "ratelimiter_safelist_entry"
    plural = PLURAL_RLSAFELIST_ENTRIES
    model = RateLimiterSafeListEntry


class LicenseAdapter(ResourceAdapter):
    """
    The enterprise license.

    Installing a key replaces the current license, so create and update are
    the same request. A license cannot be removed through the API: deleting
    only stops tracking it.
    """

    kind = "license"
    plural = PLURAL_LICENSES
    model = License

    def parse_config(self, config: Mapping[str, Any]) -> ResourceModel:
        if not config.get("key"):
            raise ValidationError(ERROR_MISSING_LICENSE_KEY, field="key")
        return super().parse_config(config)

    async def fetch(self, client: SFTPGoClient, identifier: str) -> ResourceModel | None:
        try:
            data = await client.get("license")
        except SFTPGoAPIError as e:
            if e.is_not_found:
                return None
            raise
        return License.from_wire(data)

    async def create_remote(self, client: SFTPGoClient, desired: ResourceModel) -> None:
        await client.create("license", desired.to_wire(), expected_status=200)

    async def update_remote(self, client: SFTPGoClient, desired: ResourceModel) -> None:
        await self.create_remote(client, desired)

    async def delete_remote(self, client: SFTPGoClient, identifier: str) -> None:
        logger.info("License removed from management, the installed license is kept")


ADAPTERS: list[ResourceAdapter] = [
    UserAdapter(),
    FolderAdapter(),
    GroupAdapter(),
    EventActionAdapter(),
    EventRuleAdapter(),
    DefenderEntryAdapter(),
    AllowListEntryAdapter(),
    RateLimiterSafeListEntryAdapter(),
    RoleAdapter(),
    AdminAdapter(),
    LicenseAdapter(),
]


def get_adapter(plural: str) -> ResourceAdapter:
    for adapter in ADAPTERS:
        if adapter.plural == plural:
            return adapter
    raise KeyError(plural)
