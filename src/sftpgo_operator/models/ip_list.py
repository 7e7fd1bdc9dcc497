"""
IP list entry models.

SFTPGo keeps three IP lists: the allow list, the defender list and the rate
limiter safe list. Entries share one shape; only defender entries choose
their mode, the other lists always allow.
"""

from typing import Any, ClassVar

from pydantic import Field

from sftpgo_operator.constants import (
    IP_LIST_ALLOWLIST,
    IP_LIST_DEFENDER,
    IP_LIST_MODE_ALLOW,
    IP_LIST_RATE_LIMITER_SAFELIST,
)
from sftpgo_operator.models.common import ResourceModel, optional


class IPListEntry(ResourceModel):
    """Base for the entries of an IP list."""

    IDENTIFIER_FIELD: ClassVar[str] = "ipornet"
    LIST_TYPE: ClassVar[int]

    ipornet: str = Field(..., min_length=1, description="IP address or network in CIDR notation")
    description: str | None = None
    protocols: int = Field(
        0, ge=0, le=15, description="Bitmask: 1 SSH, 2 FTP, 4 WebDAV, 8 HTTP; 0 means all"
    )

    created_at: int | None = None
    updated_at: int | None = None

    @property
    def list_mode(self) -> int:
        return IP_LIST_MODE_ALLOW

    def to_wire(self) -> dict[str, Any]:
        return {
            "ipornet": self.ipornet,
            "description": self.description or "",
            "type": self.LIST_TYPE,
            "mode": self.list_mode,
            "protocols": self.protocols,
        }

    @classmethod
    def _values_from_wire(cls, data: dict[str, Any]) -> dict[str, Any]:
        return {
            "ipornet": data["ipornet"],
            "description": optional(data.get("description")),
            "protocols": data.get("protocols", 0),
            "created_at": data.get("created_at"),
            "updated_at": data.get("updated_at"),
        }

    @classmethod
    def from_wire(cls, data: dict[str, Any]):
        return cls(**cls._values_from_wire(data))


class AllowListEntry(IPListEntry):
    LIST_TYPE: ClassVar[int] = IP_LIST_ALLOWLIST


class RateLimiterSafeListEntry(IPListEntry):
    LIST_TYPE: ClassVar[int] = IP_LIST_RATE_LIMITER_SAFELIST


class DefenderEntry(IPListEntry):
    LIST_TYPE: ClassVar[int] = IP_LIST_DEFENDER

    mode: int = Field(..., ge=1, le=2, description="1 allow, 2 deny")

    @property
    def list_mode(self) -> int:
        return self.mode

    @classmethod
    def _values_from_wire(cls, data: dict[str, Any]) -> dict[str, Any]:
        values = super()._values_from_wire(data)
        values["mode"] = data.get("mode", 0)
        return values
