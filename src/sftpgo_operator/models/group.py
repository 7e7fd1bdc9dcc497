"""SFTPGo group model."""

from typing import Any

from pydantic import Field

from sftpgo_operator.models.common import (
    ResourceModel,
    SFTPGoModel,
    join_permissions,
    optional,
    split_permissions,
)
from sftpgo_operator.models.filesystem import BaseUserFilters, Filesystem
from sftpgo_operator.models.folder import VirtualFolderMapping, virtual_folders_from_wire

_INT_SETTINGS = (
    "max_sessions",
    "quota_size",
    "quota_files",
    "upload_bandwidth",
    "download_bandwidth",
    "upload_data_transfer",
    "download_data_transfer",
    "total_data_transfer",
    "expires_in",
)


class GroupUserSettings(SFTPGoModel):
    """Settings inherited by the members of a group."""

    home_dir: str | None = None
    max_sessions: int | None = Field(None, ge=0)
    quota_size: int | None = Field(None, ge=0)
    quota_files: int | None = Field(None, ge=0)
    permissions: dict[str, str] | None = None
    upload_bandwidth: int | None = Field(None, ge=0)
    download_bandwidth: int | None = Field(None, ge=0)
    upload_data_transfer: int | None = Field(None, ge=0)
    download_data_transfer: int | None = Field(None, ge=0)
    total_data_transfer: int | None = Field(None, ge=0)
    expires_in: int | None = Field(None, ge=0, description="Account expiration in days")
    filters: BaseUserFilters = Field(default_factory=BaseUserFilters)
    filesystem: Filesystem = Field(default_factory=Filesystem)

    def to_wire(self) -> dict[str, Any]:
        wire: dict[str, Any] = {name: getattr(self, name) or 0 for name in _INT_SETTINGS}
        wire.update(
            home_dir=self.home_dir or "",
            permissions=split_permissions(self.permissions),
            filters=self.filters.to_wire(),
            filesystem=self.filesystem.to_wire(),
        )
        return wire

    @classmethod
    def from_wire(cls, data: dict[str, Any] | None) -> "GroupUserSettings":
        data = data or {}
        values: dict[str, Any] = {name: optional(data.get(name)) for name in _INT_SETTINGS}
        values.update(
            home_dir=optional(data.get("home_dir")),
            permissions=join_permissions(data.get("permissions")),
            filters=BaseUserFilters.from_wire(data.get("filters")),
            filesystem=Filesystem.from_wire(data.get("filesystem")),
        )
        return cls(**values)


class Group(ResourceModel):
    """SFTPGo group."""

    name: str = Field(..., min_length=1, description="Unique group name")
    description: str | None = None
    user_settings: GroupUserSettings = Field(default_factory=GroupUserSettings)
    virtual_folders: list[VirtualFolderMapping] | None = None

    created_at: int | None = None
    updated_at: int | None = None

    def secret_paths(self) -> list[str]:
        return self.user_settings.filesystem.secret_paths("user_settings.filesystem")

    def to_wire(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description or "",
            "user_settings": self.user_settings.to_wire(),
            "virtual_folders": [f.to_wire() for f in self.virtual_folders or []],
        }

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> "Group":
        return cls(
            name=data["name"],
            description=optional(data.get("description")),
            user_settings=GroupUserSettings.from_wire(data.get("user_settings")),
            virtual_folders=virtual_folders_from_wire(data.get("virtual_folders")),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )
