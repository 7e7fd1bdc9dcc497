"""SFTPGo user model."""

from typing import Any, ClassVar

from pydantic import Field

from sftpgo_operator.models.common import (
    ResourceModel,
    SFTPGoModel,
    join_permissions,
    optional,
    split_permissions,
)
from sftpgo_operator.models.filesystem import Filesystem, UserFilters
from sftpgo_operator.models.folder import VirtualFolderMapping, virtual_folders_from_wire


class UserGroupMapping(SFTPGoModel):
    name: str = Field(..., description="Group name")
    type: int = Field(..., ge=1, le=3, description="1 primary, 2 secondary, 3 membership")

    def to_wire(self) -> dict[str, Any]:
        return {"name": self.name, "type": self.type}

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> "UserGroupMapping":
        return cls(name=data["name"], type=data["type"])


# Optional integer fields sent as zero when unset
_INT_FIELDS = (
    "expiration_date",
    "uid",
    "gid",
    "max_sessions",
    "quota_size",
    "quota_files",
    "upload_bandwidth",
    "download_bandwidth",
    "upload_data_transfer",
    "download_data_transfer",
    "total_data_transfer",
)

_STRING_FIELDS = ("email", "home_dir", "description", "additional_info", "role")


class User(ResourceModel):
    """SFTPGo user."""

    IDENTIFIER_FIELD: ClassVar[str] = "username"
    COMPUTED_FIELDS: ClassVar[tuple[str, ...]] = (
        "used_quota_size",
        "used_quota_files",
        "last_quota_update",
        "used_upload_data_transfer",
        "used_download_data_transfer",
        "last_login",
        "created_at",
        "updated_at",
        "first_download",
        "first_upload",
        "last_password_change",
    )

    username: str = Field(..., min_length=1, description="Unique username")
    status: int = Field(1, ge=0, le=1, description="1 enabled, 0 disabled")
    email: str | None = None
    expiration_date: int | None = Field(
        None, description="Account expiration as unix timestamp in milliseconds"
    )
    password: str | None = Field(None, description="Plain text or hashed password")
    public_keys: list[str] | None = None
    home_dir: str | None = None
    uid: int | None = Field(None, ge=0)
    gid: int | None = Field(None, ge=0)
    max_sessions: int | None = Field(None, ge=0)
    quota_size: int | None = Field(None, ge=0)
    quota_files: int | None = Field(None, ge=0)
    permissions: dict[str, str] = Field(
        default_factory=lambda: {"/": "*"},
        description='Comma separated permissions per path, e.g. {"/": "list,download"}',
    )
    upload_bandwidth: int | None = Field(None, ge=0)
    download_bandwidth: int | None = Field(None, ge=0)
    upload_data_transfer: int | None = Field(None, ge=0)
    download_data_transfer: int | None = Field(None, ge=0)
    total_data_transfer: int | None = Field(None, ge=0)
    description: str | None = None
    additional_info: str | None = None
    role: str | None = None
    groups: list[UserGroupMapping] | None = None
    filters: UserFilters = Field(default_factory=UserFilters)
    virtual_folders: list[VirtualFolderMapping] | None = None
    filesystem: Filesystem = Field(default_factory=Filesystem)

    used_quota_size: int | None = None
    used_quota_files: int | None = None
    last_quota_update: int | None = None
    used_upload_data_transfer: int | None = None
    used_download_data_transfer: int | None = None
    last_login: int | None = None
    created_at: int | None = None
    updated_at: int | None = None
    first_download: int | None = None
    first_upload: int | None = None
    last_password_change: int | None = None

    def secret_paths(self) -> list[str]:
        return ["password", *self.filesystem.secret_paths()]

    def to_wire(self) -> dict[str, Any]:
        wire: dict[str, Any] = {
            "username": self.username,
            "status": self.status,
            "password": self.password or "",
            "public_keys": self.public_keys or [],
            "permissions": split_permissions(self.permissions),
            "groups": [g.to_wire() for g in self.groups or []],
            "filters": self.filters.to_wire(),
            "virtual_folders": [f.to_wire() for f in self.virtual_folders or []],
            "filesystem": self.filesystem.to_wire(),
        }
        wire.update({name: getattr(self, name) or 0 for name in _INT_FIELDS})
        wire.update({name: getattr(self, name) or "" for name in _STRING_FIELDS})
        return wire

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> "User":
        values: dict[str, Any] = {
            name: optional(data.get(name))
            for name in (*_INT_FIELDS, *_STRING_FIELDS, *cls.COMPUTED_FIELDS)
        }
        values.update(
            username=data["username"],
            status=data.get("status", 0),
            home_dir=data.get("home_dir"),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
            password=optional(data.get("password")),
            public_keys=optional(data.get("public_keys")),
            permissions=join_permissions(data.get("permissions")) or {},
            groups=optional([UserGroupMapping.from_wire(g) for g in data.get("groups") or []]),
            filters=UserFilters.from_wire(data.get("filters")),
            virtual_folders=virtual_folders_from_wire(data.get("virtual_folders")),
            filesystem=Filesystem.from_wire(data.get("filesystem")),
        )
        return cls(**values)
