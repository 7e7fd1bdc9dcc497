"""Virtual folder models."""

from typing import Any, ClassVar

from pydantic import Field

from sftpgo_operator.models.common import ResourceModel, SFTPGoModel, optional
from sftpgo_operator.models.filesystem import Filesystem


class Folder(ResourceModel):
    """A virtual folder that users and groups can map into their tree."""

    COMPUTED_FIELDS: ClassVar[tuple[str, ...]] = (
        "used_quota_size",
        "used_quota_files",
        "last_quota_update",
    )

    name: str = Field(..., min_length=1, description="Unique folder name")
    mapped_path: str | None = Field(
        None, description="Absolute path on the local filesystem"
    )
    description: str | None = None
    filesystem: Filesystem = Field(default_factory=Filesystem)

    used_quota_size: int | None = None
    used_quota_files: int | None = None
    last_quota_update: int | None = None

    def secret_paths(self) -> list[str]:
        return self.filesystem.secret_paths()

    def to_wire(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "mapped_path": self.mapped_path or "",
            "description": self.description or "",
            "filesystem": self.filesystem.to_wire(),
        }

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> "Folder":
        return cls(
            name=data["name"],
            mapped_path=optional(data.get("mapped_path")),
            description=optional(data.get("description")),
            filesystem=Filesystem.from_wire(data.get("filesystem")),
            used_quota_size=optional(data.get("used_quota_size")),
            used_quota_files=optional(data.get("used_quota_files")),
            last_quota_update=optional(data.get("last_quota_update")),
        )


class VirtualFolderMapping(SFTPGoModel):
    """Mapping of an existing folder into a user or group virtual path."""

    name: str = Field(..., description="Name of the mapped folder")
    virtual_path: str = Field(..., description="Path exposed to the user")
    quota_size: int = Field(0, description="-1 means included in the user quota")
    quota_files: int = Field(0, description="-1 means included in the user quota")

    def to_wire(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "virtual_path": self.virtual_path,
            "quota_size": self.quota_size,
            "quota_files": self.quota_files,
        }

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> "VirtualFolderMapping":
        # quota values are meaningful when zero, keep them as returned
        return cls(
            name=data["name"],
            virtual_path=data.get("virtual_path", ""),
            quota_size=data.get("quota_size", 0),
            quota_files=data.get("quota_files", 0),
        )


def virtual_folders_from_wire(
    items: list[dict[str, Any]] | None,
) -> list[VirtualFolderMapping] | None:
    return [VirtualFolderMapping.from_wire(item) for item in items or []] or None
