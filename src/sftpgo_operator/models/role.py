"""SFTPGo role model."""

from typing import Any

from pydantic import Field

from sftpgo_operator.models.common import ResourceModel, optional


class Role(ResourceModel):
    """Role used to scope admins and users."""

    name: str = Field(..., min_length=1, description="Unique role name")
    description: str | None = None

    created_at: int | None = None
    updated_at: int | None = None

    def to_wire(self) -> dict[str, Any]:
        return {"name": self.name, "description": self.description or ""}

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> "Role":
        return cls(
            name=data["name"],
            description=optional(data.get("description")),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )
