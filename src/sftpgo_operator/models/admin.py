"""SFTPGo admin model."""

from typing import Any, ClassVar

from pydantic import Field

from sftpgo_operator.models.common import ResourceModel, SFTPGoModel, optional


class AdminFilters(SFTPGoModel):
    allow_list: list[str] | None = Field(
        None, description="IP/Mask in CIDR notation allowed to log in"
    )
    allow_api_key_auth: bool | None = None
    require_two_factor: bool | None = None
    require_password_change: bool | None = None


class AdminPreferences(SFTPGoModel):
    hide_user_page_sections: int | None = Field(
        None, ge=0, description="Bitmask of the user page sections to hide"
    )
    default_users_expiration: int | None = Field(
        None, ge=0, description="Default expiration for new users, in days"
    )


class AdminGroupMapping(SFTPGoModel):
    name: str
    add_to_users_as: int | None = Field(
        None, ge=0, le=2, description="0 and 1 primary, 2 secondary"
    )

    def to_wire(self) -> dict[str, Any]:
        return {"name": self.name, "options": {"add_to_users_as": self.add_to_users_as or 0}}

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> "AdminGroupMapping":
        options = data.get("options") or {}
        return cls(name=data["name"], add_to_users_as=optional(options.get("add_to_users_as")))


class Admin(ResourceModel):
    """SFTPGo administrator."""

    IDENTIFIER_FIELD: ClassVar[str] = "username"
    COMPUTED_FIELDS: ClassVar[tuple[str, ...]] = ("created_at", "updated_at", "last_login")

    username: str = Field(..., min_length=1, description="Unique admin username")
    status: int = Field(1, ge=0, le=1, description="1 enabled, 0 disabled")
    email: str | None = None
    password: str | None = None
    permissions: list[str] = Field(..., min_length=1, description='e.g. ["*"]')
    filters: AdminFilters = Field(default_factory=AdminFilters)
    preferences: AdminPreferences = Field(default_factory=AdminPreferences)
    description: str | None = None
    additional_info: str | None = None
    groups: list[AdminGroupMapping] | None = None
    role: str | None = None

    created_at: int | None = None
    updated_at: int | None = None
    last_login: int | None = None

    def secret_paths(self) -> list[str]:
        return ["password"]

    def to_wire(self) -> dict[str, Any]:
        wire: dict[str, Any] = {
            "username": self.username,
            "status": self.status,
            "email": self.email or "",
            "permissions": self.permissions,
            "filters": {
                "allow_list": self.filters.allow_list or [],
                "allow_api_key_auth": bool(self.filters.allow_api_key_auth),
                "require_two_factor": bool(self.filters.require_two_factor),
                "require_password_change": bool(self.filters.require_password_change),
                "preferences": {
                    "hide_user_page_sections": self.preferences.hide_user_page_sections or 0,
                    "default_users_expiration": self.preferences.default_users_expiration or 0,
                },
            },
            "description": self.description or "",
            "additional_info": self.additional_info or "",
            "groups": [g.to_wire() for g in self.groups or []],
            "role": self.role or "",
        }
        # an empty password would be rejected on update
        if self.password:
            wire["password"] = self.password
        return wire

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> "Admin":
        filters = data.get("filters") or {}
        preferences = filters.get("preferences") or {}
        return cls(
            username=data["username"],
            status=data.get("status", 0),
            email=optional(data.get("email")),
            password=optional(data.get("password")),
            permissions=data.get("permissions") or [],
            filters=AdminFilters(
                allow_list=optional(filters.get("allow_list")),
                allow_api_key_auth=optional(filters.get("allow_api_key_auth")),
                require_two_factor=optional(filters.get("require_two_factor")),
                require_password_change=optional(filters.get("require_password_change")),
            ),
            preferences=AdminPreferences(
                hide_user_page_sections=optional(preferences.get("hide_user_page_sections")),
                default_users_expiration=optional(preferences.get("default_users_expiration")),
            ),
            description=optional(data.get("description")),
            additional_info=optional(data.get("additional_info")),
            groups=optional([AdminGroupMapping.from_wire(g) for g in data.get("groups") or []]),
            role=optional(data.get("role")),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
            last_login=optional(data.get("last_login")),
        )
