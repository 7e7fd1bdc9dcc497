"""SFTPGo enterprise license model."""

from typing import Any, ClassVar

from pydantic import Field

from sftpgo_operator.models.common import ResourceModel, SFTPGoModel


class LicenseFeatures(SFTPGoModel):
    max_concurrent_transfers: int | None = None
    fs_providers: list[int] | None = None
    event_actions: list[int] | None = None
    fs_actions: list[int] | None = None
    plugins: int | None = None
    metering: int | None = None
    wopi_users: int | None = None
    ha: list[int] | None = None


class License(ResourceModel):
    """The license installed on an enterprise edition instance."""

    IDENTIFIER_FIELD: ClassVar[str] = "key"
    COMPUTED_FIELDS: ClassVar[tuple[str, ...]] = ("type", "valid_from", "valid_to", "features")

    # an empty key is rejected before any request, see LicenseAdapter
    key: str = Field(..., description="License key")

    type: int | None = Field(None, description="0 disabled, 1 subscription, 2 lifetime")
    valid_from: int | None = None
    valid_to: int | None = None
    features: LicenseFeatures | None = None

    def secret_paths(self) -> list[str]:
        return ["key"]

    def to_wire(self) -> dict[str, Any]:
        return {"key": self.key}

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> "License":
        return cls(
            key=data.get("key", ""),
            type=data.get("type"),
            valid_from=data.get("valid_from"),
            valid_to=data.get("valid_to"),
            features=LicenseFeatures(
                **{
                    name: value
                    for name, value in (data.get("features") or {}).items()
                    if name in LicenseFeatures.model_fields
                }
            ),
        )
