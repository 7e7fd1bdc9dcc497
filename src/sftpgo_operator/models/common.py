"""
Common models shared across different SFTPGo object kinds.

Every kind is described by a pydantic model whose field names match the
SFTPGo object model. A model is used for three records:

- the configuration record, validated from a custom resource spec
- the wire record, produced by ``to_wire()`` and parsed by ``from_wire()``
- the state record, the dumped model persisted in the resource status
"""

from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field

from sftpgo_operator.utils.secrets import decode_secret, encode_secret


def optional(value: Any) -> Any:
    """Map a zero value ("", 0, False, empty collection) to ``None``."""
    return value if value else None


def split_permissions(permissions: dict[str, str] | None) -> dict[str, list[str]]:
    """Convert ``{"/": "list,download"}`` into the wire form ``{"/": ["list", "download"]}``."""
    return {path: perms.split(",") for path, perms in (permissions or {}).items()}


def join_permissions(permissions: dict[str, list[str]] | None) -> dict[str, str] | None:
    """Convert wire permissions back into comma separated strings."""
    if not permissions:
        return None
    return {path: ",".join(perms) for path, perms in permissions.items()}


class SFTPGoModel(BaseModel):
    """Base class for SFTPGo object records."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    def to_record(self) -> dict[str, Any]:
        """Dump the model without unset fields."""
        return self.model_dump(mode="json", exclude_none=True, by_alias=True)


class ResourceModel(SFTPGoModel):
    """
    Base class for top level SFTPGo objects.

    Subclasses name the field holding their identifier and the fields that
    are assigned by the server and therefore never sent.
    """

    IDENTIFIER_FIELD: ClassVar[str] = "name"
    COMPUTED_FIELDS: ClassVar[tuple[str, ...]] = ("created_at", "updated_at")

    @property
    def identifier(self) -> str:
        return getattr(self, self.IDENTIFIER_FIELD)

    def secret_paths(self) -> list[str]:
        """Dotted paths of the secret fields for the active configuration."""
        return []

    def config_record(self) -> dict[str, Any]:
        """Dump the model without unset and server assigned fields."""
        return self.model_dump(
            mode="json",
            exclude_none=True,
            by_alias=True,
            exclude=set(self.COMPUTED_FIELDS),
        )

    def to_wire(self) -> dict[str, Any]:
        raise NotImplementedError

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> "ResourceModel":
        raise NotImplementedError


class FlatConfig(SFTPGoModel):
    """
    Option object whose wire form mirrors its fields one to one.

    Fields listed in ``SECRET_FIELDS`` travel as SFTPGo secret objects.
    """

    SECRET_FIELDS: ClassVar[tuple[str, ...]] = ()

    def to_wire(self) -> dict[str, Any]:
        wire: dict[str, Any] = {}
        for name in type(self).model_fields:
            value = getattr(self, name)
            if name in self.SECRET_FIELDS:
                wire[name] = encode_secret(value)
            elif value is not None:
                wire[name] = value
        return wire

    @classmethod
    def from_wire(cls, data: dict[str, Any]):
        values: dict[str, Any] = {}
        for name in cls.model_fields:
            if name in cls.SECRET_FIELDS:
                values[name] = optional(decode_secret(data.get(name)))
            else:
                values[name] = optional(data.get(name))
        return cls(**values)

    def is_empty(self) -> bool:
        return not self.model_dump(exclude_none=True)


class KeyValue(SFTPGoModel):
    """Generic key/value pair used by headers, env vars and copy operations."""

    key: str = Field(..., description="Key")
    value: str = Field(..., description="Value")

    def to_wire(self) -> dict[str, Any]:
        return {"key": self.key, "value": self.value}

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> "KeyValue":
        return cls(key=data.get("key", ""), value=data.get("value", ""))


def key_values_to_wire(items: list[KeyValue] | None) -> list[dict[str, Any]]:
    return [item.to_wire() for item in items or []]


def key_values_from_wire(items: list[dict[str, Any]] | None) -> list[KeyValue] | None:
    return [KeyValue.from_wire(item) for item in items or []] or None
