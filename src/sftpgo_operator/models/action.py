"""
SFTPGo event action models.

The action ``type`` selects which option block is meaningful; only that
block is sent to and read back from the API.
"""

from typing import Any, ClassVar, Literal

from pydantic import Field, field_validator, model_validator

from sftpgo_operator.constants import (
    ACTION_TYPE_COMMAND,
    ACTION_TYPE_DATA_RETENTION_CHECK,
    ACTION_TYPE_EMAIL,
    ACTION_TYPE_FILESYSTEM,
    ACTION_TYPE_HTTP,
    ACTION_TYPE_IDP_ACCOUNT_CHECK,
    ACTION_TYPE_PASSWORD_EXPIRATION_CHECK,
    ACTION_TYPE_USER_INACTIVITY_CHECK,
    FS_ACTION_COMPRESS,
    FS_ACTION_COPY,
    FS_ACTION_DELETE,
    FS_ACTION_EXIST,
    FS_ACTION_MKDIRS,
    FS_ACTION_RENAME,
)
from sftpgo_operator.models.common import (
    FlatConfig,
    KeyValue,
    ResourceModel,
    SFTPGoModel,
    key_values_from_wire,
    key_values_to_wire,
    optional,
)
from sftpgo_operator.utils.secrets import decode_secret, encode_secret


def _ensure_unique(values: list[str] | None) -> list[str] | None:
    if values is not None and len(set(values)) != len(values):
        raise ValueError("values must be unique")
    return values


class HTTPPart(SFTPGoModel):
    """A part of a multipart HTTP request body."""

    name: str
    filepath: str | None = None
    headers: list[KeyValue] | None = None
    body: str | None = None

    def to_wire(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "filepath": self.filepath or "",
            "headers": key_values_to_wire(self.headers),
            "body": self.body or "",
        }

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> "HTTPPart":
        return cls(
            name=data.get("name", ""),
            filepath=optional(data.get("filepath")),
            headers=key_values_from_wire(data.get("headers")),
            body=optional(data.get("body")),
        )


class HTTPConfig(SFTPGoModel):
    endpoint: str = Field(..., description="HTTP endpoint, placeholders are supported")
    username: str | None = None
    password: str | None = None
    headers: list[KeyValue] | None = None
    timeout: int | None = Field(None, ge=1, le=180, description="Timeout in seconds")
    skip_tls_verify: bool | None = None
    method: Literal["GET", "POST", "PUT", "DELETE"] | None = None
    query_parameters: list[KeyValue] | None = None
    body: str | None = None
    parts: list[HTTPPart] | None = None

    def to_wire(self) -> dict[str, Any]:
        return {
            "endpoint": self.endpoint,
            "username": self.username or "",
            "password": encode_secret(self.password),
            "headers": key_values_to_wire(self.headers),
            "timeout": self.timeout or 0,
            "skip_tls_verify": bool(self.skip_tls_verify),
            "method": self.method or "",
            "query_parameters": key_values_to_wire(self.query_parameters),
            "body": self.body or "",
            "parts": [p.to_wire() for p in self.parts or []],
        }

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> "HTTPConfig":
        return cls(
            endpoint=data.get("endpoint", ""),
            username=optional(data.get("username")),
            password=optional(decode_secret(data.get("password"))),
            headers=key_values_from_wire(data.get("headers")),
            timeout=optional(data.get("timeout")),
            skip_tls_verify=optional(data.get("skip_tls_verify")),
            method=optional(data.get("method")),
            query_parameters=key_values_from_wire(data.get("query_parameters")),
            body=optional(data.get("body")),
            parts=optional([HTTPPart.from_wire(p) for p in data.get("parts") or []]),
        )


class CommandConfig(SFTPGoModel):
    cmd: str = Field(..., description="Absolute path of the command to execute")
    args: list[str] | None = None
    timeout: int | None = Field(None, ge=1, le=120)
    env_vars: list[KeyValue] | None = None

    def to_wire(self) -> dict[str, Any]:
        return {
            "cmd": self.cmd,
            "args": self.args or [],
            "timeout": self.timeout or 0,
            "env_vars": key_values_to_wire(self.env_vars),
        }

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> "CommandConfig":
        return cls(
            cmd=data.get("cmd", ""),
            args=optional(data.get("args")),
            timeout=optional(data.get("timeout")),
            env_vars=key_values_from_wire(data.get("env_vars")),
        )


class EmailConfig(FlatConfig):
    recipients: list[str] | None = None
    bcc: list[str] | None = None
    subject: str | None = None
    body: str | None = None
    attachments: list[str] | None = None
    content_type: int | None = Field(None, ge=0, le=1, description="0 text/plain, 1 text/html")

    @field_validator("recipients", "bcc", "attachments")
    @classmethod
    def validate_unique(cls, v):
        return _ensure_unique(v)


class FolderRetention(SFTPGoModel):
    path: str
    retention: int = Field(..., ge=0, description="Retention in hours, 0 excludes the path")
    delete_empty_dirs: bool | None = None
    ignore_user_permissions: bool | None = None

    def to_wire(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "retention": self.retention,
            "delete_empty_dirs": bool(self.delete_empty_dirs),
            "ignore_user_permissions": bool(self.ignore_user_permissions),
        }

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> "FolderRetention":
        return cls(
            path=data.get("path", ""),
            retention=data.get("retention", 0),
            delete_empty_dirs=optional(data.get("delete_empty_dirs")),
            ignore_user_permissions=optional(data.get("ignore_user_permissions")),
        )


class RetentionConfig(SFTPGoModel):
    folders: list[FolderRetention] | None = None
    archive_folder: str | None = None
    archive_path: str | None = None

    def to_wire(self) -> dict[str, Any]:
        return {
            "folders": [f.to_wire() for f in self.folders or []],
            "archive_folder": self.archive_folder or "",
            "archive_path": self.archive_path or "",
        }

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> "RetentionConfig":
        return cls(
            folders=optional([FolderRetention.from_wire(f) for f in data.get("folders") or []]),
            archive_folder=optional(data.get("archive_folder")),
            archive_path=optional(data.get("archive_path")),
        )


class RenameConfig(SFTPGoModel):
    key: str = Field(..., description="Source path")
    value: str = Field(..., description="Target path")
    update_modtime: bool | None = None

    def to_wire(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "value": self.value,
            "update_modtime": bool(self.update_modtime),
        }

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> "RenameConfig":
        return cls(
            key=data.get("key", ""),
            value=data.get("value", ""),
            update_modtime=optional(data.get("update_modtime")),
        )


class CompressConfig(SFTPGoModel):
    name: str = Field(..., description="Archive path")
    paths: list[str] = Field(..., description="Paths to include in the archive")

    def to_wire(self) -> dict[str, Any]:
        return {"name": self.name, "paths": self.paths}

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> "CompressConfig":
        return cls(name=data.get("name", ""), paths=data.get("paths") or [])


# fs action type -> field holding its arguments
FS_ACTION_FIELDS: dict[int, str] = {
    FS_ACTION_RENAME: "renames",
    FS_ACTION_DELETE: "deletes",
    FS_ACTION_MKDIRS: "mkdirs",
    FS_ACTION_EXIST: "exist",
    FS_ACTION_COMPRESS: "compress",
    FS_ACTION_COPY: "copy",
}


class FsConfig(SFTPGoModel):
    """Filesystem action; ``type`` selects which argument list is used."""

    type: int = Field(..., ge=1, le=6, description="1 rename, 2 delete, 3 mkdirs, 4 exist, 5 compress, 6 copy")
    renames: list[RenameConfig] | None = None
    mkdirs: list[str] | None = None
    deletes: list[str] | None = None
    exist: list[str] | None = None
    copy_: list[KeyValue] | None = Field(None, alias="copy")
    compress: CompressConfig | None = None

    def to_wire(self) -> dict[str, Any]:
        wire: dict[str, Any] = {"type": self.type}
        field = FS_ACTION_FIELDS[self.type]
        if field == "renames":
            wire[field] = [r.to_wire() for r in self.renames or []]
        elif field == "copy":
            wire[field] = key_values_to_wire(self.copy_)
        elif field == "compress":
            if self.compress is not None:
                wire[field] = self.compress.to_wire()
        else:
            wire[field] = getattr(self, field) or []
        return wire

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> "FsConfig":
        fs_type = data.get("type", 0)
        values: dict[str, Any] = {"type": fs_type}
        field = FS_ACTION_FIELDS.get(fs_type)
        if field == "renames":
            values[field] = optional(
                [RenameConfig.from_wire(r) for r in data.get(field) or []]
            )
        elif field == "copy":
            values[field] = key_values_from_wire(data.get(field))
        elif field == "compress":
            compress = data.get(field) or {}
            if compress.get("name") or compress.get("paths"):
                values[field] = CompressConfig.from_wire(compress)
        elif field is not None:
            values[field] = optional(data.get(field))
        return cls(**values)


class PasswordExpirationConfig(FlatConfig):
    threshold: int = Field(..., ge=1, description="Days before expiration to notify")


class UserInactivityConfig(FlatConfig):
    disable_threshold: int | None = Field(None, ge=0, description="Inactivity days before disabling")
    delete_threshold: int | None = Field(None, ge=0, description="Inactivity days before deleting")


class IDPConfig(FlatConfig):
    mode: int | None = Field(None, ge=0, le=1, description="0 create or update, 1 create only")
    template_user: str | None = None
    template_admin: str | None = None


# action type -> (options field, options type)
ACTION_OPTION_CONFIGS: dict[int, tuple[str, type[SFTPGoModel]]] = {
    ACTION_TYPE_HTTP: ("http_config", HTTPConfig),
    ACTION_TYPE_COMMAND: ("cmd_config", CommandConfig),
    ACTION_TYPE_EMAIL: ("email_config", EmailConfig),
    ACTION_TYPE_DATA_RETENTION_CHECK: ("retention_config", RetentionConfig),
    ACTION_TYPE_FILESYSTEM: ("fs_config", FsConfig),
    ACTION_TYPE_PASSWORD_EXPIRATION_CHECK: ("pwd_expiration_config", PasswordExpirationConfig),
    ACTION_TYPE_IDP_ACCOUNT_CHECK: ("idp_config", IDPConfig),
    ACTION_TYPE_USER_INACTIVITY_CHECK: ("user_inactivity_config", UserInactivityConfig),
}

# action type -> secret paths relative to the options block
_ACTION_SECRETS: dict[int, tuple[str, ...]] = {
    ACTION_TYPE_HTTP: ("http_config.password",),
}


class ActionOptions(SFTPGoModel):
    http_config: HTTPConfig | None = None
    cmd_config: CommandConfig | None = None
    email_config: EmailConfig | None = None
    retention_config: RetentionConfig | None = None
    fs_config: FsConfig | None = None
    pwd_expiration_config: PasswordExpirationConfig | None = None
    idp_config: IDPConfig | None = None
    user_inactivity_config: UserInactivityConfig | None = None


class EventAction(ResourceModel):
    """SFTPGo event action."""

    COMPUTED_FIELDS: ClassVar[tuple[str, ...]] = ()

    name: str = Field(..., min_length=1, description="Unique action name")
    description: str | None = None
    type: int = Field(
        ...,
        ge=1,
        le=14,
        description=(
            "1 HTTP, 2 command, 3 email, 4 backup, 5 user quota reset, "
            "6 folder quota reset, 7 transfer quota reset, 8 data retention check, "
            "9 filesystem, 10 metadata check, 11 password expiration check, "
            "12 user expiration check, 13 identity provider account check, "
            "14 user inactivity check"
        ),
    )
    options: ActionOptions = Field(default_factory=ActionOptions)

    @model_validator(mode="after")
    def validate_options(self):
        entry = ACTION_OPTION_CONFIGS.get(self.type)
        if entry is not None and getattr(self.options, entry[0]) is None:
            raise ValueError(f"options.{entry[0]} is required for action type {self.type}")
        return self

    def secret_paths(self) -> list[str]:
        return [f"options.{path}" for path in _ACTION_SECRETS.get(self.type, ())]

    def to_wire(self) -> dict[str, Any]:
        options: dict[str, Any] = {}
        entry = ACTION_OPTION_CONFIGS.get(self.type)
        if entry is not None:
            field = entry[0]
            options[field] = getattr(self.options, field).to_wire()
        return {
            "name": self.name,
            "description": self.description or "",
            "type": self.type,
            "options": options,
        }

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> "EventAction":
        action_type = data.get("type", 0)
        options: dict[str, Any] = {}
        entry = ACTION_OPTION_CONFIGS.get(action_type)
        if entry is not None:
            field, config_type = entry
            options[field] = config_type.from_wire((data.get("options") or {}).get(field) or {})
        return cls(
            name=data["name"],
            description=optional(data.get("description")),
            type=action_type,
            options=ActionOptions(**options),
        )
