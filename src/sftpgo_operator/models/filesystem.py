"""
Storage backend and login filter models.

A filesystem selects exactly one provider specific configuration through its
``provider`` discriminator. Filters are shared by users and groups; users
add a few fields on top of the base set.
"""

import re
from typing import Any, ClassVar

from pydantic import Field, field_validator

from sftpgo_operator.constants import (
    FS_PROVIDER_AZURE_BLOB,
    FS_PROVIDER_CRYPT,
    FS_PROVIDER_GCS,
    FS_PROVIDER_HTTP,
    FS_PROVIDER_LOCAL,
    FS_PROVIDER_S3,
    FS_PROVIDER_SFTP,
)
from sftpgo_operator.models.common import FlatConfig, SFTPGoModel, optional

_HOST_PORT = re.compile(r"^.+:\d+$")


class OSFsConfig(FlatConfig):
    read_buffer_size: int | None = Field(None, ge=0, le=10, description="Read buffer in MB")
    write_buffer_size: int | None = Field(None, ge=0, le=10, description="Write buffer in MB")


class S3FsConfig(FlatConfig):
    SECRET_FIELDS: ClassVar[tuple[str, ...]] = ("access_secret", "sse_customer_key")

    bucket: str | None = None
    key_prefix: str | None = None
    region: str | None = None
    access_key: str | None = None
    access_secret: str | None = None
    sse_customer_key: str | None = None
    role_arn: str | None = None
    endpoint: str | None = None
    storage_class: str | None = None
    acl: str | None = None
    upload_part_size: int | None = None
    upload_concurrency: int | None = None
    download_part_size: int | None = None
    upload_part_max_time: int | None = None
    download_concurrency: int | None = None
    download_part_max_time: int | None = None
    force_path_style: bool | None = None
    skip_tls_verify: bool | None = None


class GCSFsConfig(FlatConfig):
    SECRET_FIELDS: ClassVar[tuple[str, ...]] = ("credentials",)

    bucket: str | None = None
    key_prefix: str | None = None
    credentials: str | None = None
    automatic_credentials: int | None = Field(None, ge=0, le=1)
    storage_class: str | None = None
    acl: str | None = None
    upload_part_size: int | None = None
    upload_part_max_time: int | None = None


class AzBlobFsConfig(FlatConfig):
    SECRET_FIELDS: ClassVar[tuple[str, ...]] = ("account_key", "sas_url")

    container: str | None = None
    account_name: str | None = None
    account_key: str | None = None
    sas_url: str | None = None
    endpoint: str | None = None
    key_prefix: str | None = None
    upload_part_size: int | None = None
    upload_concurrency: int | None = None
    download_part_size: int | None = None
    download_concurrency: int | None = None
    use_emulator: bool | None = None
    access_tier: str | None = None


class CryptFsConfig(FlatConfig):
    SECRET_FIELDS: ClassVar[tuple[str, ...]] = ("passphrase",)

    passphrase: str | None = None
    read_buffer_size: int | None = Field(None, ge=0, le=10)
    write_buffer_size: int | None = Field(None, ge=0, le=10)


class SFTPFsConfig(FlatConfig):
    SECRET_FIELDS: ClassVar[tuple[str, ...]] = (
        "password",
        "private_key",
        "key_passphrase",
        "socks_password",
    )

    endpoint: str | None = Field(None, description="Remote server as host:port")
    username: str | None = None
    password: str | None = None
    private_key: str | None = None
    key_passphrase: str | None = None
    fingerprints: list[str] | None = None
    prefix: str | None = None
    disable_concurrent_reads: bool | None = None
    buffer_size: int | None = Field(None, ge=0, le=16)
    equality_check_mode: int | None = Field(None, ge=0, le=1)
    socks_proxy: str | None = None
    socks_username: str | None = None
    socks_password: str | None = None

    @field_validator("endpoint")
    @classmethod
    def validate_endpoint(cls, v):
        if v is not None and not _HOST_PORT.match(v):
            raise ValueError("endpoint must be in the form host:port")
        return v


class HTTPFsConfig(FlatConfig):
    SECRET_FIELDS: ClassVar[tuple[str, ...]] = ("password", "api_key")

    endpoint: str | None = None
    username: str | None = None
    password: str | None = None
    api_key: str | None = None
    skip_tls_verify: bool | None = None
    equality_check_mode: int | None = Field(None, ge=0, le=1)


# provider -> (field holding its configuration, configuration type)
PROVIDER_CONFIGS: dict[int, tuple[str, type[FlatConfig]]] = {
    FS_PROVIDER_LOCAL: ("osconfig", OSFsConfig),
    FS_PROVIDER_S3: ("s3config", S3FsConfig),
    FS_PROVIDER_GCS: ("gcsconfig", GCSFsConfig),
    FS_PROVIDER_AZURE_BLOB: ("azblobconfig", AzBlobFsConfig),
    FS_PROVIDER_CRYPT: ("cryptconfig", CryptFsConfig),
    FS_PROVIDER_SFTP: ("sftpconfig", SFTPFsConfig),
    FS_PROVIDER_HTTP: ("httpconfig", HTTPFsConfig),
}


class Filesystem(SFTPGoModel):
    """Storage backend; ``provider`` selects the active configuration."""

    provider: int = Field(
        FS_PROVIDER_LOCAL,
        ge=0,
        le=6,
        description="0 local, 1 S3, 2 GCS, 3 Azure Blob, 4 encrypted local, 5 SFTP, 6 HTTP",
    )
    osconfig: OSFsConfig | None = None
    s3config: S3FsConfig | None = None
    gcsconfig: GCSFsConfig | None = None
    azblobconfig: AzBlobFsConfig | None = None
    cryptconfig: CryptFsConfig | None = None
    sftpconfig: SFTPFsConfig | None = None
    httpconfig: HTTPFsConfig | None = None

    @property
    def active_config_field(self) -> str:
        return PROVIDER_CONFIGS[self.provider][0]

    @property
    def active_config(self) -> FlatConfig | None:
        return getattr(self, self.active_config_field)

    def secret_paths(self, prefix: str = "filesystem") -> list[str]:
        """Dotted paths of the secrets of the active provider configuration."""
        field, config_type = PROVIDER_CONFIGS[self.provider]
        return [f"{prefix}.{field}.{name}" for name in config_type.SECRET_FIELDS]

    def to_wire(self) -> dict[str, Any]:
        wire: dict[str, Any] = {"provider": self.provider}
        config = self.active_config
        if config is not None:
            wire[self.active_config_field] = config.to_wire()
        return wire

    @classmethod
    def from_wire(cls, data: dict[str, Any] | None) -> "Filesystem":
        data = data or {}
        provider = data.get("provider") or FS_PROVIDER_LOCAL
        if provider not in PROVIDER_CONFIGS:
            return cls(provider=provider)

        field, config_type = PROVIDER_CONFIGS[provider]
        config = config_type.from_wire(data.get(field) or {})
        if provider == FS_PROVIDER_LOCAL and config.is_empty():
            config = None
        return cls(provider=provider, **{field: config})


class PatternsFilter(SFTPGoModel):
    path: str = Field(..., description="Virtual path the patterns apply to")
    allowed_patterns: list[str] | None = None
    denied_patterns: list[str] | None = None
    deny_policy: int | None = Field(None, ge=0, le=1)

    def to_wire(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "allowed_patterns": self.allowed_patterns or [],
            "denied_patterns": self.denied_patterns or [],
            "deny_policy": self.deny_policy or 0,
        }

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> "PatternsFilter":
        return cls(
            path=data.get("path", ""),
            allowed_patterns=optional(data.get("allowed_patterns")),
            denied_patterns=optional(data.get("denied_patterns")),
            deny_policy=optional(data.get("deny_policy")),
        )


class BandwidthLimit(SFTPGoModel):
    sources: list[str] | None = None
    upload_bandwidth: int | None = None
    download_bandwidth: int | None = None

    def to_wire(self) -> dict[str, Any]:
        return {
            "sources": self.sources or [],
            "upload_bandwidth": self.upload_bandwidth or 0,
            "download_bandwidth": self.download_bandwidth or 0,
        }

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> "BandwidthLimit":
        return cls(
            sources=optional(data.get("sources")),
            upload_bandwidth=optional(data.get("upload_bandwidth")),
            download_bandwidth=optional(data.get("download_bandwidth")),
        )


_HOOK_FIELDS = ("external_auth_disabled", "pre_login_disabled", "check_password_disabled")

_LIST_FILTERS = (
    "allowed_ip",
    "denied_ip",
    "denied_login_methods",
    "denied_protocols",
    "web_client",
    "two_factor_protocols",
)


class BaseUserFilters(SFTPGoModel):
    """Login and access restrictions shared by users and groups."""

    allowed_ip: list[str] | None = None
    denied_ip: list[str] | None = None
    denied_login_methods: list[str] | None = None
    denied_protocols: list[str] | None = None
    file_patterns: list[PatternsFilter] | None = None
    max_upload_file_size: int | None = None
    tls_username: str | None = None
    external_auth_disabled: bool | None = None
    pre_login_disabled: bool | None = None
    check_password_disabled: bool | None = None
    disable_fs_checks: bool | None = None
    web_client: list[str] | None = None
    allow_api_key_auth: bool | None = None
    user_type: str | None = None
    bandwidth_limits: list[BandwidthLimit] | None = None
    external_auth_cache_time: int | None = None
    start_directory: str | None = None
    two_factor_protocols: list[str] | None = None
    ftp_security: int | None = Field(None, ge=0, le=1)
    is_anonymous: bool | None = None
    default_shares_expiration: int | None = None
    max_shares_expiration: int | None = None
    password_expiration: int | None = None
    password_strength: int | None = None

    def to_wire(self) -> dict[str, Any]:
        wire: dict[str, Any] = {name: getattr(self, name) or [] for name in _LIST_FILTERS}
        wire.update(
            {
                "file_patterns": [p.to_wire() for p in self.file_patterns or []],
                "max_upload_file_size": self.max_upload_file_size or 0,
                "tls_username": self.tls_username or "",
                "hooks": {name: bool(getattr(self, name)) for name in _HOOK_FIELDS},
                "disable_fs_checks": bool(self.disable_fs_checks),
                "allow_api_key_auth": bool(self.allow_api_key_auth),
                "user_type": self.user_type or "",
                "bandwidth_limits": [b.to_wire() for b in self.bandwidth_limits or []],
                "external_auth_cache_time": self.external_auth_cache_time or 0,
                "start_directory": self.start_directory or "",
                "ftp_security": self.ftp_security or 0,
                "is_anonymous": bool(self.is_anonymous),
                "default_shares_expiration": self.default_shares_expiration or 0,
                "max_shares_expiration": self.max_shares_expiration or 0,
                "password_expiration": self.password_expiration or 0,
                "password_strength": self.password_strength or 0,
            }
        )
        return wire

    @classmethod
    def _values_from_wire(cls, data: dict[str, Any]) -> dict[str, Any]:
        hooks = data.get("hooks") or {}
        values: dict[str, Any] = {}
        for name in BaseUserFilters.model_fields:
            if name in _HOOK_FIELDS:
                values[name] = optional(hooks.get(name))
            elif name == "file_patterns":
                values[name] = optional(
                    [PatternsFilter.from_wire(p) for p in data.get(name) or []]
                )
            elif name == "bandwidth_limits":
                values[name] = optional(
                    [BandwidthLimit.from_wire(b) for b in data.get(name) or []]
                )
            else:
                values[name] = optional(data.get(name))
        return values

    @classmethod
    def from_wire(cls, data: dict[str, Any] | None):
        return cls(**cls._values_from_wire(data or {}))


class UserFilters(BaseUserFilters):
    """User filters: the base set plus TLS certificates and password change flag."""

    require_password_change: bool | None = None
    tls_certs: list[str] | None = None

    def to_wire(self) -> dict[str, Any]:
        wire = super().to_wire()
        wire["require_password_change"] = bool(self.require_password_change)
        wire["tls_certs"] = self.tls_certs or []
        return wire

    @classmethod
    def _values_from_wire(cls, data: dict[str, Any]) -> dict[str, Any]:
        values = super()._values_from_wire(data)
        values["require_password_change"] = optional(data.get("require_password_change"))
        values["tls_certs"] = optional(data.get("tls_certs"))
        return values
