"""
SFTPGo connection configuration.

Connection settings may come from a Kubernetes Secret and fall back to the
SFTPGO_* environment variables loaded by ``settings``. Explicit values take
precedence over the environment.
"""

import json
from typing import Any

import pydantic
from pydantic import BaseModel, Field, field_validator

from sftpgo_operator.constants import (
    DEFAULT_REQUEST_TIMEOUT,
    EDITION_ENTERPRISE,
    EDITION_OPEN_SOURCE,
)
from sftpgo_operator.errors import ConfigurationError
from sftpgo_operator.settings import Settings


class ProviderConfig(BaseModel):
    """Connection parameters for an SFTPGo instance."""

    host: str | None = Field(None, description="Base URL of the SFTPGo instance")
    username: str | None = Field(None, description="Admin username")
    password: str | None = Field(None, description="Admin password")
    api_key: str | None = Field(None, description="SFTPGo API key")
    edition: int | None = Field(None, description="0 = open source, 1 = enterprise")
    headers: dict[str, str] | None = Field(
        None, description="Extra headers added to every request"
    )
    timeout: float = Field(DEFAULT_REQUEST_TIMEOUT, description="Request timeout")

    @field_validator("edition")
    @classmethod
    def validate_edition(cls, v):
        if v is not None and v not in (EDITION_OPEN_SOURCE, EDITION_ENTERPRISE):
            raise ValueError("edition must be 0 (open source) or 1 (enterprise)")
        return v

    @classmethod
    def from_secret_data(cls, data: dict[str, str]) -> "ProviderConfig":
        """
        Build an explicit configuration from decoded Secret data.

        Recognised keys: host, username, password, api_key, edition and
        headers (a JSON object).
        """
        values: dict[str, Any] = {
            key: data[key]
            for key in ("host", "username", "password", "api_key")
            if data.get(key)
        }
        if data.get("edition"):
            try:
                values["edition"] = int(data["edition"])
            except ValueError as e:
                raise ConfigurationError(
                    f"Invalid edition in connection secret: {data['edition']!r}"
                ) from e
        if data.get("headers"):
            try:
                values["headers"] = json.loads(data["headers"])
            except json.JSONDecodeError as e:
                raise ConfigurationError(
                    f"Invalid headers in connection secret: {e}"
                ) from e
        return _build(values)


def _build(values: dict[str, Any]) -> ProviderConfig:
    try:
        return ProviderConfig(**values)
    except pydantic.ValidationError as e:
        details = "; ".join(err["msg"] for err in e.errors())
        raise ConfigurationError(
            f"Invalid SFTPGo connection configuration: {details}",
            user_action="Check the connection secret and the SFTPGO_* environment variables",
        ) from e


def resolve_provider_config(
    explicit: ProviderConfig | None, settings: Settings
) -> ProviderConfig:
    """
    Merge explicit connection settings over the environment fallbacks.

    Raises:
        ConfigurationError: If the host is missing, or credentials are missing
            while no API key is configured
    """
    explicit = explicit or ProviderConfig()

    headers = settings.sftpgo_headers
    if explicit.headers:
        headers = explicit.headers

    resolved = _build(
        {
            "host": explicit.host or settings.sftpgo_host,
            "username": explicit.username or settings.sftpgo_username,
            "password": explicit.password or settings.sftpgo_password,
            "api_key": explicit.api_key or settings.sftpgo_api_key,
            "edition": explicit.edition
            if explicit.edition is not None
            else settings.sftpgo_edition,
            "headers": headers,
            "timeout": settings.sftpgo_request_timeout,
        }
    )

    if not resolved.host:
        raise ConfigurationError(
            "Missing SFTPGo API host",
            user_action="Set host in the connection secret or the SFTPGO_HOST environment variable",
        )

    if not resolved.api_key:
        if not resolved.username:
            raise ConfigurationError(
                "Missing SFTPGo API username",
                user_action="Set username in the connection secret or SFTPGO_USERNAME",
            )
        if not resolved.password:
            raise ConfigurationError(
                "Missing SFTPGo API password",
                user_action="Set password in the connection secret or SFTPGO_PASSWORD",
            )

    return resolved
