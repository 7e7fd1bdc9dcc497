"""
Unit tests for SFTPGo connection configuration.

Covers parsing of the connection Secret, precedence over the environment
and the checks on the resolved configuration.
"""

from unittest.mock import patch

import pytest

from sftpgo_operator.errors import ConfigurationError
from sftpgo_operator.models.provider import ProviderConfig, resolve_provider_config
from sftpgo_operator.operator import build_sftpgo_client
from sftpgo_operator.settings import Settings


@pytest.fixture
def env_settings(monkeypatch):
    for name in ("SFTPGO_HOST", "SFTPGO_USERNAME", "SFTPGO_PASSWORD", "SFTPGO_API_KEY"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("SFTPGO_HOST", "http://env-host:8080")
    monkeypatch.setenv("SFTPGO_USERNAME", "env-admin")
    monkeypatch.setenv("SFTPGO_PASSWORD", "env-password")
    monkeypatch.setenv("SFTPGO_HEADERS__0__KEY", "X-Env")
    monkeypatch.setenv("SFTPGO_HEADERS__0__VALUE", "1")
    return Settings(_env_file=None)


class TestSecretData:
    def test_parse_all_keys(self):
        config = ProviderConfig.from_secret_data(
            {
                "host": "http://sftpgo:8080",
                "api_key": "key",
                "edition": "1",
                "headers": '{"X-Tenant": "acme"}',
            }
        )

        assert config.host == "http://sftpgo:8080"
        assert config.api_key == "key"
        assert config.edition == 1
        assert config.headers == {"X-Tenant": "acme"}
        assert config.username is None

    def test_invalid_headers(self):
        with pytest.raises(ConfigurationError, match="Invalid headers"):
            ProviderConfig.from_secret_data({"headers": "not json"})

    def test_out_of_range_edition(self):
        with pytest.raises(ConfigurationError, match="edition must be 0"):
            ProviderConfig.from_secret_data({"edition": "2"})

    def test_non_numeric_edition(self):
        with pytest.raises(ConfigurationError, match="Invalid edition"):
            ProviderConfig.from_secret_data({"edition": "abc"})

    def test_headers_must_be_an_object(self):
        with pytest.raises(ConfigurationError, match="Invalid SFTPGo connection configuration"):
            ProviderConfig.from_secret_data({"headers": "[1, 2]"})


class TestResolve:
    def test_environment_fallback(self, env_settings):
        resolved = resolve_provider_config(None, env_settings)

        assert resolved.host == "http://env-host:8080"
        assert resolved.username == "env-admin"
        assert resolved.headers == {"X-Env": "1"}
        assert resolved.edition == 0

    def test_explicit_values_take_precedence(self, env_settings):
        explicit = ProviderConfig(host="http://secret-host", password="secret-pw", edition=1)

        resolved = resolve_provider_config(explicit, env_settings)

        assert resolved.host == "http://secret-host"
        assert resolved.username == "env-admin"
        assert resolved.password == "secret-pw"
        assert resolved.edition == 1

    def test_invalid_edition_from_environment(self, monkeypatch):
        monkeypatch.setenv("SFTPGO_HOST", "http://env-host:8080")
        monkeypatch.setenv("SFTPGO_API_KEY", "key")
        monkeypatch.setenv("SFTPGO_EDITION", "2")

        with pytest.raises(ConfigurationError, match="edition must be 0"):
            resolve_provider_config(None, Settings(_env_file=None))

    def test_missing_host(self, env_settings):
        env_settings.sftpgo_host = ""

        with pytest.raises(ConfigurationError, match="Missing SFTPGo API host"):
            resolve_provider_config(None, env_settings)

    def test_missing_password_without_api_key(self, env_settings):
        env_settings.sftpgo_password = ""

        with pytest.raises(ConfigurationError, match="password"):
            resolve_provider_config(None, env_settings)

    def test_api_key_replaces_credentials(self, env_settings):
        env_settings.sftpgo_username = ""
        env_settings.sftpgo_password = ""

        resolved = resolve_provider_config(ProviderConfig(api_key="key"), env_settings)

        assert resolved.api_key == "key"


class TestBuildClient:
    def test_from_environment(self, env_settings):
        client = build_sftpgo_client(env_settings)

        assert client.host == "http://env-host:8080"
        assert client.username == "env-admin"
        assert client.headers == {"X-Env": "1"}

    def test_connection_secret(self, env_settings):
        env_settings.connection_secret = "sftpgo-connection"

        with patch(
            "sftpgo_operator.operator.read_secret_data",
            return_value={"host": "http://from-secret:8080", "api_key": "key"},
        ) as mock_read:
            client = build_sftpgo_client(env_settings)

        mock_read.assert_called_once_with("sftpgo-connection", env_settings.operator_namespace)
        assert client.host == "http://from-secret:8080"
        assert client.api_key == "key"
