"""Tests for Key Vault settings and the create_secret_provider() factory."""

import logging
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from pydantic import ValidationError

from libs.keyvault.cached_provider import KeyVaultCachedSecretProvider
from libs.keyvault.config import KeyVaultSettings, get_settings
from libs.keyvault.exceptions import SecretProviderConfigurationError, VaultUriFormatError
from libs.keyvault.factory import configure_logging, create_secret_provider
from libs.keyvault.keyvault_provider import KeyVaultSecretProvider
from tests.libs.keyvault.conftest import VAULT_URI


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch):
    """Isolate tests from KEYVAULT_* variables and the cached settings."""
    for name in ("KEYVAULT_VAULT_URI", "KEYVAULT_CACHE_DURATION_SECONDS", "KEYVAULT_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir("/")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def mock_secret_client_cls():
    with patch("libs.keyvault.transports.SecretClient") as secret_client_cls:
        yield secret_client_cls


class TestKeyVaultSettings:
    """Test environment-driven settings."""

    @pytest.mark.unit()
    def test_defaults(self):
        settings = KeyVaultSettings()

        assert settings.vault_uri == ""
        assert settings.cache_duration_seconds == 300
        assert settings.log_level == "INFO"

    @pytest.mark.unit()
    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("KEYVAULT_VAULT_URI", VAULT_URI)
        monkeypatch.setenv("KEYVAULT_CACHE_DURATION_SECONDS", "60")
        monkeypatch.setenv("KEYVAULT_LOG_LEVEL", "debug")

        settings = get_settings()

        assert settings.vault_uri == VAULT_URI
        assert settings.cache_configuration().duration == timedelta(seconds=60)
        assert settings.log_level == "DEBUG"

    @pytest.mark.unit()
    def test_rejects_non_positive_cache_duration(self):
        with pytest.raises(ValidationError):
            KeyVaultSettings(cache_duration_seconds=0)

    @pytest.mark.unit()
    def test_rejects_unknown_log_level(self):
        with pytest.raises(ValidationError):
            KeyVaultSettings(log_level="chatty")

    @pytest.mark.unit()
    def test_vault_configuration_validates_uri(self):
        with pytest.raises(VaultUriFormatError):
            KeyVaultSettings(vault_uri="https://example.com").vault_configuration()


class TestCreateSecretProvider:
    """Test factory wiring."""

    @pytest.mark.unit()
    def test_requires_vault_uri(self):
        with pytest.raises(SecretProviderConfigurationError, match="KEYVAULT_VAULT_URI"):
            create_secret_provider(credential=MagicMock())

    @pytest.mark.unit()
    def test_cached_provider_by_default(self, mock_secret_client_cls):
        credential = MagicMock()
        settings = KeyVaultSettings(vault_uri=VAULT_URI, cache_duration_seconds=120)

        provider = create_secret_provider(settings, credential=credential)

        assert isinstance(provider, KeyVaultCachedSecretProvider)
        assert provider.cache_configuration.duration == timedelta(seconds=120)
        assert provider.vault_uri == VAULT_URI
        mock_secret_client_cls.assert_called_once_with(vault_url=VAULT_URI, credential=credential)

    @pytest.mark.unit()
    def test_uncached_provider(self, mock_secret_client_cls):
        settings = KeyVaultSettings(vault_uri=VAULT_URI)

        provider = create_secret_provider(settings, credential=MagicMock(), cached=False)

        assert isinstance(provider, KeyVaultSecretProvider)
        assert provider.is_using_azure_sdk

    @pytest.mark.unit()
    def test_defaults_to_default_azure_credential(self, monkeypatch, mock_secret_client_cls):
        monkeypatch.setenv("KEYVAULT_VAULT_URI", VAULT_URI)

        with patch("libs.keyvault.factory.DefaultAzureCredential") as credential_cls:
            create_secret_provider()

        credential_cls.assert_called_once_with()
        mock_secret_client_cls.assert_called_once_with(
            vault_url=VAULT_URI, credential=credential_cls.return_value
        )

    @pytest.mark.unit()
    @pytest.mark.asyncio()
    async def test_close_releases_default_credential(self, monkeypatch, mock_secret_client_cls):
        monkeypatch.setenv("KEYVAULT_VAULT_URI", VAULT_URI)
        mock_secret_client_cls.return_value = AsyncMock()

        with patch("libs.keyvault.factory.DefaultAzureCredential") as credential_cls:
            credential_cls.return_value = AsyncMock()
            provider = create_secret_provider()

        await provider.close()

        mock_secret_client_cls.return_value.close.assert_awaited_once()
        credential_cls.return_value.close.assert_awaited_once()

    @pytest.mark.unit()
    @pytest.mark.asyncio()
    async def test_close_leaves_supplied_credential_open(self, mock_secret_client_cls):
        mock_secret_client_cls.return_value = AsyncMock()
        credential = AsyncMock()
        settings = KeyVaultSettings(vault_uri=VAULT_URI)

        async with create_secret_provider(settings, credential=credential):
            pass

        mock_secret_client_cls.return_value.close.assert_awaited_once()
        credential.close.assert_not_awaited()


class TestConfigureLogging:
    """Test log level wiring."""

    @pytest.mark.unit()
    def test_sets_package_logger_level(self):
        configure_logging(KeyVaultSettings(log_level="WARNING"))

        assert logging.getLogger("libs.keyvault").level == logging.WARNING
        logging.getLogger("libs.keyvault").setLevel(logging.NOTSET)
