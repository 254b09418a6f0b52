"""Shared fixtures and test doubles for libs/keyvault tests."""

import asyncio
from datetime import UTC, datetime, timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from azure.core.exceptions import HttpResponseError

from libs.keyvault.config import KeyVaultConfiguration
from libs.keyvault.exceptions import SecretNotFoundError
from libs.keyvault.keyvault_provider import KeyVaultSecretProvider
from libs.keyvault.retry import ThrottlingPolicy
from libs.keyvault.secret import Secret
from libs.keyvault.transports import SdkTransport

VAULT_URI = "https://some-key.vault.azure.net"


def make_http_error(status_code: int, reason: str = "Error") -> HttpResponseError:
    """Build an azure-core HttpResponseError carrying an HTTP status."""
    error = HttpResponseError(message=f"({status_code}) {reason}")
    error.status_code = status_code
    error.reason = reason
    return error


def make_sdk_secret(value: str, version: str | None = "v1", expires_on: datetime | None = None):
    """Build an object shaped like azure-keyvault-secrets' KeyVaultSecret."""
    return SimpleNamespace(
        value=value,
        properties=SimpleNamespace(version=version, expires_on=expires_on),
    )


def make_bundle(value: str, name: str = "Api-Key", version: str | None = "abc123", expires=None):
    """Build an object shaped like a legacy secret bundle."""
    secret_id = f"{VAULT_URI}/secrets/{name}"
    if version:
        secret_id = f"{secret_id}/{version}"
    return SimpleNamespace(value=value, id=secret_id, attributes=SimpleNamespace(expires=expires))


class FakeClock:
    """Manually advanced UTC clock for cache expiry tests."""

    def __init__(self) -> None:
        self.now = datetime(2024, 1, 1, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


class RecordingSleep:
    """Async sleep replacement recording requested delays without waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class SpyKeyVaultSecretProvider(KeyVaultSecretProvider):
    """
    KeyVaultSecretProvider that short-cuts the calls to Azure Key Vault.

    Keeps secrets in a dict and counts how many calls reached the "remote"
    layer. Set ``gate`` to an asyncio.Event to hold get_secret calls until
    the event is set.
    """

    def __init__(self, secrets: dict[str, str] | None = None) -> None:
        super().__init__(
            SdkTransport(VAULT_URI, client=AsyncMock()),
            KeyVaultConfiguration(VAULT_URI),
        )
        self.secrets: dict[str, str] = dict(secrets or {})
        self.get_secret_calls = 0
        self.store_secret_calls = 0
        self.gate: asyncio.Event | None = None
        self.get_error: Exception | None = None

    async def get_secret(self, secret_name: str) -> Secret | None:
        self.get_secret_calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.get_error is not None:
            raise self.get_error
        if secret_name not in self.secrets:
            raise SecretNotFoundError(secret_name, self.vault_uri)
        return Secret(self.secrets[secret_name])

    async def store_secret(self, secret_name: str, secret_value: str) -> Secret:
        self.store_secret_calls += 1
        self.secrets[secret_name] = secret_value
        return Secret(secret_value, version=str(self.store_secret_calls))


@pytest.fixture()
def vault_configuration() -> KeyVaultConfiguration:
    return KeyVaultConfiguration(VAULT_URI)


@pytest.fixture()
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture()
def throttling_policy(recording_sleep) -> ThrottlingPolicy:
    """Default throttling schedule without real waiting."""
    return ThrottlingPolicy(sleep=recording_sleep)


@pytest.fixture()
def spy_provider() -> SpyKeyVaultSecretProvider:
    return SpyKeyVaultSecretProvider()
