"""
Transport strategies for talking to Azure Key Vault.

A KeyVaultSecretProvider is bound to exactly one transport for its lifetime:

    SecretTransport (Protocol)
    ├── SdkTransport - azure-keyvault-secrets async SecretClient, authenticated
    │                  by a caller-supplied azure-identity credential
    └── LegacyTransport - low-level client handle produced by an injected
                          KeyVaultAuthenticator, created lazily and only once

Transports perform the remote call and normalize the result into a Secret.
They do not classify errors, retry, or log failures; that is the provider's
job (keyvault_provider.py).
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from azure.core.credentials_async import AsyncTokenCredential
from azure.keyvault.secrets import KeyVaultSecret, KeyVaultSecretIdentifier
from azure.keyvault.secrets.aio import SecretClient

from libs.keyvault.secret import Secret

logger = logging.getLogger(__name__)


class SecretTransport(Protocol):
    """Capability shared by both transports: get and store a single secret."""

    vault_uri: str

    async def connect(self) -> None:
        """Make sure the transport is ready for remote calls."""
        ...

    async def get_secret(self, secret_name: str) -> Secret | None:
        ...

    async def set_secret(self, secret_name: str, secret_value: str) -> Secret | None:
        ...

    async def close(self) -> None:
        ...


@runtime_checkable
class LegacyKeyVaultClient(Protocol):
    """
    Authenticated low-level Key Vault client handle (legacy flow).

    Returns secret bundles exposing ``value``, ``id`` (secret identifier URL)
    and ``attributes.expires``. Failures raise exceptions carrying the HTTP
    status either as ``status_code`` or ``response.status_code``.
    """

    async def get_secret(self, vault_base_url: str, secret_name: str) -> Any:
        ...

    async def set_secret(self, vault_base_url: str, secret_name: str, value: str) -> Any:
        ...


@runtime_checkable
class KeyVaultAuthenticator(Protocol):
    """Authentication capability establishing a connected legacy client."""

    async def authenticate(self) -> LegacyKeyVaultClient:
        ...


def secret_from_keyvault_secret(secret: KeyVaultSecret | None) -> Secret | None:
    """Normalize an azure-keyvault-secrets ``KeyVaultSecret``."""
    if secret is None:
        return None
    return Secret(
        value=secret.value,
        version=secret.properties.version,
        expires_on=secret.properties.expires_on,
    )


def secret_from_bundle(bundle: Any) -> Secret | None:
    """Normalize a legacy secret bundle."""
    if bundle is None:
        return None

    version = None
    if getattr(bundle, "id", None):
        version = KeyVaultSecretIdentifier(bundle.id).version

    attributes = getattr(bundle, "attributes", None)
    expires: datetime | None = getattr(attributes, "expires", None)
    return Secret(value=bundle.value, version=version, expires_on=expires)


class SdkTransport:
    """
    Transport over the async ``azure.keyvault.secrets.aio.SecretClient``.

    Example:
        >>> from azure.identity.aio import DefaultAzureCredential
        >>> transport = SdkTransport(
        ...     "https://my-vault.vault.azure.net",
        ...     credential=DefaultAzureCredential(),
        ... )
    """

    def __init__(
        self,
        vault_uri: str,
        credential: AsyncTokenCredential | None = None,
        client: SecretClient | None = None,
        owns_credential: bool = False,
    ) -> None:
        """
        Args:
            vault_uri: Validated Key Vault endpoint
            credential: Token credential used to build the SecretClient
            client: Pre-built SecretClient (takes precedence over credential)
            owns_credential: Close ``credential`` together with the client.
                Set when the credential was created for this transport only.

        Raises:
            ValueError: Neither credential nor client given
        """
        if client is None:
            if credential is None:
                raise ValueError(
                    "Requires an Azure token credential to authenticate with the vault"
                )
            client = SecretClient(vault_url=vault_uri, credential=credential)

        self.vault_uri = vault_uri
        self._client = client
        self._credential = credential if owns_credential else None

    @property
    def client(self) -> SecretClient:
        return self._client

    async def connect(self) -> None:
        # SecretClient authenticates per request through its credential
        return None

    async def get_secret(self, secret_name: str) -> Secret | None:
        secret = await self._client.get_secret(secret_name)
        return secret_from_keyvault_secret(secret)

    async def set_secret(self, secret_name: str, secret_value: str) -> Secret | None:
        secret = await self._client.set_secret(secret_name, secret_value)
        return secret_from_keyvault_secret(secret)

    async def close(self) -> None:
        try:
            await self._client.close()
        finally:
            if self._credential is not None:
                await self._credential.close()


class LegacyTransport:
    """
    Transport over a low-level client produced by a KeyVaultAuthenticator.

    The client is created on first use. An instance-scoped asyncio.Lock lets
    exactly one authentication run at a time; concurrent callers wait for it
    and reuse its client. A failed authentication is not remembered, the next
    call tries again.
    """

    def __init__(self, vault_uri: str, authenticator: KeyVaultAuthenticator) -> None:
        if authenticator is None:
            raise ValueError(
                "Requires an Azure Key Vault authenticator to authenticate with the vault"
            )

        self.vault_uri = vault_uri
        self._authenticator = authenticator
        self._client: LegacyKeyVaultClient | None = None
        self._lock = asyncio.Lock()

    @property
    def is_authenticated(self) -> bool:
        return self._client is not None

    async def get_client(self) -> LegacyKeyVaultClient:
        """
        Get the authenticated client, authenticating on first call.

        Raises:
            Exception: Whatever the authenticator raises
        """
        logger.debug(
            "Authenticating with the Azure Key Vault",
            extra={"vault_uri": self.vault_uri},
        )
        async with self._lock:
            if self._client is None:
                try:
                    self._client = await self._authenticator.authenticate()
                except Exception:
                    logger.error(
                        "Failure during authenticating with the Azure Key Vault",
                        extra={"vault_uri": self.vault_uri},
                        exc_info=True,
                    )
                    raise

        logger.debug(
            "Authenticated with the Azure Key Vault",
            extra={"vault_uri": self.vault_uri},
        )
        return self._client

    async def connect(self) -> None:
        await self.get_client()

    async def get_secret(self, secret_name: str) -> Secret | None:
        client = await self.get_client()
        bundle = await client.get_secret(self.vault_uri, secret_name)
        return secret_from_bundle(bundle)

    async def set_secret(self, secret_name: str, secret_value: str) -> Secret | None:
        client = await self.get_client()
        bundle = await client.set_secret(self.vault_uri, secret_name, secret_value)
        return secret_from_bundle(bundle)

    async def close(self) -> None:
        close = getattr(self._client, "close", None)
        if close is not None:
            result = close()
            if asyncio.iscoroutine(result):
                await result
