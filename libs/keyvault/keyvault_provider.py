"""
Azure Key Vault Secret Provider.

This module implements KeyVaultSecretProvider, which reads and writes secrets
in Azure Key Vault through one of two transports (transports.py):

    - SDK mode: azure-keyvault-secrets SecretClient + azure-identity credential
      (KeyVaultSecretProvider.from_credential)
    - Legacy mode: low-level client handle from an injected authenticator
      (KeyVaultSecretProvider.from_authenticator)

Architecture:
    - Secret names validated before any network call
    - 404 responses translated to SecretNotFoundError
    - 429 responses retried with exponential backoff (1, 2, 4, 8, 16 seconds)
    - Any other failure logged and re-raised untranslated
    - No caching here; wrap in KeyVaultCachedSecretProvider for that

Usage Example:
    >>> from azure.identity.aio import DefaultAzureCredential
    >>> provider = KeyVaultSecretProvider.from_credential(
    ...     DefaultAzureCredential(),
    ...     KeyVaultConfiguration("https://my-vault.vault.azure.net"),
    ... )
    >>> db_password = await provider.get_raw_secret("Database-Password")
"""

import logging
from collections.abc import Awaitable, Callable

from azure.core.credentials_async import AsyncTokenCredential
from azure.keyvault.secrets.aio import SecretClient

from libs.keyvault.config import KeyVaultConfiguration
from libs.keyvault.exceptions import (
    SecretNotFoundError,
    SecretProviderConfigurationError,
)
from libs.keyvault.provider import SecretProvider
from libs.keyvault.retry import ThrottlingPolicy, get_status_code, is_not_found
from libs.keyvault.secret import Secret
from libs.keyvault.transports import (
    KeyVaultAuthenticator,
    LegacyKeyVaultClient,
    LegacyTransport,
    SdkTransport,
    SecretTransport,
)
from libs.keyvault.validation import validate_secret_name, validate_secret_to_store

logger = logging.getLogger(__name__)


class KeyVaultSecretProvider(SecretProvider):
    """
    Secret provider connected to a single Azure Key Vault instance.

    The transport is chosen at construction and fixed for the provider's
    lifetime. Asking for the other transport's low-level client raises
    SecretProviderConfigurationError.

    Example:
        >>> provider = KeyVaultSecretProvider.from_authenticator(
        ...     my_authenticator,
        ...     KeyVaultConfiguration("https://my-vault.vault.azure.net"),
        ... )
        >>> secret = await provider.store_secret("Api-Key", "PKXXXXXXXX")
        >>> secret.version
        '4387e9f3d6e14c459867679a90fd0f79'
    """

    def __init__(
        self,
        transport: SecretTransport,
        configuration: KeyVaultConfiguration,
        throttling_policy: ThrottlingPolicy | None = None,
    ) -> None:
        """
        Args:
            transport: SdkTransport or LegacyTransport bound to the vault
            configuration: Vault location
            throttling_policy: Retry policy for throttled calls. Default:
                retry 429 responses after 1, 2, 4, 8 and 16 seconds.

        Raises:
            ValueError: transport or configuration missing
        """
        if configuration is None:
            raise ValueError("Requires an Azure Key Vault configuration to set up the secret provider")
        if transport is None:
            raise ValueError("Requires a transport to interact with the Azure Key Vault")

        self._configuration = configuration
        self._transport = transport
        self._throttling_policy = throttling_policy or ThrottlingPolicy()

    @classmethod
    def from_credential(
        cls,
        credential: AsyncTokenCredential,
        configuration: KeyVaultConfiguration,
        throttling_policy: ThrottlingPolicy | None = None,
        owns_credential: bool = False,
    ) -> "KeyVaultSecretProvider":
        """
        Create a provider using the Azure SDK SecretClient.

        With ``owns_credential`` the provider closes the credential in close().
        """
        if configuration is None:
            raise ValueError("Requires an Azure Key Vault configuration to set up the secret provider")
        transport = SdkTransport(
            configuration.vault_uri, credential=credential, owns_credential=owns_credential
        )
        return cls(transport, configuration, throttling_policy)

    @classmethod
    def from_authenticator(
        cls,
        authenticator: KeyVaultAuthenticator,
        configuration: KeyVaultConfiguration,
        throttling_policy: ThrottlingPolicy | None = None,
    ) -> "KeyVaultSecretProvider":
        """Create a provider that authenticates lazily through ``authenticator``."""
        if configuration is None:
            raise ValueError("Requires an Azure Key Vault configuration to set up the secret provider")
        transport = LegacyTransport(configuration.vault_uri, authenticator)
        return cls(transport, configuration, throttling_policy)

    @property
    def vault_uri(self) -> str:
        """Normalized ``https://<name>.vault.azure.net`` endpoint."""
        return self._configuration.vault_uri

    @property
    def is_using_azure_sdk(self) -> bool:
        return isinstance(self._transport, SdkTransport)

    async def get_raw_secret(self, secret_name: str) -> str | None:
        """
        Retrieve the value of a secret.

        Raises:
            SecretArgumentError: Name is blank
            SecretNameFormatError: Name doesn't match the Key Vault grammar
            SecretNotFoundError: Secret doesn't exist in the vault
            HttpResponseError: Any other Key Vault failure
        """
        validate_secret_name(secret_name)

        secret = await self.get_secret(secret_name)
        return secret.value if secret is not None else None

    async def get_secret(self, secret_name: str) -> Secret | None:
        """
        Retrieve a secret with its version and expiry.

        Raises:
            SecretArgumentError: Name is blank
            SecretNameFormatError: Name doesn't match the Key Vault grammar
            SecretNotFoundError: Secret doesn't exist in the vault
            HttpResponseError: Any other Key Vault failure (after throttling retries)
        """
        validate_secret_name(secret_name)

        logger.debug(
            "Getting a secret from Azure Key Vault",
            extra={"secret_name": secret_name, "vault_uri": self.vault_uri},
        )
        secret = await self._interact(
            secret_name, lambda: self._transport.get_secret(secret_name)
        )
        logger.debug(
            "Got secret from Azure Key Vault",
            extra={"secret_name": secret_name, "vault_uri": self.vault_uri},
        )
        return secret

    async def store_secret(self, secret_name: str, secret_value: str) -> Secret:
        """
        Create or update a secret (Key Vault creates a new version).

        Returns:
            The stored Secret, including the version Key Vault assigned

        Raises:
            SecretArgumentError: Name or value is blank
            SecretNameFormatError: Name doesn't match the Key Vault grammar
            HttpResponseError: Key Vault rejected the write (after throttling retries)
        """
        validate_secret_to_store(secret_name, secret_value)

        logger.debug(
            "Storing secret in Azure Key Vault",
            extra={"secret_name": secret_name, "vault_uri": self.vault_uri},
        )
        secret = await self._interact(
            secret_name, lambda: self._transport.set_secret(secret_name, secret_value)
        )
        if secret is None:
            secret = Secret(value=secret_value)
        logger.debug(
            "Stored secret in Azure Key Vault",
            extra={
                "secret_name": secret_name,
                "secret_version": secret.version,
                "vault_uri": self.vault_uri,
            },
        )
        return secret

    async def _interact(
        self,
        secret_name: str,
        operation: Callable[[], Awaitable[Secret | None]],
    ) -> Secret | None:
        # Authentication runs once, outside the throttled operation
        await self._transport.connect()

        try:
            return await self._throttling_policy.execute(operation)
        except Exception as e:
            if is_not_found(e):
                raise SecretNotFoundError(secret_name, self.vault_uri) from e

            logger.error(
                "Failure during interacting with the Azure Key Vault",
                extra={
                    "secret_name": secret_name,
                    "vault_uri": self.vault_uri,
                    "status_code": get_status_code(e),
                    "reason": getattr(e, "reason", None),
                    "error_type": type(e).__name__,
                },
            )
            raise

    async def get_client(self) -> LegacyKeyVaultClient:
        """
        Get the authenticated low-level client (legacy mode only).

        Raises:
            SecretProviderConfigurationError: Provider uses the Azure SDK;
                call get_secret_client() instead
        """
        if not isinstance(self._transport, LegacyTransport):
            raise SecretProviderConfigurationError(
                "Azure Key Vault secret provider is configured using the Azure SDK SecretClient, "
                "please call 'get_secret_client' instead to have access to the low-level Key Vault client",
                vault_uri=self.vault_uri,
            )
        return await self._transport.get_client()

    def get_secret_client(self) -> SecretClient:
        """
        Get the Azure SDK SecretClient (SDK mode only).

        Raises:
            SecretProviderConfigurationError: Provider uses an authenticator;
                call get_client() instead
        """
        if not isinstance(self._transport, SdkTransport):
            raise SecretProviderConfigurationError(
                "Azure Key Vault secret provider is configured using an authenticator, "
                "please call 'get_client' instead to have access to the low-level Key Vault client",
                vault_uri=self.vault_uri,
            )
        return self._transport.client

    async def close(self) -> None:
        """Close the underlying transport."""
        await self._transport.close()
        logger.info(
            "KeyVaultSecretProvider closed",
            extra={"vault_uri": self.vault_uri},
        )
