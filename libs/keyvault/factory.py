"""
Factory for creating Key Vault secret providers from environment settings.

Example Usage:
    >>> import os
    >>> os.environ["KEYVAULT_VAULT_URI"] = "https://my-vault.vault.azure.net"
    >>> provider = create_secret_provider()
    >>> isinstance(provider, KeyVaultCachedSecretProvider)
    True

Environment Variables:
    See libs/keyvault/config.py (KEYVAULT_VAULT_URI, KEYVAULT_CACHE_DURATION_SECONDS,
    KEYVAULT_LOG_LEVEL).
"""

import logging

from azure.core.credentials_async import AsyncTokenCredential
from azure.identity.aio import DefaultAzureCredential

from libs.keyvault.cached_provider import KeyVaultCachedSecretProvider
from libs.keyvault.config import KeyVaultSettings, get_settings
from libs.keyvault.exceptions import SecretProviderConfigurationError
from libs.keyvault.keyvault_provider import KeyVaultSecretProvider

logger = logging.getLogger(__name__)


def configure_logging(settings: KeyVaultSettings | None = None) -> None:
    """Apply the configured log level to the ``libs.keyvault`` logger."""
    settings = settings or get_settings()
    logging.getLogger("libs.keyvault").setLevel(settings.log_level)


def create_secret_provider(
    settings: KeyVaultSettings | None = None,
    credential: AsyncTokenCredential | None = None,
    cached: bool = True,
) -> KeyVaultSecretProvider | KeyVaultCachedSecretProvider:
    """
    Create a Key Vault secret provider using the Azure SDK transport.

    Args:
        settings: Settings override. If None, reads KEYVAULT_* env vars.
        credential: Token credential. If None, uses DefaultAzureCredential
                    (managed identity, environment, Azure CLI, ...).
                    That default credential is closed with the provider;
                    a caller-supplied one is left open.
        cached: Wrap the provider in KeyVaultCachedSecretProvider. Default: True.

    Returns:
        KeyVaultCachedSecretProvider, or the bare KeyVaultSecretProvider when
        ``cached`` is False.

    Raises:
        SecretProviderConfigurationError: KEYVAULT_VAULT_URI not set
        VaultUriFormatError: KEYVAULT_VAULT_URI isn't a Key Vault endpoint
    """
    settings = settings or get_settings()
    if not settings.vault_uri:
        raise SecretProviderConfigurationError(
            "KEYVAULT_VAULT_URI environment variable required for the Key Vault provider. "
            "Set KEYVAULT_VAULT_URI to your vault endpoint (e.g., 'https://my-vault.vault.azure.net')."
        )

    configuration = settings.vault_configuration()
    owns_credential = credential is None
    if credential is None:
        credential = DefaultAzureCredential()

    provider = KeyVaultSecretProvider.from_credential(
        credential, configuration, owns_credential=owns_credential
    )
    logger.info(
        "Created Key Vault secret provider",
        extra={
            "vault_uri": configuration.vault_uri,
            "cached": cached,
            "cache_duration_seconds": settings.cache_duration_seconds,
        },
    )

    if not cached:
        return provider
    return KeyVaultCachedSecretProvider(provider, settings.cache_configuration())
