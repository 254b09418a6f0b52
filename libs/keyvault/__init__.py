"""
Azure Key Vault Secret Provider Library.

This package reads and writes secrets in Azure Key Vault with an in-memory
cache in front, absorbing Key Vault service throttling.

Architecture:
    - SecretProvider: Abstract interface (provider.py)
    - KeyVaultSecretProvider: Key Vault client over one of two transports
      (SDK SecretClient or authenticator-produced legacy client)
    - CachedSecretProvider / KeyVaultCachedSecretProvider: caching decorators
      with single-flight refresh per secret name
    - SecretCache: time-based in-memory cache (default: 5 minutes)
    - Factory: create_secret_provider() builds the stack from KEYVAULT_* env vars

Quick Start:
    >>> from libs.keyvault import create_secret_provider
    >>> async with create_secret_provider() as provider:
    ...     db_password = await provider.get_raw_secret("Database-Password")

Security Requirements:
    - Secret values NEVER logged (only names and vault URIs)
    - Cache is in-memory only
"""

from libs.keyvault.cache import SecretCache
from libs.keyvault.cached_provider import CachedSecretProvider, KeyVaultCachedSecretProvider
from libs.keyvault.config import (
    CacheConfiguration,
    KeyVaultConfiguration,
    KeyVaultSettings,
    get_settings,
)
from libs.keyvault.exceptions import (
    SecretArgumentError,
    SecretNameFormatError,
    SecretNotFoundError,
    SecretProviderConfigurationError,
    SecretProviderError,
    SecretValidationError,
    VaultUriFormatError,
)
from libs.keyvault.factory import create_secret_provider
from libs.keyvault.keyvault_provider import KeyVaultSecretProvider
from libs.keyvault.provider import SecretProvider
from libs.keyvault.retry import ThrottlingPolicy
from libs.keyvault.secret import Secret
from libs.keyvault.transports import (
    KeyVaultAuthenticator,
    LegacyKeyVaultClient,
    LegacyTransport,
    SdkTransport,
)

# Package exports (PEP 8: __all__ defines public API)
__all__ = [
    # Core interface
    "SecretProvider",
    "Secret",
    # Factory (recommended for most use cases)
    "create_secret_provider",
    # Providers
    "KeyVaultSecretProvider",
    "CachedSecretProvider",
    "KeyVaultCachedSecretProvider",
    # Transports
    "SdkTransport",
    "LegacyTransport",
    "KeyVaultAuthenticator",
    "LegacyKeyVaultClient",
    # Cache and policies
    "SecretCache",
    "ThrottlingPolicy",
    # Configuration
    "CacheConfiguration",
    "KeyVaultConfiguration",
    "KeyVaultSettings",
    "get_settings",
    # Exceptions (callers should catch these)
    "SecretProviderError",
    "SecretValidationError",
    "SecretArgumentError",
    "SecretNameFormatError",
    "VaultUriFormatError",
    "SecretNotFoundError",
    "SecretProviderConfigurationError",
]
