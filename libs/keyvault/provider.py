"""
Abstract SecretProvider Interface.

This module defines the contract shared by every secret provider, so that
service code depends on the interface rather than on Key Vault specifics
(Dependency Inversion Principle).

Architecture:
    SecretProvider (ABC)
    ├── KeyVaultSecretProvider - Azure Key Vault (keyvault_provider.py)
    └── CachedSecretProvider - In-memory caching decorator (cached_provider.py)
        └── KeyVaultCachedSecretProvider - Adds cached writes to Key Vault

Usage Example:
    >>> from libs.keyvault.factory import create_secret_provider
    >>> async with create_secret_provider() as provider:
    ...     db_password = await provider.get_raw_secret("Database-Password")

Security Requirements:
    - Secret values NEVER logged (only names and vault URIs)
    - Caches MUST be in-memory only (NEVER persisted to disk)
"""

from abc import ABC, abstractmethod
from types import TracebackType

from libs.keyvault.secret import Secret


class SecretProvider(ABC):
    """
    Abstract base class for all secret providers.

    Implementations:
        - KeyVaultSecretProvider: Azure Key Vault via azure-keyvault-secrets
        - CachedSecretProvider: Caching decorator over another provider

    Concurrency:
        - All operations are coroutines and may be awaited concurrently
    """

    @abstractmethod
    async def get_secret(self, secret_name: str) -> Secret | None:
        """
        Retrieve a secret by name.

        Args:
            secret_name: Secret name (e.g., "Database-Password")

        Returns:
            The Secret, or None when the backend returned no secret

        Raises:
            SecretArgumentError: Name is None, empty or whitespace-only
            SecretNameFormatError: Name doesn't match the naming grammar
            SecretNotFoundError: Secret doesn't exist in the backend
        """

    async def get_raw_secret(self, secret_name: str) -> str | None:
        """
        Retrieve only the value of a secret.

        Returns:
            Secret value, or None when the backend returned no secret

        Raises:
            Same as get_secret()
        """
        secret = await self.get_secret(secret_name)
        return secret.value if secret is not None else None

    async def close(self) -> None:  # noqa: B027 - Intentionally optional hook with default no-op
        """
        Close connections and clean up resources (optional hook).

        Default implementation is a no-op.
        """

    async def __aenter__(self) -> "SecretProvider":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()
