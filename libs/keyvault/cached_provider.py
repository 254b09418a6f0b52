"""
Caching decorators for secret providers.

CachedSecretProvider wraps any SecretProvider with an in-memory SecretCache
(default: 5-minute duration). KeyVaultCachedSecretProvider adds cache-aware
writes on top of a KeyVaultSecretProvider.

Read path:
    1. Validate the secret name (even when bypassing the cache)
    2. Serve a live cache entry unless ignore_cache=True
    3. Otherwise fetch from the wrapped provider and cache the result

Single flight:
    Each secret name has its own asyncio.Lock. A caller that waited on the
    lock re-checks the cache before fetching, so concurrent reads of the same
    name share one remote call. Different names never block each other.

Failures:
    SecretNotFoundError and transport errors propagate unchanged. Nothing is
    cached on failure and existing entries are left untouched, so a stale but
    live entry keeps serving non-bypassing reads.

Example Usage:
    >>> provider = KeyVaultCachedSecretProvider(keyvault_provider)
    >>> await provider.store_secret("Api-Key", "PKXXXXXXXX")
    >>> await provider.get_raw_secret("Api-Key")  # served from cache
    'PKXXXXXXXX'
    >>> await provider.get_raw_secret("Api-Key", ignore_cache=True)  # remote call
    'PKXXXXXXXX'
"""

import asyncio
import logging
import weakref

from libs.keyvault.cache import SecretCache
from libs.keyvault.config import CacheConfiguration
from libs.keyvault.keyvault_provider import KeyVaultSecretProvider
from libs.keyvault.provider import SecretProvider
from libs.keyvault.secret import Secret
from libs.keyvault.validation import validate_secret_name, validate_secret_to_store

logger = logging.getLogger(__name__)


class CachedSecretProvider(SecretProvider):
    """
    SecretProvider decorator caching secrets in memory.

    Attributes:
        _provider: Wrapped provider (not owned; close() is forwarded)
        _cache: SecretCache owned by this decorator
        _key_locks: Per-secret-name locks enforcing a single in-flight fetch.
            Weakly held, so a lock disappears once no caller is using it.
    """

    def __init__(
        self,
        provider: SecretProvider,
        cache_configuration: CacheConfiguration | None = None,
        cache: SecretCache | None = None,
    ) -> None:
        """
        Args:
            provider: Provider to fetch secrets from on cache misses
            cache_configuration: Cache duration. Default: 5 minutes.
                Ignored when ``cache`` is given.
            cache: Pre-built cache (e.g., with a fake clock in tests)

        Raises:
            ValueError: provider missing
        """
        if provider is None:
            raise ValueError("Requires a secret provider to fetch secrets on cache misses")

        self._provider = provider
        self._cache = cache if cache is not None else SecretCache(cache_configuration)
        self._key_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    @property
    def cache_configuration(self) -> CacheConfiguration:
        return self._cache.configuration

    @property
    def cache(self) -> SecretCache:
        return self._cache

    def _lock_for(self, secret_name: str) -> asyncio.Lock:
        lock = self._key_locks.get(secret_name)
        if lock is None:
            lock = asyncio.Lock()
            self._key_locks[secret_name] = lock
        return lock

    async def get_raw_secret(self, secret_name: str, ignore_cache: bool = False) -> str | None:
        """
        Retrieve the value of a secret, from cache when possible.

        Args:
            secret_name: Secret name
            ignore_cache: Skip the cache lookup and refresh the entry remotely

        Raises:
            SecretArgumentError: Name is blank
            SecretNameFormatError: Name doesn't match the naming grammar
            SecretNotFoundError: Secret doesn't exist remotely
        """
        secret = await self.get_secret(secret_name, ignore_cache=ignore_cache)
        return secret.value if secret is not None else None

    async def get_secret(self, secret_name: str, ignore_cache: bool = False) -> Secret | None:
        """
        Retrieve a secret, from cache when possible.

        Args:
            secret_name: Secret name
            ignore_cache: Skip the cache lookup and refresh the entry remotely

        Raises:
            SecretArgumentError: Name is blank
            SecretNameFormatError: Name doesn't match the naming grammar
            SecretNotFoundError: Secret doesn't exist remotely
        """
        validate_secret_name(secret_name)

        if not ignore_cache:
            cached = self._cache.get(secret_name)
            if cached is not None:
                logger.debug("Secret cache hit", extra={"secret_name": secret_name})
                return cached

        async with self._lock_for(secret_name):
            if not ignore_cache:
                # Another caller may have refreshed the entry while we waited
                cached = self._cache.get(secret_name)
                if cached is not None:
                    logger.debug("Secret cache hit", extra={"secret_name": secret_name})
                    return cached

            secret = await self._provider.get_secret(secret_name)
            if secret is not None:
                self._cache.set(secret_name, secret)
                logger.debug(
                    "Secret cached",
                    extra={
                        "secret_name": secret_name,
                        "cache_duration_seconds": self.cache_configuration.duration.total_seconds(),
                    },
                )
            return secret

    async def invalidate_secret(self, secret_name: str) -> None:
        """
        Remove a secret from the cache so the next read fetches it remotely.

        Raises:
            SecretArgumentError: Name is blank
            SecretNameFormatError: Name doesn't match the naming grammar
        """
        validate_secret_name(secret_name)

        async with self._lock_for(secret_name):
            self._cache.invalidate(secret_name)
        logger.debug("Secret cache entry invalidated", extra={"secret_name": secret_name})

    async def close(self) -> None:
        """Clear the cache and close the wrapped provider."""
        self._cache.clear()
        await self._provider.close()


class KeyVaultCachedSecretProvider(CachedSecretProvider):
    """
    Caching decorator over a KeyVaultSecretProvider, with cache-aware writes.

    Example:
        >>> cached = KeyVaultCachedSecretProvider(
        ...     provider,
        ...     CacheConfiguration(duration=timedelta(minutes=10)),
        ... )
        >>> await cached.store_secret("Api-Key", "new-value")
        >>> await cached.get_raw_secret("Api-Key")  # no remote call
        'new-value'
    """

    def __init__(
        self,
        provider: KeyVaultSecretProvider,
        cache_configuration: CacheConfiguration | None = None,
        cache: SecretCache | None = None,
    ) -> None:
        super().__init__(provider, cache_configuration, cache)
        self._keyvault_provider = provider

    @property
    def vault_uri(self) -> str:
        return self._keyvault_provider.vault_uri

    async def store_secret(
        self,
        secret_name: str,
        secret_value: str,
        ignore_cache: bool = False,
    ) -> Secret:
        """
        Store a secret in Key Vault, and in the cache unless ``ignore_cache``.

        The write always reaches Key Vault. ``ignore_cache`` only decides
        whether subsequent cached reads see the new value right away; when
        True, a previously cached value stays visible until it expires.

        Raises:
            SecretArgumentError: Name or value is blank
            SecretNameFormatError: Name doesn't match the Key Vault grammar
            HttpResponseError: Key Vault rejected the write
        """
        validate_secret_to_store(secret_name, secret_value)

        async with self._lock_for(secret_name):
            secret = await self._keyvault_provider.store_secret(secret_name, secret_value)
            if not ignore_cache:
                self._cache.set(secret_name, secret)
        return secret
