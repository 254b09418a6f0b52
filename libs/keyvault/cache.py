"""
Thread-safe in-memory cache for secrets with time-based expiration.

Architecture:
    - Thread-safe with threading.Lock for concurrent access
    - In-memory only (NO disk persistence for security)
    - Expiry computed at write time: expires_at = stored_at + duration
    - Expired entries evicted lazily on read
    - Explicit invalidation for forced refreshes

Example Usage:
    >>> from datetime import timedelta
    >>> cache = SecretCache(CacheConfiguration(duration=timedelta(minutes=5)))
    >>>
    >>> # Store secret
    >>> cache.set("Database-Password", Secret("s3cr3t", version="1"))
    >>>
    >>> # Retrieve (cache hit)
    >>> cache.get("Database-Password")
    Secret(value='***', version='1', expires_on=None)
    >>>
    >>> # Drop a single entry
    >>> cache.invalidate("Database-Password")
"""

import threading
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from libs.keyvault.config import CacheConfiguration
from libs.keyvault.secret import Secret


def _utcnow() -> datetime:
    return datetime.now(UTC)


class SecretCache:
    """
    Thread-safe in-memory cache mapping secret names to (Secret, expires_at).

    Entries are replaced wholesale, never partially updated, so concurrent
    writers to the same name produce last-write-wins without torn entries.

    Attributes:
        _cache: Internal storage dict mapping secret names to (secret, expires_at) tuples
        _configuration: Default cache duration for new entries
        _clock: Returns the current UTC time (injectable for tests)
        _lock: Threading lock for concurrent access protection

    Examples:
        >>> cache = SecretCache()
        >>> cache.set("Api-Key", Secret("PKXXXXXXXX"))
        >>> cache.get("Api-Key").value
        'PKXXXXXXXX'
        >>> cache.get("Unknown-Secret") is None
        True
        >>> cache.clear()
    """

    def __init__(
        self,
        configuration: CacheConfiguration | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """
        Initialize SecretCache.

        Args:
            configuration: Cache settings. Default: 5-minute duration.
            clock: Callable returning the current aware UTC datetime.
        """
        self._cache: dict[str, tuple[Secret, datetime]] = {}
        self._configuration = configuration or CacheConfiguration()
        self._clock = clock
        self._lock = threading.Lock()

    @property
    def configuration(self) -> CacheConfiguration:
        return self._configuration

    def get(self, name: str) -> Secret | None:
        """
        Retrieve a cached secret if present and not expired.

        Expired entries are removed from the cache.

        Returns:
            Secret: Cached secret if found and not expired
            None: If the name is not cached or its entry expired
        """
        with self._lock:
            entry = self._cache.get(name)
            if entry is None:
                return None

            secret, expires_at = entry
            if self._clock() >= expires_at:
                del self._cache[name]
                return None

            return secret

    def set(self, name: str, secret: Secret, duration: timedelta | None = None) -> None:
        """
        Store a secret, replacing any existing entry for the name.

        Args:
            name: Secret name
            secret: Secret to cache
            duration: Override for this entry. Default: configured duration.
        """
        ttl = duration if duration is not None else self._configuration.duration
        with self._lock:
            self._cache[name] = (secret, self._clock() + ttl)

    def invalidate(self, name: str) -> None:
        """Remove a cached secret immediately, regardless of its expiry."""
        with self._lock:
            self._cache.pop(name, None)

    def clear(self) -> None:
        """Remove all cached secrets."""
        with self._lock:
            self._cache.clear()

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        return self.get(name) is not None

    def __len__(self) -> int:
        """
        Return number of cached secrets (for monitoring/debugging).

        Includes expired entries that haven't been read yet.
        """
        with self._lock:
            return len(self._cache)
