"""
Configuration for Key Vault secret providers.

Two layers:
    - Value objects (KeyVaultConfiguration, CacheConfiguration) passed
      explicitly to providers; validated once, immutable afterwards.
    - KeyVaultSettings, loaded from environment variables via Pydantic
      Settings and consumed by the factory (factory.py).

Environment Variables:
    KEYVAULT_VAULT_URI (str, required by the factory):
        Key Vault endpoint (e.g., "https://my-vault.vault.azure.net")
    KEYVAULT_CACHE_DURATION_SECONDS (int, optional):
        How long secrets stay in the in-memory cache. Default: 300 (5 minutes)
    KEYVAULT_LOG_LEVEL (str, optional):
        Logging level for the "libs.keyvault" logger. Default: "INFO"
"""

from dataclasses import dataclass, field
from datetime import timedelta
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from libs.keyvault.validation import validate_vault_uri

DEFAULT_CACHE_DURATION = timedelta(minutes=5)


@dataclass(frozen=True)
class KeyVaultConfiguration:
    """
    Location of the Azure Key Vault instance to talk to.

    The URI is validated and normalized to ``scheme://host`` on construction.

    Raises:
        VaultUriFormatError: URI doesn't point at a Key Vault host

    Example:
        >>> KeyVaultConfiguration("https://my-vault.vault.azure.net/").vault_uri
        'https://my-vault.vault.azure.net'
    """

    vault_uri: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "vault_uri", validate_vault_uri(self.vault_uri))


@dataclass(frozen=True)
class CacheConfiguration:
    """
    Cache settings applied uniformly to every cached secret.

    Attributes:
        duration: Time a secret stays cached after being fetched or stored.
            Default: 5 minutes. Must be strictly positive.
    """

    duration: timedelta = field(default=DEFAULT_CACHE_DURATION)

    def __post_init__(self) -> None:
        if not isinstance(self.duration, timedelta):
            raise TypeError("duration must be a datetime.timedelta")
        if self.duration <= timedelta(0):
            raise ValueError("Requires a positive cache duration")


class KeyVaultSettings(BaseSettings):
    """
    Key Vault settings loaded from environment variables or .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="KEYVAULT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    vault_uri: str = Field(
        default="",
        description="Azure Key Vault endpoint (https://<name>.vault.azure.net)",
    )
    cache_duration_seconds: int = Field(
        default=int(DEFAULT_CACHE_DURATION.total_seconds()),
        gt=0,
        le=86400,
        description="Seconds a secret stays in the in-memory cache",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {value!r}")
        return level

    def vault_configuration(self) -> KeyVaultConfiguration:
        """Build the validated vault configuration."""
        return KeyVaultConfiguration(self.vault_uri)

    def cache_configuration(self) -> CacheConfiguration:
        """Build the cache configuration."""
        return CacheConfiguration(duration=timedelta(seconds=self.cache_duration_seconds))


@lru_cache
def get_settings() -> KeyVaultSettings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are loaded only once. Call
    ``get_settings.cache_clear()`` in tests after changing the environment.
    """
    return KeyVaultSettings()
