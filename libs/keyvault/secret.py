"""Secret value object returned by all secret providers."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class Secret:
    """
    Immutable secret retrieved from or stored in Azure Key Vault.

    Attributes:
        value: Secret value (NEVER log this)
        version: Version identifier assigned by Key Vault, if known
        expires_on: Expiry declared on the secret in Key Vault. Unrelated to
            how long the secret stays in the local cache.
    """

    value: str
    version: str | None = None
    expires_on: datetime | None = None

    def __repr__(self) -> str:
        return f"Secret(value='***', version={self.version!r}, expires_on={self.expires_on!r})"
