"""
Naming rules for Azure Key Vault endpoints and secrets.

Pure functions, no I/O. Every public provider operation calls these before
touching the cache or the network, so malformed input never leaves the
caller's process.

See Also:
    - https://docs.microsoft.com/en-us/azure/key-vault/general/about-keys-secrets-certificates
"""

import re
from typing import Final
from urllib.parse import urlsplit

from libs.keyvault.exceptions import (
    SecretArgumentError,
    SecretNameFormatError,
    VaultUriFormatError,
)

VAULT_URI_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^https://[0-9a-zA-Z\-]{3,24}\.vault\.azure\.net(/)?$"
)
SECRET_NAME_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[a-zA-Z][a-zA-Z0-9\-]{0,126}$")


def validate_vault_uri(vault_uri: str) -> str:
    """
    Validate a Key Vault URI and reduce it to its ``scheme://host`` endpoint.

    Paths, ports and query strings are dropped before matching, so
    "https://my-vault.vault.azure.net/secrets/" normalizes to
    "https://my-vault.vault.azure.net". A URI that can't be parsed at all
    (unbalanced IPv6 brackets, non-numeric port) is rejected the same way.

    Raises:
        VaultUriFormatError: URI is blank, unparseable or the host isn't a Key Vault host
    """
    if not isinstance(vault_uri, str) or not vault_uri.strip():
        raise VaultUriFormatError(str(vault_uri))

    try:
        parts = urlsplit(vault_uri.strip())
        # .port parses lazily and raises ValueError on a malformed port
        parts.port  # noqa: B018
    except ValueError as e:
        raise VaultUriFormatError(vault_uri) from e

    endpoint = f"{parts.scheme}://{parts.hostname or ''}"
    if not VAULT_URI_PATTERN.fullmatch(endpoint):
        raise VaultUriFormatError(vault_uri)
    return endpoint


def _require_secret_name(secret_name: str | None) -> None:
    if secret_name is None or not isinstance(secret_name, str) or not secret_name.strip():
        raise SecretArgumentError(
            "secret_name",
            "Requires a non-blank secret name to interact with Azure Key Vault",
        )


def _check_secret_name_format(secret_name: str) -> None:
    # fullmatch: "$" would also accept a trailing newline
    if not SECRET_NAME_PATTERN.fullmatch(secret_name):
        raise SecretNameFormatError(secret_name)


def validate_secret_name(secret_name: str | None) -> None:
    """
    Validate a secret name against the Key Vault naming grammar.

    Raises:
        SecretArgumentError: Name is None, empty or whitespace-only
        SecretNameFormatError: Name doesn't match ``^[a-zA-Z][a-zA-Z0-9-]{0,126}$``
    """
    _require_secret_name(secret_name)
    _check_secret_name_format(secret_name)


def validate_secret_value(secret_value: str | None) -> None:
    """
    Validate that a secret value is present before storing it.

    Raises:
        SecretArgumentError: Value is None, empty or whitespace-only
    """
    if secret_value is None or not isinstance(secret_value, str) or not secret_value.strip():
        raise SecretArgumentError(
            "secret_value",
            "Requires a non-blank secret value to store a secret in Azure Key Vault",
        )


def validate_secret_to_store(secret_name: str | None, secret_value: str | None) -> None:
    """
    Validate the arguments of a store operation.

    Both arguments are checked for blanks before the name format, so
    ``("1bad", "")`` reports the missing value first.

    Raises:
        SecretArgumentError: Name or value is None, empty or whitespace-only
        SecretNameFormatError: Name doesn't match the naming grammar
    """
    _require_secret_name(secret_name)
    validate_secret_value(secret_value)
    _check_secret_name_format(secret_name)
