"""
Key Vault Secret Provider Exception Hierarchy.

This module defines the exceptions raised by the Key Vault secret providers,
separating caller mistakes (validation, configuration) from remote outcomes
(secret not found).

Exception hierarchy:
    SecretProviderError (base)
    ├── SecretValidationError - Malformed or missing input (also a ValueError)
    │   ├── SecretArgumentError - Blank secret name or value
    │   ├── SecretNameFormatError - Secret name fails the Key Vault grammar
    │   └── VaultUriFormatError - Vault URI fails the Key Vault host grammar
    ├── SecretNotFoundError - Key Vault confirms the secret doesn't exist
    └── SecretProviderConfigurationError - Wrong low-level client accessor

Transport failures other than "not found" are NOT wrapped: the native
``azure.core.exceptions.HttpResponseError`` (or the legacy client's own
exception) propagates to the caller after being logged.

Security:
    - Secret values are NEVER included in messages or attributes
    - Only secret names and vault URIs are carried as context
"""

KEY_VAULT_NAMING_DOCS = (
    "https://docs.microsoft.com/en-us/azure/key-vault/general/"
    "about-keys-secrets-certificates#objects-identifiers-and-versioning"
)


class SecretProviderError(Exception):
    """
    Base exception for all secret provider errors.

    Attributes:
        secret_name: Name of the secret involved (e.g., "Database-Password")
        vault_uri: Key Vault endpoint involved (e.g., "https://my-vault.vault.azure.net")
        message: Human-readable error message (MUST NOT include secret value)

    Example:
        >>> try:
        ...     secret = await provider.get_secret("Database-Password")
        ... except SecretProviderError as e:
        ...     logger.error("Secret error", extra={"secret_name": e.secret_name})
    """

    def __init__(
        self,
        message: str,
        secret_name: str | None = None,
        vault_uri: str | None = None,
    ) -> None:
        super().__init__(message)
        self.secret_name = secret_name
        self.vault_uri = vault_uri
        self.message = message

    def __str__(self) -> str:
        """
        Format error message with context (secret name + vault URI).

        Example:
            >>> str(SecretProviderError("Timeout", "Db-Password", "https://v.vault.azure.net"))
            'Timeout (secret: Db-Password, vault: https://v.vault.azure.net)'
        """
        context_parts = []
        if self.secret_name:
            context_parts.append(f"secret: {self.secret_name}")
        if self.vault_uri:
            context_parts.append(f"vault: {self.vault_uri}")

        if context_parts:
            context = ", ".join(context_parts)
            return f"{self.message} ({context})"
        return self.message


class SecretValidationError(SecretProviderError, ValueError):
    """
    Raised when input to a provider operation is malformed or missing.

    Always raised synchronously at the start of an operation, before any
    cache lookup or network call. Never retried.
    """


class SecretArgumentError(SecretValidationError):
    """Raised when a secret name or value is None, empty or whitespace-only."""

    def __init__(self, argument_name: str, message: str | None = None) -> None:
        self.argument_name = argument_name
        super().__init__(message or f"Requires a non-blank {argument_name.replace('_', ' ')}")


class SecretNameFormatError(SecretValidationError):
    """
    Raised when a secret name doesn't match ``^[a-zA-Z][a-zA-Z0-9-]{0,126}$``.

    Common causes:
    - Name starts with a digit or hyphen (e.g., "1-secret")
    - Name uses path separators or underscores (e.g., "database/password")
    - Name longer than 127 characters
    """

    def __init__(self, secret_name: str) -> None:
        super().__init__(
            message=(
                "Requires a secret name in the correct format to interact with Azure Key Vault, "
                f"see {KEY_VAULT_NAMING_DOCS}"
            ),
            secret_name=secret_name,
        )


class VaultUriFormatError(SecretValidationError):
    """
    Raised when a vault URI doesn't match ``https://{3-24 chars}.vault.azure.net``.

    Example:
        >>> KeyVaultConfiguration("http://my-vault.vault.azure.net")
        VaultUriFormatError: Requires the Azure Key Vault host to be in the right format ...
    """

    def __init__(self, vault_uri: str) -> None:
        super().__init__(
            message=(
                "Requires the Azure Key Vault host to be in the right format, "
                f"see {KEY_VAULT_NAMING_DOCS}"
            ),
            vault_uri=vault_uri,
        )


class SecretNotFoundError(SecretProviderError):
    """
    Raised when Key Vault responds that the requested secret doesn't exist.

    The transport exception is chained as ``__cause__``.

    Resolution:
    - Verify secret exists: `az keyvault secret show --vault-name <vault> --name <name>`
    - Check the provider points at the expected vault (dev vs prod)
    """

    def __init__(self, secret_name: str, vault_uri: str | None = None) -> None:
        if not isinstance(secret_name, str) or not secret_name:
            raise TypeError("secret_name must be a non-empty string")

        super().__init__(
            message=f"No secret was found with the name '{secret_name}'",
            secret_name=secret_name,
            vault_uri=vault_uri,
        )


class SecretProviderConfigurationError(SecretProviderError):
    """
    Raised when an operation is incompatible with the provider's transport.

    For example, requesting the legacy authenticated client from a provider
    that was built with an Azure SDK credential. This is a programming error
    and is never retried.
    """

    def __init__(self, message: str, vault_uri: str | None = None) -> None:
        super().__init__(message=message, vault_uri=vault_uri)
