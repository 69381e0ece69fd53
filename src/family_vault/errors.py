"""Error kinds surfaced by the Family Vault core.

Validation and not-found conditions are structured failures for the caller
and are never retried.  Storage errors (``asyncpg.PostgresError``) propagate
out of the core unmodified; :class:`InternalError` is what outer surfaces
such as the CLI report them as.

Undecryptable field values are *not* an error: the cipher hands them back
unchanged (see :meth:`family_vault.security.encryption.FieldEncryptor.decrypt_value`).
"""


class FamilyVaultError(Exception):
    """Base class for all Family Vault errors."""


class ValidationError(FamilyVaultError):
    """Raised when caller input is missing or malformed."""


class NotAuthorizedError(FamilyVaultError):
    """Raised when an operation is attempted without an acting user."""


class NotFoundError(FamilyVaultError):
    """Raised when a member or record does not resolve under the acting user."""


class InternalError(FamilyVaultError):
    """Raised at outer boundaries when the underlying storage fails."""
