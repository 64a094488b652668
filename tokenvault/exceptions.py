"""
TokenVault Exceptions.

Exception hierarchy:
    TokenVaultError (base)
    ├── TransportError        — KMS call failed, was refused or timed out
    ├── IntegrityError        — CRC32C mismatch or unverified request checksum
    ├── NotFoundError         — no token stored under the requested id
    ├── DeserializationError  — decrypted bytes are not a valid card
    └── StorageError          — key-value backend failure (other than not-found)

None of these are retried inside the vault; retry policy belongs to the caller.
"""
from typing import Optional


class TokenVaultError(Exception):
    """Base exception for all TokenVault errors."""

    def __init__(self, detail: str = "A vault error occurred"):
        self.detail = detail
        super().__init__(self.detail)


class TransportError(TokenVaultError):
    """Raised when a remote call to the key-management service fails."""


class IntegrityError(TokenVaultError):
    """Raised when a payload fails CRC32C verification in-transit."""


class NotFoundError(TokenVaultError):
    """Raised when a token id is unknown to the store."""

    def __init__(self, token_id: str, detail: Optional[str] = None):
        self.token_id = token_id
        super().__init__(detail or f"Token {token_id} not found")


class DeserializationError(TokenVaultError):
    """Raised when decrypted bytes cannot be parsed back into a Card.

    Indicates corrupted storage or a key mismatch; never retried.
    """


class StorageError(TokenVaultError):
    """Raised when the key-value backend fails."""
