"""
Key-management backends.

``CloudKeyManagementService`` lives in :mod:`tokenvault.kms.gcp` and is only
imported when requested.
"""
from .base import (
    KeyManagementService,
    EncryptResult,
    DecryptResult,
    crypto_key_path,
    parse_crypto_key_path,
)
from .local import LocalKeyManagementService

__all__ = [
    "KeyManagementService",
    "EncryptResult",
    "DecryptResult",
    "LocalKeyManagementService",
    "crypto_key_path",
    "parse_crypto_key_path",
]
