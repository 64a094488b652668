"""
Local KMS — in-process key-management service for development and tests.

Behaves like the remote service: each crypto key name maps to its own
AES-256-GCM key, derived with HKDF-SHA256 from a single master key using the
key name as context, and request checksums are verified before any
cryptographic work is done.

Ciphertext format: [nonce 12B][encrypted_payload + GCM_tag 16B]

Security Note:
    Never log plaintext, ciphertext or key material. Only log key names.
"""
import os
import logging
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from ..checksum import checksum, verify
from ..exceptions import TransportError
from .base import (
    DecryptResult,
    EncryptResult,
    KeyManagementService,
    parse_crypto_key_path,
)

logger = logging.getLogger("tokenvault.kms")

NONCE_SIZE = 12  # 96-bit nonce
TAG_SIZE = 16
KEY_LENGTH = 32  # AES-256


def derive_key(master_key: bytes, name: str) -> bytes:
    """Derive the 32-byte AEAD key of crypto key ``name``.

    Args:
        master_key: Raw 32-byte master key.
        name: Fully-qualified crypto key name, used for domain separation.

    Returns:
        32-byte derived key.
    """
    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=None,  # deterministic: the same name always yields the same key
        info=f"tokenvault-kms:{name}".encode("utf-8"),
    )
    return hkdf.derive(master_key)


class LocalKeyManagementService(KeyManagementService):
    """AES-256-GCM key-management service running in the current process.

    Args:
        master_key: Raw 32-byte master key.
        key_names: Crypto key names this service accepts. When empty, any
            well-formed key name is accepted.
    """

    def __init__(self, master_key: bytes, key_names: Optional[list[str]] = None):
        if len(master_key) != KEY_LENGTH:
            raise ValueError(
                f"master_key must be exactly {KEY_LENGTH} bytes, "
                f"got {len(master_key)}"
            )
        self._master_key = master_key
        self._key_names = frozenset(key_names or ())
        self._ciphers: dict[str, AESGCM] = {}

    def _cipher(self, name: str) -> AESGCM:
        cipher = self._ciphers.get(name)
        if cipher is not None:
            return cipher
        try:
            parse_crypto_key_path(name)
        except ValueError as err:
            raise TransportError(f"INVALID_ARGUMENT: {err}") from err
        if self._key_names and name not in self._key_names:
            raise TransportError(f"NOT_FOUND: crypto key {name} not found")
        cipher = AESGCM(derive_key(self._master_key, name))
        self._ciphers[name] = cipher
        return cipher

    async def encrypt(
        self, name: str, plaintext: bytes, plaintext_crc32c: int
    ) -> EncryptResult:
        cipher = self._cipher(name)
        verified = verify(plaintext, plaintext_crc32c)
        if not verified:
            logger.warning(
                "Local KMS: plaintext checksum mismatch for key=%s", name
            )
            return EncryptResult(
                ciphertext=b"",
                ciphertext_crc32c=checksum(b""),
                verified_plaintext_crc32c=False,
            )
        nonce = os.urandom(NONCE_SIZE)
        ciphertext = nonce + cipher.encrypt(nonce, plaintext, None)
        return EncryptResult(
            ciphertext=ciphertext,
            ciphertext_crc32c=checksum(ciphertext),
            verified_plaintext_crc32c=True,
        )

    async def decrypt(
        self, name: str, ciphertext: bytes, ciphertext_crc32c: int
    ) -> DecryptResult:
        cipher = self._cipher(name)
        if not verify(ciphertext, ciphertext_crc32c):
            raise TransportError(
                "INVALID_ARGUMENT: ciphertext checksum does not match "
                "the received ciphertext"
            )
        if len(ciphertext) < NONCE_SIZE + TAG_SIZE:
            raise TransportError(
                f"INVALID_ARGUMENT: ciphertext too short: {len(ciphertext)} "
                f"bytes (minimum {NONCE_SIZE + TAG_SIZE})"
            )
        nonce = ciphertext[:NONCE_SIZE]
        try:
            plaintext = cipher.decrypt(nonce, ciphertext[NONCE_SIZE:], None)
        except InvalidTag as err:
            raise TransportError(
                f"INVALID_ARGUMENT: decryption failed for key {name}"
            ) from err
        return DecryptResult(
            plaintext=plaintext,
            plaintext_crc32c=checksum(plaintext),
        )
