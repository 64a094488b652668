"""
Envelope Crypto Client — encrypt/decrypt opaque payloads through a KMS.

Every call is checksum-verified end to end:

- encrypt: the CRC32C of the plaintext travels with the request and the
  service reports whether it matched; the CRC32C the service reports for
  the ciphertext is checked against a locally recomputed one.
- decrypt: the CRC32C of the ciphertext travels with the request; the
  CRC32C the service reports for the plaintext is checked locally. The
  protocol has no request-side flag on decrypt.

The ``verified_plaintext_crc32c`` flag is only a hint from the remote side;
the local recomputation is always performed.

Security Note:
    Never log plaintext or ciphertext values. Only log key names and sizes.
"""
import asyncio
import logging
from typing import Optional

from .checksum import checksum, verify
from .exceptions import IntegrityError, TransportError
from .kms.base import KeyManagementService, parse_crypto_key_path

logger = logging.getLogger("tokenvault.crypto")

DEFAULT_TIMEOUT = 10.0


class EnvelopeCrypto:
    """Checksum-verified encryption under a single crypto key.

    Args:
        kms: Key-management backend.
        key_name: Fully-qualified crypto key name.
        timeout: Default bound, in seconds, of each remote call.
    """

    def __init__(
        self,
        kms: KeyManagementService,
        key_name: str,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        parse_crypto_key_path(key_name)
        self._kms = kms
        self._key_name = key_name
        self._timeout = timeout

    @property
    def key_name(self) -> str:
        return self._key_name

    async def _call(self, operation: str, coro, timeout: Optional[float]):
        try:
            return await asyncio.wait_for(
                coro, timeout=self._timeout if timeout is None else timeout
            )
        except asyncio.TimeoutError as err:
            logger.warning(
                "KMS %s timed out for key=%s", operation, self._key_name
            )
            raise TransportError(
                f"{operation}: key-management call timed out"
            ) from err
        except TransportError as err:
            logger.warning(
                "KMS %s failed for key=%s: %s", operation, self._key_name, err
            )
            raise

    async def encrypt(
        self, plaintext: bytes, *, timeout: Optional[float] = None
    ) -> bytes:
        """Encrypt ``plaintext`` under the configured key.

        Args:
            plaintext: Opaque bytes to encrypt.
            timeout: Per-call override of the default timeout.

        Returns:
            Ciphertext exactly as produced by the service.

        Raises:
            IntegrityError: If either direction was corrupted in-transit.
            TransportError: If the call fails or times out.
        """
        result = await self._call(
            "Encrypt",
            self._kms.encrypt(self._key_name, plaintext, checksum(plaintext)),
            timeout,
        )
        if not result.verified_plaintext_crc32c:
            logger.error(
                "Encrypt: plaintext checksum not verified by KMS (key=%s)",
                self._key_name,
            )
            raise IntegrityError("Encrypt: request corrupted in-transit")
        if not verify(result.ciphertext, result.ciphertext_crc32c):
            logger.error(
                "Encrypt: ciphertext checksum mismatch (key=%s)", self._key_name
            )
            raise IntegrityError("Encrypt: response corrupted in-transit")
        logger.debug(
            "Encrypted %d bytes with key=%s", len(plaintext), self._key_name
        )
        return result.ciphertext

    async def decrypt(
        self, ciphertext: bytes, *, timeout: Optional[float] = None
    ) -> bytes:
        """Decrypt ``ciphertext`` produced by :meth:`encrypt`.

        Raises:
            IntegrityError: If the returned plaintext was corrupted in-transit.
            TransportError: If the call fails or times out.
        """
        result = await self._call(
            "Decrypt",
            self._kms.decrypt(self._key_name, ciphertext, checksum(ciphertext)),
            timeout,
        )
        if not verify(result.plaintext, result.plaintext_crc32c):
            logger.error(
                "Decrypt: plaintext checksum mismatch (key=%s)", self._key_name
            )
            raise IntegrityError("Decrypt: response corrupted in-transit")
        logger.debug(
            "Decrypted %d bytes with key=%s", len(ciphertext), self._key_name
        )
        return result.plaintext

    async def close(self) -> None:
        await self._kms.close()
