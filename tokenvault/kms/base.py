"""
KMS boundary — the two remote operations the envelope client relies on.

A backend receives the fully-qualified key name on every call, together with
the CRC32C of the payload it is sent, and reports checksums of what it
returns so the caller can verify both directions.
"""
import re
from abc import ABC, abstractmethod
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


_KEY_PATH_PATTERN = re.compile(
    r"^projects/(?P<project>[^/]+)/locations/(?P<location>[^/]+)"
    r"/keyRings/(?P<key_ring>[^/]+)/cryptoKeys/(?P<crypto_key>[^/]+)$"
)


def crypto_key_path(
    project: str, location: str, key_ring: str, crypto_key: str
) -> str:
    """Return the fully-qualified name of a crypto key."""
    return (
        f"projects/{project}/locations/{location}"
        f"/keyRings/{key_ring}/cryptoKeys/{crypto_key}"
    )


def parse_crypto_key_path(name: str) -> dict[str, str]:
    """Split a crypto key name into its components.

    Raises:
        ValueError: If ``name`` is not a valid crypto key path.
    """
    match = _KEY_PATH_PATTERN.match(name)
    if not match:
        raise ValueError(
            f"Invalid crypto key name: {name!r} (expected "
            "projects/*/locations/*/keyRings/*/cryptoKeys/*)"
        )
    return match.groupdict()


class EncryptResult(BaseModel):
    """Response of an Encrypt call."""

    model_config = ConfigDict(frozen=True)

    ciphertext: bytes = Field(repr=False)
    ciphertext_crc32c: Optional[int] = None
    verified_plaintext_crc32c: bool = False


class DecryptResult(BaseModel):
    """Response of a Decrypt call."""

    model_config = ConfigDict(frozen=True)

    plaintext: bytes = Field(repr=False)
    plaintext_crc32c: Optional[int] = None


class KeyManagementService(ABC):
    """Abstract key-management service.

    Implementations raise :class:`~tokenvault.exceptions.TransportError` when
    the remote call fails; they never raise on checksum mismatches of their
    own responses, which the caller verifies.
    """

    @abstractmethod
    async def encrypt(
        self, name: str, plaintext: bytes, plaintext_crc32c: int
    ) -> EncryptResult:
        ...

    @abstractmethod
    async def decrypt(
        self, name: str, ciphertext: bytes, ciphertext_crc32c: int
    ) -> DecryptResult:
        ...

    async def close(self) -> None:
        """Release transport resources. No-op by default."""
