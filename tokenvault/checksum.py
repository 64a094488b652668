"""
Checksum Verifier — CRC32C (Castagnoli) over byte payloads.

The key-management service computes the same checksum independently, so the
values exchanged on each request/response can be cross-checked to detect
in-transit corruption.
"""
from typing import Optional

import google_crc32c


def checksum(data: bytes) -> int:
    """Return the CRC32C of ``data`` as an unsigned 32-bit integer.

    Args:
        data: Bytes to checksum.

    Returns:
        CRC32C value in the range [0, 2**32).
    """
    return google_crc32c.value(bytes(data))


def verify(data: bytes, expected: Optional[int]) -> bool:
    """Check ``data`` against a checksum reported by a remote peer.

    A missing checksum never verifies.
    """
    if expected is None:
        return False
    return checksum(data) == int(expected)
