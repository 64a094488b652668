"""
Cloud KMS backend — adapter over ``google.cloud.kms``.

The async client is created on first use, so building a backend never
touches credentials.
"""
import logging
from typing import Any, Optional

from google.api_core import exceptions as api_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import kms

from ..exceptions import TransportError
from .base import DecryptResult, EncryptResult, KeyManagementService

logger = logging.getLogger("tokenvault.kms")

_CLIENT_ERRORS = (api_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError)


class CloudKeyManagementService(KeyManagementService):
    """Google Cloud KMS through ``KeyManagementServiceAsyncClient``.

    Args:
        client: Optional pre-built async client (mainly for tests).
    """

    def __init__(self, client: Optional[Any] = None):
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = kms.KeyManagementServiceAsyncClient()
        return self._client

    async def encrypt(
        self, name: str, plaintext: bytes, plaintext_crc32c: int
    ) -> EncryptResult:
        try:
            response = await self.client.encrypt(
                request={
                    "name": name,
                    "plaintext": plaintext,
                    "plaintext_crc32c": plaintext_crc32c,
                }
            )
        except _CLIENT_ERRORS as err:
            raise TransportError(f"failed to encrypt: {err}") from err
        return EncryptResult(
            ciphertext=response.ciphertext,
            ciphertext_crc32c=response.ciphertext_crc32c,
            verified_plaintext_crc32c=response.verified_plaintext_crc32c,
        )

    async def decrypt(
        self, name: str, ciphertext: bytes, ciphertext_crc32c: int
    ) -> DecryptResult:
        try:
            response = await self.client.decrypt(
                request={
                    "name": name,
                    "ciphertext": ciphertext,
                    "ciphertext_crc32c": ciphertext_crc32c,
                }
            )
        except _CLIENT_ERRORS as err:
            raise TransportError(f"failed to decrypt ciphertext: {err}") from err
        return DecryptResult(
            plaintext=response.plaintext,
            plaintext_crc32c=response.plaintext_crc32c,
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.transport.close()
            self._client = None
