"""
Token Store — persistence of Token records in a namespaced key-value store.

Records live under ``(namespace, "Token", token.id)``; the namespace (e.g. a
deployment stage) keeps tokens of different environments apart even when
their ids coincide.
"""
import asyncio
import logging
from typing import Optional

from pydantic import ValidationError

from .exceptions import StorageError
from .models import Token
from .storage.base import KeyValueBackend

logger = logging.getLogger("tokenvault.store")

DEFAULT_NAMESPACE = "stage"
TOKEN_KIND = "Token"
DEFAULT_TIMEOUT = 10.0

# Properties never used in queries; ciphertext blobs also exceed index limits.
_UNINDEXED = ("card_id", "token_provider", "data_card", "date")


class TokenStore:
    """Upsert and fetch Token records.

    Args:
        backend: Key-value backend.
        namespace: Partition for this deployment.
        kind: Record kind.
        timeout: Default bound, in seconds, of each backend call.
    """

    def __init__(
        self,
        backend: KeyValueBackend,
        namespace: str = DEFAULT_NAMESPACE,
        kind: str = TOKEN_KIND,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self._backend = backend
        self._namespace = namespace
        self._kind = kind
        self._timeout = timeout

    @property
    def namespace(self) -> str:
        return self._namespace

    async def _call(self, operation: str, token_id: str, coro, timeout: Optional[float]):
        try:
            return await asyncio.wait_for(
                coro, timeout=self._timeout if timeout is None else timeout
            )
        except asyncio.TimeoutError as err:
            logger.warning(
                "Store %s timed out: namespace=%s id=%s",
                operation, self._namespace, token_id,
            )
            raise StorageError(f"{operation} timed out for token {token_id}") from err
        except StorageError as err:
            logger.warning(
                "Store %s failed: namespace=%s id=%s: %s",
                operation, self._namespace, token_id, err,
            )
            raise

    async def put(self, token: Token, *, timeout: Optional[float] = None) -> None:
        """Upsert ``token``.

        Raises:
            ValueError: If the token has no id.
            StorageError: On backend failure or timeout.
        """
        if not token.id:
            raise ValueError("Token id must be assigned before it is stored")
        await self._call(
            "put",
            token.id,
            self._backend.put(
                self._namespace,
                self._kind,
                token.id,
                token.to_record(),
                exclude_from_indexes=_UNINDEXED,
            ),
            timeout,
        )
        logger.debug("Stored token: namespace=%s id=%s", self._namespace, token.id)

    async def get(
        self, token_id: str, *, timeout: Optional[float] = None
    ) -> Optional[Token]:
        """Fetch a token by id.

        Returns:
            The stored Token, or None when no record exists.

        Raises:
            StorageError: On backend failure, timeout, or an unreadable record.
        """
        record = await self._call(
            "get",
            token_id,
            self._backend.get(self._namespace, self._kind, token_id),
            timeout,
        )
        if record is None:
            return None
        try:
            return Token.from_record(record)
        except ValidationError as err:
            logger.error(
                "Unreadable token record: namespace=%s id=%s",
                self._namespace, token_id,
            )
            raise StorageError(f"Stored record {token_id} is not a valid token") from err

    async def close(self) -> None:
        await self._backend.close()
