"""
Tokenization Engine — Card ↔ Token.

- ``tokenize(card, merchant_id, provider)`` — serialize, encrypt, store
- ``detokenize(token_id)`` — load, decrypt, deserialize
- ``lookup(token_id)`` — load the stored record without decrypting

Each call performs at most one KMS call and one store call, in sequence.
Errors propagate unchanged; a token id is only ever returned once its record
has been stored.

Security Note:
    Never log card data, plaintext or ciphertext. Only log token ids,
    merchant ids and providers.
"""
import logging
from typing import Optional

from .crypto import EnvelopeCrypto
from .exceptions import DeserializationError, NotFoundError
from .models import Card, Token, generate_token_id, utcnow
from .store import TokenStore

logger = logging.getLogger("tokenvault.engine")


class Tokenizer:
    """Replaces cards with tokens and back.

    Args:
        crypto: Envelope crypto client bound to the deployment's key.
        store: Token store bound to the deployment's namespace.
    """

    def __init__(self, crypto: EnvelopeCrypto, store: TokenStore):
        self._crypto = crypto
        self._store = store

    async def __aenter__(self) -> "Tokenizer":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    @property
    def crypto(self) -> EnvelopeCrypto:
        return self._crypto

    @property
    def store(self) -> TokenStore:
        return self._store

    async def tokenize(
        self,
        card: Card,
        merchant_id: str,
        provider: str,
        *,
        card_id: str = "",
        token_provider: str = "",
        timeout: Optional[float] = None,
    ) -> Token:
        """Encrypt and store ``card``, returning its token.

        Args:
            card: Card to tokenize.
            merchant_id: Owning merchant.
            provider: Tokenization provider/scheme name.
            card_id: Optional secondary card identifier.
            token_provider: Optional issuing mechanism identifier.
            timeout: Per-call bound of each remote call.

        Returns:
            The persisted Token.

        Raises:
            IntegrityError: If the KMS exchange was corrupted.
            TransportError: If the KMS call failed.
            StorageError: If the token could not be stored.
        """
        ciphertext = await self._crypto.encrypt(card.to_bytes(), timeout=timeout)
        token = Token(
            id=generate_token_id(),
            merchant_id=merchant_id,
            provider=provider,
            card_id=card_id,
            token_provider=token_provider,
            data_card=ciphertext,
            date=utcnow(),
        )
        await self._store.put(token, timeout=timeout)
        logger.info(
            "Tokenized card: id=%s merchant=%s provider=%s",
            token.id, merchant_id, provider,
        )
        return token

    async def lookup(self, token_id: str, *, timeout: Optional[float] = None) -> Token:
        """Return the stored token without decrypting it.

        Raises:
            NotFoundError: If no token exists under ``token_id``.
            StorageError: On backend failure.
        """
        token = await self._store.get(token_id, timeout=timeout)
        if token is None:
            logger.info("Token not found: id=%s", token_id)
            raise NotFoundError(token_id)
        return token

    async def detokenize(
        self, token_id: str, *, timeout: Optional[float] = None
    ) -> Card:
        """Recover the card behind ``token_id``.

        Raises:
            NotFoundError: If no token exists under ``token_id``.
            IntegrityError: If the KMS response was corrupted.
            TransportError: If the KMS call failed.
            DeserializationError: If the decrypted bytes are not a card.
            StorageError: On backend failure.
        """
        token = await self.lookup(token_id, timeout=timeout)
        plaintext = await self._crypto.decrypt(token.data_card, timeout=timeout)
        try:
            card = Card.from_bytes(plaintext)
        except DeserializationError:
            logger.error("Token %s decrypted to an unreadable card", token.id)
            raise
        logger.info(
            "Detokenized card: id=%s merchant=%s", token.id, token.merchant_id
        )
        return card

    async def close(self) -> None:
        await self._crypto.close()
        await self._store.close()
