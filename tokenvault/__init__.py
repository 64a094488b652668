"""TokenVault — Tokenization of payment-card data.

Cards are replaced by opaque tokens; the card data itself is encrypted by a
key-management service under a centrally managed key, with CRC32C integrity
checks on every exchange, and stored in a namespaced key-value store.

Security Note (Threat Model):
    Card plaintext exists in process memory while a card is being tokenized
    or after it is detokenized. The vault never persists or logs it; key
    material never leaves the key-management service.
"""
from .version import __version__
from .checksum import checksum
from .conf import VaultConfig, generate_master_key
from .crypto import EnvelopeCrypto
from .engine import Tokenizer
from .exceptions import (
    TokenVaultError,
    TransportError,
    IntegrityError,
    NotFoundError,
    DeserializationError,
    StorageError,
)
from .factory import create_tokenizer
from .models import Card, Token
from .store import TokenStore

__all__ = [
    "__version__",
    "checksum",
    "VaultConfig",
    "generate_master_key",
    "EnvelopeCrypto",
    "Tokenizer",
    "TokenStore",
    "Card",
    "Token",
    "create_tokenizer",
    "TokenVaultError",
    "TransportError",
    "IntegrityError",
    "NotFoundError",
    "DeserializationError",
    "StorageError",
]
