"""Build a Tokenizer and its clients from a VaultConfig."""
import logging
from typing import Optional

from .conf import VaultConfig
from .crypto import EnvelopeCrypto
from .engine import Tokenizer
from .kms.base import KeyManagementService
from .kms.local import LocalKeyManagementService
from .storage.base import KeyValueBackend
from .storage.memory import MemoryBackend
from .store import TokenStore

logger = logging.getLogger("tokenvault")


def create_kms(config: VaultConfig) -> KeyManagementService:
    if config.kms_backend == "gcp":
        from .kms.gcp import CloudKeyManagementService
        return CloudKeyManagementService()
    return LocalKeyManagementService(
        config.local_master_key, key_names=[config.key_name]
    )


def create_backend(config: VaultConfig) -> KeyValueBackend:
    if config.store_backend == "datastore":
        from .storage.datastore import DatastoreBackend
        return DatastoreBackend(project_id=config.project_id)
    return MemoryBackend()


def create_tokenizer(
    config: Optional[VaultConfig] = None,
    *,
    kms: Optional[KeyManagementService] = None,
    backend: Optional[KeyValueBackend] = None,
) -> Tokenizer:
    """Wire a Tokenizer.

    Args:
        config: Vault configuration; loaded from the environment if omitted.
        kms: Overrides the KMS backend selected by ``config``.
        backend: Overrides the store backend selected by ``config``.

    Returns:
        A ready Tokenizer. Close it (or use it as an async context manager)
        to release its clients.
    """
    if config is None:
        config = VaultConfig.from_env()
    if kms is None:
        kms = create_kms(config)
    if backend is None:
        backend = create_backend(config)
    crypto = EnvelopeCrypto(kms, config.key_name, timeout=config.timeout)
    store = TokenStore(
        backend,
        namespace=config.namespace,
        kind=config.kind,
        timeout=config.timeout,
    )
    logger.info(
        "Tokenizer ready: key=%s namespace=%s", config.key_name, config.namespace
    )
    return Tokenizer(crypto, store)
