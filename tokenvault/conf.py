"""
Vault Configuration — validated settings for the tokenization engine.

Reads settings from environment variables:
    TOKENVAULT_KEY_NAME = projects/*/locations/*/keyRings/*/cryptoKeys/*
    TOKENVAULT_NAMESPACE = <store namespace, default "stage">
    TOKENVAULT_KMS_BACKEND = local | gcp
    TOKENVAULT_STORE_BACKEND = memory | datastore
    TOKENVAULT_PROJECT_ID = <Google Cloud project, required for datastore>
    TOKENVAULT_TIMEOUT = <seconds per remote call, default 10>
    TOKENVAULT_LOCAL_MASTER_KEY = <base64-encoded 32-byte key, local KMS only>

Security Note:
    Never log key material. Only log key names and backend choices.
"""
import os
import base64
import binascii
import secrets
import logging
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .kms.base import parse_crypto_key_path

logger = logging.getLogger("tokenvault.conf")

_ENV_PREFIX = "TOKENVAULT_"
MASTER_KEY_LENGTH = 32


def load_master_key(name: str = f"{_ENV_PREFIX}LOCAL_MASTER_KEY") -> Optional[bytes]:
    """Load the local KMS master key from the environment.

    Returns:
        Raw 32-byte key, or None if the variable is not set.

    Raises:
        ValueError: If the value is not base64 or does not decode to 32 bytes.
    """
    value = os.environ.get(name)
    if value is None:
        return None
    try:
        key_bytes = base64.b64decode(value, validate=True)
    except binascii.Error as err:
        raise ValueError(f"{name} is not valid base64") from err
    if len(key_bytes) != MASTER_KEY_LENGTH:
        raise ValueError(
            f"{name} must decode to exactly {MASTER_KEY_LENGTH} bytes, "
            f"got {len(key_bytes)}"
        )
    return key_bytes


def generate_master_key() -> str:
    """Generate a random 32-byte master key and return as base64 string.

    This is a utility for operators to generate local KMS keys.
    """
    return base64.b64encode(secrets.token_bytes(MASTER_KEY_LENGTH)).decode("ascii")


class VaultConfig(BaseModel):
    """Validated vault configuration."""

    key_name: str
    namespace: str = Field(default="stage", min_length=1)
    kind: str = Field(default="Token", min_length=1)
    kms_backend: str = Field(default="local")
    store_backend: str = Field(default="memory")
    project_id: Optional[str] = None
    timeout: float = Field(default=10.0, gt=0)
    local_master_key: Optional[bytes] = Field(default=None, repr=False)

    @field_validator("key_name")
    @classmethod
    def validate_key_name(cls, v: str) -> str:
        """Validate the crypto key name is fully qualified."""
        parse_crypto_key_path(v)
        return v

    @field_validator("kms_backend")
    @classmethod
    def validate_kms_backend(cls, v: str) -> str:
        if v not in ("local", "gcp"):
            raise ValueError(f"Unsupported KMS backend: {v}")
        return v

    @field_validator("store_backend")
    @classmethod
    def validate_store_backend(cls, v: str) -> str:
        if v not in ("memory", "datastore"):
            raise ValueError(f"Unsupported store backend: {v}")
        return v

    @model_validator(mode="after")
    def validate_backend_settings(self) -> "VaultConfig":
        """Ensure each selected backend has what it needs."""
        if self.kms_backend == "local":
            if self.local_master_key is None:
                raise ValueError("local KMS backend requires local_master_key")
            if len(self.local_master_key) != MASTER_KEY_LENGTH:
                raise ValueError(
                    f"local_master_key must be exactly {MASTER_KEY_LENGTH} bytes"
                )
        if self.store_backend == "datastore" and not self.project_id:
            raise ValueError("datastore store backend requires project_id")
        return self

    @classmethod
    def from_env(cls) -> "VaultConfig":
        """Create VaultConfig by loading values from environment.

        Raises:
            RuntimeError: If a variable required by the selected backends
                is not set.
        """
        key_name = os.environ.get(f"{_ENV_PREFIX}KEY_NAME")
        if not key_name:
            raise RuntimeError(
                f"{_ENV_PREFIX}KEY_NAME environment variable is not set"
            )
        kms_backend = os.environ.get(f"{_ENV_PREFIX}KMS_BACKEND", "local")
        store_backend = os.environ.get(f"{_ENV_PREFIX}STORE_BACKEND", "memory")
        project_id = os.environ.get(f"{_ENV_PREFIX}PROJECT_ID")
        local_master_key = load_master_key()
        if kms_backend == "local" and local_master_key is None:
            raise RuntimeError(
                f"{_ENV_PREFIX}LOCAL_MASTER_KEY environment variable is not set"
            )
        if store_backend == "datastore" and not project_id:
            raise RuntimeError(
                f"{_ENV_PREFIX}PROJECT_ID environment variable is not set"
            )
        config = cls(
            key_name=key_name,
            namespace=os.environ.get(f"{_ENV_PREFIX}NAMESPACE", "stage"),
            kms_backend=kms_backend,
            store_backend=store_backend,
            project_id=project_id,
            timeout=float(os.environ.get(f"{_ENV_PREFIX}TIMEOUT", "10")),
            local_master_key=local_master_key,
        )
        logger.debug(
            "Loaded vault config: key=%s namespace=%s kms=%s store=%s",
            config.key_name, config.namespace,
            config.kms_backend, config.store_backend,
        )
        return config
