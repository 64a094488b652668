"""
Shared fixtures for the TokenVault test suite.

The KMS and key-value boundaries are served by in-process implementations
(``LocalKeyManagementService`` and ``MemoryBackend``); see ``fakes.py`` for
the failure-injecting doubles.
"""
import base64

import pytest

from tokenvault.crypto import EnvelopeCrypto
from tokenvault.engine import Tokenizer
from tokenvault.kms.local import LocalKeyManagementService
from tokenvault.models import Card
from tokenvault.storage.memory import MemoryBackend
from tokenvault.store import TokenStore

from fakes import KEY_NAME, MASTER_KEY


@pytest.fixture
def key_name():
    return KEY_NAME


@pytest.fixture
def master_key():
    return MASTER_KEY


@pytest.fixture
def master_key_b64():
    return base64.b64encode(MASTER_KEY).decode("ascii")


@pytest.fixture
def local_kms():
    return LocalKeyManagementService(MASTER_KEY, key_names=[KEY_NAME])


@pytest.fixture
def crypto(local_kms):
    return EnvelopeCrypto(local_kms, KEY_NAME, timeout=2.0)


@pytest.fixture
def backend():
    return MemoryBackend()


@pytest.fixture
def store(backend):
    return TokenStore(backend, namespace="stage", timeout=2.0)


@pytest.fixture
def tokenizer(crypto, store):
    return Tokenizer(crypto, store)


@pytest.fixture
def card():
    return Card(
        number="4024007129267307",
        card_holder_name="JOHN DOE",
        expiration_month="10",
        expiration_year="30",
    )


@pytest.fixture
def accented_card():
    return Card(
        number="4024007129267307",
        card_holder_name="JOÃO DOS SANTOS ANDRÉ",
        expiration_month="10",
        expiration_year="30",
    )
