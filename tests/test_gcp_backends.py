"""Tests for the Google Cloud KMS and Datastore adapters, with mocked clients."""
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from google.api_core import exceptions as api_exceptions
from google.auth import exceptions as auth_exceptions

from tokenvault.checksum import checksum
from tokenvault.crypto import EnvelopeCrypto
from tokenvault.exceptions import IntegrityError, StorageError, TransportError
from tokenvault.kms import gcp
from tokenvault.kms.gcp import CloudKeyManagementService
from tokenvault.storage import datastore as datastore_backend
from tokenvault.storage.datastore import DatastoreBackend


@pytest.fixture
def kms_client():
    client = MagicMock()
    client.encrypt = AsyncMock(
        return_value=SimpleNamespace(
            ciphertext=b"ciphertext",
            ciphertext_crc32c=checksum(b"ciphertext"),
            verified_plaintext_crc32c=True,
        )
    )
    client.decrypt = AsyncMock(
        return_value=SimpleNamespace(
            plaintext=b"plaintext",
            plaintext_crc32c=checksum(b"plaintext"),
        )
    )
    client.transport.close = AsyncMock()
    return client


class TestCloudKeyManagementService:
    """Request building and error mapping."""

    async def test_encrypt_request(self, kms_client, key_name):
        kms = CloudKeyManagementService(client=kms_client)
        result = await kms.encrypt(key_name, b"plaintext", checksum(b"plaintext"))
        kms_client.encrypt.assert_awaited_once_with(
            request={
                "name": key_name,
                "plaintext": b"plaintext",
                "plaintext_crc32c": checksum(b"plaintext"),
            }
        )
        assert result.ciphertext == b"ciphertext"
        assert result.verified_plaintext_crc32c is True

    async def test_decrypt_request(self, kms_client, key_name):
        kms = CloudKeyManagementService(client=kms_client)
        result = await kms.decrypt(key_name, b"ciphertext", checksum(b"ciphertext"))
        kms_client.decrypt.assert_awaited_once_with(
            request={
                "name": key_name,
                "ciphertext": b"ciphertext",
                "ciphertext_crc32c": checksum(b"ciphertext"),
            }
        )
        assert result.plaintext == b"plaintext"

    async def test_api_error_is_transport_error(self, kms_client, key_name):
        kms_client.encrypt.side_effect = api_exceptions.ServiceUnavailable("down")
        kms = CloudKeyManagementService(client=kms_client)
        with pytest.raises(TransportError, match="failed to encrypt"):
            await kms.encrypt(key_name, b"x", checksum(b"x"))

    async def test_auth_error_is_transport_error(self, kms_client, key_name):
        kms_client.encrypt.side_effect = auth_exceptions.RefreshError("token expired")
        kms_client.decrypt.side_effect = auth_exceptions.RefreshError("token expired")
        kms = CloudKeyManagementService(client=kms_client)
        with pytest.raises(TransportError, match="failed to encrypt"):
            await kms.encrypt(key_name, b"x", checksum(b"x"))
        with pytest.raises(TransportError, match="failed to decrypt"):
            await kms.decrypt(key_name, b"x", checksum(b"x"))

    async def test_missing_credentials_is_transport_error(self, monkeypatch, key_name):
        def no_credentials(*args, **kwargs):
            raise auth_exceptions.DefaultCredentialsError("no credentials")

        monkeypatch.setattr(gcp.kms, "KeyManagementServiceAsyncClient", no_credentials)
        with pytest.raises(TransportError):
            await CloudKeyManagementService().encrypt(key_name, b"x", checksum(b"x"))

    async def test_unverified_response_through_client(self, kms_client, key_name):
        kms_client.encrypt.return_value = SimpleNamespace(
            ciphertext=b"ciphertext",
            ciphertext_crc32c=checksum(b"ciphertext"),
            verified_plaintext_crc32c=False,
        )
        crypto = EnvelopeCrypto(CloudKeyManagementService(client=kms_client), key_name)
        with pytest.raises(IntegrityError, match="request corrupted"):
            await crypto.encrypt(b"plaintext")

    async def test_close(self, kms_client):
        kms = CloudKeyManagementService(client=kms_client)
        await kms.close()
        kms_client.transport.close.assert_awaited_once()


class TestDatastoreBackend:
    """Entity mapping and error mapping."""

    @pytest.fixture
    def ds_client(self):
        client = MagicMock()
        client.key.side_effect = lambda kind, id, namespace=None: (namespace, kind, id)
        return client

    async def test_put_entity(self, ds_client):
        backend = DatastoreBackend(client=ds_client)
        await backend.put(
            "stage", "Token", "abc",
            {"id": "abc", "data_card": b"\x00"},
            exclude_from_indexes=("data_card",),
        )
        ds_client.key.assert_called_with("Token", "abc", namespace="stage")
        entity = ds_client.put.call_args.args[0]
        assert entity.key == ("stage", "Token", "abc")
        assert entity["data_card"] == b"\x00"
        assert entity.exclude_from_indexes == {"data_card"}

    async def test_get_missing(self, ds_client):
        ds_client.get.return_value = None
        backend = DatastoreBackend(client=ds_client)
        assert await backend.get("stage", "Token", "abc") is None

    async def test_get_existing(self, ds_client):
        ds_client.get.return_value = {"id": "abc", "merchant_id": "m1"}
        backend = DatastoreBackend(client=ds_client)
        assert await backend.get("stage", "Token", "abc") == {
            "id": "abc", "merchant_id": "m1",
        }

    async def test_api_error_is_storage_error(self, ds_client):
        ds_client.put.side_effect = api_exceptions.ServiceUnavailable("down")
        ds_client.get.side_effect = api_exceptions.DeadlineExceeded("slow")
        backend = DatastoreBackend(client=ds_client)
        with pytest.raises(StorageError):
            await backend.put("stage", "Token", "abc", {"id": "abc"})
        with pytest.raises(StorageError):
            await backend.get("stage", "Token", "abc")

    async def test_auth_error_is_storage_error(self, ds_client):
        ds_client.put.side_effect = auth_exceptions.RefreshError("token expired")
        ds_client.get.side_effect = auth_exceptions.RefreshError("token expired")
        backend = DatastoreBackend(client=ds_client)
        with pytest.raises(StorageError):
            await backend.put("stage", "Token", "abc", {"id": "abc"})
        with pytest.raises(StorageError):
            await backend.get("stage", "Token", "abc")

    async def test_missing_credentials_is_storage_error(self, monkeypatch):
        def no_credentials(*args, **kwargs):
            raise auth_exceptions.DefaultCredentialsError("no credentials")

        monkeypatch.setattr(datastore_backend.datastore, "Client", no_credentials)
        with pytest.raises(StorageError):
            await DatastoreBackend(project_id="test-project").get("stage", "Token", "abc")
