"""
Cloud Datastore backend — adapter over ``google.cloud.datastore``.

The Datastore client is synchronous; calls run in a worker thread so the
event loop is never blocked.
"""
import asyncio
import logging
from typing import Any, Iterable, Optional

from google.api_core import exceptions as api_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import datastore

from ..exceptions import StorageError
from .base import KeyValueBackend

logger = logging.getLogger("tokenvault.storage")

_CLIENT_ERRORS = (api_exceptions.GoogleAPIError, auth_exceptions.GoogleAuthError)


class DatastoreBackend(KeyValueBackend):
    """Records stored as Datastore entities keyed by ``(namespace, kind, id)``.

    Args:
        project_id: Google Cloud project holding the Datastore database.
        client: Optional pre-built ``datastore.Client`` (mainly for tests).
    """

    def __init__(self, project_id: Optional[str] = None, client: Optional[Any] = None):
        self._project_id = project_id
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = datastore.Client(project=self._project_id)
        return self._client

    def _put(
        self,
        namespace: str,
        kind: str,
        id: str,
        record: dict[str, Any],
        exclude_from_indexes: tuple[str, ...],
    ) -> None:
        key = self.client.key(kind, id, namespace=namespace)
        entity = datastore.Entity(key=key, exclude_from_indexes=exclude_from_indexes)
        entity.update(record)
        self.client.put(entity)

    def _get(self, namespace: str, kind: str, id: str) -> Optional[dict[str, Any]]:
        key = self.client.key(kind, id, namespace=namespace)
        entity = self.client.get(key)
        if entity is None:
            return None
        return dict(entity)

    async def put(
        self,
        namespace: str,
        kind: str,
        id: str,
        record: dict[str, Any],
        exclude_from_indexes: Iterable[str] = (),
    ) -> None:
        try:
            await asyncio.to_thread(
                self._put, namespace, kind, id, record, tuple(exclude_from_indexes)
            )
        except _CLIENT_ERRORS as err:
            raise StorageError(
                f"Datastore put failed for {kind}/{id}: {err}"
            ) from err

    async def get(
        self, namespace: str, kind: str, id: str
    ) -> Optional[dict[str, Any]]:
        try:
            return await asyncio.to_thread(self._get, namespace, kind, id)
        except _CLIENT_ERRORS as err:
            raise StorageError(
                f"Datastore get failed for {kind}/{id}: {err}"
            ) from err

    async def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
