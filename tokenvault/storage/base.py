"""Key-value boundary used by the token store."""
from abc import ABC, abstractmethod
from typing import Any, Iterable, Optional


class KeyValueBackend(ABC):
    """Namespaced key-value store.

    Records are addressed by ``(namespace, kind, id)``. ``get`` returns
    ``None`` for a missing record; any other failure raises
    :class:`~tokenvault.exceptions.StorageError`.
    """

    @abstractmethod
    async def put(
        self,
        namespace: str,
        kind: str,
        id: str,
        record: dict[str, Any],
        exclude_from_indexes: Iterable[str] = (),
    ) -> None:
        ...

    @abstractmethod
    async def get(
        self, namespace: str, kind: str, id: str
    ) -> Optional[dict[str, Any]]:
        ...

    async def close(self) -> None:
        """Release backend resources. No-op by default."""
