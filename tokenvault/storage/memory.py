"""In-process key-value backend, for development and tests."""
import copy
from typing import Any, Iterable, Optional

from .base import KeyValueBackend


class MemoryBackend(KeyValueBackend):
    """Dictionary-backed store. Records are copied in and out."""

    def __init__(self):
        self._records: dict[tuple[str, str, str], dict[str, Any]] = {}

    def __len__(self) -> int:
        return len(self._records)

    async def put(
        self,
        namespace: str,
        kind: str,
        id: str,
        record: dict[str, Any],
        exclude_from_indexes: Iterable[str] = (),
    ) -> None:
        self._records[(namespace, kind, id)] = copy.deepcopy(record)

    async def get(
        self, namespace: str, kind: str, id: str
    ) -> Optional[dict[str, Any]]:
        record = self._records.get((namespace, kind, id))
        if record is None:
            return None
        return copy.deepcopy(record)
