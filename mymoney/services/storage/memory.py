"""In-memory blob store, for tests and sessions that need no durability."""

from typing import Optional

from mymoney.services.storage.interface import BlobStoreInterface


class InMemoryBlobStore(BlobStoreInterface):
    """Dict-backed blob store. Values live as long as the instance."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)
