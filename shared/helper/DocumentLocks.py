import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator


class DocumentLocks:
    """Per-document asyncio locks that are dropped once no task holds or awaits them."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._holders: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, document_id: str) -> AsyncIterator[None]:
        """Serialise the enclosed block against other holders of the same document."""
        lock = self._locks.setdefault(document_id, asyncio.Lock())
        self._holders[document_id] = self._holders.get(document_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[document_id] -= 1
            if not self._holders[document_id]:
                del self._holders[document_id]
                del self._locks[document_id]
