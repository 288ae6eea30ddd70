"""FIFO handoff of recorded chunks from the producer to the consumers.

States seen by a consumer:

* open with items  -> ``get`` returns the next chunk
* open and empty   -> ``get`` waits
* closed, drained  -> ``get`` raises ``QueueClosed``

Only the producer closes the queue, exactly once.  Each chunk is handed to
exactly one ``get`` caller.
"""

from __future__ import annotations

import asyncio

from .models import Chunk

_CLOSED = object()


class QueueClosed(Exception):
    """Raised by ``ChunkQueue.get`` once the queue is closed and drained."""


class ChunkQueue:
    def __init__(self, maxsize: int = 0):
        # one extra slot so close() never waits behind a full queue
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize + 1 if maxsize > 0 else 0)
        self._maxsize = maxsize
        self._closed = False
        self._slots = asyncio.Semaphore(maxsize) if maxsize > 0 else None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def maxsize(self) -> int:
        return self._maxsize

    def qsize(self) -> int:
        n = self._queue.qsize()
        if self._closed and n:
            n -= 1  # the close marker
        return n

    async def put(self, chunk: Chunk) -> None:
        """Enqueue a chunk, waiting while the queue is full."""
        if self._closed:
            raise RuntimeError("put() on a closed ChunkQueue")
        if self._slots is not None:
            await self._slots.acquire()
        self._queue.put_nowait(chunk)

    async def get(self) -> Chunk:
        item = await self._queue.get()
        if item is _CLOSED:
            # leave the marker in place for the other consumers
            self._queue.put_nowait(_CLOSED)
            raise QueueClosed()
        if self._slots is not None:
            self._slots.release()
        return item

    def close(self) -> None:
        """Signal that no more chunks will be added.  Producer only, once."""
        if self._closed:
            raise RuntimeError("ChunkQueue closed twice")
        self._closed = True
        self._queue.put_nowait(_CLOSED)

    def drain(self) -> list[Chunk]:
        """Take every chunk still waiting, without blocking.

        Used after a fault so nothing that was recorded is left on disk.
        """
        chunks = []
        saw_marker = False
        while True:
            try:
                item = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            if item is _CLOSED:
                saw_marker = True
                continue
            if self._slots is not None:
                self._slots.release()
            chunks.append(item)
        if saw_marker:
            self._queue.put_nowait(_CLOSED)
        return chunks
