from __future__ import annotations

import asyncio
from typing import Iterator

from .models import QuestionAnswer


class ResultLog:
    """Append-only list of answered questions shared by all consumers.

    Entries are kept in append order, which is consumer completion order and
    not chunk order.  Read it with ``snapshot()`` after the pipeline is done.
    """

    def __init__(self) -> None:
        self._entries: list[QuestionAnswer] = []
        self._lock = asyncio.Lock()

    async def append(self, record: QuestionAnswer) -> None:
        async with self._lock:
            self._entries.append(record)

    def snapshot(self) -> list[QuestionAnswer]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[QuestionAnswer]:
        return iter(self.snapshot())
