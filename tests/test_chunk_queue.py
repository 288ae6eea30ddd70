"""Tests for the closable chunk queue and the result log."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from ask_live.chunk_queue import ChunkQueue, QueueClosed
from ask_live.models import Chunk, QuestionAnswer
from ask_live.result_log import ResultLog


def _chunk(i: int) -> Chunk:
    return Chunk(i, Path(f"chunk_{i:03d}.wav"))


class TestChunkQueue:
    def test_fifo_then_closed(self) -> None:
        async def scenario() -> list[int]:
            queue = ChunkQueue()
            for i in range(3):
                await queue.put(_chunk(i))
            queue.close()
            got = [(await queue.get()).index for _ in range(3)]
            with pytest.raises(QueueClosed):
                await queue.get()
            # still closed for any later caller
            with pytest.raises(QueueClosed):
                await queue.get()
            return got

        assert asyncio.run(scenario()) == [0, 1, 2]

    def test_get_waits_on_open_empty_queue(self) -> None:
        async def scenario() -> tuple[bool, int]:
            queue = ChunkQueue()
            getter = asyncio.create_task(queue.get())
            await asyncio.sleep(0.01)
            blocked = not getter.done()
            await queue.put(_chunk(7))
            chunk = await asyncio.wait_for(getter, timeout=1)
            return blocked, chunk.index

        assert asyncio.run(scenario()) == (True, 7)

    def test_close_wakes_every_waiting_consumer(self) -> None:
        async def scenario() -> list[bool]:
            queue = ChunkQueue()
            getters = [asyncio.create_task(queue.get()) for _ in range(4)]
            await asyncio.sleep(0.01)
            queue.close()
            results = await asyncio.wait_for(
                asyncio.gather(*getters, return_exceptions=True), timeout=1
            )
            return [isinstance(r, QueueClosed) for r in results]

        assert asyncio.run(scenario()) == [True] * 4

    def test_close_twice_rejected(self) -> None:
        async def scenario() -> None:
            queue = ChunkQueue()
            queue.close()
            assert queue.closed
            with pytest.raises(RuntimeError):
                queue.close()

        asyncio.run(scenario())

    def test_put_after_close_rejected(self) -> None:
        async def scenario() -> None:
            queue = ChunkQueue()
            queue.close()
            with pytest.raises(RuntimeError):
                await queue.put(_chunk(0))

        asyncio.run(scenario())

    def test_bounded_put_waits_for_space(self) -> None:
        async def scenario() -> tuple[bool, int]:
            queue = ChunkQueue(maxsize=1)
            await queue.put(_chunk(0))
            putter = asyncio.create_task(queue.put(_chunk(1)))
            await asyncio.sleep(0.01)
            blocked = not putter.done()
            await queue.get()
            await asyncio.wait_for(putter, timeout=1)
            return blocked, queue.qsize()

        assert asyncio.run(scenario()) == (True, 1)

    def test_close_does_not_wait_on_full_queue(self) -> None:
        async def scenario() -> list[int]:
            queue = ChunkQueue(maxsize=2)
            await queue.put(_chunk(0))
            await queue.put(_chunk(1))
            queue.close()
            assert queue.qsize() == 2
            got = [(await queue.get()).index, (await queue.get()).index]
            with pytest.raises(QueueClosed):
                await queue.get()
            return got

        assert asyncio.run(scenario()) == [0, 1]

    def test_each_chunk_delivered_once(self) -> None:
        async def scenario() -> list[int]:
            queue = ChunkQueue(maxsize=3)
            seen: list[int] = []

            async def consumer() -> None:
                while True:
                    try:
                        chunk = await queue.get()
                    except QueueClosed:
                        return
                    seen.append(chunk.index)
                    await asyncio.sleep(0)

            async def producer() -> None:
                try:
                    for i in range(50):
                        await queue.put(_chunk(i))
                finally:
                    queue.close()

            await asyncio.gather(producer(), *(consumer() for _ in range(5)))
            return seen

        seen = asyncio.run(scenario())
        assert sorted(seen) == list(range(50))

    def test_drain_empties_queue_and_keeps_it_closed(self) -> None:
        async def scenario() -> tuple[list[int], bool]:
            queue = ChunkQueue(2)
            await queue.put(_chunk(0))
            await queue.put(_chunk(1))
            queue.close()
            drained = [c.index for c in queue.drain()]
            with pytest.raises(QueueClosed):
                await asyncio.wait_for(queue.get(), timeout=1)
            return drained, queue.qsize() == 0

        assert asyncio.run(scenario()) == ([0, 1], True)

    def test_drain_frees_slots_of_open_queue(self) -> None:
        async def scenario() -> list[int]:
            queue = ChunkQueue(1)
            await queue.put(_chunk(0))
            drained = [c.index for c in queue.drain()]
            # the slot is free again, so this put does not wait
            await asyncio.wait_for(queue.put(_chunk(1)), timeout=1)
            return drained + [(await queue.get()).index]

        assert asyncio.run(scenario()) == [0, 1]


class TestResultLog:
    def test_concurrent_appends_all_kept(self) -> None:
        async def scenario() -> ResultLog:
            log = ResultLog()

            async def writer(w: int) -> None:
                for n in range(25):
                    await log.append(QuestionAnswer(f"q{w}-{n}", "a", timestamp="00:00:00"))
                    await asyncio.sleep(0)

            await asyncio.gather(*(writer(w) for w in range(8)))
            return log

        log = asyncio.run(scenario())
        assert len(log) == 200
        questions = [qa.question for qa in log]
        assert len(set(questions)) == 200

    def test_snapshot_is_a_copy(self) -> None:
        async def scenario() -> tuple[int, int]:
            log = ResultLog()
            await log.append(QuestionAnswer("q", "a"))
            snap = log.snapshot()
            await log.append(QuestionAnswer("q2", "a2"))
            return len(snap), len(log)

        assert asyncio.run(scenario()) == (1, 2)
