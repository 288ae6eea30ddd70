"""Record -> transcribe -> extract -> answer, with recording and processing overlapped.

One producer records chunks back to back and hands them over through a
``ChunkQueue``; a fixed pool of consumers transcribes them, extracts the
questions (with retry) and answers each one into the shared ``ResultLog``.

Every chunk file the recorder creates is deleted by the consumer that took
it, whatever happened downstream.  Failures are contained per chunk.
Cancellation is cooperative: the producer stops recording new chunks, closes
the queue and the consumers drain what is left.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

from rich.markup import escape

from .chunk_queue import ChunkQueue, QueueClosed
from .config import CHUNK_DIR, DEFAULT_QUEUE_SIZE, INTER_CHUNK_DELAY
from .console import console
from .errors import ExtractionConfigError, TranscriptionError
from .extractor import QuestionExtractor, RetryPolicy, extract_questions_with_retry
from .models import Chunk, PipelineStats, QuestionAnswer, Transcript
from .ollama_client import Answerer
from .recorder import Recorder
from .result_log import ResultLog
from .transcriber import Transcriber
from .transcript_utils import build_source_label, chunk_filename


def _tag(chunk: Chunk) -> str:
    # Escape square brackets so rich doesn't interpret them as markup
    return f"\\[{chunk.name}] "


async def _wait_or_cancel(cancel: asyncio.Event, delay: float) -> None:
    """Sleep for ``delay`` seconds, waking early if cancellation is requested."""
    if delay <= 0:
        await asyncio.sleep(0)
        return
    try:
        await asyncio.wait_for(cancel.wait(), timeout=delay)
    except asyncio.TimeoutError:
        pass


async def supervise(tasks: list[asyncio.Task]) -> None:
    """Wait for every task; on the first fault cancel the rest and re-raise it.

    Returns only after all tasks have finished.
    """
    try:
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
    except asyncio.CancelledError:
        for t in tasks:
            t.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise

    fault: BaseException | None = None
    for t in tasks:
        if t in done and not t.cancelled() and t.exception() is not None:
            fault = t.exception()
            break
    if pending:
        for t in pending:
            t.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
    if fault is not None:
        raise fault


class ChunkPipeline:
    def __init__(
        self,
        recorder: Recorder,
        transcriber: Transcriber,
        extractor: QuestionExtractor,
        answerer: Answerer,
        result_log: ResultLog,
        *,
        chunk_dir: Path = CHUNK_DIR,
        retry_policy: RetryPolicy | None = None,
        queue_size: int = DEFAULT_QUEUE_SIZE,
        inter_chunk_delay: float = INTER_CHUNK_DELAY,
    ):
        self.recorder = recorder
        self.transcriber = transcriber
        self.extractor = extractor
        self.answerer = answerer
        self.result_log = result_log
        self.chunk_dir = chunk_dir
        self.retry_policy = retry_policy or RetryPolicy()
        self.queue_size = queue_size
        self.inter_chunk_delay = inter_chunk_delay

    async def run(
        self,
        total_chunks: int,
        chunk_duration: int,
        consumer_count: int,
        cancel: asyncio.Event | None = None,
        queue: ChunkQueue | None = None,
    ) -> PipelineStats:
        """Record ``total_chunks`` chunks and process them with ``consumer_count`` workers.

        Returns once the producer has closed the queue and every consumer has
        seen it drained.  ``cancel`` stops recording between chunks.
        """
        if total_chunks < 0:
            raise ValueError("total_chunks must be >= 0")
        if consumer_count < 1:
            raise ValueError("consumer_count must be >= 1")

        cancel = cancel or asyncio.Event()
        queue = queue or ChunkQueue(self.queue_size)
        stats = PipelineStats()

        tasks = [
            asyncio.create_task(
                self._produce(queue, total_chunks, chunk_duration, cancel, stats),
                name="producer",
            )
        ]
        tasks.extend(
            asyncio.create_task(self._consume(queue, stats), name=f"consumer-{n}")
            for n in range(1, consumer_count + 1)
        )
        try:
            await supervise(tasks)
        finally:
            # after a fault the consumers are gone; chunks still queued are ours to delete
            for chunk in queue.drain():
                self._delete_chunk(chunk, stats)
        return stats

    # ------------------------------------------------------------------
    # Producer
    # ------------------------------------------------------------------

    async def _produce(
        self,
        queue: ChunkQueue,
        total_chunks: int,
        chunk_duration: int,
        cancel: asyncio.Event,
        stats: PipelineStats,
    ) -> None:
        # a recorded chunk not yet handed to the queue belongs to the producer
        unqueued: Chunk | None = None
        try:
            for i in range(total_chunks):
                if cancel.is_set():
                    console.print("[success]✅ Producer cancelled gracefully.[/success]")
                    break
                chunk = Chunk(i, self.chunk_dir / chunk_filename(i))
                unqueued = chunk
                console.print(f"{_tag(chunk)}[info]Recording {chunk_duration}s...[/info]")
                try:
                    recorded = await self.recorder.capture(chunk.path, chunk_duration)
                except Exception as exc:
                    console.print(f"{_tag(chunk)}[error]Recorder error:[/error] {escape(str(exc))}")
                    recorded = False

                if recorded:
                    stats.recorded += 1
                    await queue.put(chunk)
                    unqueued = None
                else:
                    # the time window is gone, so a failed recording is not retried
                    stats.record_failures += 1
                    console.print(f"[error]Recording failed for {chunk.name}[/error]")
                    unqueued = None

                if i < total_chunks - 1:
                    await _wait_or_cancel(cancel, self.inter_chunk_delay)
        finally:
            queue.close()
            if unqueued is not None and unqueued.path.exists():
                self._delete_chunk(unqueued, stats)

    # ------------------------------------------------------------------
    # Consumers
    # ------------------------------------------------------------------

    async def _consume(self, queue: ChunkQueue, stats: PipelineStats) -> None:
        while True:
            try:
                chunk = await queue.get()
            except QueueClosed:
                return
            try:
                await self.process_chunk(chunk, stats)
            except Exception as exc:
                stats.failed_chunks.append(chunk.name)
                console.print(f"{_tag(chunk)}[error]Unexpected error:[/error] {escape(str(exc))}")
            finally:
                self._delete_chunk(chunk, stats)

    async def process_chunk(self, chunk: Chunk, stats: PipelineStats) -> None:
        tag = _tag(chunk)
        try:
            text = await self.transcriber.transcribe(chunk.path)
        except TranscriptionError as exc:
            stats.transcription_failures += 1
            stats.failed_chunks.append(chunk.name)
            console.print(f"{tag}[error]❌ {escape(str(exc))}[/error]")
            return
        stats.transcribed += 1

        transcript = Transcript(text=text, source=build_source_label(chunk))
        if not transcript.text.strip():
            console.print(f"{tag}[info]No speech detected[/info]")
            return

        try:
            questions = await extract_questions_with_retry(
                self.extractor, transcript.text, self.retry_policy, tag=tag
            )
        except ExtractionConfigError as exc:
            stats.extraction_failures += 1
            stats.failed_chunks.append(chunk.name)
            console.print(f"{tag}[error]❌ {escape(str(exc))}[/error]")
            return
        if questions is None:
            stats.extraction_failures += 1
            stats.failed_chunks.append(chunk.name)
            return

        for question in questions:
            answer = await self.answerer.ask(question)
            await self.result_log.append(
                QuestionAnswer(question=question, answer=answer, source=transcript.source)
            )
            stats.questions_answered += 1
            console.print(f"{tag}[success]👉 {escape(question)}[/success]")

    def _delete_chunk(self, chunk: Chunk, stats: PipelineStats) -> None:
        try:
            chunk.path.unlink()
            stats.files_deleted += 1
        except OSError as exc:
            console.print(f"[warning]Failed to delete file {chunk.name}: {escape(str(exc))}[/warning]")
