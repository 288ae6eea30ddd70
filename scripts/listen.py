#!/usr/bin/env python3
"""Listen to a conversation and answer the questions asked in it.

Records fixed-length audio chunks with ffmpeg while earlier chunks are
transcribed with whisper.cpp, sent to the question-extraction API, and each
detected question is answered by a local Ollama model.  Press Ctrl+C to stop
recording; chunks already recorded are still processed before the
question/answer list is printed.

Environment (.env at the project root is loaded automatically):
  API_URL         question-extraction endpoint (required)
  MODEL_PATH      whisper.cpp model file
  WHISPER_CLI     whisper.cpp binary (default: whisper-cli)
  OLLAMA_MODEL    model for answers (default: granite3.2)
  ANSWER_BACKEND  cli (fresh `ollama run` per question) or http

Usage:
  uv run python scripts/listen.py [--chunks N] [--duration S] [--consumers N]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
import time
from dataclasses import replace
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "scripts"))

from ask_live.config import (  # noqa: E402
    DEFAULT_CHUNK_DURATION,
    DEFAULT_CONSUMER_COUNT,
    DEFAULT_QUEUE_SIZE,
    DEFAULT_TOTAL_CHUNKS,
    Settings,
    ensure_directories,
    require_api_url,
)
from ask_live.console import console  # noqa: E402
from ask_live.errors import ExtractionConfigError  # noqa: E402
from ask_live.extractor import QuestionExtractor  # noqa: E402
from ask_live.ollama_client import build_answerer  # noqa: E402
from ask_live.pipeline import ChunkPipeline  # noqa: E402
from ask_live.recorder import FfmpegRecorder  # noqa: E402
from ask_live.report import print_questions, print_summary  # noqa: E402
from ask_live.result_log import ResultLog  # noqa: E402
from ask_live.transcriber import WhisperCliTranscriber  # noqa: E402

# Suppress noisy loggers
logging.getLogger("asyncio").setLevel(logging.WARNING)
logging.getLogger("aiohttp").setLevel(logging.WARNING)


def install_interrupt_handler(cancel: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()

    def _request_shutdown() -> None:
        if not cancel.is_set():
            console.print("[warning]⛔ Graceful shutdown requested...[/warning]")
        cancel.set()

    try:
        loop.add_signal_handler(signal.SIGINT, _request_shutdown)
    except NotImplementedError:
        # Windows event loops have no add_signal_handler
        signal.signal(signal.SIGINT, lambda *_: loop.call_soon_threadsafe(_request_shutdown))


async def async_main(args: argparse.Namespace, settings: Settings) -> None:
    ensure_directories(settings.chunk_dir)
    cancel = asyncio.Event()
    install_interrupt_handler(cancel)

    result_log = ResultLog()
    recorder = FfmpegRecorder(settings.ffmpeg_bin, settings.recorder_format, settings.recorder_device)
    transcriber = WhisperCliTranscriber(settings.whisper_cli, settings.model_path)
    answerer = build_answerer(settings)

    console.print("=" * 70)
    console.print("[info]Listening to your conversation..![/info]")
    console.print("=" * 70)
    console.print(f"Chunks: {args.chunks} x {args.duration}s, consumers: {args.consumers}")
    console.print(f"Answer model: {settings.ollama_model} ({settings.answer_backend})")
    console.print()

    started = time.time()
    async with QuestionExtractor(settings.api_url) as extractor:
        pipeline = ChunkPipeline(
            recorder,
            transcriber,
            extractor,
            answerer,
            result_log,
            chunk_dir=settings.chunk_dir,
            queue_size=args.queue_size,
        )
        try:
            stats = await pipeline.run(args.chunks, args.duration, args.consumers, cancel)
        finally:
            print_questions(result_log.snapshot())

    console.print("[success]All chunks have been recorded and transcribed.[/success]")
    print_summary(stats, time.time() - started)


def main() -> None:
    parser = argparse.ArgumentParser(description="Record, transcribe and answer spoken questions")
    parser.add_argument("--chunks", type=int, default=DEFAULT_TOTAL_CHUNKS, help="Number of chunks to record")
    parser.add_argument("--duration", type=int, default=DEFAULT_CHUNK_DURATION, help="Seconds per chunk")
    parser.add_argument("--consumers", type=int, default=DEFAULT_CONSUMER_COUNT, help="Parallel processing workers")
    parser.add_argument("--queue-size", type=int, default=DEFAULT_QUEUE_SIZE, help="Max recorded chunks waiting (0 = unbounded)")
    parser.add_argument("--model", default=None, help="Ollama model used for answers (overrides OLLAMA_MODEL)")
    parser.add_argument("--answer-backend", choices=["cli", "http"], default=None, help="Overrides ANSWER_BACKEND")
    args = parser.parse_args()

    if args.chunks < 0:
        parser.error("--chunks must be >= 0")
    if args.duration < 1:
        parser.error("--duration must be >= 1")
    if args.consumers < 1:
        parser.error("--consumers must be >= 1")
    if args.queue_size < 0:
        parser.error("--queue-size must be >= 0")

    try:
        settings = Settings.from_env()
    except ValueError as exc:
        console.print(f"[error]❌ {exc}[/error]")
        sys.exit(2)
    overrides = {}
    if args.model:
        overrides["ollama_model"] = args.model
    if args.answer_backend:
        overrides["answer_backend"] = args.answer_backend
    if overrides:
        settings = replace(settings, **overrides)

    try:
        require_api_url(settings.api_url)
    except ExtractionConfigError as exc:
        console.print(f"[error]❌ {exc}[/error]")
        sys.exit(2)

    asyncio.run(async_main(args, settings))


if __name__ == "__main__":
    main()
