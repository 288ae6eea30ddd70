"""End-of-run output: the question/answer list and the run summary."""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape

from .console import console as default_console
from .models import PipelineStats, QuestionAnswer


def print_questions(entries: list[QuestionAnswer], console: Console = default_console) -> None:
    console.print("\n📝 Questions List:")
    if not entries:
        console.print("[info](no questions detected)[/info]")
        return
    for qa in entries:
        console.print(f"👉 {escape(qa.question)}")
        console.print(f"💬 {escape(qa.answer)}\n\n")


def print_summary(stats: PipelineStats, elapsed: float, console: Console = default_console) -> None:
    console.print("=" * 70)
    console.print(f"Chunks recorded:         {stats.recorded}")
    console.print(f"  Recording failures:    {stats.record_failures}")
    console.print(f"  Transcribed:           {stats.transcribed}")
    console.print(f"  Transcription failed:  {stats.transcription_failures}")
    console.print(f"  Extraction abandoned:  {stats.extraction_failures}")
    console.print(f"Questions answered:      {stats.questions_answered}")
    console.print(f"Chunk files deleted:     {stats.files_deleted}")
    if stats.failed_chunks:
        console.print(f"[warning]Failed chunks: {', '.join(stats.failed_chunks)}[/warning]")
    console.print(f"Finished in {elapsed:.1f}s")
