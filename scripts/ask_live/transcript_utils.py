"""Shared transcript and question text utilities."""

from __future__ import annotations

import re
from datetime import datetime

from .models import Chunk

# whisper-cli prefixes each line with "[00:00:00.000 --> 00:00:01.360]";
# some extractors return only the start stamp "[00:00:00.000]".
TIMESTAMP_PREFIX_RE = re.compile(
    r"^\[\d{2}:\d{2}:\d{2}\.\d{3}( --> \d{2}:\d{2}:\d{2}\.\d{3})?\]\s*"
)


def chunk_filename(index: int) -> str:
    return f"chunk_{index:03d}.wav"


def strip_timestamp_prefix(text: str) -> str:
    """Remove a leading whisper timestamp bracket, if any."""
    return TIMESTAMP_PREFIX_RE.sub("", text, count=1)


def clean_question(text: str) -> str:
    """Normalize one extracted question: no timestamp prefix, single line, trimmed."""
    return strip_timestamp_prefix(text).replace("\n", " ").strip()


def build_source_label(chunk: Chunk, now: datetime | None = None) -> str:
    """Label tying a transcript to its chunk and wall-clock time."""
    when = now or datetime.now()
    return f"{chunk.name} @ {when:%Y-%m-%d %H:%M:%S}"
