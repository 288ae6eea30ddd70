from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path


@dataclass(frozen=True)
class Chunk:
    """One recorded audio segment.  Owned by exactly one consumer once dequeued."""

    index: int
    path: Path

    @property
    def name(self) -> str:
        return self.path.name


@dataclass(frozen=True)
class Transcript:
    text: str
    source: str


@dataclass(frozen=True)
class QuestionAnswer:
    """A detected question and the local model's answer to it.

    ``confidence_score`` is reserved and always left at its default.
    """

    question: str
    answer: str
    timestamp: str = ""
    confidence_score: float = 0.0
    source: str = ""

    def __post_init__(self) -> None:
        if not self.timestamp:
            # frozen dataclass: bypass __setattr__ for the defaulted field
            object.__setattr__(self, "timestamp", datetime.now().strftime("%H:%M:%S"))


@dataclass
class PipelineStats:
    """Tallies reported at shutdown.  Only mutated from the event loop."""

    recorded: int = 0
    record_failures: int = 0
    transcribed: int = 0
    transcription_failures: int = 0
    extraction_failures: int = 0
    questions_answered: int = 0
    files_deleted: int = 0
    failed_chunks: list[str] = field(default_factory=list)
