from __future__ import annotations


class AskLiveError(Exception):
    """Base class for failures the pipeline knows how to contain."""


class TranscriptionError(AskLiveError):
    """Raised when the transcriber fails to produce a transcript for a chunk."""

    def __init__(self, path, detail: str):
        self.path = path
        self.detail = detail
        super().__init__(f"Transcription failed for {path}: {detail}")


class ExtractionError(AskLiveError):
    """Transient failure of the question-extraction call.  Safe to retry."""


class ExtractionConfigError(AskLiveError):
    """The extraction endpoint is missing or malformed.  Never retried."""
