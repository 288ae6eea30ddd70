"""Speech-to-text through the whisper.cpp command line tool."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from .errors import TranscriptionError
from .subprocess_utils import run_tool


class Transcriber(Protocol):
    async def transcribe(self, path: Path) -> str:
        """Return the transcript text for the audio file at ``path``."""
        ...


class WhisperCliTranscriber:
    def __init__(self, whisper_cli: str = "whisper-cli", model_path: str | None = None):
        self.whisper_cli = whisper_cli
        self.model_path = model_path

    def build_command(self, path: Path) -> list[str]:
        cmd = [self.whisper_cli, str(path)]
        if self.model_path:
            cmd.extend(["--model", self.model_path])
        return cmd

    async def transcribe(self, path: Path) -> str:
        try:
            returncode, stdout, stderr = await run_tool(self.build_command(path))
        except OSError as exc:
            raise TranscriptionError(path, f"cannot start {self.whisper_cli}: {exc}") from exc

        if returncode != 0:
            lines = stderr.decode("utf-8", errors="replace").strip().splitlines()
            detail = lines[-1] if lines else "no error output"
            raise TranscriptionError(path, f"exit code {returncode}: {detail}")
        return stdout.decode("utf-8", errors="replace")
