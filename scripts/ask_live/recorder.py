"""Audio capture through a freshly spawned ffmpeg process per chunk."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from rich.markup import escape

from .config import DEFAULT_RECORDER_DEVICE, DEFAULT_RECORDER_FORMAT
from .console import console
from .subprocess_utils import run_tool


class Recorder(Protocol):
    async def capture(self, path: Path, duration: int) -> bool:
        """Record ``duration`` seconds of audio to ``path``.  True if the file exists."""
        ...


class FfmpegRecorder:
    """Record from the default input device with ffmpeg.

    The default format/device pair targets macOS (``avfoundation`` with no
    video and the first audio input).  On Linux use ``pulse``/``default`` or
    ``alsa``/``hw:0``; on Windows ``dshow`` with ``audio=<name>``.
    """

    def __init__(
        self,
        ffmpeg_bin: str = "ffmpeg",
        input_format: str = DEFAULT_RECORDER_FORMAT,
        input_device: str = DEFAULT_RECORDER_DEVICE,
    ):
        self.ffmpeg_bin = ffmpeg_bin
        self.input_format = input_format
        self.input_device = input_device

    def build_command(self, path: Path, duration: int) -> list[str]:
        return [
            self.ffmpeg_bin,
            "-f", self.input_format,
            "-i", self.input_device,
            "-t", str(duration),
            "-y", str(path),
        ]

    async def capture(self, path: Path, duration: int) -> bool:
        path.parent.mkdir(parents=True, exist_ok=True)
        # success is judged by the file, so a leftover from an earlier run must go
        path.unlink(missing_ok=True)
        try:
            # ffmpeg writes its progress to stderr; it is drained until exit
            returncode, _, stderr = await run_tool(self.build_command(path, duration), capture_stdout=False)
        except OSError as exc:
            console.print(f"[error]❌ Could not start {escape(self.ffmpeg_bin)}:[/error] {escape(str(exc))}")
            return False

        if returncode != 0:
            tail = stderr.decode("utf-8", errors="replace").strip().splitlines()[-1:] or [""]
            console.print(
                f"[warning]⚠️ ffmpeg exited with {returncode} for {path.name}:[/warning] "
                f"{escape(tail[0])}"
            )
        return path.exists()
