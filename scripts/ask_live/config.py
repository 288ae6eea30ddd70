from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlparse

from dotenv import load_dotenv

from .errors import ExtractionConfigError

PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Load .env from project root (silently ignored if it doesn't exist)
load_dotenv(PROJECT_ROOT / ".env")
DATA_DIR = PROJECT_ROOT / "data"
CHUNK_DIR = DATA_DIR / "chunks"

# Recording
DEFAULT_CHUNK_DURATION = 10  # seconds per audio chunk
DEFAULT_TOTAL_CHUNKS = 2
INTER_CHUNK_DELAY = 0.1  # seconds between recordings
DEFAULT_RECORDER_FORMAT = "avfoundation"
DEFAULT_RECORDER_DEVICE = "none:0"  # avfoundation: no video, first audio input

# Processing
DEFAULT_CONSUMER_COUNT = 2
DEFAULT_QUEUE_SIZE = 4  # chunks waiting for a free consumer

# Question extraction API
MAX_RETRIES = 3
INITIAL_RETRY_DELAY = 1.0  # seconds, doubled after each failed attempt
EXTRACT_TIMEOUT = 60

# Answering
DEFAULT_OLLAMA_MODEL = "granite3.2"
DEFAULT_OLLAMA_URL = "http://localhost:11434/api/generate"
ANSWER_BACKENDS = ("cli", "http")


def ensure_directories(chunk_dir: Path = CHUNK_DIR) -> None:
    chunk_dir.mkdir(parents=True, exist_ok=True)


def env_or_default(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def env_optional(name: str) -> str | None:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def require_api_url(value: str | None) -> str:
    """Return the extraction endpoint or raise ``ExtractionConfigError``.

    The endpoint must be an absolute http(s) URL.  This is a configuration
    problem, so callers must not retry it.
    """
    if value is None or not value.strip():
        raise ExtractionConfigError("API_URL is not defined in the environment or .env file.")
    url = value.strip()
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ExtractionConfigError(f"API_URL is not a valid http(s) URL: {url!r}")
    return url


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the external tools, read from the environment."""

    model_path: str | None = None
    whisper_cli: str = "whisper-cli"
    api_url: str | None = None
    ffmpeg_bin: str = "ffmpeg"
    recorder_format: str = DEFAULT_RECORDER_FORMAT
    recorder_device: str = DEFAULT_RECORDER_DEVICE
    ollama_bin: str = "ollama"
    ollama_model: str = DEFAULT_OLLAMA_MODEL
    ollama_url: str = DEFAULT_OLLAMA_URL
    answer_backend: str = "cli"
    chunk_dir: Path = CHUNK_DIR

    @classmethod
    def from_env(cls) -> "Settings":
        backend = env_or_default("ANSWER_BACKEND", "cli").lower()
        if backend not in ANSWER_BACKENDS:
            raise ValueError(
                f"ANSWER_BACKEND must be one of {', '.join(ANSWER_BACKENDS)}, got {backend!r}"
            )
        return cls(
            model_path=env_optional("MODEL_PATH"),
            whisper_cli=env_or_default("WHISPER_CLI", "whisper-cli"),
            api_url=env_optional("API_URL"),
            ffmpeg_bin=env_or_default("FFMPEG_BIN", "ffmpeg"),
            recorder_format=env_or_default("RECORDER_FORMAT", DEFAULT_RECORDER_FORMAT),
            recorder_device=env_or_default("RECORDER_DEVICE", DEFAULT_RECORDER_DEVICE),
            ollama_bin=env_or_default("OLLAMA_BIN", "ollama"),
            ollama_model=env_or_default("OLLAMA_MODEL", DEFAULT_OLLAMA_MODEL),
            ollama_url=env_or_default("OLLAMA_URL", DEFAULT_OLLAMA_URL),
            answer_backend=backend,
            chunk_dir=Path(env_or_default("CHUNK_DIR", str(CHUNK_DIR))),
        )
