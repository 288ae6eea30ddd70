"""Tests for environment-driven configuration."""

from __future__ import annotations

from pathlib import Path

import pytest

from ask_live.config import (
    DEFAULT_OLLAMA_MODEL,
    Settings,
    env_or_default,
    require_api_url,
)
from ask_live.errors import ExtractionConfigError

ENV_VARS = (
    "MODEL_PATH",
    "WHISPER_CLI",
    "API_URL",
    "FFMPEG_BIN",
    "RECORDER_FORMAT",
    "RECORDER_DEVICE",
    "OLLAMA_BIN",
    "OLLAMA_MODEL",
    "OLLAMA_URL",
    "ANSWER_BACKEND",
    "CHUNK_DIR",
)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestEnvOrDefault:
    def test_unset_uses_default(self, clean_env: pytest.MonkeyPatch) -> None:
        assert env_or_default("WHISPER_CLI", "whisper-cli") == "whisper-cli"

    def test_blank_uses_default(self, clean_env: pytest.MonkeyPatch) -> None:
        clean_env.setenv("WHISPER_CLI", "   ")
        assert env_or_default("WHISPER_CLI", "whisper-cli") == "whisper-cli"

    def test_value_is_stripped(self, clean_env: pytest.MonkeyPatch) -> None:
        clean_env.setenv("WHISPER_CLI", "  /opt/whisper/bin/whisper-cli ")
        assert env_or_default("WHISPER_CLI", "whisper-cli") == "/opt/whisper/bin/whisper-cli"


class TestSettings:
    def test_defaults(self, clean_env: pytest.MonkeyPatch) -> None:
        settings = Settings.from_env()
        assert settings.model_path is None
        assert settings.api_url is None
        assert settings.whisper_cli == "whisper-cli"
        assert settings.ollama_model == DEFAULT_OLLAMA_MODEL
        assert settings.answer_backend == "cli"

    def test_reads_environment(self, clean_env: pytest.MonkeyPatch, tmp_path: Path) -> None:
        clean_env.setenv("MODEL_PATH", "/models/ggml-base.en.bin")
        clean_env.setenv("API_URL", "http://localhost:5000/extract")
        clean_env.setenv("ANSWER_BACKEND", "HTTP")
        clean_env.setenv("CHUNK_DIR", str(tmp_path))
        settings = Settings.from_env()
        assert settings.model_path == "/models/ggml-base.en.bin"
        assert settings.api_url == "http://localhost:5000/extract"
        assert settings.answer_backend == "http"
        assert settings.chunk_dir == tmp_path

    def test_unknown_backend_rejected(self, clean_env: pytest.MonkeyPatch) -> None:
        clean_env.setenv("ANSWER_BACKEND", "grpc")
        with pytest.raises(ValueError):
            Settings.from_env()


class TestRequireApiUrl:
    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_missing(self, value: str | None) -> None:
        with pytest.raises(ExtractionConfigError, match="API_URL is not defined"):
            require_api_url(value)

    @pytest.mark.parametrize("value", ["localhost:5000/extract", "ftp://host/x", "http://"])
    def test_malformed(self, value: str) -> None:
        with pytest.raises(ExtractionConfigError):
            require_api_url(value)

    def test_valid_is_stripped(self) -> None:
        assert require_api_url(" https://api.example.com/questions ") == "https://api.example.com/questions"
