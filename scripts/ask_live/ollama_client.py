from __future__ import annotations

import asyncio
from typing import Protocol

import requests
from rich.markup import escape

from .config import DEFAULT_OLLAMA_MODEL, DEFAULT_OLLAMA_URL, Settings
from .console import console
from .subprocess_utils import run_tool


class Answerer(Protocol):
    async def ask(self, question: str) -> str:
        """Return the model's answer.  Failures come back as an empty string."""
        ...


# ---------------------------------------------------------------------------
# Subprocess backend: one fresh `ollama run` per question
# ---------------------------------------------------------------------------

class OllamaCliAnswerer:
    def __init__(self, model: str = DEFAULT_OLLAMA_MODEL, ollama_bin: str = "ollama"):
        self.model = model
        self.ollama_bin = ollama_bin

    def build_command(self, question: str) -> list[str]:
        # exec-style argv needs no shell quoting; "--" keeps a leading "-" out of option parsing
        return [self.ollama_bin, "run", self.model, "--", question]

    async def ask(self, question: str) -> str:
        try:
            _, stdout, stderr = await run_tool(self.build_command(question))
        except OSError as exc:
            console.print(f"[error]❌ Could not start {escape(self.ollama_bin)}:[/error] {escape(str(exc))}")
            return ""

        error = stderr.decode("utf-8", errors="replace").strip()
        if error:
            console.print(f"[warning]\\[Error][/warning] {escape(error)}")
        return stdout.decode("utf-8", errors="replace").strip()


# ---------------------------------------------------------------------------
# HTTP backend: Ollama /api/generate on a long-running server
# ---------------------------------------------------------------------------

def call_ollama(
    ollama_url: str,
    model: str,
    user_prompt: str,
    *,
    system: str = "",
    temperature: float = 0.1,
    num_ctx: int = 4096,
    timeout: int = 300,
) -> str:
    """Call Ollama ``/api/generate`` and return the response text."""
    payload: dict = {
        "model": model,
        "prompt": user_prompt,
        "stream": False,
        "options": {
            "num_ctx": num_ctx,
            "temperature": temperature,
        },
    }
    if system:
        payload["system"] = system
    resp = requests.post(ollama_url, json=payload, timeout=timeout)
    resp.raise_for_status()
    return resp.json().get("response", "").strip()


class OllamaHttpAnswerer:
    def __init__(self, model: str = DEFAULT_OLLAMA_MODEL, ollama_url: str = DEFAULT_OLLAMA_URL):
        self.model = model
        self.ollama_url = ollama_url

    async def ask(self, question: str) -> str:
        # requests is blocking; keep it off the event loop
        try:
            return await asyncio.to_thread(call_ollama, self.ollama_url, self.model, question)
        except (requests.RequestException, ValueError) as exc:
            console.print(f"[error]❌ Ollama request failed:[/error] {escape(str(exc))}")
            return ""


def build_answerer(settings: Settings) -> Answerer:
    if settings.answer_backend == "http":
        return OllamaHttpAnswerer(settings.ollama_model, settings.ollama_url)
    return OllamaCliAnswerer(settings.ollama_model, settings.ollama_bin)
