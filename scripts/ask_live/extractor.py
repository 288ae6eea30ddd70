"""Question extraction through the remote API, with exponential backoff.

The API takes ``{"text": "<transcript>"}`` and answers with
``{"questions": ["...", ...]}``.  Network errors, timeouts and non-2xx
responses are transient and retried; a missing endpoint is a configuration
error and is raised straight away.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import Awaitable, Callable

import aiohttp
from rich.markup import escape

from .config import EXTRACT_TIMEOUT, INITIAL_RETRY_DELAY, MAX_RETRIES, require_api_url
from .console import console
from .errors import ExtractionError
from .transcript_utils import clean_question


class QuestionExtractor:
    def __init__(
        self,
        api_url: str | None,
        session: aiohttp.ClientSession | None = None,
        timeout: float = EXTRACT_TIMEOUT,
    ):
        self.api_url = api_url
        self._session = session
        self._owns_session = session is None
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    async def __aenter__(self) -> "QuestionExtractor":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    async def extract(self, transcript: str) -> list[str]:
        """One extraction attempt.  Returns the raw question strings."""
        url = require_api_url(self.api_url)
        session = self._ensure_session()
        try:
            async with session.post(url, json={"text": transcript}, timeout=self._timeout) as resp:
                if resp.status < 200 or resp.status >= 300:
                    raise ExtractionError(f"HTTP {resp.status} from {url}")
                body = await resp.text()
        except aiohttp.ClientError as exc:
            raise ExtractionError(f"network error: {exc}") from exc
        except asyncio.TimeoutError as exc:
            raise ExtractionError(f"timed out after {self._timeout.total}s") from exc
        return parse_questions(body)


def parse_questions(body: str) -> list[str]:
    """Pull the ``questions`` list out of a response body.

    Anything that isn't a JSON object with a list under ``questions`` yields
    no questions; non-string entries are skipped.
    """
    try:
        parsed = json.loads(body)
    except json.JSONDecodeError:
        console.print("[warning]⚠️ Extraction API returned a non-JSON body, no questions taken[/warning]")
        return []
    if not isinstance(parsed, dict):
        return []
    questions = parsed.get("questions")
    if not isinstance(questions, list):
        return []
    return [q for q in questions if isinstance(q, str)]


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = MAX_RETRIES
    initial_delay: float = INITIAL_RETRY_DELAY
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    def delays(self) -> list[float]:
        """Waits between attempts: 1s, 2s for the default policy."""
        return [self.initial_delay * (2 ** i) for i in range(max(self.max_retries - 1, 0))]


async def extract_questions_with_retry(
    extractor: QuestionExtractor,
    transcript: str,
    policy: RetryPolicy | None = None,
    tag: str = "",
) -> list[str] | None:
    """Extract and clean questions, retrying transient failures.

    Returns the cleaned questions, or ``None`` once every attempt failed.
    ``ExtractionConfigError`` propagates without a retry.
    """
    policy = policy or RetryPolicy()
    delays = policy.delays()
    for attempt in range(1, policy.max_retries + 1):
        try:
            raw = await extractor.extract(transcript)
        except ExtractionError as exc:
            console.print(f"{tag}[error]❌ API attempt {attempt} failed:[/error] {escape(str(exc))}")
            if attempt == policy.max_retries:
                console.print(f"{tag}[warning]⚠️ Max retry attempts reached. Skipping this chunk.[/warning]")
                return None
            await policy.sleep(delays[attempt - 1])
            continue
        questions = [clean_question(q) for q in raw]
        return [q for q in questions if q]
    return None
