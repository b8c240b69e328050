"""LLM client — NVIDIA NIM primary, Google Gemini fallback.

One-shot JSON completions for project-fit analysis and RFQ extraction.
Both providers expose OpenAI-compatible chat completions endpoints, so a
single request shape serves both. Returns None when every provider fails;
callers decide whether that is an error or a reason to fall back.
"""

import asyncio
import json
import logging
import time
from dataclasses import dataclass, field

import httpx
import mlflow
from mlflow.entities import SpanType

from entitle.config import settings

logger = logging.getLogger(__name__)

# Granular timeouts: fail fast on connect, generous on read (LLM generation)
LLM_TIMEOUT = httpx.Timeout(connect=10.0, read=60.0, write=10.0, pool=5.0)

NVIDIA_CHAT_URL = "https://integrate.api.nvidia.com/v1/chat/completions"
NVIDIA_MODELS = [
    "meta/llama-3.3-70b-instruct",
    "moonshotai/kimi-k2.5",
]

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/openai/chat/completions"
GEMINI_MODEL = "gemini-2.5-flash"

MAX_RETRIES = 2
BASE_DELAY = 1.0


# ---------------------------------------------------------------------------
# Circuit breaker: skip a provider that keeps failing until it cools down
# ---------------------------------------------------------------------------

@dataclass
class CircuitBreaker:
    """Per-provider breaker. closed → open after N failures → half_open after reset."""

    failure_threshold: int = 5
    reset_seconds: int = 60
    _failure_count: int = field(default=0, repr=False)
    _last_failure_time: float = field(default=0.0, repr=False)
    _state: str = field(default="closed", repr=False)

    @property
    def state(self) -> str:
        if self._state == "open" and time.monotonic() - self._last_failure_time >= self.reset_seconds:
            self._state = "half_open"
        return self._state

    def allow_request(self) -> bool:
        return self.state != "open"

    def record_success(self) -> None:
        self._failure_count = 0
        self._state = "closed"

    def record_failure(self) -> None:
        self._failure_count += 1
        self._last_failure_time = time.monotonic()
        if self._failure_count >= self.failure_threshold:
            self._state = "open"
            logger.warning(
                "Circuit breaker OPEN after %d failures (reset in %ds)",
                self._failure_count, self.reset_seconds,
            )


_breakers: dict[str, CircuitBreaker] = {}


def reset_breakers() -> None:
    _breakers.clear()


def is_configured() -> bool:
    return bool(settings.nvidia_api_key or settings.gemini_api_key)


def _providers() -> list[tuple[str, str, dict, str]]:
    """(provider_name, url, headers, model) in fallback order."""
    providers = []
    if settings.nvidia_api_key:
        headers = {"Authorization": f"Bearer {settings.nvidia_api_key}", "Content-Type": "application/json"}
        for model in NVIDIA_MODELS:
            providers.append((f"NVIDIA/{model.split('/')[-1]}", NVIDIA_CHAT_URL, headers, model))
    if settings.gemini_api_key:
        headers = {"Authorization": f"Bearer {settings.gemini_api_key}", "Content-Type": "application/json"}
        providers.append(("Gemini", GEMINI_URL, headers, GEMINI_MODEL))
    return providers


async def _call_provider(
    client: httpx.AsyncClient,
    url: str,
    headers: dict,
    payload: dict,
    provider_name: str,
) -> dict | None:
    """POST one chat completion with retry on 429/5xx/timeouts. Returns the message dict."""
    breaker = _breakers.setdefault(provider_name, CircuitBreaker())
    if not breaker.allow_request():
        logger.info("Circuit breaker OPEN for %s — skipping", provider_name)
        return None

    for attempt in range(MAX_RETRIES + 1):
        last = attempt == MAX_RETRIES
        try:
            resp = await client.post(url, json=payload, headers=headers)
            resp.raise_for_status()
            data = resp.json()
            message = data["choices"][0]["message"]
            usage = data.get("usage") or {}
            logger.info(
                "LLM response from %s (model=%s, tokens=%s)",
                provider_name, payload.get("model"), usage.get("total_tokens", "?"),
            )
            breaker.record_success()
            return message
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if (status == 429 or status >= 500) and not last:
                delay = BASE_DELAY * (2 ** attempt)
                logger.warning(
                    "%s %d (attempt %d/%d), retrying in %.1fs",
                    provider_name, status, attempt + 1, MAX_RETRIES + 1, delay,
                )
                await asyncio.sleep(delay)
                continue
            logger.error("%s error %d: %s", provider_name, status, e.response.text[:200])
        except httpx.TimeoutException:
            if not last:
                delay = BASE_DELAY * (2 ** attempt)
                logger.warning(
                    "%s timeout (attempt %d/%d), retrying in %.1fs",
                    provider_name, attempt + 1, MAX_RETRIES + 1, delay,
                )
                await asyncio.sleep(delay)
                continue
            logger.error("%s timed out after %d attempts", provider_name, MAX_RETRIES + 1)
        except (KeyError, IndexError, ValueError) as e:
            logger.error("Unexpected %s response structure: %s", provider_name, e)
        except httpx.HTTPError as e:
            logger.error("%s request failed: %s", provider_name, e)
        breaker.record_failure()
        return None
    return None


def parse_llm_content(content: str) -> dict:
    """Parse LLM response content, stripping markdown fences if present."""
    content = content.strip()
    if content.startswith("```"):
        content = content.split("\n", 1)[1] if "\n" in content else content[3:]
    if content.endswith("```"):
        content = content[:-3]
    parsed = json.loads(content.strip())
    if not isinstance(parsed, dict):
        raise ValueError(f"expected a JSON object, got {type(parsed).__name__}")
    return parsed


@mlflow.trace(name="complete_json", span_type=SpanType.CHAT_MODEL)
async def complete_json(messages: list[dict], max_tokens: int = 2000) -> dict | None:
    """First provider whose reply parses as a JSON object wins; None if all fail."""
    providers = _providers()
    if not providers:
        logger.warning("No LLM provider configured")
        return None

    payload_base = {"messages": messages, "temperature": 0.1, "max_tokens": max_tokens}
    async with httpx.AsyncClient(timeout=LLM_TIMEOUT) as client:
        for name, url, headers, model in providers:
            message = await _call_provider(client, url, headers, {**payload_base, "model": model}, name)
            if not message or not message.get("content"):
                continue
            try:
                return parse_llm_content(message["content"])
            except ValueError as e:
                logger.error("Failed to parse %s response: %s", name, e)

    logger.error("All LLM providers failed")
    return None
