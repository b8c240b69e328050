"""Tests for the LLM client: provider fallback, retries, circuit breaker, JSON parsing."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from entitle.retrieval import llm
from entitle.retrieval.llm import CircuitBreaker, complete_json, parse_llm_content

MESSAGES = [{"role": "user", "content": "hi"}]


def _response(content: str) -> MagicMock:
    resp = MagicMock()
    resp.raise_for_status = MagicMock()
    resp.json.return_value = {
        "choices": [{"message": {"role": "assistant", "content": content}}],
        "usage": {"total_tokens": 42},
    }
    return resp


def _status_error(status: int) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.text = "upstream said no"
    resp.raise_for_status.side_effect = httpx.HTTPStatusError(
        f"{status}", request=httpx.Request("POST", "https://llm.test"), response=resp,
    )
    return resp


def _mock_client(*responses) -> AsyncMock:
    mock_client = AsyncMock()
    mock_client.post.side_effect = list(responses)
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    return mock_client


class TestParseLlmContent:
    def test_plain_json(self):
        assert parse_llm_content('{"verdict": "fits"}') == {"verdict": "fits"}

    def test_strips_markdown_fences(self):
        assert parse_llm_content('```json\n{"verdict": "fits"}\n```') == {"verdict": "fits"}

    def test_non_object_rejected(self):
        with pytest.raises(ValueError):
            parse_llm_content("[1, 2, 3]")

    def test_garbage_rejected(self):
        with pytest.raises(ValueError):
            parse_llm_content("Sure! Here is your analysis.")


class TestProviders:
    def test_not_configured_by_default(self):
        assert llm.is_configured() is False
        assert llm._providers() == []

    def test_nvidia_models_before_gemini(self, monkeypatch):
        monkeypatch.setattr(llm.settings, "nvidia_api_key", "nv-key")
        monkeypatch.setattr(llm.settings, "gemini_api_key", "gm-key")
        names = [p[0] for p in llm._providers()]
        assert names == ["NVIDIA/llama-3.3-70b-instruct", "NVIDIA/kimi-k2.5", "Gemini"]
        assert llm.is_configured() is True


class TestCompleteJson:
    @pytest.mark.asyncio
    async def test_no_providers_returns_none(self):
        with patch("entitle.retrieval.llm.httpx.AsyncClient") as client_cls:
            assert await complete_json(MESSAGES) is None
        client_cls.assert_not_called()

    @pytest.mark.asyncio
    async def test_first_provider_wins(self, monkeypatch):
        monkeypatch.setattr(llm.settings, "nvidia_api_key", "nv-key")
        mock_client = _mock_client(_response('{"verdict": "fits"}'))
        with patch("entitle.retrieval.llm.httpx.AsyncClient", return_value=mock_client):
            assert await complete_json(MESSAGES, max_tokens=500) == {"verdict": "fits"}

        payload = mock_client.post.await_args.kwargs["json"]
        assert payload["model"] == "meta/llama-3.3-70b-instruct"
        assert payload["max_tokens"] == 500
        assert mock_client.post.await_args.kwargs["headers"]["Authorization"] == "Bearer nv-key"

    @pytest.mark.asyncio
    async def test_unparseable_reply_falls_through_to_gemini(self, monkeypatch):
        monkeypatch.setattr(llm.settings, "nvidia_api_key", "nv-key")
        monkeypatch.setattr(llm.settings, "gemini_api_key", "gm-key")
        mock_client = _mock_client(
            _response("not json"),
            _status_error(401),
            _response('```json\n{"verdict": "conflicts"}\n```'),
        )
        with patch("entitle.retrieval.llm.httpx.AsyncClient", return_value=mock_client):
            assert await complete_json(MESSAGES) == {"verdict": "conflicts"}

        assert mock_client.post.await_args.args[0] == llm.GEMINI_URL

    @pytest.mark.asyncio
    async def test_retries_server_error_then_succeeds(self, monkeypatch):
        monkeypatch.setattr(llm.settings, "gemini_api_key", "gm-key")
        mock_client = _mock_client(_status_error(503), _response('{"ok": true}'))
        with patch("entitle.retrieval.llm.httpx.AsyncClient", return_value=mock_client), \
             patch("entitle.retrieval.llm.asyncio.sleep", new_callable=AsyncMock) as sleep:
            assert await complete_json(MESSAGES) == {"ok": True}

        sleep.assert_awaited_once_with(llm.BASE_DELAY)
        assert mock_client.post.await_count == 2

    @pytest.mark.asyncio
    async def test_all_providers_fail_returns_none(self, monkeypatch):
        monkeypatch.setattr(llm.settings, "gemini_api_key", "gm-key")
        mock_client = _mock_client(*[httpx.TimeoutException("slow")] * (llm.MAX_RETRIES + 1))
        with patch("entitle.retrieval.llm.httpx.AsyncClient", return_value=mock_client), \
             patch("entitle.retrieval.llm.asyncio.sleep", new_callable=AsyncMock):
            assert await complete_json(MESSAGES) is None

        assert mock_client.post.await_count == llm.MAX_RETRIES + 1

    @pytest.mark.asyncio
    async def test_open_breaker_skips_provider(self, monkeypatch):
        monkeypatch.setattr(llm.settings, "gemini_api_key", "gm-key")
        breaker = llm._breakers.setdefault("Gemini", CircuitBreaker())
        for _ in range(breaker.failure_threshold):
            breaker.record_failure()

        mock_client = _mock_client()
        with patch("entitle.retrieval.llm.httpx.AsyncClient", return_value=mock_client):
            assert await complete_json(MESSAGES) is None
        mock_client.post.assert_not_called()


class TestCircuitBreaker:
    def test_opens_after_threshold(self):
        breaker = CircuitBreaker(failure_threshold=3)
        for _ in range(2):
            breaker.record_failure()
        assert breaker.allow_request()
        breaker.record_failure()
        assert breaker.state == "open"
        assert not breaker.allow_request()

    def test_half_open_after_reset_window(self):
        breaker = CircuitBreaker(failure_threshold=1, reset_seconds=0)
        breaker.record_failure()
        assert breaker.state == "half_open"
        assert breaker.allow_request()

    def test_success_closes(self):
        breaker = CircuitBreaker(failure_threshold=1, reset_seconds=60)
        breaker.record_failure()
        breaker.record_success()
        assert breaker.state == "closed"
