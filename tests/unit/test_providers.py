"""Tests for the LLM provider bindings with the network replaced."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any, Dict, Optional

import anthropic
import httpx
import pytest
import requests

from genpr.errors import ConfigurationError, LLMRequestError
from genpr.providers import anthropic_provider, gemini_provider, ollama_provider
from genpr.providers.anthropic_provider import AnthropicProvider
from genpr.providers.gemini_provider import GeminiProvider
from genpr.providers.ollama_provider import OllamaProvider
from genpr.providers.openai_provider import OpenAIProvider

MESSAGES = [{"role": "system", "content": "be brief"}, {"role": "user", "content": "hello"}]


class FakeResponse:
    def __init__(self, payload: Any, status_code: int = 200):
        self._payload = payload
        self.status_code = status_code
        self.text = str(payload)

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error", response=self)

    def json(self) -> Any:
        return self._payload


def _capture_post(monkeypatch, module, payload: Any, status_code: int = 200) -> Dict[str, Any]:
    captured: Dict[str, Any] = {}

    def fake_post(url, json=None, headers=None, timeout=None):
        captured.update(url=url, json=json, headers=headers)
        return FakeResponse(payload, status_code)

    monkeypatch.setattr(module.requests, "post", fake_post)
    return captured


def test_ollama_posts_to_chat_endpoint(monkeypatch):
    captured = _capture_post(
        monkeypatch,
        ollama_provider,
        {"message": {"content": "hi"}, "done_reason": "stop", "prompt_eval_count": 3, "eval_count": 1},
    )
    provider = OllamaProvider(base_url="http://ollama.local:11434/", api_key="secret")

    response = provider.generate_response(MESSAGES, "qwen3:8b", think=True)

    assert captured["url"] == "http://ollama.local:11434/api/chat"
    assert captured["json"]["stream"] is False
    assert captured["json"]["think"] is True
    assert captured["headers"]["Authorization"] == "Bearer secret"
    assert response == {
        "role": "assistant",
        "content": "hi",
        "usage": {"prompt_tokens": 3, "completion_tokens": 1},
        "finish_reason": "stop",
    }


def test_ollama_http_error_raises_llm_request_error(monkeypatch):
    _capture_post(monkeypatch, ollama_provider, {"error": "model not found"}, status_code=404)

    with pytest.raises(LLMRequestError, match="model not found"):
        OllamaProvider(api_key="").generate_response(MESSAGES, "missing")


class FakeUsage:
    def model_dump(self) -> Dict[str, int]:
        return {"input_tokens": 5, "output_tokens": 2}


class FakeMessages:
    def __init__(self, error: Optional[Exception] = None):
        self.kwargs: Dict[str, Any] = {}
        self.error = error

    def create(self, **kwargs):
        self.kwargs = kwargs
        if self.error is not None:
            raise self.error
        return SimpleNamespace(
            content=[
                SimpleNamespace(type="thinking", thinking="..."),
                SimpleNamespace(type="text", text="answer"),
            ],
            stop_reason="end_turn",
            usage=FakeUsage(),
        )


def test_anthropic_separates_system_prompt_and_extends_max_tokens():
    messages = FakeMessages()
    provider = AnthropicProvider(client=SimpleNamespace(messages=messages))

    response = provider.generate_response(
        MESSAGES, "claude-sonnet-4", thinking={"type": "enabled", "budget_tokens": 4000}
    )

    assert messages.kwargs["system"] == "be brief"
    assert messages.kwargs["messages"] == [{"role": "user", "content": "hello"}]
    assert messages.kwargs["max_tokens"] == 4000 + anthropic_provider.DEFAULT_MAX_TOKENS
    assert messages.kwargs["thinking"] == {"type": "enabled", "budget_tokens": 4000}
    assert response == {
        "role": "assistant",
        "content": "answer",
        "usage": {"input_tokens": 5, "output_tokens": 2},
        "finish_reason": "end_turn",
    }


def test_anthropic_api_error_raises_llm_request_error():
    request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
    messages = FakeMessages(error=anthropic.APIConnectionError(request=request))
    provider = AnthropicProvider(client=SimpleNamespace(messages=messages))

    with pytest.raises(LLMRequestError, match="Anthropic API request failed"):
        provider.generate_response(MESSAGES, "claude-sonnet-4")


def test_anthropic_requires_api_key(monkeypatch):
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)

    with pytest.raises(ConfigurationError):
        AnthropicProvider()


def test_gemini_skips_thought_parts(monkeypatch):
    captured = _capture_post(
        monkeypatch,
        gemini_provider,
        {
            "candidates": [
                {
                    "content": {"parts": [{"text": "thinking", "thought": True}, {"text": "final"}]},
                    "finishReason": "STOP",
                }
            ]
        },
    )
    provider = GeminiProvider(api_key="gkey")

    response = provider.generate_response(MESSAGES, "gemini-2.5-pro")

    assert captured["url"].endswith("/models/gemini-2.5-pro:generateContent")
    assert captured["headers"]["x-goog-api-key"] == "gkey"
    assert captured["json"]["systemInstruction"] == {"parts": [{"text": "be brief"}]}
    assert captured["json"]["contents"] == [{"role": "user", "parts": [{"text": "hello"}]}]
    assert response["content"] == "final"


def test_gemini_without_candidates_raises(monkeypatch):
    _capture_post(monkeypatch, gemini_provider, {"candidates": []})

    with pytest.raises(LLMRequestError):
        GeminiProvider(api_key="gkey").generate_response(MESSAGES, "gemini-2.5-pro")


class FakeCompletions:
    def __init__(self):
        self.kwargs: Dict[str, Any] = {}

    def create(self, **kwargs):
        self.kwargs = kwargs
        message = SimpleNamespace(content="done")
        return SimpleNamespace(
            choices=[SimpleNamespace(message=message, finish_reason="stop")],
            usage=None,
        )


def test_openai_provider_forwards_reasoning_effort():
    completions = FakeCompletions()
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    provider = OpenAIProvider(client)

    response = provider.generate_response(MESSAGES, "o4-mini", reasoning_effort="high")

    assert completions.kwargs == {"messages": MESSAGES, "model": "o4-mini", "reasoning_effort": "high"}
    assert response == {"role": "assistant", "content": "done", "usage": None, "finish_reason": "stop"}


def test_openai_factories_require_api_keys(monkeypatch):
    for name in ("OPENAI_API_KEY", "XAI_API_KEY", "OPENROUTER_API_KEY"):
        monkeypatch.delenv(name, raising=False)

    with pytest.raises(ConfigurationError):
        OpenAIProvider.for_openai()
    with pytest.raises(ConfigurationError):
        OpenAIProvider.for_xai()
    with pytest.raises(ConfigurationError):
        OpenAIProvider.for_openrouter()


def test_openrouter_uses_its_base_url(monkeypatch):
    monkeypatch.setenv("OPENROUTER_API_KEY", "or-key")

    provider = OpenAIProvider.for_openrouter()

    assert str(provider.client.base_url).rstrip("/") == "https://openrouter.ai/api/v1"
    assert provider.label == "openrouter"
