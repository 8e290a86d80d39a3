"""Ollama provider over its native chat endpoint."""

from __future__ import annotations

import os
from typing import Any, Dict, List, Optional

import requests

from genpr.errors import LLMRequestError

from .base import LLMProviderInterface, describe_http_error

DEFAULT_OLLAMA_BASE_URL = "http://localhost:11434"


class OllamaProvider(LLMProviderInterface):
    """Provider that communicates with an Ollama server."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: int = 600,
    ):
        resolved = base_url or os.getenv("OLLAMA_BASE_URL") or DEFAULT_OLLAMA_BASE_URL
        self.base_url = resolved.rstrip("/")
        self.chat_endpoint = f"{self.base_url}/api/chat"
        self.api_key = api_key if api_key is not None else os.getenv("OLLAMA_API_KEY")
        self.timeout = timeout

    def generate_response(
        self,
        messages: List[Dict[str, Any]],
        model: str,
        **options: Any,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": model,
            "messages": messages,
            "stream": False,
        }
        payload.update(options)

        headers: Dict[str, str] = {}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        try:
            response = requests.post(
                self.chat_endpoint, json=payload, headers=headers, timeout=self.timeout
            )
            response.raise_for_status()
            response_data = response.json()
        except requests.RequestException as exc:
            raise LLMRequestError(f"Ollama API request failed: {describe_http_error(exc)}") from exc
        except ValueError as exc:
            raise LLMRequestError(f"Ollama API returned invalid JSON: {exc}") from exc

        message_block = response_data.get("message") or {}
        content = message_block.get("content")
        if not isinstance(content, str):
            content = "" if content is None else str(content)

        usage = None
        if "prompt_eval_count" in response_data or "eval_count" in response_data:
            usage = {
                "prompt_tokens": response_data.get("prompt_eval_count"),
                "completion_tokens": response_data.get("eval_count"),
            }
        return {
            "role": "assistant",
            "content": content,
            "usage": usage,
            "finish_reason": response_data.get("done_reason"),
        }
