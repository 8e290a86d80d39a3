"""Google Gemini (Generative Language API) provider."""

from __future__ import annotations

import os
from typing import Any, Dict, List, Optional

import requests

from genpr.errors import ConfigurationError, LLMRequestError

from .base import LLMProviderInterface, describe_http_error, split_system_messages

GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta"


class GeminiProvider(LLMProviderInterface):
    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = GEMINI_API_URL,
        timeout: int = 600,
    ):
        self.api_key = (
            api_key or os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_GENERATIVE_AI_API_KEY")
        )
        if not self.api_key:
            raise ConfigurationError("Set GEMINI_API_KEY to use the gemini provider.")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def generate_response(
        self,
        messages: List[Dict[str, Any]],
        model: str,
        **options: Any,
    ) -> Dict[str, Any]:
        system_prompt, conversation = split_system_messages(messages)
        payload: Dict[str, Any] = {
            "contents": [
                {
                    "role": "model" if msg.get("role") == "assistant" else "user",
                    "parts": [{"text": str(msg.get("content", ""))}],
                }
                for msg in conversation
            ]
        }
        if system_prompt:
            payload["systemInstruction"] = {"parts": [{"text": system_prompt}]}
        payload.update(options)

        endpoint = f"{self.base_url}/models/{model}:generateContent"
        headers = {"x-goog-api-key": self.api_key, "Content-Type": "application/json"}
        try:
            response = requests.post(endpoint, json=payload, headers=headers, timeout=self.timeout)
            response.raise_for_status()
            response_data = response.json()
        except requests.RequestException as exc:
            raise LLMRequestError(f"Gemini API request failed: {describe_http_error(exc)}") from exc
        except ValueError as exc:
            raise LLMRequestError(f"Gemini API returned invalid JSON: {exc}") from exc

        candidates = response_data.get("candidates") or []
        if not candidates:
            raise LLMRequestError(f"Gemini API returned no candidates for model {model}.")
        candidate = candidates[0]
        parts = (candidate.get("content") or {}).get("parts") or []
        text = "".join(part.get("text", "") for part in parts if not part.get("thought"))
        return {
            "role": "assistant",
            "content": text,
            "usage": response_data.get("usageMetadata"),
            "finish_reason": candidate.get("finishReason"),
        }
