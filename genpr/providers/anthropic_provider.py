"""Anthropic Messages API provider."""

from __future__ import annotations

import os
from typing import Any, Dict, List, Optional

from anthropic import Anthropic, APIError

from genpr.errors import ConfigurationError, LLMRequestError

from .base import LLMProviderInterface, split_system_messages

DEFAULT_MAX_TOKENS = 8192


class AnthropicProvider(LLMProviderInterface):
    def __init__(
        self,
        api_key: Optional[str] = None,
        client: Any = None,
        timeout: int = 600,
    ):
        if client is None:
            api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
            if not api_key:
                raise ConfigurationError("Set ANTHROPIC_API_KEY to use the anthropic provider.")
            client = Anthropic(api_key=api_key, timeout=timeout)
        self.client = client

    def generate_response(
        self,
        messages: List[Dict[str, Any]],
        model: str,
        **options: Any,
    ) -> Dict[str, Any]:
        system_prompt, conversation = split_system_messages(messages)
        request: Dict[str, Any] = {
            "model": model,
            "max_tokens": DEFAULT_MAX_TOKENS,
            "messages": [
                {"role": msg.get("role", "user"), "content": str(msg.get("content", ""))}
                for msg in conversation
            ],
        }
        if system_prompt:
            request["system"] = system_prompt
        request.update(options)
        thinking = request.get("thinking") or {}
        if thinking.get("budget_tokens"):
            # max_tokens must leave room for the answer on top of the thinking budget
            request["max_tokens"] = thinking["budget_tokens"] + DEFAULT_MAX_TOKENS

        try:
            response = self.client.messages.create(**request)
        except APIError as exc:
            raise LLMRequestError(f"Anthropic API request failed: {exc}") from exc

        text = "".join(
            getattr(block, "text", "") for block in response.content if getattr(block, "type", None) == "text"
        )
        usage = response.usage.model_dump() if response.usage is not None else None
        return {
            "role": "assistant",
            "content": text,
            "usage": usage,
            "finish_reason": response.stop_reason,
        }
