"""Interface shared by every LLM provider binding."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List


class LLMProviderInterface(ABC):
    """A chat completion backend.

    ``generate_response`` returns ``{"role": "assistant", "content": str,
    "usage": dict | None, "finish_reason": str | None}`` and raises
    :class:`genpr.errors.LLMRequestError` when the request fails.
    ``options`` carries provider-specific request fields such as reasoning
    or thinking settings.
    """

    @abstractmethod
    def generate_response(
        self,
        messages: List[Dict[str, Any]],
        model: str,
        **options: Any,
    ) -> Dict[str, Any]:
        raise NotImplementedError


def split_system_messages(messages: List[Dict[str, Any]]) -> tuple:
    """Separate system prompts from the conversation for APIs that take them apart."""

    system_parts = [str(msg.get("content", "")) for msg in messages if msg.get("role") == "system"]
    conversation = [msg for msg in messages if msg.get("role") != "system"]
    return "\n\n".join(part for part in system_parts if part), conversation


def describe_http_error(exc: Any) -> str:
    """Render a ``requests`` error with the response body when there is one."""

    message = str(exc)
    response = getattr(exc, "response", None)
    if response is not None:
        try:
            message += f" (Details: {response.json()})"
        except ValueError:
            message += f" (Raw response: {response.text})"
    return message
