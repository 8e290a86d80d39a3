"""OpenAI-compatible providers: OpenAI, Azure OpenAI, xAI and OpenRouter."""

from __future__ import annotations

import os
from typing import Any, Dict, List, Optional

from openai import AzureOpenAI, OpenAI, OpenAIError

from genpr.errors import ConfigurationError, LLMRequestError

from .base import LLMProviderInterface

XAI_BASE_URL = "https://api.x.ai/v1"
OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_AZURE_API_VERSION = "2024-10-21"


def _require_env(*names: str) -> str:
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    raise ConfigurationError(f"Set {' or '.join(names)} to use this provider.")


class OpenAIProvider(LLMProviderInterface):
    """Provider for the Chat Completions API and services that mirror it."""

    def __init__(self, client: Any, label: str = "openai"):
        self.client = client
        self.label = label

    @classmethod
    def for_openai(cls) -> "OpenAIProvider":
        return cls(OpenAI(api_key=_require_env("OPENAI_API_KEY")), "openai")

    @classmethod
    def for_azure(cls) -> "OpenAIProvider":
        api_key = _require_env("AZURE_API_KEY", "AZURE_OPENAI_API_KEY")
        endpoint = os.getenv("AZURE_OPENAI_ENDPOINT")
        if not endpoint:
            resource = _require_env("AZURE_RESOURCE_NAME")
            endpoint = f"https://{resource}.openai.azure.com"
        client = AzureOpenAI(
            api_key=api_key,
            azure_endpoint=endpoint,
            api_version=os.getenv("OPENAI_API_VERSION", DEFAULT_AZURE_API_VERSION),
        )
        return cls(client, "azure")

    @classmethod
    def for_xai(cls) -> "OpenAIProvider":
        return cls(OpenAI(api_key=_require_env("XAI_API_KEY"), base_url=XAI_BASE_URL), "xai")

    @classmethod
    def for_openrouter(cls) -> "OpenAIProvider":
        client = OpenAI(api_key=_require_env("OPENROUTER_API_KEY"), base_url=OPENROUTER_BASE_URL)
        return cls(client, "openrouter")

    def generate_response(
        self,
        messages: List[Dict[str, Any]],
        model: str,
        **options: Any,
    ) -> Dict[str, Any]:
        request_params: Dict[str, Any] = {"messages": messages, "model": model}
        request_params.update(options)

        try:
            chat_completion = self.client.chat.completions.create(**request_params)
        except OpenAIError as exc:
            raise LLMRequestError(f"{self.label} API error for model {model}: {exc}") from exc

        if not chat_completion.choices:
            raise LLMRequestError(f"{self.label} API returned no choices for model {model}.")

        choice = chat_completion.choices[0]
        usage: Optional[Dict[str, Any]] = None
        if chat_completion.usage is not None:
            usage = chat_completion.usage.model_dump()
        return {
            "role": "assistant",
            "content": choice.message.content or "",
            "usage": usage,
            "finish_reason": choice.finish_reason,
        }
