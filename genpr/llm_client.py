"""LLM client that dispatches ``provider/model`` identifiers to providers in genpr.providers."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

from genpr.errors import ConfigurationError
from genpr.logging_utils import LLM_LOGGER_NAME, summarize_messages, summarize_response
from genpr.providers import (
    AnthropicProvider,
    GeminiProvider,
    LLMProviderInterface,
    OllamaProvider,
    OpenAIProvider,
    build_reasoning_options,
)

logger = logging.getLogger(__name__)
llm_logger = logging.getLogger(LLM_LOGGER_NAME)

ProviderFactory = Callable[[], LLMProviderInterface]

DEFAULT_PROVIDER_FACTORIES: Dict[str, ProviderFactory] = {
    "openai": OpenAIProvider.for_openai,
    "azure": OpenAIProvider.for_azure,
    "xai": OpenAIProvider.for_xai,
    "openrouter": OpenAIProvider.for_openrouter,
    "anthropic": AnthropicProvider,
    "gemini": GeminiProvider,
    "ollama": OllamaProvider,
}

# Known to the reasoning capability table, but without a request binding here.
_UNBOUND_PROVIDERS = ("bedrock", "vertex")


def parse_model_identifier(model: str) -> Tuple[str, str]:
    """Split ``provider/model``; the model part may itself contain ``/``."""

    if "/" not in (model or ""):
        raise ConfigurationError(f"Model must be in format 'provider/model'. Got: {model}")
    provider, model_name = model.split("/", 1)
    if not provider or not model_name:
        raise ConfigurationError(
            f"Invalid {provider or 'provider'} model format: {model}. "
            f"Expected format: {provider or 'provider'}/model-name"
        )
    return provider, model_name


class LLMClient:
    """Wrapper that resolves a provider per model identifier and caches it."""

    def __init__(self, provider_factories: Optional[Dict[str, ProviderFactory]] = None):
        self._factories = dict(provider_factories or DEFAULT_PROVIDER_FACTORIES)
        self._providers: Dict[str, LLMProviderInterface] = {}

    def _get_provider(self, provider_name: str) -> LLMProviderInterface:
        if provider_name in self._providers:
            return self._providers[provider_name]
        factory = self._factories.get(provider_name)
        if factory is None:
            if provider_name in _UNBOUND_PROVIDERS:
                raise ConfigurationError(
                    f"Provider '{provider_name}' is not supported for planning. "
                    f"Supported providers: {', '.join(sorted(self._factories))}"
                )
            raise ConfigurationError(
                f"Unsupported provider: {provider_name}. "
                f"Supported providers: {', '.join(sorted(self._factories))}"
            )
        provider = factory()
        self._providers[provider_name] = provider
        return provider

    def complete(
        self,
        model: str,
        messages: List[Dict[str, Any]],
        reasoning_effort: Optional[str] = None,
    ) -> str:
        provider_name, model_name = parse_model_identifier(model)
        provider = self._get_provider(provider_name)

        options = build_reasoning_options(provider_name, model_name, reasoning_effort)
        if options is None:
            logger.warning(
                "Model %s does not support reasoning/thinking options. Ignoring reasoning effort parameter.",
                model,
            )
            options = {}

        logger.info("Generating response via %s (%s)", provider.__class__.__name__, model)
        llm_logger.info("request model=%s messages=%s", model, summarize_messages(messages))
        started = time.perf_counter()
        response = provider.generate_response(messages=messages, model=model_name, **options)
        elapsed = time.perf_counter() - started

        content = response.get("content") or ""
        llm_logger.info(
            "response model=%s elapsed=%.1fs finish_reason=%s usage=%s content=%s",
            model,
            elapsed,
            response.get("finish_reason"),
            response.get("usage"),
            summarize_response(content),
        )
        return content


__all__ = ["DEFAULT_PROVIDER_FACTORIES", "LLMClient", "parse_model_identifier"]
