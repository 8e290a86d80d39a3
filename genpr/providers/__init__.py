from .anthropic_provider import AnthropicProvider
from .base import LLMProviderInterface
from .capabilities import (
    REASONING_CAPABILITIES,
    REASONING_EFFORTS,
    ReasoningCapability,
    build_reasoning_options,
    get_thinking_budget,
    supports_reasoning_options,
)
from .gemini_provider import GeminiProvider
from .ollama_provider import OllamaProvider
from .openai_provider import OpenAIProvider

__all__ = [
    "AnthropicProvider",
    "GeminiProvider",
    "LLMProviderInterface",
    "OllamaProvider",
    "OpenAIProvider",
    "REASONING_CAPABILITIES",
    "REASONING_EFFORTS",
    "ReasoningCapability",
    "build_reasoning_options",
    "get_thinking_budget",
    "supports_reasoning_options",
]
