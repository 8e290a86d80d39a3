"""Which models accept a reasoning/thinking hint, and how each provider spells it."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

REASONING_EFFORTS = ("low", "medium", "high")
THINKING_BUDGETS: Dict[str, int] = {"low": 4000, "medium": 8000, "high": 24000}

_OPENAI_REASONING = re.compile(r"^(o1|o3|o4)")
_CLAUDE_REASONING = re.compile(r"^claude-(opus-4|sonnet-4|3-7-sonnet)")
_GEMINI_REASONING = re.compile(r"^gemini-2\.5")
_BEDROCK_REASONING = re.compile(r"^(us\.)?anthropic\.claude-(opus-4|sonnet-4|3-7-sonnet)")
_VERTEX_CLAUDE_REASONING = re.compile(r"^claude-(3-7-sonnet|opus-4|sonnet-4)")
_XAI_REASONING = re.compile(r"^grok-3")


def get_thinking_budget(effort: str) -> int:
    return THINKING_BUDGETS[effort]


@dataclass(frozen=True)
class ReasoningCapability:
    supports: Callable[[str], bool]
    build_options: Callable[[str, str], Dict[str, Any]]


def _matches(pattern: "re.Pattern[str]") -> Callable[[str], bool]:
    return lambda model_name: bool(pattern.search(model_name))


def _effort_options(model_name: str, effort: str) -> Dict[str, Any]:
    return {"reasoning_effort": effort}


def _anthropic_options(model_name: str, effort: str) -> Dict[str, Any]:
    return {"thinking": {"type": "enabled", "budget_tokens": get_thinking_budget(effort)}}


def _gemini_options(model_name: str, effort: str) -> Dict[str, Any]:
    return {"generationConfig": {"thinkingConfig": {"thinkingBudget": get_thinking_budget(effort)}}}


def _bedrock_options(model_name: str, effort: str) -> Dict[str, Any]:
    return {"reasoningConfig": {"type": "enabled", "budgetTokens": get_thinking_budget(effort)}}


def _vertex_options(model_name: str, effort: str) -> Dict[str, Any]:
    if _GEMINI_REASONING.search(model_name):
        return _gemini_options(model_name, effort)
    return _anthropic_options(model_name, effort)


def _ollama_options(model_name: str, effort: str) -> Dict[str, Any]:
    return {"think": True}


REASONING_CAPABILITIES: Dict[str, ReasoningCapability] = {
    "openai": ReasoningCapability(_matches(_OPENAI_REASONING), _effort_options),
    "azure": ReasoningCapability(_matches(_OPENAI_REASONING), _effort_options),
    "anthropic": ReasoningCapability(_matches(_CLAUDE_REASONING), _anthropic_options),
    "gemini": ReasoningCapability(_matches(_GEMINI_REASONING), _gemini_options),
    "bedrock": ReasoningCapability(_matches(_BEDROCK_REASONING), _bedrock_options),
    "vertex": ReasoningCapability(
        lambda name: bool(_GEMINI_REASONING.search(name) or _VERTEX_CLAUDE_REASONING.search(name)),
        _vertex_options,
    ),
    "xai": ReasoningCapability(_matches(_XAI_REASONING), _effort_options),
    "ollama": ReasoningCapability(lambda name: True, _ollama_options),
}


def supports_reasoning_options(provider: str, model_name: str) -> bool:
    capability = REASONING_CAPABILITIES.get(provider)
    return bool(capability and capability.supports(model_name))


def build_reasoning_options(provider: str, model_name: str, effort: Optional[str]) -> Optional[Dict[str, Any]]:
    """Provider request fields for ``effort``, or ``None`` when the model cannot use them."""

    if not effort:
        return {}
    if not supports_reasoning_options(provider, model_name):
        return None
    return REASONING_CAPABILITIES[provider].build_options(model_name, effort)
