"""Run options and the ``gen-pr.config.yml`` loader."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from genpr.errors import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_FILE_NAMES = ("gen-pr.config.yml", "gen-pr.config.yaml")

CODING_TOOLS = ("aider", "claude-code", "codex-cli", "gemini-cli")
REASONING_EFFORTS = ("low", "medium", "high")
NODE_RUNTIME_ALIASES = {"node": "npx", "npx": "npx", "bun": "bunx", "bunx": "bunx"}

DEFAULT_CODING_TOOL = "aider"
DEFAULT_MAX_TEST_ATTEMPTS = 5
DEFAULT_MAX_PR_BODY_LENGTH = 30000  # GitHub caps bodies at 65536


class GenPrOptions(BaseModel):
    """Every option of a gen-pr run after CLI and config-file merging."""

    issue_number: int = Field(gt=0)
    planning_model: Optional[str] = None
    two_stage_planning: bool = True
    reasoning_effort: Optional[str] = None
    coding_tool: str = DEFAULT_CODING_TOOL
    aider_extra_args: Optional[str] = None
    claude_code_extra_args: Optional[str] = None
    codex_extra_args: Optional[str] = None
    gemini_extra_args: Optional[str] = None
    repomix_extra_args: Optional[str] = None
    test_command: Optional[str] = None
    max_test_attempts: int = Field(default=DEFAULT_MAX_TEST_ATTEMPTS, ge=1)
    remove_pattern: Optional[str] = None
    dry_run: bool = False
    no_branch: bool = False
    node_runtime: str = "npx"
    verbose: bool = False
    max_pr_body_length: int = Field(default=DEFAULT_MAX_PR_BODY_LENGTH, gt=0)

    @field_validator("coding_tool")
    @classmethod
    def _check_coding_tool(cls, value: str) -> str:
        if value not in CODING_TOOLS:
            raise ValueError(f"coding tool must be one of {', '.join(CODING_TOOLS)}")
        return value

    @field_validator("reasoning_effort")
    @classmethod
    def _check_reasoning_effort(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value not in REASONING_EFFORTS:
            raise ValueError(f"reasoning effort must be one of {', '.join(REASONING_EFFORTS)}")
        return value

    @field_validator("node_runtime")
    @classmethod
    def _resolve_node_runtime(cls, value: str) -> str:
        try:
            return NODE_RUNTIME_ALIASES[value]
        except KeyError:
            raise ValueError(
                f"node runtime must be one of {', '.join(NODE_RUNTIME_ALIASES)}"
            ) from None


def load_config_file(directory: Optional[Path] = None) -> Dict[str, Any]:
    """Return the first config file found in ``directory`` as a dict (kebab-case keys)."""

    base = Path(directory or Path.cwd())
    for name in CONFIG_FILE_NAMES:
        path = base / name
        if not path.is_file():
            continue
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Failed to parse config file {name}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {name} must contain a mapping")
        logger.info("Loaded gen-pr config from %s", name)
        return data
    return {}


def normalize_config_keys(data: Dict[str, Any]) -> Dict[str, Any]:
    """Convert ``kebab-case`` keys to the option field names."""

    return {str(key).replace("-", "_"): value for key, value in data.items()}


def build_options(values: Dict[str, Any]) -> GenPrOptions:
    """Validate merged option values, raising :class:`ConfigurationError` on failure."""

    try:
        return GenPrOptions(**values)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid options: {exc}") from exc


__all__ = [
    "CODING_TOOLS",
    "CONFIG_FILE_NAMES",
    "DEFAULT_CODING_TOOL",
    "DEFAULT_MAX_PR_BODY_LENGTH",
    "DEFAULT_MAX_TEST_ATTEMPTS",
    "GenPrOptions",
    "NODE_RUNTIME_ALIASES",
    "REASONING_EFFORTS",
    "build_options",
    "load_config_file",
    "normalize_config_keys",
]
