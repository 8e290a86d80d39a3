"""Coding tool registry and runner.

Each supported tool is described by a :class:`ToolConfig`: its display name,
how to build its argument list from the run options, and which executable to
launch. Aider is installed as its own command; the others are fetched and run
through the configured Node package runner.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from genpr.config import GenPrOptions
from genpr.models import ResolutionPlan
from genpr.spawn import CommandRunner, parse_command_line_args, run_command

logger = logging.getLogger(__name__)

DEFAULT_AIDER_EXTRA_ARGS = "--model gemini/gemini-2.5-pro --edit-format diff-fenced --no-gitignore"
DEFAULT_CLAUDE_CODE_EXTRA_ARGS = "--allowedTools Bash Edit Write"
DEFAULT_CODEX_EXTRA_ARGS = "--full-auto"
DEFAULT_GEMINI_EXTRA_ARGS = ""

DRY_RUN_PLACEHOLDER = "Skipped in dry-run mode"

ArgsBuilder = Callable[[GenPrOptions, str, Optional[ResolutionPlan]], List[str]]


def is_ci() -> bool:
    return os.environ.get("CI", "").strip().lower() not in ("", "0", "false")


def build_aider_args(
    options: GenPrOptions, prompt: str, resolution_plan: Optional[ResolutionPlan] = None
) -> List[str]:
    args = [
        "--yes-always",
        "--no-check-update",
        "--no-gitignore",
        "--no-show-model-warnings",
        "--no-show-release-notes",
        *parse_command_line_args(options.aider_extra_args or DEFAULT_AIDER_EXTRA_ARGS),
        "--message",
        prompt,
    ]
    if options.dry_run:
        args.append("--dry-run")
    if resolution_plan is not None:
        args.extend(resolution_plan.file_paths)
    return args


def build_claude_code_args(
    options: GenPrOptions, prompt: str, resolution_plan: Optional[ResolutionPlan] = None
) -> List[str]:
    args = [
        "--yes",
        "@anthropic-ai/claude-code@latest",
        *parse_command_line_args(options.claude_code_extra_args or DEFAULT_CLAUDE_CODE_EXTRA_ARGS),
        "--dangerously-skip-permissions",
    ]
    if is_ci():
        args.append("--print")
    args.append(prompt)
    return args


def build_codex_args(
    options: GenPrOptions, prompt: str, resolution_plan: Optional[ResolutionPlan] = None
) -> List[str]:
    return [
        "--yes",
        "@openai/codex@latest",
        "exec",
        *parse_command_line_args(options.codex_extra_args or DEFAULT_CODEX_EXTRA_ARGS),
        prompt,
    ]


def build_gemini_args(
    options: GenPrOptions, prompt: str, resolution_plan: Optional[ResolutionPlan] = None
) -> List[str]:
    return [
        "--yes",
        "@google/gemini-cli@latest",
        "--yolo",
        *parse_command_line_args(options.gemini_extra_args or DEFAULT_GEMINI_EXTRA_ARGS),
        "--prompt",
        prompt,
    ]


@dataclass(frozen=True)
class ToolConfig:
    name: str
    build_args: ArgsBuilder
    get_command: Callable[[str], str]
    supports_dry_run: bool = False


TOOL_REGISTRY: Dict[str, ToolConfig] = {
    "aider": ToolConfig("Aider", build_aider_args, lambda runtime: "aider", supports_dry_run=True),
    "claude-code": ToolConfig("Claude Code", build_claude_code_args, lambda runtime: runtime),
    "codex-cli": ToolConfig("Codex CLI", build_codex_args, lambda runtime: runtime),
    "gemini-cli": ToolConfig("Gemini CLI", build_gemini_args, lambda runtime: runtime),
}


def get_tool_name(tool: str) -> str:
    return TOOL_REGISTRY[tool].name


def format_tool_command(command: str, args: List[str], prompt: str) -> str:
    """Display form of a tool invocation with the prompt elided as ``...``."""

    rendered = []
    for arg in args:
        if arg == prompt:
            rendered.append("...")
        elif " " in arg or '"' in arg or "'" in arg:
            escaped = arg.replace('"', '\\"')
            rendered.append(f'"{escaped}"')
        else:
            rendered.append(arg)
    return " ".join([command, *rendered])


class CodingToolRunner:
    """Runs the configured coding tool and returns its stdout transcript."""

    def __init__(self, options: GenPrOptions, runner: CommandRunner = run_command, cwd: Optional[str] = None):
        self.options = options
        self.config = TOOL_REGISTRY[options.coding_tool]
        self._runner = runner
        self._cwd = cwd

    @property
    def display_name(self) -> str:
        return self.config.name

    @property
    def command(self) -> str:
        return self.config.get_command(self.options.node_runtime)

    def build_args(self, prompt: str, resolution_plan: Optional[ResolutionPlan] = None) -> List[str]:
        return self.config.build_args(self.options, prompt, resolution_plan)

    def command_string(self, prompt: str, resolution_plan: Optional[ResolutionPlan] = None) -> str:
        return format_tool_command(self.command, self.build_args(prompt, resolution_plan), prompt)

    def run(
        self,
        prompt: str,
        resolution_plan: Optional[ResolutionPlan] = None,
        ignore_exit_status: bool = False,
    ) -> str:
        args = self.build_args(prompt, resolution_plan)
        if self.options.dry_run and not self.config.supports_dry_run:
            logger.info("Would run: %s", format_tool_command(self.command, args, prompt))
            return DRY_RUN_PLACEHOLDER

        env = dict(os.environ)
        env["NO_COLOR"] = "1"
        result = self._runner(
            self.command,
            args,
            cwd=self._cwd,
            env=env,
            ignore_exit_status=ignore_exit_status,
            stream_output=True,
        )
        return result.stdout


__all__ = [
    "CodingToolRunner",
    "DEFAULT_AIDER_EXTRA_ARGS",
    "DEFAULT_CLAUDE_CODE_EXTRA_ARGS",
    "DEFAULT_CODEX_EXTRA_ARGS",
    "DEFAULT_GEMINI_EXTRA_ARGS",
    "DRY_RUN_PLACEHOLDER",
    "TOOL_REGISTRY",
    "ToolConfig",
    "build_aider_args",
    "build_claude_code_args",
    "build_codex_args",
    "build_gemini_args",
    "format_tool_command",
    "get_tool_name",
    "is_ci",
]
