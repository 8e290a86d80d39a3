"""Command line entry point: generate a pull request for a GitHub issue.

Options can also be set in ``gen-pr.config.yml`` (or ``.yaml``) in the
current directory using the long option names as keys; command line flags
take precedence over the config file.
"""

from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from genpr.config import (
    CODING_TOOLS,
    DEFAULT_CODING_TOOL,
    DEFAULT_MAX_PR_BODY_LENGTH,
    DEFAULT_MAX_TEST_ATTEMPTS,
    NODE_RUNTIME_ALIASES,
    REASONING_EFFORTS,
    build_options,
    load_config_file,
    normalize_config_keys,
)
from genpr.errors import GenPrError
from genpr.logging_utils import RunArtifactManager, configure_console_logging, setup_run_logging
from genpr.repomix import DEFAULT_REPOMIX_EXTRA_ARGS
from genpr.tools.coding_tools import (
    DEFAULT_AIDER_EXTRA_ARGS,
    DEFAULT_CLAUDE_CODE_EXTRA_ARGS,
    DEFAULT_CODEX_EXTRA_ARGS,
)

logger = logging.getLogger(__name__)

DEFAULT_LOGS_ROOT = Path.home() / ".gen-pr" / "logs"

# Config-file spellings that differ from the option field names.
_CONFIG_KEY_ALIASES = {"two_staged_planning": "two_stage_planning"}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="gen-pr", description=__doc__)
    parser.add_argument("-i", "--issue-number", dest="issue_number", type=int, help="GitHub issue number to process")
    parser.add_argument(
        "-m",
        "--planning-model",
        dest="planning_model",
        help="LLM for planning code changes, as provider/model (e.g. openai/o4-mini, gemini/gemini-2.5-pro)",
    )
    parser.add_argument(
        "-p",
        "--two-staged-planning",
        dest="two_stage_planning",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Select relevant files first, then plan with their contents (default: enabled)",
    )
    parser.add_argument(
        "-e",
        "--reasoning-effort",
        dest="reasoning_effort",
        choices=REASONING_EFFORTS,
        help="Reasoning effort hint for planning models",
    )
    parser.add_argument(
        "-c",
        "--coding-tool",
        dest="coding_tool",
        choices=CODING_TOOLS,
        default=DEFAULT_CODING_TOOL,
        help=f"Coding tool to use for making changes (default: {DEFAULT_CODING_TOOL})",
    )
    parser.add_argument(
        "-a",
        "--aider-extra-args",
        dest="aider_extra_args",
        help=f'Additional aider arguments (default: "{DEFAULT_AIDER_EXTRA_ARGS}")',
    )
    parser.add_argument(
        "--claude-code-extra-args",
        dest="claude_code_extra_args",
        help=f'Additional Claude Code arguments (default: "{DEFAULT_CLAUDE_CODE_EXTRA_ARGS}")',
    )
    parser.add_argument(
        "--codex-extra-args",
        dest="codex_extra_args",
        help=f'Additional Codex CLI arguments (default: "{DEFAULT_CODEX_EXTRA_ARGS}")',
    )
    parser.add_argument("--gemini-extra-args", dest="gemini_extra_args", help="Additional Gemini CLI arguments")
    parser.add_argument(
        "-r",
        "--repomix-extra-args",
        dest="repomix_extra_args",
        help=f'Additional repomix arguments (default: "{DEFAULT_REPOMIX_EXTRA_ARGS}")',
    )
    parser.add_argument(
        "-t",
        "--test-command",
        dest="test_command",
        help="Command to run after the coding tool applies changes; failures are sent back for fixing",
    )
    parser.add_argument(
        "--max-test-attempts",
        dest="max_test_attempts",
        type=int,
        default=DEFAULT_MAX_TEST_ATTEMPTS,
        help=f"Maximum number of test runs (default: {DEFAULT_MAX_TEST_ATTEMPTS})",
    )
    parser.add_argument(
        "--remove-pattern",
        dest="remove_pattern",
        help="Regular expression removed from issue and pull request descriptions",
    )
    parser.add_argument(
        "-d",
        "--dry-run",
        dest="dry_run",
        action="store_true",
        help="Run without making actual changes (no branch creation, no PR)",
    )
    parser.add_argument(
        "--no-branch",
        dest="no_branch",
        action="store_true",
        help="Commit and push on the current branch instead of opening a pull request",
    )
    parser.add_argument(
        "--node-runtime",
        dest="node_runtime",
        choices=sorted(NODE_RUNTIME_ALIASES),
        default="npx",
        help="Package runner used to launch Node-based coding tools",
    )
    parser.add_argument(
        "--max-pr-body-length",
        dest="max_pr_body_length",
        type=int,
        default=DEFAULT_MAX_PR_BODY_LENGTH,
        help=f"Maximum pull request body length (default: {DEFAULT_MAX_PR_BODY_LENGTH})",
    )
    parser.add_argument("-w", "--working-dir", dest="working_dir", help="Working directory for all commands")
    parser.add_argument("--logs-dir", dest="logs_dir", help=f"Directory for run logs (default: {DEFAULT_LOGS_ROOT})")
    parser.add_argument("-v", "--verbose", dest="verbose", action="store_true", help="Enable debug logging")
    return parser


def parse_args(argv: Optional[List[str]] = None, config: Optional[Dict[str, Any]] = None) -> argparse.Namespace:
    parser = build_parser()
    if config:
        defaults = {
            _CONFIG_KEY_ALIASES.get(key, key): value
            for key, value in normalize_config_keys(config).items()
        }
        parser.set_defaults(**defaults)
    args = parser.parse_args(argv)
    if args.issue_number is None:
        parser.error("the following arguments are required: -i/--issue-number")
    return args


def main(argv: Optional[List[str]] = None) -> int:
    try:
        config = load_config_file()
    except GenPrError as exc:
        configure_console_logging()
        logger.error("%s", exc)
        return 1

    args = parse_args(argv, config)
    configure_console_logging(args.verbose)

    if args.working_dir:
        os.chdir(args.working_dir)
        logger.info("Changed working directory to: %s", os.getcwd())

    values = {
        key: value
        for key, value in vars(args).items()
        if key not in ("working_dir", "logs_dir") and value is not None
    }
    try:
        options = build_options(values)
    except GenPrError as exc:
        logger.error("%s", exc)
        return 1
    logger.debug("Options: %s", options.model_dump_json(indent=2))

    run_context = setup_run_logging(logs_root=Path(args.logs_dir) if args.logs_dir else DEFAULT_LOGS_ROOT)
    artifacts = RunArtifactManager(run_context)
    success = False
    try:
        from genpr.pipeline import run

        result = run(options)
        success = True
        if result.pr_url:
            print(result.pr_url)
        return 0
    except GenPrError as exc:
        logger.error("%s", exc)
        return 1
    finally:
        manifest = artifacts.write_manifest(success, issue_number=options.issue_number)
        logger.info("Run manifest written to %s", manifest)


if __name__ == "__main__":
    raise SystemExit(main())
