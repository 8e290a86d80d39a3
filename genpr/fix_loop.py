"""Run the test command and let the coding tool repair failures, a bounded number of times."""
from __future__ import annotations

import logging
from typing import Optional, Protocol

from genpr.markdown import find_distinct_fence
from genpr.models import ResolutionPlan, TestResult
from genpr.spawn import CommandResult, CommandRunner, parse_command_line_args, run_command

logger = logging.getLogger(__name__)


class Fixer(Protocol):
    display_name: str

    def run(
        self,
        prompt: str,
        resolution_plan: Optional[ResolutionPlan] = None,
        ignore_exit_status: bool = False,
    ) -> str:
        ...


def format_failure_summary(result: CommandResult) -> str:
    return (
        f"Test command failed with exit code {result.status}\n\n"
        f"Stdout:\n{result.stdout}\n\n"
        f"Stderr:\n{result.stderr}"
    )


def build_fix_prompt(test_command: str, result: CommandResult) -> str:
    stdout_fence = find_distinct_fence(result.stdout, "~")
    stderr_fence = find_distinct_fence(result.stderr, "~")
    return f"""
The previous changes were applied, but the test command `{test_command}` failed.

Exit code: {result.status}

Stdout:
{stdout_fence}
{result.stdout}
{stdout_fence}

Stderr:
{stderr_fence}
{result.stderr}
{stderr_fence}

Please analyze the output and fix the errors.
""".strip()


def test_and_fix(
    test_command: Optional[str],
    max_attempts: int,
    fixer: Fixer,
    resolution_plan: Optional[ResolutionPlan] = None,
    runner: CommandRunner = run_command,
    cwd: Optional[str] = None,
) -> TestResult:
    """Run ``test_command`` up to ``max_attempts`` times, asking ``fixer`` to repair between runs.

    The last attempt is never followed by a fix, so at most
    ``max_attempts - 1`` fixes are requested.
    """

    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    command_args = parse_command_line_args(test_command)
    if not command_args:
        return TestResult(fix_log="", success=True)
    program, *program_args = command_args

    fix_log = ""
    last_error = ""
    for attempt in range(1, max_attempts + 1):
        logger.info("Executing test command (attempt %d/%d): %s", attempt, max_attempts, test_command)
        result = runner(program, program_args, cwd=cwd, ignore_exit_status=True)
        if result.status == 0:
            logger.info("Test command passed successfully.")
            return TestResult(fix_log=fix_log, success=True)

        logger.warning("Test command failed with exit code %s.", result.status)
        last_error = format_failure_summary(result)
        if attempt >= max_attempts:
            logger.warning("Maximum fix attempts (%d) reached. Giving up.", max_attempts)
            break

        logger.info('Asking %s to fix "%s"...', fixer.display_name, test_command)
        transcript = fixer.run(
            build_fix_prompt(test_command, result), resolution_plan, ignore_exit_status=True
        )
        fix_log += f'\n\n## {fixer.display_name} fix attempt for "{test_command}"\n\n{transcript.strip()}'

    return TestResult(fix_log=fix_log, success=False, error=last_error)


# not a pytest test function
test_and_fix.__test__ = False  # type: ignore[attr-defined]


__all__ = ["Fixer", "build_fix_prompt", "format_failure_summary", "test_and_fix"]
