"""Tests for the bounded test/fix loop."""

from __future__ import annotations

from typing import List, Optional

import pytest

from genpr.fix_loop import build_fix_prompt, format_failure_summary, test_and_fix
from genpr.models import ResolutionPlan
from genpr.spawn import CommandResult


class ScriptedRunner:
    """Returns queued exit statuses for the test command."""

    def __init__(self, statuses: List[int]):
        self.statuses = list(statuses)
        self.calls: List[tuple] = []

    def __call__(self, command, args, *, cwd=None, env=None, ignore_exit_status=False, truncate_log=False, stream_output=False):
        self.calls.append((command, list(args), cwd, ignore_exit_status))
        status = self.statuses.pop(0)
        stdout = "ok" if status == 0 else "1 failing"
        stderr = "" if status == 0 else "AssertionError: expected 2"
        return CommandResult(command=" ".join([command, *args]), status=status, stdout=stdout, stderr=stderr)


class FakeFixer:
    display_name = "Aider"

    def __init__(self):
        self.prompts: List[str] = []
        self.plans: List[Optional[ResolutionPlan]] = []

    def run(self, prompt: str, resolution_plan: Optional[ResolutionPlan] = None, ignore_exit_status: bool = False) -> str:
        assert ignore_exit_status is True
        self.prompts.append(prompt)
        self.plans.append(resolution_plan)
        return f"applied fix {len(self.prompts)}\n"


def test_passing_on_first_attempt_needs_no_fix():
    runner = ScriptedRunner([0])
    fixer = FakeFixer()

    result = test_and_fix("npm test", 3, fixer, runner=runner, cwd="/repo")

    assert result.success is True
    assert result.fix_log == ""
    assert result.error is None
    assert fixer.prompts == []
    assert runner.calls == [("npm", ["test"], "/repo", True)]


def test_always_failing_command_stops_after_max_attempts():
    runner = ScriptedRunner([1, 1, 1])
    fixer = FakeFixer()
    plan = ResolutionPlan(plan="steps", file_paths=("a.ts",))

    result = test_and_fix("npm test", 3, fixer, resolution_plan=plan, runner=runner)

    assert result.success is False
    assert len(runner.calls) == 3
    assert len(fixer.prompts) == 2
    assert fixer.plans == [plan, plan]
    assert result.error.startswith("Test command failed with exit code 1")
    assert result.fix_log == (
        '\n\n## Aider fix attempt for "npm test"\n\napplied fix 1'
        '\n\n## Aider fix attempt for "npm test"\n\napplied fix 2'
    )


def test_fix_then_pass_keeps_transcript():
    runner = ScriptedRunner([2, 0])
    fixer = FakeFixer()

    result = test_and_fix("yarn test --ci", 5, fixer, runner=runner)

    assert result.success is True
    assert result.error is None
    assert "applied fix 1" in result.fix_log
    assert runner.calls[0][:2] == ("yarn", ["test", "--ci"])


def test_single_attempt_never_asks_for_a_fix():
    runner = ScriptedRunner([1])
    fixer = FakeFixer()

    result = test_and_fix("pytest", 1, fixer, runner=runner)

    assert result.success is False
    assert fixer.prompts == []


def test_zero_attempts_is_rejected():
    with pytest.raises(ValueError):
        test_and_fix("pytest", 0, FakeFixer(), runner=ScriptedRunner([]))


def test_empty_command_is_a_success():
    runner = ScriptedRunner([])

    result = test_and_fix("", 3, FakeFixer(), runner=runner)

    assert result.success is True
    assert runner.calls == []


def test_failure_summary_and_fix_prompt_format():
    failed = CommandResult(command="npm test", status=1, stdout="out ~~~ here", stderr="err")

    assert format_failure_summary(failed) == (
        "Test command failed with exit code 1\n\nStdout:\nout ~~~ here\n\nStderr:\nerr"
    )
    prompt = build_fix_prompt("npm test", failed)
    assert "`npm test`" in prompt
    assert "~~~~\nout ~~~ here\n~~~~" in prompt
    assert "~~~\nerr\n~~~" in prompt
