"""Tests for the external process runner."""

from __future__ import annotations

import sys

import pytest

from genpr.errors import CommandError
from genpr.spawn import format_command_line, parse_command_line_args, run_command


def test_parse_command_line_args_honours_quotes():
    assert parse_command_line_args('--include "src/**/*.{ts,tsx},**/*.md" --compress') == [
        "--include",
        "src/**/*.{ts,tsx},**/*.md",
        "--compress",
    ]
    assert parse_command_line_args("--model 'gpt 4'") == ["--model", "gpt 4"]


def test_parse_command_line_args_empty():
    assert parse_command_line_args("") == []
    assert parse_command_line_args(None) == []


def test_format_command_line_quotes_arguments_with_spaces():
    assert format_command_line("npx", ["--yes", "fix the bug"]) == 'npx --yes "fix the bug"'


def test_run_command_captures_output(tmp_path):
    result = run_command(
        sys.executable,
        ["-c", "import os, sys; print(os.getcwd()); print('warn', file=sys.stderr)"],
        cwd=str(tmp_path),
    )

    assert result.succeeded
    assert result.stdout.strip() == str(tmp_path)
    assert result.stderr.strip() == "warn"


def test_run_command_raises_on_failure():
    with pytest.raises(CommandError) as excinfo:
        run_command(sys.executable, ["-c", "import sys; sys.exit(3)"])

    assert excinfo.value.status == 3


def test_run_command_can_ignore_exit_status():
    result = run_command(sys.executable, ["-c", "import sys; sys.exit(4)"], ignore_exit_status=True)

    assert result.status == 4
    assert not result.succeeded


def test_run_command_strips_null_bytes():
    result = run_command(sys.executable, ["-c", "import sys; print(sys.argv[1])", "a\0b"])

    assert result.stdout.strip() == "ab"
