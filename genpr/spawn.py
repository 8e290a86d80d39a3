"""Run external commands and keep a record of them in the tools log."""
from __future__ import annotations

import logging
import shlex
import subprocess
import sys
from dataclasses import dataclass
from typing import Mapping, Optional, Protocol, Sequence

from genpr.errors import CommandError
from genpr.logging_utils import TOOLS_LOGGER_NAME
from genpr.text import truncate_text

logger = logging.getLogger(__name__)
tools_logger = logging.getLogger(TOOLS_LOGGER_NAME)

MAX_LOG_LENGTH = 3000


@dataclass(frozen=True)
class CommandResult:
    command: str
    status: Optional[int]
    stdout: str
    stderr: str

    @property
    def succeeded(self) -> bool:
        return self.status == 0


class CommandRunner(Protocol):
    def __call__(
        self,
        command: str,
        args: Sequence[str],
        *,
        cwd: Optional[str] = None,
        env: Optional[Mapping[str, str]] = None,
        ignore_exit_status: bool = False,
        truncate_log: bool = False,
        stream_output: bool = False,
    ) -> CommandResult:
        ...


def format_command_line(command: str, args: Sequence[str]) -> str:
    """Render a command for humans; arguments with spaces are double quoted."""

    rendered = [f'"{arg}"' if " " in arg else arg for arg in args]
    return " ".join([command, *rendered])


def run_command(
    command: str,
    args: Sequence[str],
    *,
    cwd: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
    ignore_exit_status: bool = False,
    truncate_log: bool = False,
    stream_output: bool = False,
) -> CommandResult:
    """Run ``command`` with ``args`` and capture its output.

    Raises :class:`CommandError` on a non-zero exit status unless
    ``ignore_exit_status`` is set. ``stream_output`` echoes stdout to the
    console once the process finishes; ``truncate_log`` shortens that echo.
    """

    sanitized_args = [arg.replace("\0", "") for arg in args]
    command_line = format_command_line(command, sanitized_args)
    logger.info("$ %s", command_line)
    tools_logger.info("command=%s cwd=%s", command_line, cwd or ".")

    completed = subprocess.run(
        [command, *sanitized_args],
        cwd=cwd,
        env=dict(env) if env is not None else None,
        capture_output=True,
        text=True,
        check=False,
    )
    stdout = completed.stdout or ""
    stderr = completed.stderr or ""

    if stream_output and stdout:
        echoed = truncate_text(stdout, MAX_LOG_LENGTH) if truncate_log else stdout
        sys.stdout.write(echoed)
        sys.stdout.flush()

    trimmed_stderr = stderr.strip()
    if trimmed_stderr:
        logger.debug("stderr: %s", truncate_text(trimmed_stderr, MAX_LOG_LENGTH))
    tools_logger.info(
        "command=%s status=%s stdout=%s stderr=%s",
        command_line,
        completed.returncode,
        truncate_text(stdout.strip(), MAX_LOG_LENGTH),
        truncate_text(trimmed_stderr, MAX_LOG_LENGTH),
    )
    logger.info("Exit code: %s", completed.returncode)

    result = CommandResult(
        command=command_line,
        status=completed.returncode,
        stdout=stdout,
        stderr=stderr,
    )
    if not ignore_exit_status and completed.returncode != 0:
        raise CommandError(command_line, completed.returncode, stderr)
    return result


def parse_command_line_args(args_string: Optional[str]) -> list:
    """Split a shell-style argument string, honouring single and double quotes."""

    if not args_string:
        return []
    return shlex.split(args_string)


__all__ = [
    "CommandResult",
    "CommandRunner",
    "MAX_LOG_LENGTH",
    "format_command_line",
    "parse_command_line_args",
    "run_command",
]
