"""Pack the repository into a single text blob with repomix."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from genpr.spawn import CommandRunner, parse_command_line_args, run_command

logger = logging.getLogger(__name__)

REPOMIX_FILE_NAME = "repomix.result"
DEFAULT_REPOMIX_EXTRA_ARGS = '--compress --remove-empty-lines --include "src/**/*.{ts,tsx},**/*.md"'


def pack_repository(
    extra_args: Optional[str] = None,
    runner: Optional[CommandRunner] = None,
    cwd: Optional[str] = None,
) -> str:
    """Run repomix and return the packed repository text.

    The output file is removed after it has been read.
    """

    run = runner or run_command
    args = ["--yes", "repomix@latest", "--output", REPOMIX_FILE_NAME]
    args.extend(parse_command_line_args(extra_args or DEFAULT_REPOMIX_EXTRA_ARGS))
    run("npx", args, cwd=cwd)

    output_path = Path(cwd or ".") / REPOMIX_FILE_NAME
    try:
        return output_path.read_text(encoding="utf-8")
    finally:
        output_path.unlink(missing_ok=True)


__all__ = ["DEFAULT_REPOMIX_EXTRA_ARGS", "REPOMIX_FILE_NAME", "pack_repository"]
