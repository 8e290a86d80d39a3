"""String transforms applied to issue bodies, comments, and PR descriptions."""
from __future__ import annotations

import logging
import re
from typing import Union

logger = logging.getLogger(__name__)

HEADING_OF_GEN_PR_METADATA = "## gen-pr Metadata"

_HTML_COMMENT_PATTERN = re.compile(r"<!--[\s\S]*?-->")
_LOG_SECTION_PATTERN = re.compile(r"^# .+ Log\s*[\r\n]+~{3,}[\s\S]*?~{3,}", re.MULTILINE)
_BLANK_LINE_RUN_PATTERN = re.compile(r"(?:\s*\n){2,}")


def truncate_text(text: str, max_length: Union[int, float]) -> str:
    """Truncate ``text`` to ``max_length`` characters and note how much was dropped.

    The marker is appended after the kept prefix and does not count against
    ``max_length``. Fractional limits (proportional budgets) are floored.
    """

    limit = max(int(max_length), 0)
    if len(text) > limit:
        omitted = len(text) - limit
        return f"{text[:limit]}\n\n... ({omitted} characters truncated) ..."
    return text


def strip_html_comments(markdown_content: str) -> str:
    """Remove every ``<!-- ... -->`` comment; unterminated markers are kept."""

    return _HTML_COMMENT_PATTERN.sub("", markdown_content)


def strip_metadata_sections(markdown_content: str, heading: str = HEADING_OF_GEN_PR_METADATA) -> str:
    """Drop everything from the first ``heading`` onward."""

    index = markdown_content.find(heading)
    if index == -1:
        return markdown_content
    return markdown_content[:index]


def strip_log_sections(markdown_content: str) -> str:
    """Remove top-level ``# ... Log`` headings together with their ``~~~`` fenced block."""

    return _LOG_SECTION_PATTERN.sub("", markdown_content).strip()


def normalize_newlines(text: str) -> str:
    """Convert CRLF line endings to LF and strip surrounding whitespace."""

    return text.replace("\r\n", "\n").strip()


def remove_regex_pattern(text: str, pattern: str) -> str:
    """Remove all matches of ``pattern``; invalid patterns leave ``text`` untouched."""

    if not pattern:
        return text
    try:
        compiled = re.compile(pattern)
    except re.error as exc:
        logger.warning("Invalid remove pattern %r: %s", pattern, exc)
        return text
    return compiled.sub("", text)


def collapse_blank_lines(text: str) -> str:
    return _BLANK_LINE_RUN_PATTERN.sub("\n\n", text).strip()


__all__ = [
    "HEADING_OF_GEN_PR_METADATA",
    "collapse_blank_lines",
    "normalize_newlines",
    "remove_regex_pattern",
    "strip_html_comments",
    "strip_log_sections",
    "strip_metadata_sections",
    "truncate_text",
]
