"""Compose the pull request description for a gen-pr run."""
from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from genpr.config import DEFAULT_MAX_PR_BODY_LENGTH
from genpr.markdown import find_distinct_fence
from genpr.text import HEADING_OF_GEN_PR_METADATA, collapse_blank_lines, truncate_text

MAX_ERROR_LOG_LENGTH = 5000


def _fenced_section(title: str, content: str, max_length: float) -> str:
    fence = find_distinct_fence(content, "~")
    return f"### {title}\n\n{fence}\n{truncate_text(content, max_length)}\n{fence}"


def build_pr_body(
    issue_number: int,
    tool_name: str,
    tool_command: str,
    planning_model: Optional[str] = None,
    plan_text: str = "",
    tool_response: str = "",
    error_logs: Sequence[Tuple[str, str]] = (),
    max_length: int = DEFAULT_MAX_PR_BODY_LENGTH,
) -> str:
    """Build the PR body.

    ``error_logs`` holds ``(title, log)`` pairs rendered as ``### ❌ <title>``
    sections. The plan and the tool log share what is left of ``max_length``
    in proportion to their sizes.
    """

    lines: List[str] = [f"Close #{issue_number}", "", HEADING_OF_GEN_PR_METADATA, ""]
    if planning_model:
        lines.append(f"- **Planning Model:** {planning_model}")
    lines.append(f"- **Coding Tool:** {tool_name}")
    lines.append(f"- **Coding Command:** `{tool_command}`")
    sections = ["\n".join(lines)]

    error_sections = [
        _fenced_section(f"❌ {title}", log, MAX_ERROR_LOG_LENGTH) for title, log in error_logs if log
    ]
    budget = max(max_length - sum(len(section) for section in error_sections), 0)
    total = len(plan_text) + len(tool_response)

    if plan_text:
        sections.append(_fenced_section("Plan", plan_text, len(plan_text) / total * budget))
    if tool_response:
        sections.append(_fenced_section(f"{tool_name} Log", tool_response, len(tool_response) / total * budget))
    sections.extend(error_sections)

    return collapse_blank_lines("\n\n".join(sections))


__all__ = ["DEFAULT_MAX_PR_BODY_LENGTH", "MAX_ERROR_LOG_LENGTH", "build_pr_body"]
