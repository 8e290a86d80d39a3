"""Bound the size of pull request diffs before they are shown to an LLM."""
from __future__ import annotations

import re
from typing import Iterable, List, Optional, Pattern, Sequence, Union

MAX_TOTAL_DIFF_SIZE = 50000
MAX_FILE_DIFF_SIZE = 10000
_STOP_RATIO = 0.9
_HEADER_LINE_COUNT = 4  # diff --git, index, ---, +++

DEFAULT_GENERATED_FILE_PATTERNS: Sequence[Pattern[str]] = (
    re.compile(r"^diff --git a/dist/", re.MULTILINE),
    re.compile(r"^diff --git a/build/", re.MULTILINE),
    re.compile(r"^diff --git a/.*\.bundle\.", re.MULTILINE),
    re.compile(r"^diff --git a/.*\.min\.", re.MULTILINE),
    re.compile(r"^diff --git a/node_modules/", re.MULTILINE),
)

_FILE_BOUNDARY = re.compile(r"(?=^diff --git)", re.MULTILINE)
GENERATED_FILE_NOTICE = "... (large bundled/compiled file diff truncated) ..."
FILE_TRUNCATED_NOTICE = "\n... (diff truncated) ...\n"
REMAINING_TRUNCATED_NOTICE = "\n... (remaining diffs truncated) ...\n"


def _compile_patterns(
    patterns: Optional[Iterable[Union[str, Pattern[str]]]],
) -> List[Pattern[str]]:
    if patterns is None:
        return list(DEFAULT_GENERATED_FILE_PATTERNS)
    return [p if isinstance(p, re.Pattern) else re.compile(p, re.MULTILINE) for p in patterns]


def split_file_sections(diff_text: str) -> List[str]:
    """Split a unified diff into per-file sections, dropping blank fragments."""

    return [section for section in _FILE_BOUNDARY.split(diff_text) if section.strip()]


def _generated_stub(section: str) -> str:
    header_lines = section.split("\n")[:_HEADER_LINE_COUNT]
    return "\n".join([*header_lines, "@@ ... @@", GENERATED_FILE_NOTICE, ""])


def reduce_diff(
    diff_text: str,
    total_cap: int = MAX_TOTAL_DIFF_SIZE,
    per_file_cap: int = MAX_FILE_DIFF_SIZE,
    generated_file_patterns: Optional[Iterable[Union[str, Pattern[str]]]] = None,
) -> str:
    """Shrink ``diff_text`` so it fits within ``total_cap`` characters.

    Generated/bundled files are reduced to their header lines, other oversized
    file sections are cut at ``per_file_cap``, and once 90% of the budget has
    been emitted the remaining sections are replaced by a single notice. The
    result never exceeds ``total_cap``, so reducing an already reduced diff is
    a no-op.
    """

    if len(diff_text) <= total_cap:
        return diff_text

    patterns = _compile_patterns(generated_file_patterns)
    budget = total_cap - len(REMAINING_TRUNCATED_NOTICE)
    processed: List[str] = []
    total_size = 0

    for section in split_file_sections(diff_text):
        if any(pattern.search(section) for pattern in patterns):
            reduced = _generated_stub(section)
        elif len(section) > per_file_cap:
            reduced = section[:per_file_cap] + FILE_TRUNCATED_NOTICE
        else:
            reduced = section

        if total_size + len(reduced) > budget:
            keep = budget - total_size - len(FILE_TRUNCATED_NOTICE)
            if keep > 0:
                processed.append(reduced[:keep] + FILE_TRUNCATED_NOTICE)
            processed.append(REMAINING_TRUNCATED_NOTICE)
            break

        processed.append(reduced)
        total_size += len(reduced)

        if total_size > total_cap * _STOP_RATIO:
            processed.append(REMAINING_TRUNCATED_NOTICE)
            break

    return "".join(processed)


__all__ = [
    "DEFAULT_GENERATED_FILE_PATTERNS",
    "FILE_TRUNCATED_NOTICE",
    "GENERATED_FILE_NOTICE",
    "MAX_FILE_DIFF_SIZE",
    "MAX_TOTAL_DIFF_SIZE",
    "REMAINING_TRUNCATED_NOTICE",
    "reduce_diff",
    "split_file_sections",
]
