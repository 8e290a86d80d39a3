"""Markdown helpers for talking to LLMs with fixed response templates.

Two problems show up whenever free-form text is embedded in, or parsed out
of, a Markdown document:

* Embedding: arbitrary content (test output, source files, YAML issue dumps)
  may already contain code fences. :func:`find_distinct_fence` picks a fence
  that is longer than any run already present, so the wrapped block cannot be
  closed early.
* Parsing: planning prompts instruct the model to answer with a sequence of
  literal headings. :func:`extract_header_contents` pulls the text under each
  heading and refuses to return anything unless every heading is present in
  the requested order.
"""
from __future__ import annotations

import re
from typing import List, Optional, Sequence

_FENCE_CHARS = ("`", "~")
_WRAPPED_BLOCK_PATTERN = re.compile(r"^(`{3,}|~{3,})[\s\S]*?\n([\s\S]*?)\n\1\s*$")
_FILE_PATH_ITEM_PATTERN = re.compile(r"^[ \t]*-[ \t]*`?([^`\n]+)`?", re.MULTILINE)


def extract_header_contents(text: str, headers: Sequence[str]) -> Optional[List[str]]:
    """Return the content under each of ``headers`` or ``None``.

    A header only counts when it starts a line, and only its first occurrence
    is considered. ``None`` is returned when any header is missing or when the
    headers do not appear in the given order.
    """

    modified = f"\n{text}"
    indices = [modified.find(f"\n{header}") for header in headers]

    if any(index == -1 for index in indices):
        return None
    if any(indices[i] <= indices[i - 1] for i in range(1, len(indices))):
        return None

    contents: List[str] = []
    for i, header in enumerate(headers):
        start = indices[i] + 1 + len(header)
        end = indices[i + 1] + 1 if i + 1 < len(headers) else len(modified)
        contents.append(modified[start:end].strip())
    return contents


def find_distinct_fence(content: str, fence_char: str) -> str:
    """Return a fence of ``fence_char`` that does not occur anywhere in ``content``."""

    if fence_char not in _FENCE_CHARS:
        raise ValueError(f"fence_char must be one of {_FENCE_CHARS!r}, got {fence_char!r}")
    runs = re.findall(f"{re.escape(fence_char)}{{3,}}", content)
    longest = max((len(run) for run in runs), default=0)
    return fence_char * max(3, longest + 1)


def wrap_in_fence(content: str, fence_char: str = "~", info: str = "") -> str:
    """Wrap ``content`` in a collision-free fenced block."""

    fence = find_distinct_fence(content, fence_char)
    return f"{fence}{info}\n{content}\n{fence}"


def trim_code_block_fences(content: str) -> str:
    """Unwrap a response that is entirely enclosed in a single fenced block."""

    stripped = content.strip()
    match = _WRAPPED_BLOCK_PATTERN.match(stripped)
    if match:
        return match.group(2)
    return stripped


def parse_file_paths(section: str) -> List[str]:
    """Parse ``- `path``` bullet items (backticks optional) into a list of paths."""

    paths: List[str] = []
    for match in _FILE_PATH_ITEM_PATTERN.finditer(section or ""):
        path = match.group(1).strip()
        if path:
            paths.append(path)
    return paths


__all__ = [
    "extract_header_contents",
    "find_distinct_fence",
    "parse_file_paths",
    "trim_code_block_fences",
    "wrap_in_fence",
]
