"""Ask an LLM for an implementation plan and pull it out of the reply.

The planning prompts ask the model to answer with a fixed Markdown template.
:func:`genpr.markdown.extract_header_contents` is all-or-nothing, so a reply
that does not follow the template yields a partial :class:`ResolutionPlan`
(whatever earlier stages produced) instead of an error.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

from genpr.logging_utils import PLAN_LOGGER_NAME, log_plan_failure_summary
from genpr.markdown import (
    extract_header_contents,
    find_distinct_fence,
    parse_file_paths,
    trim_code_block_fences,
)
from genpr.models import ResolutionPlan
from genpr.repomix import pack_repository

logger = logging.getLogger(__name__)
plan_logger = logging.getLogger(PLAN_LOGGER_NAME)

HEADING_OF_FILE_PATHS_TO_BE_MODIFIED = "# File Paths to be Modified"
HEADING_OF_FILE_PATHS_TO_BE_REFERRED = "# File Paths to be Referred"
HEADING_OF_PLAN = "# Implementation Plans"
HEADING_OF_COMMIT_MESSAGE = "# Commit Message"

SINGLE_STAGE_HEADERS = (HEADING_OF_PLAN, HEADING_OF_FILE_PATHS_TO_BE_MODIFIED, HEADING_OF_COMMIT_MESSAGE)
FILE_SELECTION_HEADERS = (HEADING_OF_FILE_PATHS_TO_BE_MODIFIED, HEADING_OF_FILE_PATHS_TO_BE_REFERRED)
PLANNING_HEADERS = (HEADING_OF_PLAN, HEADING_OF_COMMIT_MESSAGE)

Packer = Callable[[Optional[str]], str]


def _item_type(is_pull_request: bool) -> str:
    return "pull request" if is_pull_request else "issue"


def _subject_heading(is_pull_request: bool) -> str:
    return "Pull Request" if is_pull_request else "Issue"


def build_issue_block(issue_text: str) -> str:
    fence = find_distinct_fence(issue_text, "~")
    return f"{fence}yaml\n{issue_text.strip()}\n{fence}"


def build_prompt_for_selecting_files(issue_block: str, is_pull_request: bool = False) -> str:
    item_type = _item_type(is_pull_request)
    extra = " Consider the comments on the pull request when identifying files." if is_pull_request else ""
    return f"""
You are an expert software developer tasked with analyzing GitHub {item_type}s and identifying relevant files for code changes.

Review the following GitHub {item_type} and the list of available file paths and their contents (which will be provided in a separate message).{extra}
Your task is to identify:
1. Files that need to be MODIFIED to resolve the {item_type}
2. Files that should be REFERRED to (but not modified) to understand the codebase better

GitHub {_subject_heading(is_pull_request)}:
{issue_block}

Please format your response without any explanatory text as follows:
```md
{HEADING_OF_FILE_PATHS_TO_BE_MODIFIED}

- `[filePath1]`
- `[filePath2]`
- ...

{HEADING_OF_FILE_PATHS_TO_BE_REFERRED}

- `[filePath1]`
- `[filePath2]`
- ...
```
""".strip()


def build_prompt_for_planning_code_changes(issue_block: str, is_pull_request: bool = False) -> str:
    item_type = _item_type(is_pull_request)
    extra = " Consider the comments on the pull request when creating the plan." if is_pull_request else ""
    return f"""
You are an expert software developer tasked with creating implementation plans based on GitHub {item_type}s.

Review the following GitHub {item_type} and the provided file contents (which will be provided in a separate message).{extra}
Create a detailed, step-by-step plan outlining how to address the {item_type} effectively.
Also, provide a concise and descriptive commit message for the changes, following the Conventional Commits specification.

Your plan should:
- Focus on implementation details for each file that needs modification
- Be clear and actionable for a developer to follow
- Prefer showing diffs rather than complete file contents when describing changes
- Exclude testing procedures unless users explicitly request

GitHub {_subject_heading(is_pull_request)}:
{issue_block}

Please format your response without any explanatory text as follows:
```md
{HEADING_OF_PLAN}

1. [Specific implementation step]
2. [Next implementation step]
...

{HEADING_OF_COMMIT_MESSAGE}

[commit message]
```
""".strip()


def build_prompt_for_selecting_files_and_planning(issue_block: str, is_pull_request: bool = False) -> str:
    item_type = _item_type(is_pull_request)
    extra = " Consider the comments on the pull request when creating the plan." if is_pull_request else ""
    return f"""
You are an expert software developer tasked with analyzing GitHub {item_type}s and creating implementation plans.

Review the following GitHub {item_type} and the list of available file paths and their contents (which will be provided in a separate message).{extra}
Your task is to:
1. Create a detailed, step-by-step plan outlining how to resolve the {item_type} effectively.
2. Identify files that need to be modified to resolve the {item_type}.
3. Provide a concise and descriptive commit message for the changes, following the Conventional Commits specification.

Your plan should:
- Focus on implementation details for each file that needs modification
- Be clear and actionable for a developer to follow
- Prefer showing diffs rather than complete file contents when describing changes
- Exclude testing procedures as those will be handled separately

GitHub {_subject_heading(is_pull_request)}:
{issue_block}

Please format your response without any explanatory text as follows:
```md
{HEADING_OF_PLAN}

1. [Specific implementation step]
2. [Next implementation step]
...

{HEADING_OF_FILE_PATHS_TO_BE_MODIFIED}

- `[filePath1]`
- `[filePath2]`
- ...

{HEADING_OF_COMMIT_MESSAGE}

[commit message]
```
""".strip()


def format_file_contents(file_paths: Sequence[str], root: Optional[Path] = None) -> str:
    """Embed each file as ``# `path``` plus a fenced block; missing files are empty.

    Paths that resolve outside ``root`` are skipped.
    """

    base = (root or Path.cwd()).resolve()
    blocks: List[str] = []
    for file_path in file_paths:
        path = (base / file_path).resolve()
        if path != base and base not in path.parents:
            logger.warning("Skipping file outside the repository: %s", file_path)
            continue
        content = path.read_text(encoding="utf-8", errors="replace").strip() if path.is_file() else ""
        fence = find_distinct_fence(content, "~")
        blocks.append(f"# `{file_path}`\n\n{fence}\n{content}\n{fence}")
    return "\n\n".join(blocks)


class PlanExtractor:
    """Produce a :class:`ResolutionPlan` with one or two LLM calls."""

    def __init__(self, llm_client: Any, packer: Packer = pack_repository, root: Optional[Path] = None):
        self._llm = llm_client
        self._packer = packer
        self._root = root

    def _complete(self, model: str, system_prompt: str, user_content: str, reasoning_effort: Optional[str]) -> str:
        messages: List[Dict[str, Any]] = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_content},
        ]
        return self._llm.complete(model, messages, reasoning_effort=reasoning_effort)

    def _extract(self, stage: str, model: str, response: str, headers: Sequence[str]) -> Optional[List[str]]:
        contents = extract_header_contents(trim_code_block_fences(response), headers)
        if contents is None:
            log_plan_failure_summary(
                stage=stage,
                model=model,
                reason="missing or out-of-order headers",
                metadata={"headers": list(headers), "response_length": len(response)},
            )
            logger.warning("Planning response for stage '%s' did not follow the template", stage)
        else:
            plan_logger.info("stage=%s model=%s parsed_headers=%s", stage, model, list(headers))
        return contents

    def plan_code_changes(
        self,
        model: str,
        issue_text: str,
        two_stage_planning: bool,
        reasoning_effort: Optional[str] = None,
        repomix_extra_args: Optional[str] = None,
        is_pull_request: bool = False,
    ) -> ResolutionPlan:
        issue_block = build_issue_block(issue_text)
        repository_text = self._packer(repomix_extra_args)

        if two_stage_planning:
            return self._plan_in_two_stages(
                model, issue_block, repository_text, reasoning_effort, is_pull_request
            )

        logger.info("Planning code changes with %s (reasoning effort: %s) ...", model, reasoning_effort)
        response = self._complete(
            model,
            build_prompt_for_selecting_files_and_planning(issue_block, is_pull_request),
            repository_text,
            reasoning_effort,
        )
        contents = self._extract("single", model, response, SINGLE_STAGE_HEADERS)
        if contents is None:
            return ResolutionPlan()
        plan, file_paths_text, commit_message = contents
        return ResolutionPlan(
            plan=plan,
            commit_message=commit_message.strip(),
            file_paths=tuple(parse_file_paths(file_paths_text)),
        )

    def _plan_in_two_stages(
        self,
        model: str,
        issue_block: str,
        repository_text: str,
        reasoning_effort: Optional[str],
        is_pull_request: bool,
    ) -> ResolutionPlan:
        logger.info("Selecting files with %s (reasoning effort: %s) ...", model, reasoning_effort)
        files_response = self._complete(
            model,
            build_prompt_for_selecting_files(issue_block, is_pull_request),
            repository_text,
            reasoning_effort,
        )
        file_lists = self._extract("select-files", model, files_response, FILE_SELECTION_HEADERS)
        if file_lists is None:
            return ResolutionPlan()
        to_be_modified = parse_file_paths(file_lists[0])
        to_be_referred = parse_file_paths(file_lists[1])

        logger.info("Planning code changes with %s (reasoning effort: %s) ...", model, reasoning_effort)
        plan_response = self._complete(
            model,
            build_prompt_for_planning_code_changes(issue_block, is_pull_request),
            format_file_contents([*to_be_modified, *to_be_referred], self._root),
            reasoning_effort,
        )
        contents = self._extract("plan", model, plan_response, PLANNING_HEADERS)
        if contents is None:
            return ResolutionPlan(file_paths=tuple(to_be_modified))
        plan, commit_message = contents
        return ResolutionPlan(
            plan=plan,
            commit_message=commit_message.strip(),
            file_paths=tuple(to_be_modified),
        )


__all__ = [
    "FILE_SELECTION_HEADERS",
    "HEADING_OF_COMMIT_MESSAGE",
    "HEADING_OF_FILE_PATHS_TO_BE_MODIFIED",
    "HEADING_OF_FILE_PATHS_TO_BE_REFERRED",
    "HEADING_OF_PLAN",
    "PLANNING_HEADERS",
    "PlanExtractor",
    "SINGLE_STAGE_HEADERS",
    "build_issue_block",
    "format_file_contents",
]
