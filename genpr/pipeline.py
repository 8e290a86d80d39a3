"""End-to-end gen-pr run: issue context, plan, coding tool, tests, pull request."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from functools import partial
from typing import Any, List, Optional, Tuple

from genpr.config import GenPrOptions
from genpr.env import configure_env_vars
from genpr.fix_loop import test_and_fix
from genpr.issue import IssueContextCollector
from genpr.markdown import find_distinct_fence
from genpr.models import ResolutionPlan, TestResult
from genpr.plan import PlanExtractor
from genpr.pr_body import build_pr_body
from genpr.repomix import pack_repository
from genpr.spawn import CommandRunner, run_command
from genpr.tools import tool_git
from genpr.tools.coding_tools import CodingToolRunner

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    branch: str
    title: str
    body: str
    draft: bool = False
    pr_url: Optional[str] = None
    resolution_plan: Optional[ResolutionPlan] = None
    test_result: Optional[TestResult] = None
    error_logs: List[Tuple[str, str]] = field(default_factory=list)


def build_coding_prompt(
    issue_text: str,
    plan_text: str,
    is_pull_request: bool,
    is_agentic: bool,
) -> str:
    """Prompt handed to the coding tool: the fenced issue YAML plus the optional plan."""

    item_type = "pull request" if is_pull_request else "issue"
    based_on_plan = " based on the plan" if plan_text else ""
    pr_instruction = (
        " Consider the comments on the pull request when making your changes." if is_pull_request else ""
    )
    commit_instruction = (
        " After that, commit your changes with a message, following the Conventional Commits specification."
        if is_agentic
        else ""
    )
    fence = find_distinct_fence(issue_text, "~")
    parts = [
        f"Modify the code to resolve the following GitHub {item_type}{based_on_plan}.{pr_instruction}{commit_instruction}",
        f"## {'Pull Request' if is_pull_request else 'Issue'}",
        f"{fence}yml\n{issue_text}\n{fence}",
    ]
    if plan_text:
        parts.append(f"## Plan\n\n{plan_text}")
    return "\n\n".join(parts).strip()


def run(
    options: GenPrOptions,
    *,
    github_client: Any = None,
    llm_client: Any = None,
    runner: CommandRunner = run_command,
    packer: Any = None,
    git: Any = tool_git,
    repo_path: str = ".",
    now: Optional[datetime] = None,
) -> PipelineResult:
    """Process ``options.issue_number`` and open (or, in dry-run mode, describe) a pull request."""

    configure_env_vars()

    if github_client is None:
        from genpr.github_client import GitHubClient

        github_client = GitHubClient()

    if options.dry_run:
        logger.warning("Running in dry-run mode. No branches or PRs will be created.")
    else:
        git.configure_git_user_details_if_needed(github_client.get_authenticated_identity, repo_path)

    pr_head_branch = github_client.get_pull_request_head_branch(options.issue_number)
    is_pull_request = bool(pr_head_branch)
    base_branch = pr_head_branch or git.get_current_branch(repo_path)

    collector = IssueContextCollector(github_client, remove_pattern=options.remove_pattern or "")
    issue_context = collector.collect(options.issue_number)
    issue_text = issue_context.to_yaml()

    resolution_plan: Optional[ResolutionPlan] = None
    if options.planning_model:
        if llm_client is None:
            from genpr.llm_client import LLMClient

            llm_client = LLMClient()
        extractor = PlanExtractor(
            llm_client,
            packer=packer or partial(pack_repository, runner=runner, cwd=repo_path),
        )
        resolution_plan = extractor.plan_code_changes(
            options.planning_model,
            issue_text,
            options.two_stage_planning,
            reasoning_effort=options.reasoning_effort,
            repomix_extra_args=options.repomix_extra_args,
            is_pull_request=is_pull_request,
        )
        logger.info("Resolution plan: %s", resolution_plan)
    plan_text = (resolution_plan.plan if resolution_plan else None) or ""

    prompt = build_coding_prompt(
        issue_text,
        plan_text,
        is_pull_request=is_pull_request,
        is_agentic=options.coding_tool != "aider",
    )

    creates_branch = not options.no_branch
    if creates_branch:
        branch = git.build_branch_name(options.issue_number, options.coding_tool, now)
    else:
        branch = base_branch
    if options.dry_run:
        logger.info("Would create branch: %s", branch)
    elif creates_branch:
        git.switch_branch(base_branch, repo_path)
        git.force_create_branch(branch, repo_path)

    coding_tool = CodingToolRunner(options, runner=runner, cwd=repo_path)
    tool_command = coding_tool.command_string(prompt, resolution_plan)
    tool_response = coding_tool.run(prompt, resolution_plan).strip()

    test_result: Optional[TestResult] = None
    if options.test_command:
        test_result = test_and_fix(
            options.test_command,
            options.max_test_attempts,
            coding_tool,
            resolution_plan=resolution_plan,
            runner=runner,
            cwd=repo_path,
        )
        tool_response += test_result.fix_log

    error_logs: List[Tuple[str, str]] = []
    if test_result is not None and not test_result.success:
        error_logs.append(
            (
                f'Test command "{options.test_command}" still failing after {options.max_test_attempts} attempts',
                test_result.error or "",
            )
        )

    commit_message = (
        resolution_plan.commit_message if resolution_plan and resolution_plan.commit_message else None
    ) or f"fix: Close #{options.issue_number}"

    if options.dry_run:
        logger.info("Would commit changes with message: %s", commit_message)
        logger.info("Would push branch: %s to origin", branch)
    else:
        # The coding tool may have failed to commit because of pre-commit hooks.
        git.commit_all(commit_message, repo_path)
        git.push_branch(branch, "origin", repo_path)

    title = "" if options.dry_run else git.get_header_of_first_commit(base_branch, repo_path)
    title = title or commit_message
    body = build_pr_body(
        options.issue_number,
        coding_tool.display_name,
        tool_command,
        planning_model=options.planning_model,
        plan_text=plan_text,
        tool_response=tool_response,
        error_logs=error_logs,
        max_length=options.max_pr_body_length,
    )
    draft = bool(error_logs)

    pr_url: Optional[str] = None
    item_label = "Pull request" if is_pull_request else "Issue"
    if options.dry_run:
        logger.info("Would create %sPR with title: %s", "draft " if draft else "", title)
        logger.info(
            "PR body would include the %s response and close %s #%s",
            coding_tool.display_name.lower(),
            item_label.lower(),
            options.issue_number,
        )
    elif not creates_branch:
        logger.info("Pushed changes to %s; no pull request opened.", branch)
    else:
        pr_url = github_client.create_pull_request(title, body, branch, base_branch, draft=draft)

    logger.info("%s #%s processed successfully.", item_label, options.issue_number)
    return PipelineResult(
        branch=branch,
        title=title,
        body=body,
        draft=draft,
        pr_url=pr_url,
        resolution_plan=resolution_plan,
        test_result=test_result,
        error_logs=error_logs,
    )


__all__ = ["PipelineResult", "build_coding_prompt", "run"]
