"""Git helpers for the pull request workflow.

These wrap the handful of repository operations a gen-pr run needs: making
sure a commit identity exists, switching to a fresh work branch, committing
whatever the coding tool left behind, pushing, and reading back the first
commit subject to title the pull request.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, Tuple

from git import Repo
from git.exc import GitCommandError, InvalidGitRepositoryError, NoSuchPathError

from genpr.errors import CommandError, ConfigurationError

logger = logging.getLogger(__name__)

_GITHUB_REMOTE_PATTERN = re.compile(r"github\.com[:/]([^/]+)/(.+?)(?:\.git)?/?$")

IdentityLookup = Callable[[], Tuple[Optional[str], Optional[str]]]


def _resolve_repo(repo_path: str = ".") -> Repo:
    path = Path(repo_path).expanduser().resolve()
    try:
        return Repo(path, search_parent_directories=True)
    except (InvalidGitRepositoryError, NoSuchPathError) as exc:
        raise ConfigurationError(f"Not a git repository: {path}") from exc


def configure_git_user_details_if_needed(
    identity_lookup: IdentityLookup, repo_path: str = "."
) -> None:
    """Fill in ``user.name``/``user.email`` from ``identity_lookup`` when unset."""

    repo = _resolve_repo(repo_path)
    reader = repo.config_reader()
    name = str(reader.get_value("user", "name", default="")).strip()
    email = str(reader.get_value("user", "email", default="")).strip()
    if name and email:
        return

    lookup_name, lookup_email = identity_lookup()
    with repo.config_writer() as writer:
        if lookup_name:
            writer.set_value("user", "name", lookup_name)
        if lookup_email:
            writer.set_value("user", "email", lookup_email)
    logger.info("Configured git identity from GitHub user: %s <%s>", lookup_name, lookup_email)


def _run_git(repo: Repo, command: str, *args: str) -> str:
    """Run ``git <command> <args>`` and raise :class:`CommandError` when it fails."""

    try:
        return getattr(repo.git, command)(*args)
    except GitCommandError as exc:
        status = exc.status if isinstance(exc.status, int) else 1
        stderr = str(exc.stderr or "").strip()
        raise CommandError(" ".join(["git", command, *args]), status, stderr) from exc


def get_current_branch(repo_path: str = ".") -> str:
    repo = _resolve_repo(repo_path)
    if repo.head.is_detached:
        raise ConfigurationError("HEAD is detached; check out a branch before running gen-pr")
    return repo.active_branch.name


def switch_branch(branch_name: str, repo_path: str = ".") -> None:
    _run_git(_resolve_repo(repo_path), "switch", branch_name)


def force_create_branch(branch_name: str, repo_path: str = ".") -> None:
    """Create ``branch_name`` at HEAD (resetting it if it exists) and check it out."""

    _run_git(_resolve_repo(repo_path), "switch", "--force-create", branch_name)


def commit_all(message: str, repo_path: str = ".") -> bool:
    """Stage and commit every change; retry with ``--no-verify`` when hooks reject.

    Returns ``False`` when nothing could be committed (for example, a clean
    tree because the coding tool already committed its work).
    """

    repo = _resolve_repo(repo_path)
    _run_git(repo, "add", "-A")
    try:
        repo.git.commit("-m", message)
        return True
    except GitCommandError as exc:
        logger.info("git commit failed (%s); retrying without hooks", exc.status)
    try:
        repo.git.commit("-m", message, "--no-verify")
        return True
    except GitCommandError as exc:
        logger.warning("Nothing committed: %s", exc.stderr.strip() if exc.stderr else exc)
        return False


def push_branch(branch_name: str, remote_name: str = "origin", repo_path: str = ".") -> None:
    _run_git(_resolve_repo(repo_path), "push", remote_name, branch_name, "--no-verify")


def get_header_of_first_commit(base_branch: str, repo_path: str = ".") -> str:
    """Subject line of the oldest commit on HEAD that is not on ``base_branch``."""

    repo = _resolve_repo(repo_path)
    try:
        log_output = repo.git.log(f"{base_branch}..HEAD", "--reverse", "--pretty=%s")
    except GitCommandError as exc:
        logger.warning("Could not read commits since %s: %s", base_branch, exc)
        return ""
    return log_output.strip().split("\n")[0]


def extract_repo_slug(remote_url: str) -> Optional[str]:
    """Return ``owner/name`` for https or ssh GitHub remotes."""

    match = _GITHUB_REMOTE_PATTERN.search(remote_url.strip())
    if not match:
        return None
    return f"{match.group(1)}/{match.group(2)}"


def get_repo_slug(remote_name: str = "origin", repo_path: str = ".") -> Optional[str]:
    repo = _resolve_repo(repo_path)
    try:
        remote = repo.remote(remote_name)
    except ValueError:
        return None
    return extract_repo_slug(remote.url)


def build_branch_name(issue_number: int, coding_tool: str, now: Optional[datetime] = None) -> str:
    """``gen-pr-<issue>-<tool>-YYYY_MMDD_HHMMSS`` in local time."""

    moment = now or datetime.now()
    return f"gen-pr-{issue_number}-{coding_tool}-{moment.strftime('%Y_%m%d_%H%M%S')}"


__all__ = [
    "build_branch_name",
    "commit_all",
    "configure_git_user_details_if_needed",
    "extract_repo_slug",
    "force_create_branch",
    "get_current_branch",
    "get_header_of_first_commit",
    "get_repo_slug",
    "push_branch",
    "switch_branch",
]
