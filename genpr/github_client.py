"""GitHub access for issue context collection and pull request creation.

Issue, comment and review data come from the REST API through PyGithub. The
unified diff and the review threads are not exposed by PyGithub in the shape
the collector needs, so those two calls go through ``requests`` directly
(diff media type and GraphQL respectively).

Every read returns a :class:`~genpr.models.FetchResult`; the collector
decides whether a failure is fatal.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

import requests
from github import Auth, Github, GithubException
from pydantic import ValidationError

from genpr.env import resolve_github_token
from genpr.errors import ConfigurationError
from genpr.models import (
    CommentPayload,
    FetchResult,
    IssuePayload,
    ReviewPayload,
    ReviewThreadCommentPayload,
    ReviewThreadPayload,
)
from genpr.tools.tool_git import get_repo_slug

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"
MAX_MESSAGE_COUNT = 100
REQUEST_TIMEOUT = 60

_FETCH_ERRORS = (GithubException, requests.RequestException, ValidationError, KeyError, TypeError)

REVIEW_THREADS_QUERY = f"""
query($owner: String!, $repo: String!, $pr: Int!) {{
  repository(owner: $owner, name: $repo) {{
    pullRequest(number: $pr) {{
      reviewThreads(first: {MAX_MESSAGE_COUNT}) {{
        nodes {{
          isResolved
          comments(first: {MAX_MESSAGE_COUNT}) {{
            nodes {{
              author {{
                login
              }}
              body
              path
              line
              diffHunk
              createdAt
            }}
          }}
        }}
      }}
    }}
  }}
}}
"""


def _login(user: Any) -> str:
    return getattr(user, "login", None) or ""


class GitHubClient:
    """Thin binding over the GitHub API for a single repository."""

    def __init__(
        self,
        repository: Optional[str] = None,
        token: Optional[str] = None,
        api_url: str = GITHUB_API_URL,
    ) -> None:
        slug = repository or get_repo_slug()
        if not slug or "/" not in slug:
            raise ConfigurationError("Could not determine the GitHub repository from the origin remote.")
        self.repository = slug
        self.owner, self.name = slug.split("/", 1)
        self.api_url = api_url.rstrip("/")
        self._token = token or resolve_github_token()
        self._github = Github(auth=Auth.Token(self._token))
        self._repo = None

    # ------------------------------------------------------------------
    # Helpers

    def _get_repo(self):
        if self._repo is None:
            self._repo = self._github.get_repo(self.repository)
        return self._repo

    def _headers(self, accept: str = "application/vnd.github+json") -> Dict[str, str]:
        return {"Authorization": f"Bearer {self._token}", "Accept": accept}

    # ------------------------------------------------------------------
    # Reads

    def fetch_issue(self, number: int) -> FetchResult[IssuePayload]:
        try:
            issue = self._get_repo().get_issue(number)
            comments = [
                CommentPayload(
                    author=_login(comment.user),
                    body=comment.body or "",
                    created_at=comment.created_at,
                )
                for comment in issue.get_comments()
            ]
            payload = IssuePayload(
                number=number,
                author=_login(issue.user),
                title=issue.title or "",
                body=issue.body or "",
                labels=[label.name for label in issue.labels],
                comments=comments,
                url=issue.html_url or "",
            )
        except _FETCH_ERRORS as exc:
            return FetchResult.failure(f"Failed to fetch issue #{number}: {exc}")
        return FetchResult.success(payload)

    def fetch_diff(self, number: int) -> FetchResult[str]:
        url = f"{self.api_url}/repos/{self.repository}/pulls/{number}"
        try:
            response = requests.get(
                url,
                headers=self._headers("application/vnd.github.v3.diff"),
                timeout=REQUEST_TIMEOUT,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            return FetchResult.failure(f"Failed to fetch diff for #{number}: {exc}")
        return FetchResult.success(response.text)

    def fetch_review_threads(self, number: int) -> FetchResult[List[ReviewThreadPayload]]:
        variables = {"owner": self.owner, "repo": self.name, "pr": number}
        try:
            response = requests.post(
                f"{self.api_url}/graphql",
                json={"query": REVIEW_THREADS_QUERY, "variables": variables},
                headers=self._headers(),
                timeout=REQUEST_TIMEOUT,
            )
            response.raise_for_status()
            data = response.json()
            if data.get("errors"):
                return FetchResult.failure(f"GraphQL errors for #{number}: {data['errors']}")
            pull_request = ((data.get("data") or {}).get("repository") or {}).get("pullRequest") or {}
            nodes = (pull_request.get("reviewThreads") or {}).get("nodes") or []
            threads = [self._thread_from_node(node) for node in nodes]
        except (*_FETCH_ERRORS, ValueError) as exc:
            return FetchResult.failure(f"Failed to fetch review threads for #{number}: {exc}")
        return FetchResult.success(threads)

    @staticmethod
    def _thread_from_node(node: Dict[str, Any]) -> ReviewThreadPayload:
        comments = []
        for comment in (node.get("comments") or {}).get("nodes") or []:
            author = comment.get("author") or {}
            comments.append(
                ReviewThreadCommentPayload(
                    author=author.get("login"),
                    body=comment.get("body") or "",
                    path=comment.get("path"),
                    line=comment.get("line"),
                    diff_hunk=comment.get("diffHunk"),
                    created_at=comment.get("createdAt"),
                )
            )
        return ReviewThreadPayload(is_resolved=bool(node.get("isResolved")), comments=comments)

    def fetch_reviews(self, number: int) -> FetchResult[List[ReviewPayload]]:
        try:
            pull = self._get_repo().get_pull(number)
            reviews = [
                ReviewPayload(
                    author=_login(review.user),
                    state=review.state or "",
                    body=review.body or "",
                    submitted_at=review.submitted_at,
                )
                for review in pull.get_reviews()
            ]
        except _FETCH_ERRORS as exc:
            return FetchResult.failure(f"Failed to fetch reviews for #{number}: {exc}")
        return FetchResult.success(reviews)

    def get_pull_request_head_branch(self, number: int) -> Optional[str]:
        """Head branch name when ``number`` is a pull request, else ``None``."""

        try:
            return self._get_repo().get_pull(number).head.ref
        except GithubException as exc:
            logger.debug("#%s is not a pull request (%s)", number, exc.status)
            return None

    def get_authenticated_identity(self) -> Tuple[Optional[str], Optional[str]]:
        try:
            user = self._github.get_user()
            return user.name, user.email
        except GithubException as exc:
            logger.warning("Could not read the authenticated GitHub user: %s", exc)
            return None, None

    # ------------------------------------------------------------------
    # Writes

    def create_pull_request(
        self,
        title: str,
        body: str,
        head: str,
        base: str,
        draft: bool = False,
    ) -> str:
        pr = self._get_repo().create_pull(
            title=title,
            body=body,
            head=head,
            base=base,
            draft=draft,
        )
        logger.info("Opened pull request #%s: %s", pr.number, pr.html_url)
        return pr.html_url


__all__ = ["GitHubClient", "MAX_MESSAGE_COUNT", "REVIEW_THREADS_QUERY"]
