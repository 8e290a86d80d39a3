"""Assemble the issue context tree that is shown to the planner and coding tool.

A run starts from one issue or pull request (the primary subject). Its body
and comments are scanned for ``#<number>`` references, which are followed
recursively and concurrently. A :class:`VisitedIssues` set shared by the
whole traversal makes sure every number is fetched at most once, which also
terminates reference cycles.

For a primary subject that is a pull request, the reduced diff, unresolved
inline review threads and top-level review verdicts are fetched as well and
merged with the plain comments into one chronologically ordered list.
"""

from __future__ import annotations

import logging
import re
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Protocol, Set, Tuple

from genpr.diff import reduce_diff
from genpr.errors import IssueNotFoundError
from genpr.models import (
    FetchResult,
    IssueComment,
    IssueContext,
    IssuePayload,
    ReviewPayload,
    ReviewThreadPayload,
)
from genpr.text import (
    normalize_newlines,
    remove_regex_pattern,
    strip_html_comments,
    strip_metadata_sections,
)

logger = logging.getLogger(__name__)

_REFERENCE_PATTERN = re.compile(r"(?:^|\s)#(\d+)")
_MISSING_TIMESTAMP = float("inf")


class IssueSource(Protocol):
    """The subset of :class:`genpr.github_client.GitHubClient` the collector uses."""

    def fetch_issue(self, number: int) -> FetchResult[IssuePayload]:
        ...

    def fetch_diff(self, number: int) -> FetchResult[str]:
        ...

    def fetch_review_threads(self, number: int) -> FetchResult[List[ReviewThreadPayload]]:
        ...

    def fetch_reviews(self, number: int) -> FetchResult[List[ReviewPayload]]:
        ...


class VisitedIssues:
    """Issue numbers already claimed by the current traversal."""

    def __init__(self) -> None:
        self._numbers: Set[int] = set()
        self._lock = threading.Lock()

    def claim(self, number: int) -> bool:
        """Mark ``number`` as visited; ``False`` if another branch got there first."""

        with self._lock:
            if number in self._numbers:
                return False
            self._numbers.add(number)
            return True

    def __contains__(self, number: object) -> bool:
        with self._lock:
            return number in self._numbers

    def __len__(self) -> int:
        with self._lock:
            return len(self._numbers)


@dataclass(frozen=True)
class _TimedComment:
    created_at: float
    comment: IssueComment


def _timestamp(value: Optional[datetime]) -> float:
    if value is None:
        return _MISSING_TIMESTAMP
    return value.timestamp()


def extract_issue_references(text: str) -> List[int]:
    """Distinct ``#<number>`` references in order of first appearance."""

    numbers = [int(match.group(1)) for match in _REFERENCE_PATTERN.finditer(text or "")]
    return list(dict.fromkeys(numbers))


def extract_code_from_diff_hunk(diff_hunk: Optional[str]) -> str:
    """First added or removed line of a review comment's diff hunk, stripped."""

    if not diff_hunk:
        return ""
    for line in diff_hunk.split("\n"):
        if line.startswith(("+", "-")) and not line.startswith("@@") and len(line.strip()) > 1:
            return line.strip()
    return ""


class IssueContextCollector:
    """Build :class:`IssueContext` trees from an :class:`IssueSource`."""

    def __init__(
        self,
        client: IssueSource,
        remove_pattern: str = "",
        max_workers: int = 8,
        diff_reducer: Callable[[str], str] = reduce_diff,
    ) -> None:
        self._client = client
        self._remove_pattern = remove_pattern or ""
        self._max_workers = max(1, max_workers)
        self._reduce_diff = diff_reducer

    def collect(self, issue_number: int) -> IssueContext:
        visited = VisitedIssues()
        context = self.fetch_context(issue_number, visited, is_root_subject=True)
        if context is None:
            raise IssueNotFoundError(f"Failed to fetch issue data for issue #{issue_number}")
        return context

    def fetch_context(
        self,
        number: int,
        visited: VisitedIssues,
        is_root_subject: bool = False,
    ) -> Optional[IssueContext]:
        if not visited.claim(number):
            return None
        return self._fetch_claimed(number, visited, is_root_subject)

    def _fetch_claimed(
        self,
        number: int,
        visited: VisitedIssues,
        is_root_subject: bool = False,
    ) -> Optional[IssueContext]:
        result = self._client.fetch_issue(number)
        if not result.ok:
            if is_root_subject:
                raise IssueNotFoundError(result.error)
            logger.warning("Omitting referenced issue #%s: %s", number, result.error)
            return None
        issue = result.value

        scanned_text = "\n".join([issue.body, *(comment.body for comment in issue.comments)])
        references = extract_issue_references(scanned_text)

        timed_comments = [
            _TimedComment(
                _timestamp(comment.created_at),
                IssueComment(author=comment.author, body=normalize_newlines(comment.body)),
            )
            for comment in issue.comments
        ]

        code_changes: Optional[str] = None
        if issue.is_pull_request and is_root_subject:
            code_changes, review_comments = self._fetch_pull_request_details(number)
            timed_comments.extend(review_comments)

        referenced = self._fetch_referenced(references, visited)

        timed_comments.sort(key=lambda timed: timed.created_at)
        return IssueContext(
            author=issue.author,
            title=issue.title,
            description=self._build_description(issue),
            comments=[timed.comment for timed in timed_comments if timed.comment.body],
            code_changes=code_changes,
            referenced_issues=referenced or None,
        )

    def _build_description(self, issue: IssuePayload) -> str:
        body = strip_html_comments(issue.body)
        if issue.is_pull_request:
            body = strip_metadata_sections(body)
        body = remove_regex_pattern(body, self._remove_pattern)
        return normalize_newlines(body)

    def _fetch_referenced(self, numbers: List[int], visited: VisitedIssues) -> List[IssueContext]:
        # Siblings are claimed before any of them is dispatched, so a deeper
        # branch can never take a number that this level references.
        claimed = [number for number in numbers if visited.claim(number)]
        if not claimed:
            return []
        workers = min(self._max_workers, len(claimed))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            results = list(executor.map(lambda ref: self._fetch_claimed(ref, visited), claimed))
        return [context for context in results if context is not None]

    def _fetch_pull_request_details(self, number: int) -> Tuple[Optional[str], List[_TimedComment]]:
        with ThreadPoolExecutor(max_workers=3) as executor:
            diff_future = executor.submit(self._client.fetch_diff, number)
            threads_future = executor.submit(self._client.fetch_review_threads, number)
            reviews_future = executor.submit(self._client.fetch_reviews, number)
            diff_result = diff_future.result()
            threads_result = threads_future.result()
            reviews_result = reviews_future.result()

        code_changes: Optional[str] = None
        if diff_result.ok:
            diff_text = (diff_result.value or "").strip()
            if diff_text:
                code_changes = self._reduce_diff(diff_text)
        else:
            logger.warning("Omitting diff of #%s: %s", number, diff_result.error)

        comments: List[_TimedComment] = []
        if threads_result.ok:
            comments.extend(self._review_thread_comments(threads_result.value or []))
        else:
            logger.warning("Failed to fetch PR review threads: %s", threads_result.error)

        if reviews_result.ok:
            comments.extend(self._review_comments(reviews_result.value or []))
        else:
            logger.warning("Failed to fetch PR reviews: %s", reviews_result.error)

        return code_changes, comments

    @staticmethod
    def _review_thread_comments(threads: List[ReviewThreadPayload]) -> List[_TimedComment]:
        collected: List[_TimedComment] = []
        for thread in threads:
            if thread.is_resolved:
                continue
            for comment in thread.comments:
                if not comment.author or not comment.body:
                    continue
                location = f"{comment.path}:{comment.line}" if comment.path and comment.line else None
                collected.append(
                    _TimedComment(
                        _timestamp(comment.created_at),
                        IssueComment(
                            author=comment.author,
                            body=normalize_newlines(comment.body),
                            code_location=location,
                            code_content=extract_code_from_diff_hunk(comment.diff_hunk) or None,
                        ),
                    )
                )
        return collected

    @staticmethod
    def _review_comments(reviews: List[ReviewPayload]) -> List[_TimedComment]:
        return [
            _TimedComment(
                _timestamp(review.submitted_at),
                IssueComment(
                    author=review.author,
                    body=normalize_newlines(review.body),
                    review_state=review.state or None,
                ),
            )
            for review in reviews
        ]


__all__ = [
    "IssueContextCollector",
    "IssueSource",
    "VisitedIssues",
    "extract_code_from_diff_hunk",
    "extract_issue_references",
]
