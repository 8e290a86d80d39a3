"""Tests for the recursive issue context collector."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Optional

import pytest

from genpr.errors import IssueNotFoundError
from genpr.issue import (
    IssueContextCollector,
    VisitedIssues,
    extract_code_from_diff_hunk,
    extract_issue_references,
)
from genpr.models import (
    CommentPayload,
    FetchResult,
    IssuePayload,
    ReviewPayload,
    ReviewThreadCommentPayload,
    ReviewThreadPayload,
)

REPO_URL = "https://github.com/owner/repo"


def _at(second: int) -> datetime:
    return datetime(2025, 1, 1, 12, 0, second, tzinfo=timezone.utc)


def _issue(number: int, body: str = "", comments: Optional[List[CommentPayload]] = None) -> IssuePayload:
    return IssuePayload(
        number=number,
        author="alice",
        title=f"Issue {number}",
        body=body,
        comments=comments or [],
        url=f"{REPO_URL}/issues/{number}",
    )


def _pull(number: int, body: str = "", comments: Optional[List[CommentPayload]] = None) -> IssuePayload:
    payload = _issue(number, body, comments)
    return payload.model_copy(update={"url": f"{REPO_URL}/pull/{number}"})


class FakeIssueSource:
    """In-memory stand-in for the GitHub client."""

    def __init__(self, issues: Dict[int, IssuePayload]):
        self.issues = issues
        self.diffs: Dict[int, FetchResult[str]] = {}
        self.threads: Dict[int, FetchResult[List[ReviewThreadPayload]]] = {}
        self.reviews: Dict[int, FetchResult[List[ReviewPayload]]] = {}
        self.fetched: List[int] = []

    def fetch_issue(self, number: int) -> FetchResult[IssuePayload]:
        self.fetched.append(number)
        if number not in self.issues:
            return FetchResult.failure(f"issue #{number} not found")
        return FetchResult.success(self.issues[number])

    def fetch_diff(self, number: int) -> FetchResult[str]:
        return self.diffs.get(number, FetchResult.success(""))

    def fetch_review_threads(self, number: int) -> FetchResult[List[ReviewThreadPayload]]:
        return self.threads.get(number, FetchResult.success([]))

    def fetch_reviews(self, number: int) -> FetchResult[List[ReviewPayload]]:
        return self.reviews.get(number, FetchResult.success([]))


def test_extract_issue_references_keeps_first_appearance_order():
    text = "Relates to #12 and #5.\n#12 again, see also foo#7 and (#9)\n#3"

    assert extract_issue_references(text) == [12, 5, 3]


def test_extract_code_from_diff_hunk_skips_hunk_header_and_blank_changes():
    hunk = "@@ -1,3 +1,3 @@\n context\n+\n-  const a = 1;\n+  const a = 2;"

    assert extract_code_from_diff_hunk(hunk) == "-  const a = 1;"


def test_extract_code_from_diff_hunk_without_changes():
    assert extract_code_from_diff_hunk(" only context") == ""
    assert extract_code_from_diff_hunk(None) == ""


def test_visited_issues_claims_each_number_once():
    visited = VisitedIssues()

    assert visited.claim(3) is True
    assert visited.claim(3) is False
    assert 3 in visited
    assert len(visited) == 1


def test_basic_issue_without_comments_or_references():
    source = FakeIssueSource({32: _issue(32, body="Button is misaligned")})

    context = IssueContextCollector(source).collect(32)

    assert context.to_dict() == {
        "author": "alice",
        "title": "Issue 32",
        "description": "Button is misaligned",
        "comments": [],
    }


def test_reference_cycle_terminates():
    source = FakeIssueSource(
        {
            1: _issue(1, body="Depends on #2"),
            2: _issue(2, body="Blocked by #1"),
        }
    )

    context = IssueContextCollector(source).collect(1)

    assert [ref.title for ref in context.referenced_issues] == ["Issue 2"]
    assert context.referenced_issues[0].referenced_issues is None
    assert sorted(source.fetched) == [1, 2]


def test_shared_reference_is_fetched_once():
    source = FakeIssueSource(
        {
            1: _issue(1, body="See #2 and #3"),
            2: _issue(2, body="See #4"),
            3: _issue(3, body="See #4"),
            4: _issue(4, body="leaf"),
        }
    )

    context = IssueContextCollector(source).collect(1)

    assert source.fetched.count(4) == 1
    assert [ref.title for ref in context.referenced_issues] == ["Issue 2", "Issue 3"]
    leaves = [
        leaf.title
        for ref in context.referenced_issues
        for leaf in (ref.referenced_issues or [])
    ]
    assert leaves == ["Issue 4"]


def test_sibling_references_stay_at_their_level_with_one_worker():
    source = FakeIssueSource(
        {
            1: _issue(1, body="#2 #3"),
            2: _issue(2, body="#3"),
            3: _issue(3, body="leaf"),
        }
    )

    context = IssueContextCollector(source, max_workers=1).collect(1)

    assert [ref.title for ref in context.referenced_issues] == ["Issue 2", "Issue 3"]
    assert context.referenced_issues[0].referenced_issues is None
    assert source.fetched.count(3) == 1


def test_references_are_kept_in_order_of_appearance():
    source = FakeIssueSource(
        {
            1: _issue(1, body="#30 then #10", comments=[CommentPayload(author="bob", body="and #20")]),
            10: _issue(10),
            20: _issue(20),
            30: _issue(30),
        }
    )

    context = IssueContextCollector(source, max_workers=3).collect(1)

    assert [ref.title for ref in context.referenced_issues] == ["Issue 30", "Issue 10", "Issue 20"]


def test_missing_referenced_issue_is_omitted(caplog):
    source = FakeIssueSource({1: _issue(1, body="See #404 and #2"), 2: _issue(2)})

    context = IssueContextCollector(source).collect(1)

    assert [ref.title for ref in context.referenced_issues] == ["Issue 2"]
    assert "#404" in caplog.text


def test_missing_primary_subject_raises():
    source = FakeIssueSource({})

    with pytest.raises(IssueNotFoundError):
        IssueContextCollector(source).collect(99)


def test_description_is_cleaned_and_redacted():
    body = "<!-- template -->Secret: abc123\r\nDetails\r\n"
    source = FakeIssueSource({5: _issue(5, body=body)})

    context = IssueContextCollector(source, remove_pattern=r"Secret: \w+").collect(5)

    assert context.description == "Details"


def test_pull_request_metadata_section_is_stripped():
    body = "Close #5\n\n## gen-pr Metadata\n- **Coding Tool**: aider"
    source = FakeIssueSource({7: _pull(7, body=body), 5: _issue(5)})

    context = IssueContextCollector(source).collect(7)

    assert context.description == "Close #5"


def test_pull_request_comments_are_merged_chronologically():
    pull = _pull(
        8,
        comments=[
            CommentPayload(author="bob", body="first", created_at=_at(1)),
            CommentPayload(author="carol", body="third", created_at=_at(3)),
            CommentPayload(author="dave", body="", created_at=_at(4)),
        ],
    )
    source = FakeIssueSource({8: pull})
    source.diffs[8] = FetchResult.success("diff --git a/x b/x\n+change\n")
    source.reviews[8] = FetchResult.success(
        [
            ReviewPayload(author="erin", state="CHANGES_REQUESTED", body="second", submitted_at=_at(2)),
            ReviewPayload(author="frank", state="APPROVED", body="", submitted_at=_at(5)),
        ]
    )

    context = IssueContextCollector(source).collect(8)

    assert [comment.body for comment in context.comments] == ["first", "second", "third"]
    assert context.comments[1].review_state == "CHANGES_REQUESTED"
    assert context.code_changes == "diff --git a/x b/x\n+change"


def test_resolved_review_threads_are_skipped():
    source = FakeIssueSource({9: _pull(9)})
    source.threads[9] = FetchResult.success(
        [
            ReviewThreadPayload(
                is_resolved=True,
                comments=[ReviewThreadCommentPayload(author="bob", body="done already", created_at=_at(1))],
            ),
            ReviewThreadPayload(
                is_resolved=False,
                comments=[
                    ReviewThreadCommentPayload(
                        author="carol",
                        body="rename this",
                        path="src/app.ts",
                        line=12,
                        diff_hunk="@@ -10,3 +10,3 @@\n-const x = 1;\n+const y = 1;",
                        created_at=_at(2),
                    ),
                    ReviewThreadCommentPayload(author=None, body="ghost", created_at=_at(3)),
                ],
            ),
        ]
    )

    context = IssueContextCollector(source).collect(9)

    assert [comment.to_dict() for comment in context.comments] == [
        {
            "author": "carol",
            "codeLocation": "src/app.ts:12",
            "codeContent": "-const x = 1;",
            "body": "rename this",
        }
    ]


def test_review_fetch_failures_are_not_fatal(caplog):
    source = FakeIssueSource(
        {10: _pull(10, comments=[CommentPayload(author="bob", body="keep me", created_at=_at(1))])}
    )
    source.diffs[10] = FetchResult.failure("boom")
    source.threads[10] = FetchResult.failure("graphql down")
    source.reviews[10] = FetchResult.failure("rate limited")

    context = IssueContextCollector(source).collect(10)

    assert [comment.body for comment in context.comments] == ["keep me"]
    assert context.code_changes is None
    assert "Failed to fetch PR review threads" in caplog.text


def test_referenced_pull_request_does_not_fetch_review_details():
    source = FakeIssueSource({1: _issue(1, body="Fixed by #2"), 2: _pull(2)})
    source.diffs[2] = FetchResult.success("diff --git a/x b/x\n")

    context = IssueContextCollector(source).collect(1)

    assert context.referenced_issues[0].code_changes is None


def test_issue_context_yaml_uses_literal_blocks():
    source = FakeIssueSource({3: _issue(3, body="line one\nline two")})

    text = IssueContextCollector(source).collect(3).to_yaml()

    assert "description: |-\n  line one\n  line two" in text
    assert text.index("author:") < text.index("title:") < text.index("description:")
