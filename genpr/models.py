"""Data model shared by the issue collector, planner, and fix loop."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Generic, List, Optional, Tuple, TypeVar

import yaml
from pydantic import BaseModel, Field

T = TypeVar("T")


# ----------------------------------------------------------------------
# Collaborator results


@dataclass(frozen=True)
class FetchResult(Generic[T]):
    """Outcome of a best-effort collaborator call.

    Exactly one of ``value`` (success) or ``error`` (failure) is meaningful;
    callers inspect :attr:`ok` to decide whether to omit the data or abort.
    """

    value: Optional[T] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "FetchResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: str) -> "FetchResult[T]":
        return cls(error=error or "unknown error")


# ----------------------------------------------------------------------
# GitHub payloads consumed by the collector


class CommentPayload(BaseModel):
    author: str = ""
    body: str = ""
    created_at: Optional[datetime] = None


class IssuePayload(BaseModel):
    number: int
    author: str = ""
    title: str = ""
    body: str = ""
    labels: List[str] = Field(default_factory=list)
    comments: List[CommentPayload] = Field(default_factory=list)
    url: str = ""

    @property
    def is_pull_request(self) -> bool:
        return "/pull/" in self.url


class ReviewThreadCommentPayload(BaseModel):
    author: Optional[str] = None
    body: str = ""
    path: Optional[str] = None
    line: Optional[int] = None
    diff_hunk: Optional[str] = None
    created_at: Optional[datetime] = None


class ReviewThreadPayload(BaseModel):
    is_resolved: bool = False
    comments: List[ReviewThreadCommentPayload] = Field(default_factory=list)


class ReviewPayload(BaseModel):
    author: str = ""
    state: str = ""
    body: str = ""
    submitted_at: Optional[datetime] = None


# ----------------------------------------------------------------------
# Issue context tree


@dataclass(frozen=True)
class IssueComment:
    """A comment from any source: issue thread, inline review, or review verdict.

    At most one of ``code_content`` (inline review) and ``review_state``
    (review verdict) is set; plain comments carry neither.
    """

    author: str
    body: str
    code_location: Optional[str] = None
    code_content: Optional[str] = None
    review_state: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"author": self.author}
        if self.code_location:
            data["codeLocation"] = self.code_location
        if self.code_content:
            data["codeContent"] = self.code_content
        if self.review_state:
            data["reviewState"] = self.review_state
        data["body"] = self.body
        return data


@dataclass
class IssueContext:
    """One node of the issue context tree."""

    author: str
    title: str
    description: str
    comments: List[IssueComment] = field(default_factory=list)
    code_changes: Optional[str] = None
    referenced_issues: Optional[List["IssueContext"]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "author": self.author,
            "title": self.title,
            "description": self.description,
            "comments": [comment.to_dict() for comment in self.comments],
        }
        if self.code_changes is not None:
            data["code_changes"] = self.code_changes
        if self.referenced_issues:
            data["referenced_issues"] = [issue.to_dict() for issue in self.referenced_issues]
        return data

    def to_yaml(self) -> str:
        return dump_yaml(self.to_dict())


class _LiteralBlockDumper(yaml.SafeDumper):
    """Dump multi-line strings as ``|`` literal blocks."""


def _represent_str(dumper: yaml.SafeDumper, data: str) -> yaml.ScalarNode:
    if "\n" in data:
        return dumper.represent_scalar("tag:yaml.org,2002:str", data, style="|")
    return dumper.represent_scalar("tag:yaml.org,2002:str", data)


_LiteralBlockDumper.add_representer(str, _represent_str)


def dump_yaml(data: Any) -> str:
    """Serialize ``data`` as YAML with literal blocks and no line wrapping."""

    return yaml.dump(
        data,
        Dumper=_LiteralBlockDumper,
        sort_keys=False,
        allow_unicode=True,
        width=float("inf"),
    ).strip()


# ----------------------------------------------------------------------
# Planning and testing outcomes


@dataclass(frozen=True)
class ResolutionPlan:
    """Structured output of the planning stage."""

    plan: Optional[str] = None
    commit_message: Optional[str] = None
    file_paths: Tuple[str, ...] = ()


@dataclass(frozen=True)
class TestResult:
    """Outcome of the test/fix loop; ``error`` is set iff ``success`` is false."""

    __test__ = False  # not a pytest test class

    fix_log: str
    success: bool
    error: Optional[str] = None


__all__ = [
    "CommentPayload",
    "FetchResult",
    "IssueComment",
    "IssueContext",
    "IssuePayload",
    "ResolutionPlan",
    "ReviewPayload",
    "ReviewThreadCommentPayload",
    "ReviewThreadPayload",
    "TestResult",
    "dump_yaml",
]
