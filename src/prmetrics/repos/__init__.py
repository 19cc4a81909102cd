"""Repository hosts pull requests live on."""

from prmetrics.repos.base import (
    Comment,
    CommentThread,
    MetadataEntry,
    PullRequestDetails,
    ReposInvoker,
    ThreadStatus,
)
from prmetrics.repos.factory import create_repos_invoker

__all__ = [
    "Comment",
    "CommentThread",
    "MetadataEntry",
    "PullRequestDetails",
    "ReposInvoker",
    "ThreadStatus",
    "create_repos_invoker",
]
