"""GitHub pull request host.

GitHub has no comment threads in the Azure Repos sense. Issue comments act as
pull-request-scoped threads with a single comment, and each top-level review
comment acts as a file-scoped thread. Thread status and pull request
properties do not exist and are skipped.
"""

from __future__ import annotations

import asyncio
import logging
from functools import cached_property
from typing import Any

from prmetrics.exceptions import ConfigError, HostApiError
from prmetrics.repos.base import (
    Comment,
    CommentThread,
    MetadataEntry,
    PullRequestDetails,
    ReposInvoker,
    ThreadStatus,
)

logger = logging.getLogger("prmetrics.repos.github")

DEFAULT_API_URL = "https://api.github.com"


class GitHubReposInvoker(ReposInvoker):
    """Talks to the GitHub REST API."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._pull: dict[str, Any] | None = None
        self._pull_lock = asyncio.Lock()

    def default_headers(self) -> dict[str, str]:
        headers = super().default_headers()
        headers["Accept"] = "application/vnd.github+json"
        headers["X-GitHub-Api-Version"] = "2022-11-28"
        token = self.runner.access_token
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    @property
    def access_error_message(self) -> str:
        return self.localize("repos.gitHubReposInvoker.insufficientGitHubAccessTokenPermissions")

    @cached_property
    def coordinates(self) -> tuple[str, str, str]:
        """(api_url, owner, repo) for this run."""
        if self.runner.is_github:
            api_url = self.runner.validate_variable(
                "GITHUB_API_URL", "GitHubReposInvoker.coordinates"
            )
            owner = self.runner.validate_variable(
                "GITHUB_REPOSITORY_OWNER", "GitHubReposInvoker.coordinates"
            )
            repository = self.runner.validate_variable(
                "GITHUB_REPOSITORY", "GitHubReposInvoker.coordinates"
            )
            parts = repository.split("/")
            if len(parts) < 2 or not parts[1]:
                raise ConfigError(f"GITHUB_REPOSITORY '{repository}' is in an unexpected format.")
            return api_url.rstrip("/"), owner, parts[1]

        # GitHub repository built by Azure Pipelines
        uri = self.runner.validate_variable(
            "SYSTEM_PULLREQUEST_SOURCEREPOSITORYURI", "GitHubReposInvoker.coordinates"
        )
        parts = uri.split("/")
        if len(parts) < 5 or not all(parts[2:5]):
            raise ConfigError(
                f"SYSTEM_PULLREQUEST_SOURCEREPOSITORYURI '{uri}' is in an unexpected format."
            )
        host, owner, repo = parts[2], parts[3], parts[4]
        api_url = DEFAULT_API_URL if host == "github.com" else f"https://{host}/api/v3"
        if repo.endswith(".git"):
            repo = repo[:-len(".git")]
        return api_url, owner, repo

    @cached_property
    def pull_request_number(self) -> int:
        if self.runner.is_github:
            reference = self.runner.validate_variable(
                "GITHUB_REF", "GitHubReposInvoker.pull_request_number"
            )
            value = reference.split("/")[2] if reference.count("/") >= 2 else ""
        else:
            value = self.runner.validate_variable(
                "SYSTEM_PULLREQUEST_PULLREQUESTNUMBER", "GitHubReposInvoker.pull_request_number"
            )
        if not value.isdigit():
            raise ConfigError(f"Could not parse a pull request number from '{value}'.")
        return int(value)

    def _repo_url(self, path: str) -> str:
        api_url, owner, repo = self.coordinates
        return f"{api_url}/repos/{owner}/{repo}/{path}"

    @property
    def _pull_url(self) -> str:
        return self._repo_url(f"pulls/{self.pull_request_number}")

    async def _get_pull(self) -> dict[str, Any]:
        """The pull request, fetched once per run however many callers race for it."""
        async with self._pull_lock:
            if self._pull is None:
                self._pull = await self._invoke("GET", self._pull_url)
            return self._pull

    async def _get_head_sha(self) -> str:
        pull = await self._get_pull()
        return pull["head"]["sha"]

    async def is_access_token_available(self) -> str | None:
        if self.runner.access_token is None:
            return self.localize("repos.gitHubReposInvoker.noGitHubAccessToken")
        return None

    async def get_title_and_description(self) -> PullRequestDetails:
        data = await self._get_pull()
        return PullRequestDetails(title=data["title"], description=data.get("body"))

    async def set_title_and_description(
        self, title: str | None, description: str | None
    ) -> None:
        if title is None and description is None:
            return
        payload: dict[str, str] = {}
        if title is not None:
            payload["title"] = title
        if description is not None:
            payload["body"] = description
        await self._invoke("PATCH", self._pull_url, json=payload)

    async def get_current_iteration(self) -> int:
        # Each push adds commits, so the commit count stands in for an iteration
        data = await self._get_pull()
        return int(data["commits"])

    async def get_comment_threads(self) -> list[CommentThread]:
        issue_comments, review_comments = await asyncio.gather(
            self._invoke(
                "GET",
                self._repo_url(f"issues/{self.pull_request_number}/comments"),
                paginate=True,
                params={"per_page": 100},
            ),
            self._invoke(
                "GET",
                self._pull_url + "/comments",
                paginate=True,
                params={"per_page": 100},
            ),
        )

        threads: list[CommentThread] = []
        for item in issue_comments:
            threads.append(CommentThread(
                thread_id=item["id"],
                comments=[Comment(comment_id=item["id"], content=item.get("body"))],
            ))
        for item in review_comments:
            if item.get("in_reply_to_id") is not None:
                continue
            threads.append(CommentThread(
                thread_id=item["id"],
                comments=[Comment(comment_id=item["id"], content=item.get("body"))],
                file_path=item.get("path"),
            ))
        logger.debug(
            f"Fetched {len(issue_comments)} issue comments and "
            f"{len(review_comments)} review comments"
        )
        return threads

    async def create_comment_thread(
        self,
        content: str,
        status: ThreadStatus,
        file_path: str | None = None,
        line: int | None = None,
    ) -> None:
        if file_path is None:
            await self._invoke(
                "POST",
                self._repo_url(f"issues/{self.pull_request_number}/comments"),
                json={"body": content},
            )
            return

        payload: dict[str, Any] = {
            "body": content,
            "commit_id": await self._get_head_sha(),
            "path": file_path,
        }
        if line is None:
            payload["subject_type"] = "file"
        else:
            payload["line"] = line
            payload["side"] = "RIGHT"
        try:
            await self._invoke("POST", self._pull_url + "/comments", json=payload)
        except HostApiError as e:
            if e.status == 422 and "diff too large" in str(e):
                logger.info(
                    f"GitHub rejected a review comment on '{file_path}' because its diff "
                    "is too large. Ignoring."
                )
                return
            raise

    async def create_comment(
        self, content: str, thread_id: int, parent_comment_id: int | None
    ) -> None:
        # Issue comments have no replies; the metrics comment is edited in place
        await self._invoke(
            "PATCH", self._repo_url(f"issues/comments/{thread_id}"), json={"body": content}
        )

    async def set_comment_thread_status(self, thread_id: int, status: ThreadStatus) -> None:
        logger.debug(f"Thread status is not supported on GitHub, skipping '{status.value}'.")

    async def delete_comment_thread(self, thread: CommentThread) -> None:
        kind = "pulls" if thread.is_file_thread else "issues"
        await self._invoke("DELETE", self._repo_url(f"{kind}/comments/{thread.thread_id}"))

    async def add_metadata(self, entries: list[MetadataEntry]) -> None:
        logger.debug(
            "Pull request metadata is not supported on GitHub, skipping "
            + ", ".join(f"{entry.key}={entry.value}" for entry in entries)
        )
