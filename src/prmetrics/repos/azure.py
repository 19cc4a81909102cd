"""Azure Repos pull request host."""

from __future__ import annotations

import base64
import logging
from functools import cached_property
from typing import Any

from prmetrics.repos.base import (
    Comment,
    CommentThread,
    MetadataEntry,
    PullRequestDetails,
    ReposInvoker,
    ThreadStatus,
)
from prmetrics.validation import validate

logger = logging.getLogger("prmetrics.repos.azure")

API_VERSION = "7.1"


class AzureReposInvoker(ReposInvoker):
    """Talks to the Azure DevOps Git REST API."""

    def default_headers(self) -> dict[str, str]:
        headers = super().default_headers()
        token = self.runner.access_token
        if token:
            credentials = base64.b64encode(f":{token}".encode()).decode()
            headers["Authorization"] = f"Basic {credentials}"
        return headers

    @property
    def access_error_message(self) -> str:
        return self.localize(
            "repos.azureReposInvoker.insufficientAzureReposAccessTokenPermissions"
        )

    @cached_property
    def pull_request_url(self) -> str:
        method = "AzureReposInvoker.pull_request_url"
        collection = self.runner.validate_variable("SYSTEM_TEAMFOUNDATIONCOLLECTIONURI", method)
        project = self.runner.validate_variable("SYSTEM_TEAMPROJECT", method)
        repository = self.runner.validate_variable("BUILD_REPOSITORY_ID", method)
        pull_request = self.runner.validate_variable("SYSTEM_PULLREQUEST_PULLREQUESTID", method)
        return (
            f"{collection.rstrip('/')}/{project}/_apis/git/repositories/{repository}"
            f"/pullRequests/{pull_request}"
        )

    async def _call(self, method: str, path: str = "", **kwargs: Any) -> Any:
        params = dict(kwargs.pop("params", None) or {})
        params["api-version"] = API_VERSION
        return await self._invoke(method, self.pull_request_url + path, params=params, **kwargs)

    async def is_access_token_available(self) -> str | None:
        if self.runner.access_token is None:
            return self.localize("repos.azureReposInvoker.noAzureReposAccessToken")
        return None

    async def get_title_and_description(self) -> PullRequestDetails:
        data = await self._call("GET")
        title = validate(data.get("title"), "title", "AzureReposInvoker.get_title_and_description()")
        return PullRequestDetails(title=title, description=data.get("description"))

    async def set_title_and_description(
        self, title: str | None, description: str | None
    ) -> None:
        if title is None and description is None:
            return
        payload: dict[str, str] = {}
        if title is not None:
            payload["title"] = title
        if description is not None:
            payload["description"] = description
        await self._call("PATCH", json=payload)

    async def get_current_iteration(self) -> int:
        data = await self._call("GET", "/iterations")
        iterations = validate(
            data.get("value") or None, "value", "AzureReposInvoker.get_current_iteration()"
        )
        return int(iterations[-1]["id"])

    async def get_comment_threads(self) -> list[CommentThread]:
        data = await self._call("GET", "/threads")
        threads: list[CommentThread] = []
        for item in data.get("value") or []:
            if item.get("isDeleted"):
                continue
            raw_comments = item.get("comments")
            comments = None
            if raw_comments is not None:
                comments = [
                    Comment(comment_id=comment["id"], content=comment.get("content"))
                    for comment in raw_comments
                    if not comment.get("isDeleted")
                ]
                if not comments:
                    continue

            file_path = None
            context = item.get("threadContext")
            if context is not None:
                # Azure Repos paths are rooted, e.g. "/src/app.py"
                file_path = (context.get("filePath") or "").lstrip("/")

            status = item.get("status")
            threads.append(CommentThread(
                thread_id=item["id"],
                comments=comments,
                file_path=file_path,
                status=ThreadStatus(status) if status in ("active", "closed") else None,
            ))
        logger.debug(f"Fetched {len(threads)} comment threads")
        return threads

    async def create_comment_thread(
        self,
        content: str,
        status: ThreadStatus,
        file_path: str | None = None,
        line: int | None = None,
    ) -> None:
        thread: dict[str, Any] = {
            "comments": [{"parentCommentId": 0, "content": content, "commentType": 1}],
            "status": status.value,
        }
        if file_path is not None:
            anchor = line or 1
            thread["threadContext"] = {
                "filePath": f"/{file_path}",
                "rightFileStart": {"line": anchor, "offset": 1},
                "rightFileEnd": {"line": anchor, "offset": 2},
            }
        await self._call("POST", "/threads", json=thread)

    async def create_comment(
        self, content: str, thread_id: int, parent_comment_id: int | None
    ) -> None:
        await self._call(
            "POST",
            f"/threads/{thread_id}/comments",
            json={"parentCommentId": parent_comment_id or 0, "content": content, "commentType": 1},
        )

    async def set_comment_thread_status(self, thread_id: int, status: ThreadStatus) -> None:
        await self._call("PATCH", f"/threads/{thread_id}", json={"status": status.value})

    async def delete_comment_thread(self, thread: CommentThread) -> None:
        # A thread disappears once all of its comments are deleted
        for comment in thread.comments or []:
            await self._call("DELETE", f"/threads/{thread.thread_id}/comments/{comment.comment_id}")

    async def add_metadata(self, entries: list[MetadataEntry]) -> None:
        if not entries:
            return
        patch = [
            {"op": "replace", "path": f"/PRMetrics.{entry.key}", "value": entry.value}
            for entry in entries
        ]
        await self._call(
            "PATCH",
            "/properties",
            json=patch,
            headers={"Content-Type": "application/json-patch+json"},
        )
