"""Base repository host interface."""

from __future__ import annotations

import asyncio
import json
import logging
import threading
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

import requests
from pydantic import BaseModel, Field

from prmetrics.config import RunnerEnvironment
from prmetrics.exceptions import HostAccessError, HostApiError
from prmetrics.strings import Localizer, loc

logger = logging.getLogger("prmetrics.repos")

ACCESS_ERROR_STATUSES = (401, 403, 404)
REQUEST_TIMEOUT_SECONDS = 30


class ThreadStatus(str, Enum):
    """Status of a comment thread."""

    ACTIVE = "active"
    CLOSED = "closed"


class Comment(BaseModel):
    """A single comment within a thread."""

    comment_id: int
    content: str | None = None


class CommentThread(BaseModel):
    """A comment thread as fetched from the host.

    ``file_path`` is relative to the repository root, or None for threads on
    the pull request as a whole.
    """

    thread_id: int
    comments: list[Comment] | None = Field(default_factory=list)
    file_path: str | None = None
    status: ThreadStatus | None = None

    @property
    def is_file_thread(self) -> bool:
        return self.file_path is not None


class PullRequestDetails(BaseModel):
    """Title and description of a pull request."""

    title: str
    description: str | None = None


class MetadataEntry(BaseModel):
    """A key/value pair recorded against the pull request."""

    key: str
    value: str


class ReposInvoker(ABC):
    """Abstract base for repository hosts.

    Subclasses issue blocking HTTP calls through :class:`requests.Session`;
    :meth:`_invoke` runs them on worker threads so independent calls can be
    awaited concurrently. Sessions are not thread-safe, so each worker thread
    gets its own.
    """

    def __init__(self, runner: RunnerEnvironment, localize: Localizer = loc) -> None:
        self.runner = runner
        self.localize = localize
        self._local = threading.local()

    @property
    def session(self) -> requests.Session:
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            session.headers.update(self.default_headers())
            self._local.session = session
        return session

    def default_headers(self) -> dict[str, str]:
        return {"User-Agent": "PRMetrics"}

    @property
    @abstractmethod
    def access_error_message(self) -> str:
        """Message substituted for 401/403/404 responses."""
        ...

    def _request(self, method: str, url: str, paginate: bool = False, **kwargs: Any) -> Any:
        """Blocking HTTP call returning the decoded body.

        With *paginate*, ``Link: rel="next"`` headers are followed and the
        JSON list bodies of every page are concatenated.
        """
        kwargs.setdefault("timeout", REQUEST_TIMEOUT_SECONDS)
        response = self.session.request(method, url, **kwargs)
        response.raise_for_status()
        logger.debug(f"{method} {url} -> {response.status_code}")
        if paginate:
            items = list(response.json())
            while "next" in response.links:
                response = self.session.request(
                    method, response.links["next"]["url"], timeout=kwargs["timeout"]
                )
                response.raise_for_status()
                items.extend(response.json())
            return items
        if not response.content:
            return None
        try:
            return response.json()
        except json.JSONDecodeError:
            return response.text

    async def _invoke(self, method: str, url: str, **kwargs: Any) -> Any:
        """Issue an HTTP call, mapping failures onto host errors."""
        try:
            return await asyncio.to_thread(self._request, method, url, **kwargs)
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            if status in ACCESS_ERROR_STATUSES:
                raise HostAccessError(self.access_error_message) from e
            detail = e.response.text[:500] if e.response is not None else str(e)
            raise HostApiError(method, url, status, detail) from e
        except requests.RequestException as e:
            raise HostApiError(method, url, None, str(e)) from e

    @abstractmethod
    async def is_access_token_available(self) -> str | None:
        """Return None when a token is present, otherwise the reason it is not."""
        ...

    @abstractmethod
    async def get_title_and_description(self) -> PullRequestDetails:
        ...

    @abstractmethod
    async def set_title_and_description(
        self, title: str | None, description: str | None
    ) -> None:
        ...

    @abstractmethod
    async def get_current_iteration(self) -> int:
        """Host-defined revision counter of the pull request."""
        ...

    @abstractmethod
    async def get_comment_threads(self) -> list[CommentThread]:
        ...

    @abstractmethod
    async def create_comment_thread(
        self,
        content: str,
        status: ThreadStatus,
        file_path: str | None = None,
        line: int | None = None,
    ) -> None:
        """Start a thread on the pull request, or on *file_path* at *line*."""
        ...

    @abstractmethod
    async def create_comment(
        self, content: str, thread_id: int, parent_comment_id: int | None
    ) -> None:
        """Add a comment to an existing thread."""
        ...

    @abstractmethod
    async def set_comment_thread_status(self, thread_id: int, status: ThreadStatus) -> None:
        ...

    @abstractmethod
    async def delete_comment_thread(self, thread: CommentThread) -> None:
        ...

    @abstractmethod
    async def add_metadata(self, entries: list[MetadataEntry]) -> None:
        ...
