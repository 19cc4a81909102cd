"""Shared test fixtures for PR Metrics."""

from __future__ import annotations

import pytest

from prmetrics.config import MetricsInputs, RunnerEnvironment
from prmetrics.exceptions import HostApiError
from prmetrics.repos.base import (
    Comment,
    CommentThread,
    MetadataEntry,
    PullRequestDetails,
    ReposInvoker,
    ThreadStatus,
)

SAMPLE_DIFF_SUMMARY = "9\t1\tFile1.js\n0\t9\tFile2.ts\n-\t-\tFile.dll\n"

SAMPLE_UNIFIED_DIFF = """\
diff --git a/File1.js b/File1.js
index abc1234..def5678 100644
--- a/File1.js
+++ b/File1.js
@@ -3,7 +3,16 @@ function main() {
-  return 1;
+  return 2;
diff --git a/File2.ts b/File2.ts
index abc1234..def5678 100644
--- a/File2.ts
+++ b/File2.ts
@@ -10,9 +10,0 @@ export class Thing {
-  a
diff --git a/File.dll b/File.dll
index abc1234..def5678 100644
Binary files a/File.dll and b/File.dll differ
"""


class FakeHost(ReposInvoker):
    """In-memory repository host that records every call.

    Created threads are added to ``threads`` so a second run sees what the
    first one wrote.
    """

    def __init__(
        self,
        threads: list[CommentThread] | None = None,
        iteration: int = 1,
        title: str = "Add feature",
        description: str | None = "Adds the feature.",
        token: bool = True,
        fail_on: set[str] | None = None,
    ) -> None:
        super().__init__(RunnerEnvironment({}))
        self.threads = list(threads or [])
        self.iteration = iteration
        self.details = PullRequestDetails(title=title, description=description)
        self.token = token
        self.fail_on = fail_on or set()
        self.calls: list[tuple] = []
        self.metadata: list[MetadataEntry] = []
        self._next_id = 1000

    @property
    def access_error_message(self) -> str:
        return "insufficient access"

    def _record(self, name: str, *args) -> None:
        self.calls.append((name, *args))
        if name in self.fail_on:
            raise HostApiError("POST", f"fake://{name}", 500, "boom")

    def _new_id(self) -> int:
        self._next_id += 1
        return self._next_id

    def call_names(self) -> list[str]:
        return [call[0] for call in self.calls]

    async def is_access_token_available(self) -> str | None:
        return None if self.token else "no token"

    async def get_title_and_description(self) -> PullRequestDetails:
        self._record("get_title_and_description")
        return self.details

    async def set_title_and_description(self, title, description) -> None:
        self._record("set_title_and_description", title, description)
        self.details = PullRequestDetails(
            title=title if title is not None else self.details.title,
            description=description if description is not None else self.details.description,
        )

    async def get_current_iteration(self) -> int:
        self._record("get_current_iteration")
        return self.iteration

    async def get_comment_threads(self) -> list[CommentThread]:
        self._record("get_comment_threads")
        return [thread.model_copy(deep=True) for thread in self.threads]

    async def create_comment_thread(self, content, status, file_path=None, line=None) -> None:
        self._record("create_comment_thread", content, status, file_path, line)
        self.threads.append(CommentThread(
            thread_id=self._new_id(),
            comments=[Comment(comment_id=1, content=content)],
            file_path=file_path,
            status=status,
        ))

    async def create_comment(self, content, thread_id, parent_comment_id) -> None:
        self._record("create_comment", content, thread_id, parent_comment_id)
        for thread in self.threads:
            if thread.thread_id == thread_id:
                thread.comments.append(Comment(comment_id=self._new_id(), content=content))

    async def set_comment_thread_status(self, thread_id, status) -> None:
        self._record("set_comment_thread_status", thread_id, status)
        for thread in self.threads:
            if thread.thread_id == thread_id:
                thread.status = status

    async def delete_comment_thread(self, thread) -> None:
        self._record("delete_comment_thread", thread.thread_id)
        self.threads = [t for t in self.threads if t.thread_id != thread.thread_id]

    async def add_metadata(self, entries) -> None:
        self._record("add_metadata", entries)
        self.metadata = list(entries)


class FakeGit:
    """Stands in for GitInvoker with canned output."""

    def __init__(
        self,
        diff_summary: str = SAMPLE_DIFF_SUMMARY,
        unified_diff: str = SAMPLE_UNIFIED_DIFF,
        is_repo: bool = True,
        has_history: bool = True,
        has_pull_request_id: bool = True,
    ) -> None:
        self.diff_summary = diff_summary
        self.unified_diff = unified_diff
        self.is_repo = is_repo
        self.has_history = has_history
        self.has_pull_request_id = has_pull_request_id
        self.unified_diff_calls = 0

    async def is_git_repo(self) -> bool:
        return self.is_repo

    def is_pull_request_id_available(self) -> bool:
        return self.has_pull_request_id

    async def is_git_history_available(self) -> bool:
        return self.has_history

    async def get_diff_summary(self) -> str:
        return self.diff_summary

    async def get_unified_diff(self) -> str:
        self.unified_diff_calls += 1
        return self.unified_diff


@pytest.fixture
def fake_host() -> FakeHost:
    return FakeHost()


@pytest.fixture
def fake_git() -> FakeGit:
    return FakeGit()


@pytest.fixture
def sample_inputs() -> MetricsInputs:
    """Inputs matching the File1.js/File2.ts/File.dll sample."""
    return MetricsInputs(
        base_size=5,
        growth_rate=40.0,
        file_matching_patterns=["*.js", "*.ts"],
        code_file_extensions={"js", "ts"},
    )


@pytest.fixture
def github_env() -> dict[str, str]:
    return {
        "GITHUB_ACTION": "__run",
        "GITHUB_BASE_REF": "main",
        "GITHUB_REF": "refs/pull/12/merge",
        "GITHUB_API_URL": "https://api.github.com",
        "GITHUB_REPOSITORY_OWNER": "octo",
        "GITHUB_REPOSITORY": "octo/widgets",
        "PR_METRICS_ACCESS_TOKEN": "token",
    }


@pytest.fixture
def azure_env() -> dict[str, str]:
    return {
        "BUILD_REPOSITORY_PROVIDER": "TfsGit",
        "SYSTEM_PULLREQUEST_PULLREQUESTID": "7",
        "SYSTEM_PULLREQUEST_TARGETBRANCH": "refs/heads/main",
        "SYSTEM_TEAMFOUNDATIONCOLLECTIONURI": "https://dev.azure.com/org/",
        "SYSTEM_TEAMPROJECT": "Project",
        "BUILD_REPOSITORY_ID": "repo-id",
        "SYSTEM_ACCESSTOKEN": "token",
    }
