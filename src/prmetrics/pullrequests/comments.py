"""Comment reconciler - keep pull request comments in step with the metrics.

Every run re-derives what is already on the pull request from the live
comment threads, then plans only the operations that are missing:

  1. scan   - a single sequential pass over the threads that finds the
              metrics comment and the existing "no review required" notices
  2. plan   - turn the scan result into independent operations
  3. apply  - run all operations concurrently

Running twice against an unchanged pull request plans nothing the second
time.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass, field

from prmetrics.aio import gather_all
from prmetrics.git.diff_parser import UnifiedDiffLineLocator
from prmetrics.pullrequests.renderer import metrics_header, metrics_header_pattern
from prmetrics.repos.base import CommentThread, MetadataEntry, ReposInvoker, ThreadStatus
from prmetrics.strings import Localizer, loc
from prmetrics.validation import validate

logger = logging.getLogger("prmetrics.comments")

_PLACEHOLDER = "\x00"


@dataclass
class ReconciliationState:
    """What the scan found on the pull request."""
    metrics_comment_present: bool = False
    metrics_thread_id: int | None = None
    metrics_comment_id: int | None = None
    metrics_comment_content: str | None = None
    metrics_thread_status: ThreadStatus | None = None
    files_needing_notice: set[str] = field(default_factory=set)
    files_with_stale_notice: set[str] = field(default_factory=set)
    stale_notice_threads: list[CommentThread] = field(default_factory=list)


class CommentOperation(ABC):
    """One independent change to the pull request's comments."""

    @abstractmethod
    async def apply(
        self, host: ReposInvoker, locator: UnifiedDiffLineLocator | None = None
    ) -> None:
        ...


@dataclass
class UpsertMetricsComment(CommentOperation):
    """Append to the stale metrics thread, or start a new one."""
    content: str
    status: ThreadStatus
    thread_id: int | None = None
    comment_id: int | None = None

    async def apply(
        self, host: ReposInvoker, locator: UnifiedDiffLineLocator | None = None
    ) -> None:
        if self.thread_id is None:
            await host.create_comment_thread(self.content, self.status)
            return
        await host.create_comment(self.content, self.thread_id, self.comment_id)
        await host.set_comment_thread_status(self.thread_id, self.status)


@dataclass
class SetMetricsThreadStatus(CommentOperation):
    """Reopen or close the metrics thread without posting a new comment."""
    thread_id: int
    status: ThreadStatus

    async def apply(
        self, host: ReposInvoker, locator: UnifiedDiffLineLocator | None = None
    ) -> None:
        await host.set_comment_thread_status(self.thread_id, self.status)


@dataclass
class RecordMetadata(CommentOperation):
    entries: list[MetadataEntry]

    async def apply(
        self, host: ReposInvoker, locator: UnifiedDiffLineLocator | None = None
    ) -> None:
        await host.add_metadata(self.entries)


@dataclass
class CreateNotice(CommentOperation):
    """Mark a file as not requiring review.

    The notice is anchored at the file's first changed line. Files the diff
    has no line for get a pull-request-scoped notice naming them instead.
    """
    file_path: str
    content: str
    fallback_content: str

    async def apply(
        self, host: ReposInvoker, locator: UnifiedDiffLineLocator | None = None
    ) -> None:
        line = await locator.get_first_changed_line(self.file_path) if locator else None
        if line is None:
            logger.debug(f"No changed line for '{self.file_path}', commenting on the pull request")
            await host.create_comment_thread(self.fallback_content, ThreadStatus.CLOSED)
            return
        await host.create_comment_thread(
            self.content, ThreadStatus.CLOSED, self.file_path, line
        )


@dataclass
class DeleteNotice(CommentOperation):
    """Remove a notice from a file that requires review again."""
    thread: CommentThread

    async def apply(
        self, host: ReposInvoker, locator: UnifiedDiffLineLocator | None = None
    ) -> None:
        await host.delete_comment_thread(self.thread)


class CommentReconciler:
    """Compute the comment operations a run has to perform."""

    def __init__(self, localize: Localizer = loc):
        self.localize = localize
        self.notice = localize("pullRequests.pullRequestComments.noReviewRequiredComment")
        self._header_pattern = metrics_header_pattern(localize)
        template = localize("pullRequests.pullRequestComments.noReviewRequiredFileComment", _PLACEHOLDER)
        self._fallback_pattern = re.compile(
            "(.+)".join(re.escape(part) for part in template.split(_PLACEHOLDER)),
            re.DOTALL,
        )

    def fallback_notice(self, file_path: str) -> str:
        return self.localize(
            "pullRequests.pullRequestComments.noReviewRequiredFileComment", file_path
        )

    def scan(
        self,
        threads: Iterable[CommentThread],
        iteration: int,
        files_not_requiring_review: Iterable[str],
    ) -> ReconciliationState:
        """Fold the existing threads into a ReconciliationState.

        Raises:
            ValidationError: If a thread lacks its comments, a comment lacks
                its content or a file thread lacks its path.
        """
        candidates = frozenset(files_not_requiring_review)
        state = ReconciliationState(files_needing_notice=set(candidates))
        current_header = metrics_header(iteration, self.localize) + "\n"

        for index, thread in enumerate(threads):
            comments = validate(
                thread.comments, f"comment_threads[{index}].comments", "CommentReconciler.scan()"
            )
            if not comments:
                continue

            if thread.file_path is None:
                self._scan_pull_request_thread(state, thread, index, current_header, candidates)
                continue

            path = validate(
                thread.file_path, f"comment_threads[{index}].file_path", "CommentReconciler.scan()"
            )
            content = validate(
                comments[0].content,
                f"comment_threads[{index}].comments[0].content",
                "CommentReconciler.scan()",
            )
            if content == self.notice:
                self._record_notice(state, thread, path, candidates)

        return state

    def _scan_pull_request_thread(
        self,
        state: ReconciliationState,
        thread: CommentThread,
        index: int,
        current_header: str,
        candidates: frozenset[str],
    ) -> None:
        # Updates append to the thread, so the newest header can be any comment
        for comment_index, comment in enumerate(thread.comments or []):
            content = validate(
                comment.content,
                f"comment_threads[{index}].comments[{comment_index}].content",
                "CommentReconciler.scan()",
            )
            if self._header_pattern.match(content):
                state.metrics_thread_id = thread.thread_id
                state.metrics_comment_id = comment.comment_id
                state.metrics_comment_content = content
                state.metrics_thread_status = thread.status
                state.metrics_comment_present = content.startswith(current_header)
                continue

            if comment_index == 0:
                fallback = self._fallback_pattern.fullmatch(content)
                if fallback:
                    self._record_notice(state, thread, fallback.group(1), candidates)

    def _record_notice(
        self,
        state: ReconciliationState,
        thread: CommentThread,
        path: str,
        candidates: frozenset[str],
    ) -> None:
        if path in candidates:
            state.files_needing_notice.discard(path)
        else:
            state.files_with_stale_notice.add(path)
            state.stale_notice_threads.append(thread)

    def plan(
        self,
        state: ReconciliationState,
        metrics_comment: str,
        metrics_status: ThreadStatus,
        metadata: list[MetadataEntry],
    ) -> list[CommentOperation]:
        operations: list[CommentOperation] = []
        # GitHub iterations can repeat after a force-push, so compare the body too
        up_to_date = state.metrics_comment_present and _same_content(
            state.metrics_comment_content, metrics_comment
        )
        if not up_to_date:
            operations.append(UpsertMetricsComment(
                content=metrics_comment,
                status=metrics_status,
                thread_id=state.metrics_thread_id,
                comment_id=state.metrics_comment_id,
            ))
            operations.append(RecordMetadata(metadata))
        elif state.metrics_thread_status not in (None, metrics_status):
            operations.append(SetMetricsThreadStatus(state.metrics_thread_id, metrics_status))

        for path in sorted(state.files_needing_notice):
            operations.append(CreateNotice(path, self.notice, self.fallback_notice(path)))

        for thread in state.stale_notice_threads:
            operations.append(DeleteNotice(thread))

        logger.debug(
            f"Planned {len(operations)} comment operations "
            f"(metrics up to date: {up_to_date}, "
            f"notices: {len(state.files_needing_notice)}, "
            f"stale: {len(state.stale_notice_threads)})"
        )
        return operations


def _same_content(existing: str | None, rendered: str) -> bool:
    if existing is None:
        return False
    return existing.replace("\r\n", "\n").rstrip() == rendered.replace("\r\n", "\n").rstrip()


async def run_operations(
    operations: list[CommentOperation],
    host: ReposInvoker,
    locator: UnifiedDiffLineLocator | None = None,
) -> None:
    """Apply all operations concurrently; raise the first failure once all finish."""
    await gather_all(*(operation.apply(host, locator) for operation in operations))
