"""Tests for the comment reconciler and the metrics comment renderer."""

from __future__ import annotations

import pytest

from prmetrics.config import MetricsInputs
from prmetrics.exceptions import HostApiError, ValidationError
from prmetrics.git.diff_parser import UnifiedDiffLineLocator
from prmetrics.metrics.classifier import DiffSummaryClassifier
from prmetrics.metrics.models import CodeMetrics, Size
from prmetrics.metrics.size import SizeAssessment
from prmetrics.pullrequests.comments import (
    CommentReconciler,
    CreateNotice,
    DeleteNotice,
    RecordMetadata,
    SetMetricsThreadStatus,
    UpsertMetricsComment,
    run_operations,
)
from prmetrics.pullrequests.renderer import (
    metrics_comment_status,
    metrics_header_pattern,
    metrics_metadata,
    render_metrics_comment,
)
from prmetrics.repos.base import Comment, CommentThread, MetadataEntry, ThreadStatus

from conftest import SAMPLE_UNIFIED_DIFF, FakeHost

NOTICE = "❗ **This file doesn't require review.**"


def pr_thread(thread_id: int, *contents: str) -> CommentThread:
    return CommentThread(
        thread_id=thread_id,
        comments=[Comment(comment_id=i + 1, content=c) for i, c in enumerate(contents)],
    )


def file_thread(thread_id: int, path: str, content: str = NOTICE) -> CommentThread:
    return CommentThread(
        thread_id=thread_id,
        comments=[Comment(comment_id=1, content=content)],
        file_path=path,
    )


def plan(reconciler: CommentReconciler, threads, iteration=2, files=("a.lock",)):
    state = reconciler.scan(threads, iteration, files)
    return reconciler.plan(state, "# Metrics for iteration 2\nbody", ThreadStatus.CLOSED, [])


class TestScan:
    def test_no_threads(self):
        state = CommentReconciler().scan([], 1, ["a.lock", "b.lock"])
        assert not state.metrics_comment_present
        assert state.metrics_thread_id is None
        assert state.files_needing_notice == {"a.lock", "b.lock"}

    def test_current_metrics_comment(self):
        state = CommentReconciler().scan([pr_thread(5, "# Metrics for iteration 2\nbody")], 2, [])
        assert state.metrics_comment_present
        assert state.metrics_thread_id == 5
        assert state.metrics_comment_id == 1

    def test_stale_metrics_comment(self):
        state = CommentReconciler().scan([pr_thread(5, "# Metrics for iteration 1\nbody")], 2, [])
        assert not state.metrics_comment_present
        assert state.metrics_thread_id == 5

    def test_header_must_match_iteration_exactly(self):
        state = CommentReconciler().scan([pr_thread(5, "# Metrics for iteration 21\nbody")], 2, [])
        assert not state.metrics_comment_present

    def test_appended_update_is_found(self):
        thread = pr_thread(
            5, "# Metrics for iteration 1\nold", "# Metrics for iteration 2\nnew"
        )
        state = CommentReconciler().scan([thread], 2, [])
        assert state.metrics_comment_present
        assert state.metrics_comment_id == 2

    def test_unrelated_comments_ignored(self):
        state = CommentReconciler().scan([pr_thread(1, "LGTM"), file_thread(2, "a.lock", "nit")], 2, ["a.lock"])
        assert state.metrics_thread_id is None
        assert state.files_needing_notice == {"a.lock"}

    def test_existing_notice_removes_file(self):
        state = CommentReconciler().scan([file_thread(3, "a.lock")], 2, ["a.lock", "b.lock"])
        assert state.files_needing_notice == {"b.lock"}
        assert state.files_with_stale_notice == set()

    def test_notice_on_file_needing_review_is_stale(self):
        thread = file_thread(3, "src/app.py")
        state = CommentReconciler().scan([thread], 2, ["a.lock"])
        assert state.files_with_stale_notice == {"src/app.py"}
        assert state.stale_notice_threads == [thread]

    def test_pull_request_scoped_notice_recognised(self):
        thread = pr_thread(4, "❗ **The file `a.lock` doesn't require review.**")
        state = CommentReconciler().scan([thread], 2, ["a.lock"])
        assert state.files_needing_notice == set()

    def test_missing_comments_raises(self):
        thread = CommentThread(thread_id=1, comments=None)
        with pytest.raises(ValidationError) as exc_info:
            CommentReconciler().scan([pr_thread(9, "hi"), thread], 2, [])
        assert "comment_threads[1].comments" in str(exc_info.value)
        assert "CommentReconciler.scan()" in str(exc_info.value)

    def test_missing_content_raises(self):
        thread = CommentThread(thread_id=1, comments=[Comment(comment_id=1)])
        with pytest.raises(ValidationError, match=r"comment_threads\[0\]\.comments\[0\]\.content"):
            CommentReconciler().scan([thread], 2, [])

    def test_missing_file_path_raises(self):
        with pytest.raises(ValidationError, match="file_path"):
            CommentReconciler().scan([file_thread(1, "")], 2, [])


class TestPlan:
    def test_fresh_pull_request(self):
        operations = plan(CommentReconciler(), [], files=("b.lock", "a.lock"))
        assert [type(op) for op in operations] == [
            UpsertMetricsComment, RecordMetadata, CreateNotice, CreateNotice,
        ]
        assert operations[0].thread_id is None
        assert [op.file_path for op in operations[2:]] == ["a.lock", "b.lock"]

    def test_stale_metrics_comment_updated_in_place(self):
        operations = plan(CommentReconciler(), [pr_thread(5, "# Metrics for iteration 1\nold")])
        upsert = operations[0]
        assert isinstance(upsert, UpsertMetricsComment)
        assert (upsert.thread_id, upsert.comment_id) == (5, 1)

    def test_up_to_date_pull_request_plans_nothing(self):
        threads = [pr_thread(5, "# Metrics for iteration 2\nbody"), file_thread(6, "a.lock")]
        assert plan(CommentReconciler(), threads) == []

    def test_same_iteration_with_changed_body_is_updated(self):
        # A force-push can keep the iteration while changing the sizing
        operations = plan(CommentReconciler(), [pr_thread(5, "# Metrics for iteration 2\nolder body")])
        assert [type(op) for op in operations] == [UpsertMetricsComment, RecordMetadata]
        assert (operations[0].thread_id, operations[0].comment_id) == (5, 1)
        assert operations[0].content == "# Metrics for iteration 2\nbody"

    def test_line_endings_do_not_count_as_changes(self):
        threads = [pr_thread(5, "# Metrics for iteration 2\r\nbody\n"), file_thread(6, "a.lock")]
        assert plan(CommentReconciler(), threads) == []

    def test_status_change_only_updates_status(self):
        thread = pr_thread(5, "# Metrics for iteration 2\nbody")
        thread.status = ThreadStatus.ACTIVE
        operations = plan(CommentReconciler(), [thread, file_thread(6, "a.lock")])
        assert operations == [SetMetricsThreadStatus(5, ThreadStatus.CLOSED)]

    def test_stale_notice_deleted(self):
        threads = [pr_thread(5, "# Metrics for iteration 2\nbody"), file_thread(6, "src/app.py")]
        operations = plan(CommentReconciler(), threads, files=())
        assert len(operations) == 1
        assert isinstance(operations[0], DeleteNotice)
        assert operations[0].thread.thread_id == 6

    def test_custom_strings(self):
        strings = {
            "pullRequests.pullRequestComments.commentTitle": "## Iteration {0} metrics",
            "pullRequests.pullRequestComments.noReviewRequiredComment": "skip",
            "pullRequests.pullRequestComments.noReviewRequiredFileComment": "skip {0}",
        }
        reconciler = CommentReconciler(lambda key, *p: strings[key].format(*p))
        state = reconciler.scan(
            [pr_thread(1, "## Iteration 3 metrics\n..."), file_thread(2, "x.bin", "skip")], 3, ["x.bin"]
        )
        assert state.metrics_comment_present
        assert state.files_needing_notice == set()


class TestPatternIgnoredFilesWithLines:
    def test_no_notice_for_pattern_reject_with_additions(self):
        summary = DiffSummaryClassifier(MetricsInputs()).classify(
            "40\t0\tpackage-lock.json\n0\t3\tweb/package-lock.json\n12\t0\tsrc/app.py\n"
        )
        reconciler = CommentReconciler()
        state = reconciler.scan([], 1, summary.ignored_without_lines)
        operations = reconciler.plan(state, "x", ThreadStatus.ACTIVE, [])
        notices = [op.file_path for op in operations if isinstance(op, CreateNotice)]
        assert notices == ["web/package-lock.json"]


class TestApply:
    @pytest.mark.asyncio
    async def test_notice_anchored_at_first_changed_line(self, fake_host: FakeHost):
        async def fetch() -> str:
            return SAMPLE_UNIFIED_DIFF

        operation = CreateNotice("File2.ts", NOTICE, "fallback")
        await operation.apply(fake_host, UnifiedDiffLineLocator(fetch))
        assert fake_host.calls == [
            ("create_comment_thread", NOTICE, ThreadStatus.CLOSED, "File2.ts", 10),
        ]

    @pytest.mark.asyncio
    async def test_notice_falls_back_to_pull_request(self, fake_host: FakeHost):
        async def fetch() -> str:
            return SAMPLE_UNIFIED_DIFF

        operation = CreateNotice("File.dll", NOTICE, "fallback for File.dll")
        await operation.apply(fake_host, UnifiedDiffLineLocator(fetch))
        assert fake_host.calls == [
            ("create_comment_thread", "fallback for File.dll", ThreadStatus.CLOSED, None, None),
        ]

    @pytest.mark.asyncio
    async def test_update_in_place_sets_status(self, fake_host: FakeHost):
        fake_host.threads = [pr_thread(5, "# Metrics for iteration 1\nold")]
        await UpsertMetricsComment("new", ThreadStatus.ACTIVE, 5, 1).apply(fake_host)
        assert fake_host.call_names() == ["create_comment", "set_comment_thread_status"]
        assert fake_host.threads[0].status == ThreadStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_status_update_posts_no_comment(self, fake_host: FakeHost):
        await SetMetricsThreadStatus(5, ThreadStatus.CLOSED).apply(fake_host)
        assert fake_host.calls == [("set_comment_thread_status", 5, ThreadStatus.CLOSED)]

    @pytest.mark.asyncio
    async def test_rerun_is_idempotent(self, fake_host: FakeHost):
        reconciler = CommentReconciler()
        for _ in range(2):
            threads = await fake_host.get_comment_threads()
            await run_operations(plan(reconciler, threads, files=("a.lock",)), fake_host)

        created = [c for c in fake_host.calls if c[0] == "create_comment_thread"]
        assert len(created) == 2  # one metrics comment, one notice
        assert fake_host.call_names().count("add_metadata") == 1

    @pytest.mark.asyncio
    async def test_failure_does_not_stop_other_operations(self):
        host = FakeHost(fail_on={"create_comment_thread"})
        operations = [
            UpsertMetricsComment("m", ThreadStatus.CLOSED),
            RecordMetadata([MetadataEntry(key="Size", value="S")]),
        ]
        with pytest.raises(HostApiError):
            await run_operations(operations, host)
        assert "add_metadata" in host.call_names()


class TestRenderer:
    def test_small_tested_comment(self):
        content = render_metrics_comment(
            CodeMetrics(1000, 1000, 1000),
            SizeAssessment(Size.S, is_small=True, is_sufficiently_tested=True),
            base_size=200,
            iteration=3,
        )
        assert content == (
            "# Metrics for iteration 3\n"
            "✔ **Thanks for keeping your pull request small.**\n"
            "✔ **Thanks for adding tests.**\n"
            "||Lines\n"
            "-|-:\n"
            "Product Code|1,000\n"
            "Test Code|1,000\n"
            "**Subtotal**|**2,000**\n"
            "Ignored Code|1,000\n"
            "**Total**|**3,000**\n"
            "\n"
            "[Metrics computed by PR Metrics. Add it to your Azure DevOps and GitHub PRs!]"
            "(https://aka.ms/PRMetrics/Comment)"
        )

    def test_large_untested_comment_with_zeroes(self):
        content = render_metrics_comment(
            CodeMetrics(0, 0, 0),
            SizeAssessment(Size.L, is_small=False, is_sufficiently_tested=False),
            base_size=2000,
            iteration=1,
        )
        lines = content.split("\n")
        assert "smaller than 2,000 lines" in lines[1]
        assert lines[2] == "⚠️ **Consider adding additional tests.**"
        assert "Product Code|-" in lines
        assert "**Total**|**-**" in lines

    def test_no_test_line_when_unchecked(self):
        content = render_metrics_comment(
            CodeMetrics(1, 0, 0), SizeAssessment(Size.XS, True, None), 200, 1
        )
        assert content.split("\n")[2] == "||Lines"

    def test_header_pattern_matches_any_iteration(self):
        pattern = metrics_header_pattern()
        assert pattern.match("# Metrics for iteration 17\n...")
        assert not pattern.match("Some # Metrics for iteration 1")

    @pytest.mark.parametrize("small,tested,always,expected", [
        (True, True, False, ThreadStatus.CLOSED),
        (True, None, False, ThreadStatus.CLOSED),
        (True, False, False, ThreadStatus.ACTIVE),
        (False, True, False, ThreadStatus.ACTIVE),
        (False, False, True, ThreadStatus.CLOSED),
    ])
    def test_status(self, small, tested, always, expected):
        assessment = SizeAssessment(Size.S, small, tested)
        assert metrics_comment_status(assessment, always) == expected

    def test_metadata(self):
        entries = metrics_metadata(
            CodeMetrics(9, 2, 1), SizeAssessment(Size.M, False, False)
        )
        assert {e.key: e.value for e in entries} == {
            "Size": "M",
            "ProductCode": "9",
            "TestCode": "2",
            "Subtotal": "11",
            "IgnoredCode": "1",
            "Total": "12",
            "TestCoverage": "false",
        }

    def test_metadata_without_test_coverage(self):
        entries = metrics_metadata(CodeMetrics(1, 0, 0), SizeAssessment(Size.XS, True, None))
        assert "TestCoverage" not in {e.key for e in entries}
