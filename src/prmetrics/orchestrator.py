"""Pull request metrics run - size the pull request and update the host.

A run goes:

    should_skip -> should_stop -> diff summary -> classify -> size
      -> (title/description update || comment reconciliation)

Failures anywhere are turned into a failed RunResult here and nowhere else.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from prmetrics.aio import gather_all
from prmetrics.config import MetricsInputs, RunnerEnvironment, load_inputs
from prmetrics.exceptions import EmptyDiffError
from prmetrics.git.diff_parser import UnifiedDiffLineLocator
from prmetrics.git.invoker import GitInvoker
from prmetrics.metrics.classifier import DiffSummary, DiffSummaryClassifier
from prmetrics.metrics.size import SizeAssessment, SizeCalculator
from prmetrics.pullrequests.comments import CommentReconciler, run_operations
from prmetrics.pullrequests.pull_request import get_updated_description, get_updated_title
from prmetrics.pullrequests.renderer import (
    metrics_comment_status,
    metrics_metadata,
    render_metrics_comment,
)
from prmetrics.repos.base import ReposInvoker
from prmetrics.repos.factory import create_repos_invoker, is_supported_provider
from prmetrics.strings import Localizer, loc

logger = logging.getLogger("prmetrics")


class RunStatus(str, Enum):
    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class RunResult:
    status: RunStatus
    message: str

    @property
    def ok(self) -> bool:
        return self.status != RunStatus.FAILED


@dataclass(frozen=True)
class MetricsCalculation:
    """Classification and sizing of one pull request."""
    summary: DiffSummary
    assessment: SizeAssessment


class PullRequestMetrics:
    """Wires the classifier, calculator and reconciler to git and the host."""

    def __init__(
        self,
        runner: RunnerEnvironment,
        inputs: MetricsInputs,
        git: GitInvoker,
        host: ReposInvoker | None = None,
        localize: Localizer = loc,
    ):
        self.runner = runner
        self.inputs = inputs
        self.git = git
        self.localize = localize
        self._host = host
        self.classifier = DiffSummaryClassifier(inputs)
        self.calculator = SizeCalculator(inputs.base_size, inputs.growth_rate, inputs.test_factor)
        self.reconciler = CommentReconciler(localize)

    @classmethod
    def from_environment(
        cls,
        runner: RunnerEnvironment | None = None,
        root: Path | None = None,
        overrides: dict | None = None,
    ) -> PullRequestMetrics:
        runner = runner or RunnerEnvironment()
        return cls(runner, load_inputs(runner, overrides), GitInvoker(runner, root))

    @property
    def host(self) -> ReposInvoker:
        # Selected only after should_skip has ruled out unsupported providers
        if self._host is None:
            self._host = create_repos_invoker(self.runner, self.localize)
        return self._host

    def should_skip(self) -> str | None:
        """Reason the run does not apply to this build, or None."""
        if self.runner.is_github:
            if self.runner.get_variable("GITHUB_BASE_REF") is None:
                return self.localize("index.noPullRequest")
            return None

        if self.runner.get_variable("SYSTEM_PULLREQUEST_PULLREQUESTID") is None:
            return self.localize("index.noPullRequest")
        provider = self.runner.get_variable("BUILD_REPOSITORY_PROVIDER") or ""
        if not is_supported_provider(provider):
            return self.localize("index.unsupportedProvider", provider)
        return None

    async def should_stop(self) -> str | None:
        """Reason the run cannot proceed, or None."""
        message = await self.host.is_access_token_available()
        if message is not None:
            return message
        if not await self.git.is_git_repo():
            return self.localize("index.noGitEnlistment")
        if not self.git.is_pull_request_id_available():
            return self.localize("index.noPullRequestId")
        if not await self.git.is_git_history_available():
            return self.localize("index.noGitHistory")
        return None

    async def calculate(self) -> MetricsCalculation:
        diff_summary = await self.git.get_diff_summary()
        if not diff_summary.strip():
            raise EmptyDiffError(self.localize("index.emptyDiffSummary"))
        summary = self.classifier.classify(diff_summary)
        assessment = self.calculator.assess(summary.metrics)
        logger.info(
            f"Size {assessment.size.label}: {summary.metrics.product_code} product, "
            f"{summary.metrics.test_code} test, {summary.metrics.ignored_code} ignored lines"
        )
        return MetricsCalculation(summary, assessment)

    async def update_details(self, calculation: MetricsCalculation) -> None:
        details = await self.host.get_title_and_description()
        title = get_updated_title(
            details.title, calculation.assessment.indicator(self.localize), self.localize
        )
        description = get_updated_description(details.description, self.localize)
        if title is None and description is None:
            logger.debug("Title and description are up to date")
            return
        await self.host.set_title_and_description(title, description)

    async def update_comments(self, calculation: MetricsCalculation) -> None:
        iteration, threads = await asyncio.gather(
            self.host.get_current_iteration(), self.host.get_comment_threads()
        )
        summary, assessment = calculation.summary, calculation.assessment
        state = self.reconciler.scan(threads, iteration, summary.ignored_without_lines)
        operations = self.reconciler.plan(
            state,
            render_metrics_comment(
                summary.metrics, assessment, self.inputs.base_size, iteration, self.localize
            ),
            metrics_comment_status(assessment, self.inputs.always_close_comment),
            metrics_metadata(summary.metrics, assessment),
        )
        locator = UnifiedDiffLineLocator(self.git.get_unified_diff)
        await run_operations(operations, self.host, locator)

    async def run(self) -> RunResult:
        try:
            reason = self.should_skip()
            if reason is not None:
                logger.warning(reason)
                return RunResult(RunStatus.SKIPPED, reason)

            reason = await self.should_stop()
            if reason is not None:
                logger.error(reason)
                return RunResult(RunStatus.FAILED, reason)

            calculation = await self.calculate()
            await gather_all(self.update_details(calculation), self.update_comments(calculation))
        except Exception as e:
            logger.exception("PR Metrics failed")
            return RunResult(RunStatus.FAILED, str(e))

        message = self.localize("index.succeeded")
        logger.info(message)
        return RunResult(RunStatus.SUCCEEDED, message)
