"""Command-line interface for PR Metrics."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path

import click
import pydantic
from rich.console import Console as RichConsole
from rich.logging import RichHandler

from prmetrics import __version__
from prmetrics.config import RunnerEnvironment, load_inputs
from prmetrics.exceptions import PRMetricsError
from prmetrics.git.invoker import GitInvoker
from prmetrics.metrics.classifier import DiffSummaryClassifier
from prmetrics.metrics.size import SizeCalculator
from prmetrics.orchestrator import PullRequestMetrics, RunStatus
from prmetrics.ui.console import Console

console = Console()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=RichConsole(stderr=True), show_path=False)],
        force=True,
    )


def _get_root(path: str | None) -> Path:
    root = Path(path or ".").resolve()
    if not root.exists():
        console.error(f"Path does not exist: {path}")
        sys.exit(1)
    return root


def _overrides(
    base_size: int | None,
    growth_rate: float | None,
    test_factor: float | None,
    always_close_comment: bool = False,
) -> dict:
    return {
        "base_size": base_size,
        "growth_rate": growth_rate,
        "test_factor": test_factor,
        "always_close_comment": always_close_comment or None,
    }


def _sizing_options(func):
    func = click.option(
        "--test-factor", type=float, default=None,
        help="Test lines required per product line. 0 disables the check.",
    )(func)
    func = click.option(
        "--growth-rate", type=float, default=None,
        help="Factor between consecutive size thresholds (> 1.0).",
    )(func)
    func = click.option(
        "--base-size", type=int, default=None,
        help="Most product lines a pull request may add and still be small.",
    )(func)
    return func


@click.group()
@click.version_option(version=__version__, prog_name="prmetrics")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def main(verbose: bool):
    """PR Metrics - size pull requests and keep their metrics comments in sync."""
    _configure_logging(verbose)


@main.command()
@click.option("--path", "-p", default=None, help="Path to the repository root.")
@_sizing_options
@click.option(
    "--always-close-comment", is_flag=True, default=False,
    help="Always close the metrics comment thread.",
)
def run(
    path: str | None,
    base_size: int | None,
    growth_rate: float | None,
    test_factor: float | None,
    always_close_comment: bool,
):
    """Size the current pull request and update it on the host.

    Reads the pull request from the CI environment (GitHub Actions or Azure
    Pipelines) and needs PR_METRICS_ACCESS_TOKEN to be set:

        prmetrics run --base-size 250
    """
    root = _get_root(path)
    try:
        metrics = PullRequestMetrics.from_environment(
            root=root,
            overrides=_overrides(base_size, growth_rate, test_factor, always_close_comment),
        )
    except (pydantic.ValidationError, PRMetricsError) as e:
        console.error(f"Invalid inputs: {e}")
        sys.exit(1)

    result = asyncio.run(metrics.run())

    if result.status == RunStatus.SUCCEEDED:
        console.success(result.message)
    elif result.status == RunStatus.SKIPPED:
        console.warning(result.message)
    else:
        console.error(result.message)
        sys.exit(1)


@main.command()
@click.option("--path", "-p", default=None, help="Path to the repository root.")
@click.option("--base", "-b", default="main", help="Base branch to diff against.")
@_sizing_options
@click.option(
    "--format", "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format.",
)
@click.option("--files", "show_files", is_flag=True, help="List every changed file.")
def size(
    path: str | None,
    base: str,
    base_size: int | None,
    growth_rate: float | None,
    test_factor: float | None,
    output_format: str,
    show_files: bool,
):
    """Size the local branch against a base branch without touching any host.

        prmetrics size --base main --format json
    """
    root = _get_root(path)
    runner = RunnerEnvironment()
    try:
        inputs = load_inputs(runner, _overrides(base_size, growth_rate, test_factor))
    except pydantic.ValidationError as e:
        console.error(f"Invalid inputs: {e}")
        sys.exit(1)

    try:
        diff_summary = asyncio.run(GitInvoker(runner, root).get_local_diff_summary(base))
        if not diff_summary.strip():
            console.warning(f"No changes against '{base}'")
            return
        summary = DiffSummaryClassifier(inputs).classify(diff_summary)
    except PRMetricsError as e:
        console.error(str(e))
        sys.exit(1)

    assessment = SizeCalculator(
        inputs.base_size, inputs.growth_rate, inputs.test_factor
    ).assess(summary.metrics)

    if output_format == "json":
        metrics = summary.metrics
        click.echo(json.dumps({
            "size": assessment.size.label,
            "indicator": assessment.indicator(),
            "is_small": assessment.is_small,
            "is_sufficiently_tested": assessment.is_sufficiently_tested,
            "metrics": {
                "product_code": metrics.product_code,
                "test_code": metrics.test_code,
                "subtotal": metrics.subtotal,
                "ignored_code": metrics.ignored_code,
                "total": metrics.total,
            },
            "files": {file_path: kind.value for file_path, kind in summary.files.items()},
            "ignored_without_lines": summary.ignored_without_lines,
            "ignored_with_lines": summary.ignored_with_lines,
        }, indent=2))
        return

    console.show_metrics(summary, assessment)
    if show_files:
        console.show_files(summary)


@main.command()
def inputs():
    """Show the effective inputs as JSON."""
    effective = load_inputs(RunnerEnvironment())
    click.echo(json.dumps(effective.to_display_dict(), indent=2))
