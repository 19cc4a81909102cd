"""Rich-powered console output for PR Metrics."""

from __future__ import annotations

from rich.console import Console as RichConsole
from rich.markup import escape
from rich.table import Table

from prmetrics.metrics.classifier import DiffSummary
from prmetrics.metrics.models import Classification
from prmetrics.metrics.size import SizeAssessment

_CLASSIFICATION_STYLES = {
    Classification.PRODUCT: "cyan",
    Classification.TEST: "green",
    Classification.IGNORED: "dim",
}


class Console:
    """Terminal output for PR Metrics using Rich."""

    def __init__(self) -> None:
        self.console = RichConsole()

    def success(self, message: str) -> None:
        self.console.print(f"[green]✓[/green] {escape(message)}")

    def error(self, message: str) -> None:
        self.console.print(f"[red]✗[/red] {escape(message)}")

    def warning(self, message: str) -> None:
        self.console.print(f"[yellow]![/yellow] {escape(message)}")

    def info(self, message: str) -> None:
        self.console.print(f"[blue]i[/blue] {escape(message)}")

    def show_metrics(self, summary: DiffSummary, assessment: SizeAssessment) -> None:
        """Display the size and line totals of a pull request."""
        metrics = summary.metrics
        size_color = "green" if assessment.is_small else "yellow"
        table = Table(title="Pull Request Metrics", border_style="cyan")
        table.add_column("Metric", style="bold")
        table.add_column("Lines", justify="right", style="cyan")

        table.add_row("Product Code", f"{metrics.product_code:,}")
        table.add_row("Test Code", f"{metrics.test_code:,}")
        table.add_row("Subtotal", f"{metrics.subtotal:,}")
        table.add_row("Ignored Code", f"{metrics.ignored_code:,}")
        table.add_row("Total", f"{metrics.total:,}")
        self.console.print(table)

        self.console.print(
            f"[bold]Size:[/bold] [{size_color}]{assessment.size.label}[/{size_color}]"
        )
        if assessment.is_sufficiently_tested is not None:
            tested = "yes" if assessment.is_sufficiently_tested else "no"
            self.console.print(f"[bold]Sufficiently tested:[/bold] {tested}")

    def show_files(self, summary: DiffSummary) -> None:
        """List every changed file with its classification."""
        for path, classification in sorted(summary.files.items()):
            style = _CLASSIFICATION_STYLES[classification]
            self.console.print(f"  [{style}]{classification.value:<8}[/{style}] {escape(path)}")
        for path in summary.ignored_without_lines:
            self.console.print(f"  [dim]no review required:[/dim] {escape(path)}")
