"""Classification of changed files and sizing of pull requests."""

from prmetrics.metrics.classifier import DiffSummary, DiffSummaryClassifier
from prmetrics.metrics.models import Classification, CodeMetrics, FileStat, Size
from prmetrics.metrics.size import SizeAssessment, SizeCalculator

__all__ = [
    "Classification",
    "CodeMetrics",
    "DiffSummary",
    "DiffSummaryClassifier",
    "FileStat",
    "Size",
    "SizeAssessment",
    "SizeCalculator",
]
