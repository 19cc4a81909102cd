"""Git access and unified diff parsing."""

from prmetrics.git.diff_parser import UnifiedDiffLineLocator, first_changed_lines, parse_diff
from prmetrics.git.invoker import GitInvoker

__all__ = ["GitInvoker", "UnifiedDiffLineLocator", "first_changed_lines", "parse_diff"]
