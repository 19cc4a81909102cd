"""Markdown renderer for the metrics comment.

The comment carries:
  - a header naming the iteration it was computed for
  - a size status line and, when testing is checked, a test status line
  - a table of product, test and ignored lines
  - a footer
"""

from __future__ import annotations

import re

from prmetrics.metrics.models import CodeMetrics
from prmetrics.metrics.size import SizeAssessment
from prmetrics.repos.base import MetadataEntry, ThreadStatus
from prmetrics.strings import Localizer, loc

_PLACEHOLDER = "\x00"


def metrics_header(iteration: int, localize: Localizer = loc) -> str:
    return localize("pullRequests.pullRequestComments.commentTitle", iteration)


def metrics_header_pattern(localize: Localizer = loc) -> re.Pattern[str]:
    """Match the header of a metrics comment from any iteration."""
    template = localize("pullRequests.pullRequestComments.commentTitle", _PLACEHOLDER)
    return re.compile("^" + ".+".join(re.escape(part) for part in template.split(_PLACEHOLDER)))


def _format_count(value: int, bold: bool = False) -> str:
    text = f"{value:,}" if value else "-"
    return f"**{text}**" if bold else text


def render_metrics_comment(
    metrics: CodeMetrics,
    assessment: SizeAssessment,
    base_size: int,
    iteration: int,
    localize: Localizer = loc,
) -> str:
    """Render the full metrics comment as markdown."""
    key = "pullRequests.pullRequestComments."
    sections: list[str] = [metrics_header(iteration, localize)]

    if assessment.is_small:
        sections.append(localize(key + "smallPullRequestComment"))
    else:
        sections.append(localize(key + "largePullRequestComment", f"{base_size:,}"))

    if assessment.is_sufficiently_tested is not None:
        if assessment.is_sufficiently_tested:
            sections.append(localize(key + "testsSufficientComment"))
        else:
            sections.append(localize(key + "testsInsufficientComment"))

    sections.append(f"||{localize(key + 'tableLines')}")
    sections.append("-|-:")
    sections.append(f"{localize(key + 'tableProductCode')}|{_format_count(metrics.product_code)}")
    sections.append(f"{localize(key + 'tableTestCode')}|{_format_count(metrics.test_code)}")
    sections.append(
        f"**{localize(key + 'tableSubtotal')}**|{_format_count(metrics.subtotal, bold=True)}"
    )
    sections.append(f"{localize(key + 'tableIgnoredCode')}|{_format_count(metrics.ignored_code)}")
    sections.append(f"**{localize(key + 'tableTotal')}**|{_format_count(metrics.total, bold=True)}")
    sections.append("")
    sections.append(localize(key + "commentFooter"))
    return "\n".join(sections)


def metrics_comment_status(assessment: SizeAssessment, always_close: bool = False) -> ThreadStatus:
    """Closed once the pull request is small and tested enough, active otherwise."""
    if always_close:
        return ThreadStatus.CLOSED
    if assessment.is_small and assessment.is_sufficiently_tested in (None, True):
        return ThreadStatus.CLOSED
    return ThreadStatus.ACTIVE


def metrics_metadata(metrics: CodeMetrics, assessment: SizeAssessment) -> list[MetadataEntry]:
    entries = [
        MetadataEntry(key="Size", value=assessment.size.label),
        MetadataEntry(key="ProductCode", value=str(metrics.product_code)),
        MetadataEntry(key="TestCode", value=str(metrics.test_code)),
        MetadataEntry(key="Subtotal", value=str(metrics.subtotal)),
        MetadataEntry(key="IgnoredCode", value=str(metrics.ignored_code)),
        MetadataEntry(key="Total", value=str(metrics.total)),
    ]
    if assessment.is_sufficiently_tested is not None:
        entries.append(MetadataEntry(
            key="TestCoverage", value=str(assessment.is_sufficiently_tested).lower()
        ))
    return entries
