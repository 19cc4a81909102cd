"""Pull request title and description updates."""

from __future__ import annotations

import re

from prmetrics.strings import Localizer, loc

_SIZE_PREFIX = r"(?:XS|S|M|L|\d*XL)(?:{sufficient}|{insufficient})?"


def _title_prefix_pattern(localize: Localizer) -> re.Pattern[str]:
    """Match a title that already carries a size indicator."""
    size = _SIZE_PREFIX.format(
        sufficient=re.escape(localize("metrics.codeMetrics.titleTestsSufficient")),
        insufficient=re.escape(localize("metrics.codeMetrics.titleTestsInsufficient")),
    )
    template = localize("pullRequests.pullRequest.titleFormat", "\x00", "\x01")
    pattern = re.escape(template).replace("\x00", size, 1).replace("\x01", "(?P<title>.*)", 1)
    return re.compile("^" + pattern + "$", re.DOTALL)


def get_updated_title(title: str, size_indicator: str, localize: Localizer = loc) -> str | None:
    """New title with *size_indicator* prefixed, or None if it is already there.

    An existing indicator from a previous run is replaced rather than stacked.
    """
    if title.startswith(localize("pullRequests.pullRequest.titleFormat", size_indicator, "")):
        return None

    match = _title_prefix_pattern(localize).match(title)
    original = match.group("title") if match else title
    return localize("pullRequests.pullRequest.titleFormat", size_indicator, original)


def get_updated_description(description: str | None, localize: Localizer = loc) -> str | None:
    """Prompt text for an empty description, or None when one is present."""
    if description is not None and description.strip():
        return None
    return localize("pullRequests.pullRequest.addDescription")
