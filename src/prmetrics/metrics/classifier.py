"""Diff summary classifier - turn `git diff --numstat` output into code metrics.

Each line of the summary is ``<added>\\t<deleted>\\t<path>``. Files that pass
both the file-matching patterns and the code-extension check are counted as
product or test code; everything else is ignored code. Files rejected by the
patterns that add no lines are the ones that later get a "doesn't require
review" notice.
"""

from __future__ import annotations

import logging
import posixpath
import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import TYPE_CHECKING

from prmetrics.exceptions import DiffSummaryError
from prmetrics.git.diff_parser import unquote_path
from prmetrics.metrics.models import Classification, CodeMetrics, FileStat

if TYPE_CHECKING:
    from prmetrics.config import MetricsInputs

logger = logging.getLogger("prmetrics.metrics")

_RENAME_GROUP = re.compile(r"\{[^{}]*? => ([^{}]*?)\}")
_RENAME_PLAIN = re.compile(r"^.*? => ")
_TEST_MARKER = re.compile(r"test", re.IGNORECASE)


def normalize_renames(path: str) -> str:
    """Collapse git rename syntax to the path after the rename.

    ``src/{old => new}/a.py`` becomes ``src/new/a.py``, ``old.py => new.py``
    becomes ``new.py`` and ``src/{lib => }/a.py`` becomes ``src/a.py``.
    """
    if "{" in path:
        path = _RENAME_GROUP.sub(r"\1", path)
        return re.sub(r"/{2,}", "/", path).lstrip("/")
    return _RENAME_PLAIN.sub("", path, count=1)


def _parse_count(value: str, line: str) -> int | None:
    if value == "-":
        return None
    try:
        count = int(value)
    except ValueError:
        raise DiffSummaryError(
            f"Could not parse line count '{value}' in diff summary line '{line}'."
        ) from None
    if count < 0:
        raise DiffSummaryError(
            f"Negative line count '{value}' in diff summary line '{line}'."
        )
    return count


def parse_diff_summary(text: str) -> list[FileStat]:
    """Parse `git diff --numstat` output into FileStat records."""
    stats: list[FileStat] = []
    for line in text.splitlines():
        if not line.strip():
            continue
        fields = line.split("\t")
        if len(fields) != 3:
            raise DiffSummaryError(
                f"The number of elements '{len(fields)}' in '{line}' did not match the "
                "expected 3."
            )
        added, deleted, path = fields
        stats.append(FileStat(
            path=normalize_renames(unquote_path(path)),
            lines_added=_parse_count(added, line),
            lines_deleted=_parse_count(deleted, line),
        ))
    return stats


@lru_cache(maxsize=256)
def _glob_to_regex(pattern: str) -> re.Pattern[str]:
    """Translate a glob into a regex.

    Works like :func:`fnmatch.translate` but is path aware: ``**`` spans
    directories while ``*`` and ``?`` stay inside one path segment. Dot files
    are matched like any other file.
    """
    i, n = 0, len(pattern)
    parts: list[str] = []
    while i < n:
        c = pattern[i]
        if c == "*":
            if pattern.startswith("**/", i):
                parts.append("(?:.*/)?")
                i += 3
                continue
            if pattern.startswith("**", i):
                parts.append(".*")
                i += 2
                continue
            parts.append("[^/]*")
        elif c == "?":
            parts.append("[^/]")
        elif c == "[":
            j = pattern.find("]", i + 2)
            if j == -1:
                parts.append(re.escape(c))
            else:
                body = pattern[i + 1:j].replace("\\", "\\\\")
                if body.startswith("!"):
                    body = "^" + body[1:]
                parts.append("[" + body + "]")
                i = j + 1
                continue
        else:
            parts.append(re.escape(c))
        i += 1
    return re.compile("(?s:" + "".join(parts) + r")\Z")


def glob_match(path: str, pattern: str) -> bool:
    return _glob_to_regex(pattern).match(path) is not None


def matches_patterns(path: str, patterns: list[str]) -> bool:
    """Evaluate the inclusion patterns in order.

    A plain pattern includes the path, ``!pattern`` excludes a path that was
    included, and ``!!pattern`` re-includes a path that was excluded.
    """
    included = False
    for pattern in patterns:
        if pattern.startswith("!!"):
            if not included and glob_match(path, pattern[2:]):
                included = True
        elif pattern.startswith("!"):
            if included and glob_match(path, pattern[1:]):
                included = False
        elif not included and glob_match(path, pattern):
            included = True
    return included


def file_extension(path: str) -> str:
    """Lower-cased text after the last '.' of the file name."""
    name = posixpath.basename(path)
    return name.rsplit(".", 1)[-1].lower()


def is_test_file(path: str) -> bool:
    return _TEST_MARKER.search(path) is not None


@dataclass
class DiffSummary:
    """Result of classifying a diff summary."""
    metrics: CodeMetrics
    files: dict[str, Classification] = field(default_factory=dict)
    ignored_without_lines: list[str] = field(default_factory=list)
    ignored_with_lines: list[str] = field(default_factory=list)


class DiffSummaryClassifier:
    """Classify every file in a diff summary as product, test or ignored code."""

    def __init__(self, inputs: MetricsInputs):
        self.patterns = list(inputs.file_matching_patterns)
        self.extensions = set(inputs.code_file_extensions)

    def classify(self, text: str) -> DiffSummary:
        product_code = test_code = ignored_code = 0
        result = DiffSummary(metrics=CodeMetrics())

        for stat in parse_diff_summary(text):
            if not matches_patterns(stat.path, self.patterns):
                # Only pattern rejects are candidates for a no-review notice
                ignored_code += stat.added
                result.files[stat.path] = Classification.IGNORED
                if stat.added == 0:
                    result.ignored_without_lines.append(stat.path)
                else:
                    result.ignored_with_lines.append(stat.path)
            elif file_extension(stat.path) not in self.extensions:
                ignored_code += stat.added
                result.files[stat.path] = Classification.IGNORED
            elif is_test_file(stat.path):
                test_code += stat.added
                result.files[stat.path] = Classification.TEST
            else:
                product_code += stat.added
                result.files[stat.path] = Classification.PRODUCT

        result.metrics = CodeMetrics(product_code, test_code, ignored_code)
        logger.debug(
            f"Classified {len(result.files)} files: product={product_code}, "
            f"test={test_code}, ignored={ignored_code}"
        )
        return result
