"""Unified diff parser - find the first changed line of every file.

File-scoped comments have to be anchored at a line that is part of the diff,
otherwise hosts reject them. The first hunk's destination start line is always
such a line, so that is what we record per file.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from prmetrics.exceptions import DiffParseError

logger = logging.getLogger("prmetrics.git")

_FILE_BOUNDARY = re.compile(r"^diff --git", re.MULTILINE)
_HEADER = re.compile(r"^diff --git (\"?a/.+?\"?) (\"?b/.+?\"?)$")
_HUNK_HEADER = re.compile(r"@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")

DiffLineIndex = dict[str, int]


@dataclass
class DiffHunk:
    """A single hunk from a unified diff."""
    old_start: int
    old_count: int
    new_start: int
    new_count: int


@dataclass
class FileDiff:
    """Changes to a single file."""
    path: str
    status: str  # 'added', 'modified', 'deleted', 'renamed'
    old_path: str | None = None  # For renames
    hunks: list[DiffHunk] = field(default_factory=list)

    @property
    def first_changed_line(self) -> int | None:
        return self.hunks[0].new_start if self.hunks else None


def split_diff(diff_text: str) -> list[str]:
    """Split a multi-file diff into one block per file."""
    pieces = _FILE_BOUNDARY.split(diff_text)
    # Anything before the first header (e.g. a commit preamble) is not a file
    return ["diff --git" + piece for piece in pieces[1:]]


_C_ESCAPES = {
    "a": "\a", "b": "\b", "f": "\f", "n": "\n", "r": "\r", "t": "\t", "v": "\v",
    "\"": "\"", "\\": "\\",
}
_OCTAL_ESCAPE = re.compile(r"[0-3][0-7]{2}")


def unquote_path(path: str) -> str:
    """Undo git's C-style quoting of a path, e.g. ``"caf\\303\\251.py"``.

    Octal escapes are raw bytes of the UTF-8 encoded name. Unquoted paths are
    returned unchanged.
    """
    if len(path) < 2 or path[0] != '"' or path[-1] != '"':
        return path
    body = path[1:-1]
    raw = bytearray()
    i = 0
    while i < len(body):
        c = body[i]
        if c == "\\" and i + 1 < len(body):
            if _OCTAL_ESCAPE.match(body, i + 1):
                raw.append(int(body[i + 1:i + 4], 8))
                i += 4
                continue
            raw.extend(_C_ESCAPES.get(body[i + 1], body[i + 1]).encode())
            i += 2
            continue
        raw.extend(c.encode())
        i += 1
    return raw.decode("utf-8", errors="replace")


def parse_file_block(block: str) -> FileDiff:
    """Parse the diff of one file."""
    lines = block.splitlines()
    match = _HEADER.match(lines[0]) if lines else None
    if match is None:
        raise DiffParseError(
            f"Could not parse the diff header '{lines[0] if lines else block}'."
        )

    current = FileDiff(path=unquote_path(match.group(2))[2:], status="modified")
    for line in lines[1:]:
        if line.startswith("@@"):
            # Hunk header: @@ -old_start,old_count +new_start,new_count @@
            hunk = _HUNK_HEADER.match(line)
            if hunk:
                current.hunks.append(DiffHunk(
                    old_start=int(hunk.group(1)),
                    old_count=int(hunk.group(2) or "1"),
                    new_start=int(hunk.group(3)),
                    new_count=int(hunk.group(4) or "1"),
                ))
        elif current.hunks:
            # Hunk content, which can look like a header line
            continue
        elif line.startswith("new file"):
            current.status = "added"
        elif line.startswith("deleted file"):
            current.status = "deleted"
        elif line.startswith("rename from "):
            current.old_path = unquote_path(line[len("rename from "):])
            current.status = "renamed"
        elif line.startswith("rename to "):
            current.path = unquote_path(line[len("rename to "):])
            current.status = "renamed"
        elif line.startswith("+++ "):
            target = unquote_path(line[4:])
            if target.startswith("b/"):
                current.path = target[2:]
    return current


def parse_diff(diff_text: str) -> list[FileDiff]:
    """Parse unified diff text into structured FileDiff objects."""
    return [parse_file_block(block) for block in split_diff(diff_text)]


def first_changed_lines(diff_text: str) -> DiffLineIndex:
    """Map each added, modified or renamed file to its first changed line.

    Deleted files, pure renames and files without hunks (binary files, empty
    new files) have no line a comment could be attached to and are left out.
    """
    index: DiffLineIndex = {}
    for file_diff in parse_diff(diff_text):
        if file_diff.status == "deleted":
            continue
        line = file_diff.first_changed_line
        if line is None:
            continue
        # A hunk that empties the file starts at line 0 on the new side
        index[file_diff.path] = max(line, 1)
    return index


class UnifiedDiffLineLocator:
    """Look up first changed lines, fetching and parsing the diff only once.

    *fetch_diff* is awaited on the first lookup; every later lookup, including
    ones that race the first, reuses the same index.
    """

    def __init__(self, fetch_diff: Callable[[], Awaitable[str]]):
        self._fetch_diff = fetch_diff
        self._index: DiffLineIndex | None = None
        self._lock = asyncio.Lock()

    async def get_index(self) -> DiffLineIndex:
        async with self._lock:
            if self._index is None:
                diff_text = await self._fetch_diff()
                self._index = first_changed_lines(diff_text)
                logger.debug(f"Indexed first changed lines for {len(self._index)} files")
            return self._index

    async def get_first_changed_line(self, path: str) -> int | None:
        """First changed line of *path*, or None if the diff has no hunk for it."""
        index = await self.get_index()
        return index.get(path)
