"""Data models for diff statistics and code metrics."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from functools import total_ordering

from prmetrics.exceptions import MetricsRangeError


class Classification(str, Enum):
    """Bucket a changed file is counted in."""

    PRODUCT = "product"
    TEST = "test"
    IGNORED = "ignored"


@dataclass(frozen=True)
class FileStat:
    """Added/deleted line counts for one changed file.

    A count of ``None`` means git reported the file as binary (``-``).
    """
    path: str
    lines_added: int | None
    lines_deleted: int | None

    @property
    def is_binary(self) -> bool:
        return self.lines_added is None

    @property
    def added(self) -> int:
        return self.lines_added or 0

    @property
    def deleted(self) -> int:
        return self.lines_deleted or 0


@dataclass(frozen=True)
class CodeMetrics:
    """Line totals for product, test and ignored code."""
    product_code: int = 0
    test_code: int = 0
    ignored_code: int = 0

    def __post_init__(self) -> None:
        for name in ("product_code", "test_code", "ignored_code"):
            value = getattr(self, name)
            if value < 0:
                raise MetricsRangeError(name, value)

    @property
    def subtotal(self) -> int:
        return self.product_code + self.test_code

    @property
    def total(self) -> int:
        return self.subtotal + self.ignored_code


_FIXED_LABELS = ("XS", "S", "M", "L")


@total_ordering
@dataclass(frozen=True)
class Size:
    """A position on the size ladder.

    Indexes 0-3 are XS, S, M and L. Every index past that is XL(n) with
    ``n = index - 3``, labelled ``XL`` for the first tier and ``2XL``,
    ``3XL``, ... afterwards.
    """
    index: int

    def __post_init__(self) -> None:
        if self.index < 0:
            raise MetricsRangeError("index", self.index)

    @classmethod
    def xl(cls, multiplier: int) -> Size:
        if multiplier < 1:
            raise MetricsRangeError("multiplier", multiplier)
        return cls(len(_FIXED_LABELS) - 1 + multiplier)

    @property
    def xl_multiplier(self) -> int | None:
        """The n of XL(n), or None for the fixed sizes."""
        if self.index < len(_FIXED_LABELS):
            return None
        return self.index - len(_FIXED_LABELS) + 1

    @property
    def label(self) -> str:
        multiplier = self.xl_multiplier
        if multiplier is None:
            return _FIXED_LABELS[self.index]
        if multiplier == 1:
            return "XL"
        return f"{multiplier}XL"

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Size):
            return NotImplemented
        return self.index < other.index

    def __str__(self) -> str:
        return self.label


Size.XS = Size(0)
Size.S = Size(1)
Size.M = Size(2)
Size.L = Size(3)
