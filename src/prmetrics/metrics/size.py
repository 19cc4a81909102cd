"""Size calculator - place a pull request on the geometric size ladder."""

from __future__ import annotations

from dataclasses import dataclass

from prmetrics.exceptions import ConfigError
from prmetrics.metrics.models import CodeMetrics, Size
from prmetrics.strings import Localizer, loc


@dataclass(frozen=True)
class SizeAssessment:
    """Size of a pull request and whether it is small and tested enough."""
    size: Size
    is_small: bool
    is_sufficiently_tested: bool | None

    def indicator(self, localize: Localizer = loc) -> str:
        """Size label with a test status suffix, e.g. ``M✔`` or ``XL⚠️``."""
        if self.is_sufficiently_tested is None:
            suffix = ""
        elif self.is_sufficiently_tested:
            suffix = localize("metrics.codeMetrics.titleTestsSufficient")
        else:
            suffix = localize("metrics.codeMetrics.titleTestsInsufficient")
        return localize("metrics.codeMetrics.titleSizeIndicatorFormat", self.size.label, suffix)


class SizeCalculator:
    """Bucket product code into XS, S, M, L, XL, 2XL, ...

    Thresholds grow geometrically: anything up to ``base_size`` is S, below
    ``base_size / growth_rate`` is XS, and every further multiplication by
    ``growth_rate`` moves one step up the ladder.
    """

    def __init__(self, base_size: int, growth_rate: float, test_factor: float | None = None):
        if base_size <= 0:
            raise ConfigError(f"Base size must be greater than 0 but was '{base_size}'.")
        if growth_rate <= 1.0:
            raise ConfigError(f"Growth rate must be greater than 1.0 but was '{growth_rate}'.")
        if test_factor is not None and test_factor < 0:
            raise ConfigError(f"Test factor must be 0 or greater but was '{test_factor}'.")
        self.base_size = base_size
        self.growth_rate = growth_rate
        self.test_factor = test_factor

    def calculate_size(self, product_code: int) -> Size:
        if product_code == 0 or product_code < self.base_size / self.growth_rate:
            return Size.XS
        if product_code <= self.base_size:
            return Size.S

        index = Size.S.index
        current = float(self.base_size)
        while product_code > current:
            current *= self.growth_rate
            index += 1
        return Size(index)

    def is_small(self, product_code: int) -> bool:
        return product_code <= self.base_size

    def is_sufficiently_tested(self, metrics: CodeMetrics) -> bool | None:
        if self.test_factor is None:
            return None
        return metrics.test_code >= metrics.product_code * self.test_factor

    def assess(self, metrics: CodeMetrics) -> SizeAssessment:
        return SizeAssessment(
            size=self.calculate_size(metrics.product_code),
            is_small=self.is_small(metrics.product_code),
            is_sufficiently_tested=self.is_sufficiently_tested(metrics),
        )
