"""Configuration management for PR Metrics.

Inputs come from the CI runner: GitHub Actions exposes ``with:`` values as
``INPUT_<NAME>`` environment variables with the name upper-cased and spaces
turned into dashes, Azure Pipelines drops the separators altogether. Invalid or
missing inputs fall back to their defaults, and every fallback is logged.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, Field

from prmetrics.strings import Localizer, loc
from prmetrics.validation import validate

logger = logging.getLogger("prmetrics.config")

DEFAULT_BASE_SIZE = 200
DEFAULT_GROWTH_RATE = 2.0
DEFAULT_TEST_FACTOR = 1.0
DEFAULT_FILE_MATCHING_PATTERNS = ["**/*", "!**/package-lock.json"]
DEFAULT_CODE_FILE_EXTENSIONS = frozenset({
    "ada", "adb", "ads", "as", "asc", "asm", "asp", "aspx", "au3", "bas", "bat",
    "c", "c++", "cbl", "cc", "cfc", "cfm", "cjs", "cls", "cmd", "cob", "cpp",
    "cs", "cshtml", "css", "cxx", "d", "dart", "dfm", "ebuild", "el", "elm",
    "erl", "ex", "exs", "f", "f03", "f08", "f77", "f90", "f95", "fs", "fsi",
    "fsx", "gd", "go", "groovy", "gvy", "h", "h++", "hh", "hpp", "hrl", "hs",
    "htm", "html", "hxx", "ipynb", "java", "jl", "js", "jsp", "jsx", "kt",
    "kts", "less", "lhs", "lisp", "lsp", "lua", "m", "mjs", "ml", "mli", "mm",
    "nim", "p", "pas", "php", "pl", "pm", "pp", "prg", "ps1", "psm1", "py",
    "pyw", "r", "rb", "rkt", "rs", "sass", "scala", "scm", "scss", "sh", "sql",
    "ss", "swift", "tcl", "ts", "tsx", "v", "vb", "vbs", "vue", "xaml", "xsl",
    "xslt", "zig",
})

ACCESS_TOKEN_VARIABLE = "PR_METRICS_ACCESS_TOKEN"
AZURE_ACCESS_TOKEN_VARIABLE = "SYSTEM_ACCESSTOKEN"


class RunnerEnvironment:
    """Read-only view of the CI runner's environment variables."""

    def __init__(self, env: Mapping[str, str] | None = None):
        self.env: Mapping[str, str] = os.environ if env is None else env

    @property
    def is_github(self) -> bool:
        """True when running inside a GitHub Actions runner."""
        return bool(self.env.get("GITHUB_ACTION"))

    def get_variable(self, name: str) -> str | None:
        value = self.env.get(name)
        return value if value else None

    def validate_variable(self, name: str, method: str) -> str:
        return validate(self.get_variable(name), name, method)

    def get_input(self, *name_parts: str) -> str | None:
        """Get a task input, e.g. ``get_input("base", "size")``."""
        separator = "-" if self.is_github else ""
        name = "INPUT_" + separator.join(part.upper() for part in name_parts)
        return self.get_variable(name)

    @property
    def access_token(self) -> str | None:
        token = self.get_variable(ACCESS_TOKEN_VARIABLE)
        if token is None:
            token = self.get_variable(AZURE_ACCESS_TOKEN_VARIABLE)
            if token is not None:
                logger.warning(
                    f"{ACCESS_TOKEN_VARIABLE} is not set, falling back to "
                    f"{AZURE_ACCESS_TOKEN_VARIABLE}."
                )
        return token


class MetricsInputs(BaseModel):
    """Sizing and classification settings."""

    base_size: int = Field(default=DEFAULT_BASE_SIZE, gt=0)
    growth_rate: float = Field(default=DEFAULT_GROWTH_RATE, gt=1.0)
    test_factor: float | None = Field(default=DEFAULT_TEST_FACTOR, ge=0.0)
    always_close_comment: bool = False
    file_matching_patterns: list[str] = Field(
        default_factory=lambda: list(DEFAULT_FILE_MATCHING_PATTERNS)
    )
    code_file_extensions: set[str] = Field(
        default_factory=lambda: set(DEFAULT_CODE_FILE_EXTENSIONS)
    )

    def to_display_dict(self) -> dict[str, Any]:
        data = self.model_dump()
        data["code_file_extensions"] = sorted(self.code_file_extensions)
        return data


def _split_lines(value: str) -> list[str]:
    return [line.strip() for line in value.replace("\r", "").split("\n") if line.strip()]


def parse_base_size(value: str | None, localize: Localizer = loc) -> int:
    if value is not None:
        try:
            parsed = int(value.strip())
        except ValueError:
            parsed = 0
        if parsed > 0:
            return parsed
    logger.info(localize("metrics.inputs.adjustingBaseSize", DEFAULT_BASE_SIZE))
    return DEFAULT_BASE_SIZE


def parse_growth_rate(value: str | None, localize: Localizer = loc) -> float:
    if value is not None:
        try:
            parsed = float(value.strip())
        except ValueError:
            parsed = 0.0
        if parsed > 1.0:
            return parsed
    logger.info(localize("metrics.inputs.adjustingGrowthRate", DEFAULT_GROWTH_RATE))
    return DEFAULT_GROWTH_RATE


def parse_test_factor(value: str | None, localize: Localizer = loc) -> float | None:
    """Parse the test factor. ``0`` turns the test check off."""
    if value is not None:
        try:
            parsed = float(value.strip())
        except ValueError:
            parsed = -1.0
        if parsed == 0.0:
            logger.info(localize("metrics.inputs.disablingTestFactor"))
            return None
        if parsed > 0.0:
            return parsed
    logger.info(localize("metrics.inputs.adjustingTestFactor", DEFAULT_TEST_FACTOR))
    return DEFAULT_TEST_FACTOR


def parse_always_close_comment(value: str | None, localize: Localizer = loc) -> bool:
    enabled = value is not None and value.strip().lower() == "true"
    if enabled:
        logger.info(localize("metrics.inputs.settingAlwaysCloseComment", "true"))
    return enabled


def parse_file_matching_patterns(value: str | None, localize: Localizer = loc) -> list[str]:
    if value is not None:
        patterns = [line.replace("\\", "/") for line in _split_lines(value)]
        if patterns:
            return patterns
    logger.info(localize(
        "metrics.inputs.adjustingFileMatchingPatterns",
        ", ".join(DEFAULT_FILE_MATCHING_PATTERNS),
    ))
    return list(DEFAULT_FILE_MATCHING_PATTERNS)


def parse_code_file_extensions(value: str | None, localize: Localizer = loc) -> set[str]:
    """Parse extensions written as ``*.py``, ``.py`` or ``py``."""
    if value is not None:
        extensions = set()
        for line in _split_lines(value):
            if line.startswith("*."):
                line = line[2:]
            elif line.startswith("."):
                line = line[1:]
            if line:
                extensions.add(line.lower())
        if extensions:
            return extensions
    logger.info(localize("metrics.inputs.adjustingCodeFileExtensions"))
    return set(DEFAULT_CODE_FILE_EXTENSIONS)


def load_inputs(
    runner: RunnerEnvironment,
    overrides: Mapping[str, Any] | None = None,
    localize: Localizer = loc,
) -> MetricsInputs:
    """Build MetricsInputs from the runner's inputs.

    *overrides* holds already-typed values (from the CLI) that win over the
    environment. ``None`` values in it are ignored.
    """
    inputs = MetricsInputs(
        base_size=parse_base_size(runner.get_input("base", "size"), localize),
        growth_rate=parse_growth_rate(runner.get_input("growth", "rate"), localize),
        test_factor=parse_test_factor(runner.get_input("test", "factor"), localize),
        always_close_comment=parse_always_close_comment(
            runner.get_input("always", "close", "comment"), localize
        ),
        file_matching_patterns=parse_file_matching_patterns(
            runner.get_input("file", "matching", "patterns"), localize
        ),
        code_file_extensions=parse_code_file_extensions(
            runner.get_input("code", "file", "extensions"), localize
        ),
    )
    if overrides:
        updates = {key: value for key, value in overrides.items() if value is not None}
        if "test_factor" in updates and updates["test_factor"] == 0:
            updates["test_factor"] = None
        # Re-validate so CLI values obey the same bounds
        inputs = MetricsInputs(**{**inputs.model_dump(), **updates})
    return inputs
