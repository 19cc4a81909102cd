"""Custom exceptions for PR Metrics."""


class PRMetricsError(Exception):
    """Base exception for all PR Metrics errors."""


class ConfigError(PRMetricsError):
    """Configuration-related errors."""


class UnsupportedProviderError(ConfigError):
    """Raised when the build runs against a repository host we cannot talk to."""

    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(
            f"BUILD_REPOSITORY_PROVIDER '{provider}' is not supported. "
            "Only Azure Repos and GitHub are supported."
        )


class ValidationError(PRMetricsError, TypeError):
    """A required value on an input or host response is missing."""

    def __init__(self, name: str, method: str, value: object = None):
        self.name = name
        self.method = method
        self.value = value
        super().__init__(
            f"'{name}', accessed within '{method}', is invalid, null, or undefined '{value}'."
        )


class MetricsRangeError(PRMetricsError, ValueError):
    """A metric was constructed with an out-of-range value."""

    def __init__(self, name: str, value: int):
        self.name = name
        self.value = value
        super().__init__(f"'{name}' must be non-negative but was '{value}'.")


class DiffSummaryError(PRMetricsError):
    """A diff summary line could not be parsed."""


class DiffParseError(PRMetricsError):
    """A unified diff block could not be parsed."""


class EmptyDiffError(PRMetricsError):
    """The diff summary contained no changed files."""


class GitError(PRMetricsError):
    """A git invocation failed."""

    def __init__(self, args: list[str], returncode: int, stderr: str):
        self.args_ = args
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(
            f"'git {' '.join(args)}' exited with code {returncode}: {stderr.strip()}"
        )


class HostError(PRMetricsError):
    """Repository host (GitHub, Azure Repos) errors."""


class HostAccessError(HostError):
    """The access token cannot read or write the pull request."""


class HostApiError(HostError):
    """A host API call failed for a reason other than access."""

    def __init__(self, method: str, url: str, status: int | None, detail: str = ""):
        self.method = method
        self.url = url
        self.status = status
        message = f"{method} {url} failed"
        if status is not None:
            message += f" with status {status}"
        if detail:
            message += f": {detail}"
        super().__init__(message)
