"""Factory for selecting the repository host from the runner environment."""

from __future__ import annotations

from prmetrics.config import RunnerEnvironment
from prmetrics.exceptions import UnsupportedProviderError
from prmetrics.repos.base import ReposInvoker
from prmetrics.strings import Localizer, loc

AZURE_PROVIDERS = ("TfsGit",)
GITHUB_PROVIDERS = ("GitHub", "GitHubEnterprise")


def repository_provider(runner: RunnerEnvironment) -> str:
    """Name of the repository provider, as Azure Pipelines spells it."""
    if runner.is_github:
        return "GitHub"
    return runner.validate_variable("BUILD_REPOSITORY_PROVIDER", "repository_provider()")


def is_supported_provider(provider: str) -> bool:
    return provider in AZURE_PROVIDERS or provider in GITHUB_PROVIDERS


def create_repos_invoker(runner: RunnerEnvironment, localize: Localizer = loc) -> ReposInvoker:
    """Create the host the pull request lives on.

    Raises:
        UnsupportedProviderError: If the repository is neither on Azure Repos nor GitHub.
    """
    provider = repository_provider(runner)

    if provider in GITHUB_PROVIDERS:
        from prmetrics.repos.github import GitHubReposInvoker

        return GitHubReposInvoker(runner, localize)
    elif provider in AZURE_PROVIDERS:
        from prmetrics.repos.azure import AzureReposInvoker

        return AzureReposInvoker(runner, localize)
    else:
        raise UnsupportedProviderError(provider)
