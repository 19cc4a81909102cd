"""Run git against the pull request's merge ref."""

from __future__ import annotations

import asyncio
import logging
import subprocess
from functools import cached_property
from pathlib import Path

from prmetrics.config import RunnerEnvironment
from prmetrics.exceptions import GitError, ValidationError

logger = logging.getLogger("prmetrics.git")

GIT_TIMEOUT_SECONDS = 120
# Print non-ASCII paths verbatim instead of as quoted octal escapes
GIT_OPTIONS = ("-c", "core.quotePath=false")


class GitInvoker:
    """Wraps the git commands needed to size a pull request.

    The pull request id and target branch are read from the runner
    environment on first use. Commands run on a worker thread so they can be
    awaited alongside host API calls.
    """

    def __init__(self, runner: RunnerEnvironment, root: Path | None = None):
        self.runner = runner
        self.root = root or Path.cwd()

    @cached_property
    def pull_request_id_value(self) -> str | None:
        if self.runner.is_github:
            reference = self.runner.get_variable("GITHUB_REF")
            if reference is None:
                logger.warning("'GITHUB_REF' is undefined.")
                return None
            elements = reference.split("/")
            if len(elements) < 3:
                logger.warning(f"'GITHUB_REF' is in an incorrect format '{reference}'.")
                return None
            return elements[2]

        provider = self.runner.get_variable("BUILD_REPOSITORY_PROVIDER")
        if provider is None:
            logger.warning("'BUILD_REPOSITORY_PROVIDER' is undefined.")
            return None
        name = (
            "SYSTEM_PULLREQUEST_PULLREQUESTNUMBER"
            if provider in ("GitHub", "GitHubEnterprise")
            else "SYSTEM_PULLREQUEST_PULLREQUESTID"
        )
        value = self.runner.get_variable(name)
        if value is None:
            logger.warning(f"'{name}' is undefined.")
        return value

    def is_pull_request_id_available(self) -> bool:
        return (self.pull_request_id_value or "").isdigit()

    @property
    def pull_request_id(self) -> int:
        value = self.pull_request_id_value
        if value is None or not value.isdigit():
            raise ValidationError("Pull Request ID", "GitInvoker.pull_request_id", value)
        return int(value)

    @cached_property
    def target_branch(self) -> str:
        if self.runner.is_github:
            return self.runner.validate_variable("GITHUB_BASE_REF", "GitInvoker.target_branch")
        branch = self.runner.validate_variable(
            "SYSTEM_PULLREQUEST_TARGETBRANCH", "GitInvoker.target_branch"
        )
        prefix = "refs/heads/"
        return branch[len(prefix):] if branch.startswith(prefix) else branch

    @property
    def revision_range(self) -> str:
        return f"origin/{self.target_branch}...pull/{self.pull_request_id_value}/merge"

    async def is_git_repo(self) -> bool:
        try:
            await self.invoke(["rev-parse", "--is-inside-work-tree"])
        except GitError:
            return False
        return True

    async def is_git_history_available(self) -> bool:
        try:
            await self.invoke(["rev-parse", "--branch", self.revision_range])
        except GitError:
            return False
        return True

    async def get_diff_summary(self) -> str:
        return await self.invoke(
            ["diff", "--numstat", "--ignore-all-space", self.revision_range]
        )

    async def get_unified_diff(self) -> str:
        return await self.invoke(["diff", self.revision_range])

    async def get_local_diff_summary(self, base: str) -> str:
        """Diff summary of the checked-out branch against *base*, for local runs."""
        return await self.invoke(["diff", "--numstat", "--ignore-all-space", f"{base}...HEAD"])

    async def invoke(self, args: list[str]) -> str:
        return await asyncio.to_thread(run_git, args, self.root)


def run_git(args: list[str], root: Path) -> str:
    """Run git synchronously and return stdout, raising GitError on failure."""
    logger.debug(f"git {' '.join(args)}")
    try:
        result = subprocess.run(
            ["git", *GIT_OPTIONS, *args],
            cwd=root,
            capture_output=True,
            text=True,
            timeout=GIT_TIMEOUT_SECONDS,
        )
    except subprocess.TimeoutExpired as e:
        raise GitError(args, -1, f"timed out after {GIT_TIMEOUT_SECONDS}s") from e
    except FileNotFoundError as e:
        raise GitError(args, -1, "git executable not found") from e
    if result.returncode != 0:
        raise GitError(args, result.returncode, result.stderr)
    return result.stdout
