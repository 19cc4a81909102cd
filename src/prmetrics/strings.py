"""Human-readable strings used in comments, titles and status messages.

Every piece of text the tool writes to a pull request or prints for the
runner goes through :func:`loc`, so a deployment can swap the resource table
without touching the engine. Placeholders use ``str.format`` positional
syntax (``{0}``, ``{1}``).
"""

from __future__ import annotations

from typing import Callable

Localizer = Callable[..., str]

RESOURCES: dict[str, str] = {
    # Size indicator, e.g. "M✔" or "2XL⚠️"
    "metrics.codeMetrics.titleSizeIndicatorFormat": "{0}{1}",
    "metrics.codeMetrics.titleTestsSufficient": "✔",
    "metrics.codeMetrics.titleTestsInsufficient": "⚠️",
    # Input handling
    "metrics.inputs.adjustingBaseSize": "Adjusting the base size input to '{0}'.",
    "metrics.inputs.adjustingGrowthRate": "Adjusting the growth rate input to '{0}'.",
    "metrics.inputs.adjustingTestFactor": "Adjusting the test factor input to '{0}'.",
    "metrics.inputs.adjustingFileMatchingPatterns": "Adjusting the file matching patterns input to '{0}'.",
    "metrics.inputs.adjustingCodeFileExtensions": "Adjusting the code file extensions input to the default.",
    "metrics.inputs.disablingTestFactor": "Disabling the test factor validation.",
    "metrics.inputs.settingAlwaysCloseComment": "Setting the always close comment mode to '{0}'.",
    # Pull request details
    "pullRequests.pullRequest.titleFormat": "{0} ◾ {1}",
    "pullRequests.pullRequest.addDescription": "❌ **Add a description.**",
    # Comments
    "pullRequests.pullRequestComments.commentTitle": "# Metrics for iteration {0}",
    "pullRequests.pullRequestComments.commentFooter": (
        "[Metrics computed by PR Metrics. Add it to your Azure DevOps and GitHub PRs!]"
        "(https://aka.ms/PRMetrics/Comment)"
    ),
    "pullRequests.pullRequestComments.smallPullRequestComment": (
        "✔ **Thanks for keeping your pull request small.**"
    ),
    "pullRequests.pullRequestComments.largePullRequestComment": (
        "❌ **Try to keep pull requests smaller than {0} lines of new product code "
        "by following the [Single Responsibility Principle (SRP)]"
        "(https://aka.ms/PRMetrics/SRP).**"
    ),
    "pullRequests.pullRequestComments.testsSufficientComment": "✔ **Thanks for adding tests.**",
    "pullRequests.pullRequestComments.testsInsufficientComment": (
        "⚠️ **Consider adding additional tests.**"
    ),
    "pullRequests.pullRequestComments.noReviewRequiredComment": (
        "❗ **This file doesn't require review.**"
    ),
    "pullRequests.pullRequestComments.noReviewRequiredFileComment": (
        "❗ **The file `{0}` doesn't require review.**"
    ),
    "pullRequests.pullRequestComments.tableLines": "Lines",
    "pullRequests.pullRequestComments.tableProductCode": "Product Code",
    "pullRequests.pullRequestComments.tableTestCode": "Test Code",
    "pullRequests.pullRequestComments.tableSubtotal": "Subtotal",
    "pullRequests.pullRequestComments.tableIgnoredCode": "Ignored Code",
    "pullRequests.pullRequestComments.tableTotal": "Total",
    # Repository hosts
    "repos.azureReposInvoker.insufficientAzureReposAccessTokenPermissions": (
        "Could not access the resources. Ensure the 'System.AccessToken' has access "
        "to 'Code' > 'Read' and 'Pull Request Threads' > 'Read & write'."
    ),
    "repos.azureReposInvoker.noAzureReposAccessToken": (
        "Could not access the Azure Repos access token. Add 'System.AccessToken' as an "
        "environment variable named 'PR_METRICS_ACCESS_TOKEN'."
    ),
    "repos.gitHubReposInvoker.insufficientGitHubAccessTokenPermissions": (
        "Could not access the resources. Ensure the 'PR_METRICS_ACCESS_TOKEN' environment "
        "variable has 'Pull requests' read and write access."
    ),
    "repos.gitHubReposInvoker.noGitHubAccessToken": (
        "Could not access the GitHub access token. Add 'secrets.GITHUB_TOKEN' as an "
        "environment variable named 'PR_METRICS_ACCESS_TOKEN'."
    ),
    # Run outcomes
    "index.noPullRequest": "The build is not running against a pull request.",
    "index.unsupportedProvider": (
        "The build is running against a pull request from '{0}', which is not a "
        "supported provider."
    ),
    "index.noGitEnlistment": "No Git enlistment present. Remove 'checkout: none' (YAML) or disable 'Don't sync sources' under the build process phase settings (classic).",
    "index.noGitHistory": "Could not access sufficient Git history. Disable 'Shallow fetch' (YAML) or set a 'fetch-depth' of 0 on the checkout step.",
    "index.noPullRequestId": "Could not determine the pull request id from the environment.",
    "index.emptyDiffSummary": "The Git diff summary is empty.",
    "index.succeeded": "PR Metrics succeeded",
}


def loc(key: str, *params: object) -> str:
    """Look up the string registered for *key* and fill in its placeholders."""
    return RESOURCES[key].format(*params)
