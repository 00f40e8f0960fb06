"""Issue-to-pull-request workflow.

Turns a parsed issue and a batch of generated file changes into an open
pull request: return the workspace to the base branch, refresh it, branch,
commit and push, open the PR, then report progress. Each step is delegated
to an injected capability.

The git and PR steps propagate their errors to the caller. The reporting
steps run after the pull request exists and only log their failures.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from src.scm_adapter.capabilities import (
    CommentPoster,
    LocalGitOperations,
    Notifier,
    PullRequestOpener,
)
from src.scm_adapter.github.client import GitHubAPIError
from src.scm_adapter.models import FileChange, Issue, PullRequest
from src.scm_adapter.notify.notifiers import NotifyError

logger = logging.getLogger(__name__)

BRANCH_PREFIX = "rig/issue-"


@dataclass
class PullRequestPlan:
    """What to publish for an issue.

    Attributes:
        owner: Repository owner.
        repo: Repository name.
        token: Access token used as the clone credential.
        base: Branch the pull request targets.
        branch: Branch to create and push.
        title: Pull request title.
        body: Pull request description.
        commit_message: Message for the single commit.
    """

    owner: str
    repo: str
    token: str
    base: str
    branch: str
    title: str
    body: str
    commit_message: str


def branch_name_for(issue: Issue) -> str:
    """Build the working branch name for an issue."""
    return f"{BRANCH_PREFIX}{issue.number}"


def build_plan(
    issue: Issue,
    owner: str,
    repo: str,
    token: str,
    base: str = "main",
) -> PullRequestPlan:
    """Build the default plan for an issue.

    Args:
        issue: The issue being resolved.
        owner: Repository owner.
        repo: Repository name.
        token: Access token used as the clone credential.
        base: Branch the pull request targets.

    Returns:
        PullRequestPlan with branch, title, body, and commit message derived
        from the issue.
    """
    return PullRequestPlan(
        owner=owner,
        repo=repo,
        token=token,
        base=base,
        branch=branch_name_for(issue),
        title=f"Resolve #{issue.number}: {issue.title}",
        body=f"Closes #{issue.number}\n\nAutomated changes for: {issue.title}",
        commit_message=f"Resolve #{issue.number}: {issue.title}",
    )


class IssueToPullRequest:
    """Runs the checkout, pull, branch, commit, push, and PR steps for an issue.

    A reused workspace is first returned to the base branch, so every run
    branches from the refreshed base rather than from the previous run's
    branch.

    Attributes:
        git: Local workspace capability.
        pulls: Pull request capability.
        comments: Comment capability used for the progress comment.
        notifier: Optional extra channel told about the new PR.
    """

    def __init__(
        self,
        git: LocalGitOperations,
        pulls: PullRequestOpener,
        comments: CommentPoster,
        notifier: Optional[Notifier] = None,
    ):
        self.git = git
        self.pulls = pulls
        self.comments = comments
        self.notifier = notifier

    async def run(
        self,
        issue: Issue,
        changes: Sequence[FileChange],
        plan: PullRequestPlan,
    ) -> PullRequest:
        """Publish the changes for an issue as a pull request.

        Args:
            issue: The issue being resolved.
            changes: File mutations to commit, applied in order.
            plan: Branch, PR, and commit details.

        Returns:
            The created PullRequest.

        Raises:
            GitError: If checkout, clone, branch, commit, or push fails.
            GitHubAPIError: If the pull request cannot be created.
        """
        logger.info(
            "Starting issue workflow",
            extra={
                "issue_number": issue.number,
                "branch": plan.branch,
                "change_count": len(changes),
            },
        )

        await self.git.checkout(plan.base)
        await self.git.clone_or_pull(plan.owner, plan.repo, plan.token)
        await self.git.create_branch(plan.branch)
        await self.git.commit_and_push(changes, plan.commit_message)

        pull_request = await self.pulls.create_pr(
            plan.base, plan.branch, plan.title, plan.body
        )

        await self._report(issue, plan, pull_request)
        return pull_request

    async def _report(
        self,
        issue: Issue,
        plan: PullRequestPlan,
        pull_request: PullRequest,
    ) -> None:
        message = f"Opened pull request #{pull_request.number}: {pull_request.url}"

        try:
            await self.comments.post_comment(
                plan.owner, plan.repo, issue.number, message
            )
        except GitHubAPIError as exc:
            logger.warning(
                "Failed to post progress comment",
                extra={"issue_number": issue.number, "error": str(exc)},
            )

        if self.notifier is None:
            return

        try:
            await self.notifier.notify(
                f"{plan.owner}/{plan.repo}#{issue.number}: {message}"
            )
        except (NotifyError, GitHubAPIError) as exc:
            logger.warning(
                "Failed to send notification",
                extra={"issue_number": issue.number, "error": str(exc)},
            )

