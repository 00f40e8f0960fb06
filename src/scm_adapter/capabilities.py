"""Capability protocols consumed by workflow code.

Each protocol covers one consumer need, so callers depend on the smallest
surface they use and tests can substitute in-memory fakes without a
network or a git subprocess. SourceAdapter satisfies every protocol here
except Notifier.
"""

from typing import Protocol, Sequence, runtime_checkable

from src.scm_adapter.models import FileChange, Issue, PullRequest


@runtime_checkable
class WebhookParser(Protocol):
    """Turns an authenticated webhook delivery into an Issue."""

    def parse_webhook(self, body: bytes, signature: str) -> Issue:
        ...


@runtime_checkable
class IssueReader(Protocol):
    """Fetches issue snapshots from the hosting platform."""

    async def get_issue(self, owner: str, repo: str, number: int) -> Issue:
        ...


@runtime_checkable
class CommentPoster(Protocol):
    """Posts comments on issues and pull requests."""

    async def post_comment(
        self, owner: str, repo: str, number: int, body: str
    ) -> None:
        ...


@runtime_checkable
class PullRequestOpener(Protocol):
    """Opens pull requests from already-pushed branches."""

    async def create_pr(
        self, base: str, head: str, title: str, body: str
    ) -> PullRequest:
        ...


@runtime_checkable
class LocalGitOperations(Protocol):
    """Mutates the local workspace and publishes it as a branch."""

    async def clone_or_pull(self, owner: str, repo: str, token: str) -> None:
        ...

    async def checkout(self, branch_name: str) -> None:
        ...

    async def create_branch(self, branch_name: str) -> None:
        ...

    async def commit_and_push(
        self, changes: Sequence[FileChange], message: str
    ) -> None:
        ...

    async def abandon_branch(self, branch_name: str, base: str) -> None:
        ...


@runtime_checkable
class Notifier(Protocol):
    """Delivers a formatted message to a chat or issue channel."""

    async def notify(self, message: str) -> None:
        ...
