"""Source adapter facade.

SourceAdapter composes the webhook handler, the GitHub API client, and the
local git workspace behind one object bound to one repository. Workflow
code should depend on the narrow protocols in capabilities.py; this class
satisfies them all.

Source:
- src/scm_adapter/webhook/handler.py (WebhookHandler)
- src/scm_adapter/github/client.py (GitHubClient)
- src/scm_adapter/git/workspace.py (GitWorkspace)
- src/scm_adapter/config.py (AdapterSettings)
"""

import logging
from typing import Any, Optional, Sequence

from src.scm_adapter.config import AdapterSettings
from src.scm_adapter.git.process import WorkspaceProcess
from src.scm_adapter.git.workspace import GitWorkspace
from src.scm_adapter.github.client import GitHubClient
from src.scm_adapter.models import FileChange, Issue, PullRequest
from src.scm_adapter.notify.notifiers import ChatWebhookNotifier
from src.scm_adapter.webhook.handler import WebhookHandler

logger = logging.getLogger(__name__)


class SourceAdapter:
    """One repository's webhook, API, and workspace capabilities.

    The adapter holds no shared state beyond its collaborators. Build one
    instance per repository; calls against the workspace must not overlap.

    Attributes:
        webhook: Parses and authenticates webhook deliveries.
        github: GitHub API client bound to the repository.
        workspace: Local git workspace bound to the repository.
    """

    def __init__(
        self,
        webhook: WebhookHandler,
        github: GitHubClient,
        workspace: GitWorkspace,
    ):
        self.webhook = webhook
        self.github = github
        self.workspace = workspace

    def parse_webhook(self, body: bytes, signature: str) -> Issue:
        return self.webhook.parse_webhook(body, signature)

    async def get_issue(self, owner: str, repo: str, number: int) -> Issue:
        return await self.github.get_issue(owner, repo, number)

    async def post_comment(
        self, owner: str, repo: str, number: int, body: str
    ) -> None:
        await self.github.post_comment(owner, repo, number, body)

    async def create_pr(
        self, base: str, head: str, title: str, body: str
    ) -> PullRequest:
        return await self.github.create_pr(base, head, title, body)

    async def clone_or_pull(self, owner: str, repo: str, token: str) -> None:
        await self.workspace.clone_or_pull(owner, repo, token)

    async def checkout(self, branch_name: str) -> None:
        await self.workspace.checkout(branch_name)

    async def create_branch(self, branch_name: str) -> None:
        await self.workspace.create_branch(branch_name)

    async def commit_and_push(
        self, changes: Sequence[FileChange], message: str
    ) -> None:
        await self.workspace.commit_and_push(changes, message)

    async def push(self) -> None:
        await self.workspace.push()

    async def abandon_branch(self, branch_name: str, base: str) -> None:
        await self.workspace.abandon_branch(branch_name, base)

    async def close(self) -> None:
        """Release the HTTP client."""
        await self.github.close()

    async def __aenter__(self) -> "SourceAdapter":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


def create_source_adapter(settings: AdapterSettings) -> SourceAdapter:
    """Wire a SourceAdapter for the repository named in the settings.

    Args:
        settings: Validated adapter settings.

    Returns:
        A SourceAdapter whose workspace lives at settings.workspace_path.
    """
    process = WorkspaceProcess(
        settings.workspace_path,
        executable=settings.git_executable,
        kill_grace_seconds=settings.git_kill_grace_seconds,
        default_timeout=settings.git_timeout_seconds,
        env=settings.git_env(),
    )
    workspace = GitWorkspace(
        settings.workspace_path,
        process=process,
        clone_host=settings.clone_host,
    )
    github = GitHubClient(
        token=settings.github_token,
        owner=settings.github_owner,
        repo=settings.github_repo,
        base_url=settings.github_base_url,
        timeout=settings.github_timeout_seconds,
    )

    logger.info(
        "Source adapter configured",
        extra={
            "owner": settings.github_owner,
            "repo": settings.github_repo,
            "workspace": str(settings.workspace_path),
        },
    )

    return SourceAdapter(
        webhook=WebhookHandler(secret=settings.github_webhook_secret),
        github=github,
        workspace=workspace,
    )


def create_notifier(settings: AdapterSettings) -> Optional[ChatWebhookNotifier]:
    """Build the chat notifier named in the settings, if any.

    Returns:
        A ChatWebhookNotifier, or None when notify_type is unset.
    """
    if not settings.notify_type or not settings.notify_webhook_url:
        return None
    return ChatWebhookNotifier(settings.notify_type, settings.notify_webhook_url)
