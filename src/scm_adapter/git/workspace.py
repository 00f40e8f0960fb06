"""Local git workspace operations.

Drives a single checked-out repository through the steps needed to turn
generated file changes into a pushed branch: clone-or-pull, branch,
stage a batch of file mutations, commit, and push.

A workspace directory is bound to exactly one (owner, repository) pair and
is reused across calls. It is created by clone and refreshed by pull, and
is never deleted here. Whether the workspace has been cloned is decided
solely by the presence of its ``.git`` directory. Calls are not locked;
callers must run one workflow at a time per workspace.
"""

import logging
from pathlib import Path
from typing import Optional, Sequence

from .process import GitCommandError, GitError, WorkspaceProcess
from ..models import FileAction, FileChange

logger = logging.getLogger(__name__)

WORKSPACE_DIR_PERMISSIONS = 0o755
DEFAULT_CLONE_HOST = "github.com"


class GitWorkflowError(GitError):
    """Raised when a workspace operation cannot proceed."""

    pass


class UnknownFileActionError(GitWorkflowError):
    """Raised when a FileChange carries an unrecognized action."""

    def __init__(self, action: str, path: str):
        self.action = action
        self.path = path
        super().__init__(f"unknown file action {action!r} for {path!r}")


class BranchExistsError(GitWorkflowError):
    """Raised when creating a branch whose name is already taken."""

    def __init__(self, branch_name: str):
        self.branch_name = branch_name
        super().__init__(f"create branch {branch_name!r}: branch already exists")


class PullRejectedError(GitWorkflowError):
    """Raised when a fast-forward-only pull fails on diverged history."""

    def __init__(self, workspace: Path, output: str):
        self.workspace = workspace
        self.output = output
        super().__init__(
            f"git pull: local history in {workspace} has diverged from the"
            f" remote; fast-forward not possible"
        )


class GitWorkspace:
    """Git operations against one local workspace directory.

    Attributes:
        path: Workspace directory (the repository's working tree).
        process: Subprocess runner bound to the workspace.
        clone_host: Host used to build authenticated clone URLs.
    """

    def __init__(
        self,
        path: Path,
        process: Optional[WorkspaceProcess] = None,
        clone_host: str = DEFAULT_CLONE_HOST,
    ):
        self.path = Path(path)
        self.process = process or WorkspaceProcess(self.path)
        self.clone_host = clone_host

    @property
    def git_dir(self) -> Path:
        return self.path / ".git"

    def is_cloned(self) -> bool:
        """Whether the workspace already holds a repository."""
        return self.git_dir.is_dir()

    async def clone_or_pull(self, owner: str, repo: str, token: str) -> None:
        """Clone the repository, or fast-forward it if already cloned.

        Args:
            owner: Repository owner (user or organization).
            repo: Repository name.
            token: Short-lived access token embedded in the clone URL.

        Raises:
            PullRejectedError: If local and remote history have diverged.
            GitCommandError: If clone or pull fails for another reason.
            GitWorkflowError: If the workspace parent cannot be created.
        """
        if self.is_cloned():
            await self._pull()
            return

        self._create_parent_directory()
        clone_url = self._build_clone_url(owner, repo, token)

        logger.info(
            "Cloning repository",
            extra={"owner": owner, "repo": repo, "workspace": str(self.path)},
        )

        await self.process.run(
            "clone",
            clone_url,
            str(self.path),
            cwd=self.path.parent,
            redact=(token,),
        )

    async def checkout(self, branch_name: str) -> None:
        """Switch to an existing branch, discarding uncommitted changes.

        Does nothing before the first clone, so callers can return to the
        base branch unconditionally before ``clone_or_pull``.

        Args:
            branch_name: Branch to switch to.

        Raises:
            GitCommandError: If the branch does not exist locally.
        """
        if not self.is_cloned():
            return

        await self.process.run("checkout", "-f", branch_name)
        logger.info(
            "Checked out branch",
            extra={"branch": branch_name, "workspace": str(self.path)},
        )

    async def create_branch(self, branch_name: str) -> None:
        """Create a branch from the current HEAD and switch to it.

        Args:
            branch_name: Name of the new branch.

        Raises:
            BranchExistsError: If a branch of that name already exists.
            GitCommandError: If git fails for another reason.
        """
        try:
            await self.process.run("checkout", "-b", branch_name)
        except GitCommandError as exc:
            if "already exists" in exc.output:
                raise BranchExistsError(branch_name) from exc
            raise

        logger.info(
            "Created branch",
            extra={"branch": branch_name, "workspace": str(self.path)},
        )

    async def commit_and_push(
        self, changes: Sequence[FileChange], message: str
    ) -> None:
        """Apply file changes in order, commit them, and push.

        Changes are applied and staged one at a time. An unknown action
        stops the batch before anything is committed, but changes already
        applied stay in the working tree and index.

        Args:
            changes: File mutations, applied in the given order.
            message: Commit message.

        Raises:
            UnknownFileActionError: If a change has an unrecognized action.
            GitWorkflowError: If a path escapes the workspace or a file
                              cannot be written.
            GitCommandError: If staging, commit, or push fails.
        """
        for change in changes:
            await self._apply_change(change)

        await self.process.run("commit", "-m", message)
        await self.push()

        logger.info(
            "Committed and pushed changes",
            extra={"change_count": len(changes), "workspace": str(self.path)},
        )

    async def push(self) -> None:
        """Push the current HEAD to the branch of the same name on origin."""
        await self.process.run("push", "origin", "HEAD")

    async def abandon_branch(self, branch_name: str, base: str) -> None:
        """Switch back to ``base`` and delete a local branch, best effort.

        Used after a failed push. Failures are logged, not raised.

        Args:
            branch_name: Local branch to delete.
            base: Branch to check out before deleting.
        """
        for args in (("checkout", "-f", base), ("branch", "-D", branch_name)):
            try:
                await self.process.run(*args)
            except GitError as exc:
                logger.warning(
                    "Failed to abandon branch",
                    extra={"branch": branch_name, "base": base, "error": str(exc)},
                )
                return

        logger.info(
            "Abandoned branch",
            extra={"branch": branch_name, "base": base},
        )

    async def _apply_change(self, change: FileChange) -> None:
        """Apply and stage a single FileChange.

        Raises:
            UnknownFileActionError: If the action is not recognized.
        """
        try:
            action = FileAction(change.action)
        except ValueError:
            raise UnknownFileActionError(change.action, change.path) from None

        target = self._resolve_path(change.path)

        if action is FileAction.DELETE:
            await self.process.run("rm", "-f", "--", change.path)
            return

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(change.content or "", encoding="utf-8")
        except OSError as exc:
            raise GitWorkflowError(
                f"write file {change.path!r}: {exc}"
            ) from exc

        await self.process.run("add", "--", change.path)

    def _resolve_path(self, relative_path: str) -> Path:
        """Resolve a change path inside the workspace.

        Raises:
            GitWorkflowError: If the path is absolute or escapes the workspace.
        """
        root = self.path.resolve()
        target = (root / relative_path).resolve()
        if target == root or root not in target.parents:
            raise GitWorkflowError(
                f"path {relative_path!r} is outside the workspace"
            )
        return target

    async def _pull(self) -> None:
        """Fast-forward the current branch from its upstream."""
        try:
            await self.process.run("pull", "--ff-only")
        except GitCommandError as exc:
            if "fast-forward" in exc.output.lower():
                raise PullRejectedError(self.path, exc.output) from exc
            raise

        logger.info("Pulled latest changes", extra={"workspace": str(self.path)})

    def _create_parent_directory(self) -> None:
        """Create the directory the workspace is cloned into.

        Raises:
            GitWorkflowError: If directory creation fails.
        """
        try:
            self.path.parent.mkdir(
                mode=WORKSPACE_DIR_PERMISSIONS, parents=True, exist_ok=True
            )
        except OSError as exc:
            raise GitWorkflowError(
                f"create workspace parent dir {self.path.parent}: {exc}"
            ) from exc

    def _build_clone_url(self, owner: str, repo: str, token: str) -> str:
        """Build an HTTPS clone URL carrying the token as a credential."""
        return f"https://x-access-token:{token}@{self.clone_host}/{owner}/{repo}.git"
