"""Local git workspace management.

This module drives the git CLI against a single workspace directory:
- Cancellable subprocess execution with combined output capture
- Clone-or-pull, branch creation, staged commit, and push
"""

from .process import (
    GitCommandError,
    GitError,
    GitTimeoutError,
    ProcessResult,
    WorkspaceProcess,
)
from .workspace import (
    BranchExistsError,
    GitWorkflowError,
    GitWorkspace,
    PullRejectedError,
    UnknownFileActionError,
)

__all__ = [
    "BranchExistsError",
    "GitCommandError",
    "GitError",
    "GitTimeoutError",
    "GitWorkflowError",
    "GitWorkspace",
    "ProcessResult",
    "PullRejectedError",
    "UnknownFileActionError",
    "WorkspaceProcess",
]
