"""GitHub API client for issue and PR interactions.

This module provides a wrapper around the GitHub API for:
- Fetching issues
- Creating comments on issues
- Creating pull requests

Failures are surfaced immediately; retry policy belongs to the caller.
"""

from src.scm_adapter.github.client import (
    GitHubAPIError,
    GitHubClient,
    RateLimitError,
)

__all__ = [
    "GitHubAPIError",
    "GitHubClient",
    "RateLimitError",
]
