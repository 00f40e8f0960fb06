"""GitHub API client for issue and PR interactions.

This module provides an async wrapper around the GitHub REST API for:
- Fetching issues
- Creating comments on issues
- Creating pull requests

Requests are made exactly once. Transport failures, non-2xx responses, and
rate limiting are raised to the caller with the operation that failed, so
each caller chooses its own retry policy.

Source:
- src/scm_adapter/models.py (Issue, PullRequest)
- src/scm_adapter/config.py (github_token, github_base_url)
"""

import logging
import time
from typing import Any, Dict, Optional

import httpx

from src.scm_adapter.models import Issue, PullRequest

logger = logging.getLogger(__name__)


class GitHubAPIError(Exception):
    """Raised when a GitHub API request fails.

    Attributes:
        message: Human-readable error description.
        status_code: HTTP status code from the response (None on transport
                     failure).
        response_body: Response body from GitHub API.
        request_url: The URL that was requested.
        operation: Description of the attempted operation, including its
                   identifying arguments (e.g. "get issue #7").
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
        request_url: Optional[str] = None,
        operation: Optional[str] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.response_body = response_body
        self.request_url = request_url
        self.operation = operation
        super().__init__(message)


class RateLimitError(GitHubAPIError):
    """Raised when GitHub API rate limit is exceeded.

    Attributes:
        reset_at: Unix timestamp when the rate limit resets.
        retry_after: Seconds to wait before retrying.
    """

    def __init__(
        self,
        message: str,
        reset_at: Optional[int] = None,
        retry_after: Optional[int] = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.reset_at = reset_at
        self.retry_after = retry_after


class GitHubClient:
    """Async GitHub API client for issues, comments, and pull requests.

    Pull requests are opened against the repository the client is bound
    to; issue reads and comments take the repository explicitly.

    Attributes:
        token: GitHub API token (PAT or GitHub App installation token).
        owner: Owner of the repository pull requests are opened against.
        repo: Name of the repository pull requests are opened against.
        base_url: Base URL for GitHub API (default: https://api.github.com).
        timeout: Request timeout in seconds.

    Example:
        >>> client = GitHubClient(token="ghp_xxx", owner="o", repo="r")
        >>> async with client:
        ...     await client.post_comment("o", "r", 7, "Working on it")
    """

    def __init__(
        self,
        token: str,
        owner: str,
        repo: str,
        base_url: str = "https://api.github.com",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the GitHub client.

        Args:
            token: GitHub API token for authentication.
            owner: Repository owner for pull request creation.
            repo: Repository name for pull request creation.
            base_url: Base URL for GitHub API. Use this to support
                      GitHub Enterprise Server endpoints.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport, used by tests.
        """
        self.token = token
        self.owner = owner
        self.repo = repo
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the HTTP client, creating it if necessary."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self._default_headers(),
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    def _default_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "scm-adapter/1.0",
        }

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def _parse_int_header(self, headers: httpx.Headers, name: str) -> Optional[int]:
        value = headers.get(name)
        if value is not None:
            try:
                return int(value)
            except ValueError:
                pass
        return None

    def _rate_limit_error(
        self, response: httpx.Response, operation: str
    ) -> RateLimitError:
        """Build a RateLimitError from a rate-limited response.

        Args:
            response: The 403/429 response from GitHub.
            operation: Operation description used to prefix the message.

        Returns:
            RateLimitError describing when the caller may retry.
        """
        reset_at = self._parse_int_header(response.headers, "x-ratelimit-reset")

        retry_after = None
        if reset_at is not None:
            retry_after = max(0, reset_at - int(time.time()))

        retry_after_header = self._parse_int_header(response.headers, "retry-after")
        if retry_after_header is not None:
            retry_after = retry_after_header

        logger.warning(
            "GitHub API rate limit exceeded",
            extra={"reset_at": reset_at, "retry_after": retry_after},
        )

        return RateLimitError(
            message=f"{operation}: GitHub API rate limit exceeded",
            status_code=response.status_code,
            response_body=response.text,
            request_url=str(response.url),
            reset_at=reset_at,
            retry_after=retry_after,
            operation=operation,
        )

    async def _request(
        self,
        method: str,
        path: str,
        operation: str,
        json_data: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        """Make a single HTTP request.

        Args:
            method: HTTP method (GET, POST).
            path: API path (e.g., /repos/owner/repo/issues/1/comments).
            operation: Operation description used to prefix errors.
            json_data: Optional JSON body for the request.

        Returns:
            The successful HTTP response from GitHub.

        Raises:
            GitHubAPIError: On transport failure or a non-2xx response.
            RateLimitError: If the rate limit is exceeded.
        """
        try:
            response = await self.client.request(
                method=method,
                url=path,
                json=json_data,
            )
        except httpx.RequestError as exc:
            logger.error(
                "GitHub API request failed",
                extra={"path": path, "method": method, "error": str(exc)},
            )
            raise GitHubAPIError(
                message=f"{operation}: request failed: {exc}",
                request_url=f"{self.base_url}{path}",
                operation=operation,
            ) from exc

        if response.status_code == 429 or (
            response.status_code == 403
            and self._parse_int_header(response.headers, "x-ratelimit-remaining") == 0
        ):
            raise self._rate_limit_error(response, operation)

        if response.status_code >= 400:
            error_body = response.text
            logger.error(
                "GitHub API error",
                extra={
                    "status_code": response.status_code,
                    "path": path,
                    "method": method,
                    "response_body": error_body[:500],
                },
            )
            raise GitHubAPIError(
                message=f"{operation}: GitHub API error: {response.status_code}",
                status_code=response.status_code,
                response_body=error_body,
                request_url=str(response.url),
                operation=operation,
            )

        return response

    def _decode(self, response: httpx.Response, operation: str) -> Dict[str, Any]:
        """Decode a successful response body as a JSON object.

        Raises:
            GitHubAPIError: If the body is not a JSON object.
        """
        try:
            data = response.json()
        except ValueError as exc:
            raise self._decode_error(response, operation, exc) from exc

        if not isinstance(data, dict):
            detail = f"expected a JSON object, got {type(data).__name__}"
            raise self._decode_error(response, operation, detail)
        return data

    def _decode_error(
        self, response: httpx.Response, operation: str, detail: Any
    ) -> GitHubAPIError:
        logger.error(
            "Unexpected GitHub API response",
            extra={"status_code": response.status_code, "operation": operation},
        )
        return GitHubAPIError(
            message=f"{operation}: decode response: {detail}",
            status_code=response.status_code,
            response_body=response.text,
            request_url=str(response.url),
            operation=operation,
        )

    async def get_issue(self, owner: str, repo: str, number: int) -> Issue:
        """Get issue details.

        Args:
            owner: Repository owner (user or organization).
            repo: Repository name.
            number: Issue number to retrieve.

        Returns:
            Issue snapshot built from the API response.

        Raises:
            GitHubAPIError: If the request fails, the issue does not exist, or
                            the response is not a valid issue object.
        """
        path = f"/repos/{owner}/{repo}/issues/{number}"

        logger.debug(
            "Getting issue details",
            extra={"owner": owner, "repo": repo, "issue_number": number},
        )

        operation = f"get issue #{number}"
        response = await self._request("GET", path, operation)
        data = self._decode(response, operation)

        try:
            return Issue.from_github_payload(data)
        except ValueError as exc:
            raise self._decode_error(response, operation, exc) from exc

    async def post_comment(
        self,
        owner: str,
        repo: str,
        number: int,
        body: str,
    ) -> None:
        """Create a comment on an issue or pull request.

        Args:
            owner: Repository owner (user or organization).
            repo: Repository name.
            number: Issue or pull request number to comment on.
            body: Comment body in markdown format.

        Raises:
            GitHubAPIError: If the request fails.
        """
        path = f"/repos/{owner}/{repo}/issues/{number}/comments"

        logger.info(
            "Creating comment on issue",
            extra={
                "owner": owner,
                "repo": repo,
                "issue_number": number,
                "body_length": len(body),
            },
        )

        response = await self._request(
            "POST",
            path,
            f"post comment on #{number}",
            json_data={"body": body},
        )

        logger.info(
            "Comment created successfully",
            extra={
                "owner": owner,
                "repo": repo,
                "issue_number": number,
                "status_code": response.status_code,
            },
        )

    async def create_pr(
        self,
        base: str,
        head: str,
        title: str,
        body: str,
    ) -> PullRequest:
        """Create a pull request on the bound repository.

        Head and base are not validated locally; GitHub rejects invalid
        combinations (such as head == base) with a 422.

        Args:
            base: Branch the changes should be merged into.
            head: Already-pushed branch carrying the changes.
            title: Pull request title.
            body: Pull request description in markdown.

        Returns:
            PullRequest with the created number, URL, and title.

        Raises:
            GitHubAPIError: If the request fails or the response does not
                            describe a pull request.
        """
        path = f"/repos/{self.owner}/{self.repo}/pulls"

        logger.info(
            "Creating pull request",
            extra={
                "owner": self.owner,
                "repo": self.repo,
                "title": title,
                "head": head,
                "base": base,
            },
        )

        operation = f"create pull request {head} -> {base}"
        response = await self._request(
            "POST",
            path,
            operation,
            json_data={
                "title": title,
                "body": body,
                "head": head,
                "base": base,
            },
        )

        data = self._decode(response, operation)
        try:
            result = PullRequest.from_github_response(data)
        except (KeyError, ValueError) as exc:
            raise self._decode_error(response, operation, exc) from exc

        logger.info(
            "Pull request created successfully",
            extra={
                "owner": self.owner,
                "repo": self.repo,
                "pr_number": result.number,
                "pr_url": result.url,
            },
        )

        return result
