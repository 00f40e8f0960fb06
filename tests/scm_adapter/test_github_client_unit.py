"""Unit tests for the GitHub API client.

Requests are served by an in-process httpx.MockTransport, so the tests
assert on the exact method, path, headers and JSON body that would be
sent to GitHub.
"""

import asyncio
import json
import time

import httpx
import pytest

from src.scm_adapter.github import GitHubAPIError, GitHubClient, RateLimitError
from src.scm_adapter.models import Issue, PullRequest


def run_async(coro):
    return asyncio.run(coro)


class RecordingTransport(httpx.MockTransport):
    """MockTransport that remembers every request it served."""

    def __init__(self, handler):
        self.requests = []

        def record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(record)


def _client(handler, **kwargs) -> tuple:
    transport = RecordingTransport(handler)
    client = GitHubClient(
        token="ghp_test",
        owner="acme",
        repo="widgets",
        transport=transport,
        **kwargs,
    )
    return client, transport


async def _call(client: GitHubClient, method: str, *args):
    async with client:
        return await getattr(client, method)(*args)


ISSUE_JSON = {
    "id": 1001,
    "number": 7,
    "title": "New feature request",
    "body": "Please add dark mode",
    "user": {"login": "contributor"},
    "labels": [{"name": "enhancement"}, {"name": "ui"}],
    "created_at": "2025-01-15T10:00:00Z",
}


class TestHeaders:

    def test_requests_carry_auth_and_api_headers(self):
        client, transport = _client(lambda request: httpx.Response(200, json=ISSUE_JSON))
        run_async(_call(client, "get_issue", "acme", "widgets", 7))

        headers = transport.requests[0].headers
        assert headers["Authorization"] == "Bearer ghp_test"
        assert headers["Accept"] == "application/vnd.github+json"
        assert headers["X-GitHub-Api-Version"] == "2022-11-28"
        assert headers["User-Agent"] == "scm-adapter/1.0"

    def test_base_url_trailing_slash_is_stripped(self):
        client, transport = _client(
            lambda request: httpx.Response(200, json=ISSUE_JSON),
            base_url="https://ghe.example.com/api/v3/",
        )
        run_async(_call(client, "get_issue", "acme", "widgets", 7))

        assert str(transport.requests[0].url) == (
            "https://ghe.example.com/api/v3/repos/acme/widgets/issues/7"
        )

    def test_close_is_idempotent(self):
        client, _ = _client(lambda request: httpx.Response(200, json=ISSUE_JSON))

        async def scenario():
            await client.get_issue("acme", "widgets", 7)
            await client.close()
            await client.close()

        run_async(scenario())


class TestGetIssue:

    def test_maps_response_to_issue(self):
        client, transport = _client(lambda request: httpx.Response(200, json=ISSUE_JSON))
        issue = run_async(_call(client, "get_issue", "other", "repo", 7))

        request = transport.requests[0]
        assert request.method == "GET"
        assert request.url.path == "/repos/other/repo/issues/7"
        assert isinstance(issue, Issue)
        assert issue.id == "1001"
        assert issue.number == 7
        assert issue.author == "contributor"
        assert issue.labels == ("enhancement", "ui")

    def test_not_found_names_the_operation(self):
        client, _ = _client(
            lambda request: httpx.Response(404, json={"message": "Not Found"})
        )
        with pytest.raises(GitHubAPIError) as exc_info:
            run_async(_call(client, "get_issue", "acme", "widgets", 999))

        error = exc_info.value
        assert error.status_code == 404
        assert error.operation == "get issue #999"
        assert str(error).startswith("get issue #999")
        assert "Not Found" in error.response_body
        assert not isinstance(error, RateLimitError)


class TestPostComment:

    def test_posts_markdown_body(self):
        client, transport = _client(
            lambda request: httpx.Response(201, json={"id": 55})
        )
        result = run_async(
            _call(client, "post_comment", "acme", "widgets", 7, "**done**")
        )

        request = transport.requests[0]
        assert result is None
        assert request.method == "POST"
        assert request.url.path == "/repos/acme/widgets/issues/7/comments"
        assert json.loads(request.content) == {"body": "**done**"}

    def test_server_error_is_raised(self):
        client, _ = _client(lambda request: httpx.Response(500, text="boom"))
        with pytest.raises(GitHubAPIError) as exc_info:
            run_async(_call(client, "post_comment", "acme", "widgets", 7, "hi"))

        assert exc_info.value.status_code == 500
        assert "post comment on #7" in str(exc_info.value)

    def test_request_is_not_retried(self):
        client, transport = _client(lambda request: httpx.Response(502))
        with pytest.raises(GitHubAPIError):
            run_async(_call(client, "post_comment", "acme", "widgets", 7, "hi"))
        assert len(transport.requests) == 1


class TestCreatePullRequest:

    def test_creates_pr_on_bound_repository(self):
        def handler(request):
            return httpx.Response(
                201,
                json={
                    "number": 101,
                    "html_url": "https://github.com/acme/widgets/pull/101",
                    "title": "Resolve #7",
                },
            )

        client, transport = _client(handler)
        pr = run_async(
            _call(client, "create_pr", "main", "rig/issue-7", "Resolve #7", "Closes #7")
        )

        request = transport.requests[0]
        assert request.method == "POST"
        assert request.url.path == "/repos/acme/widgets/pulls"
        assert json.loads(request.content) == {
            "title": "Resolve #7",
            "body": "Closes #7",
            "head": "rig/issue-7",
            "base": "main",
        }
        assert isinstance(pr, PullRequest)
        assert pr.number == 101
        assert pr.url == "https://github.com/acme/widgets/pull/101"

    def test_unprocessable_entity_is_raised(self):
        client, _ = _client(
            lambda request: httpx.Response(
                422, json={"message": "Validation Failed"}
            )
        )
        with pytest.raises(GitHubAPIError) as exc_info:
            run_async(_call(client, "create_pr", "main", "main", "t", "b"))

        assert exc_info.value.status_code == 422
        assert exc_info.value.operation == "create pull request main -> main"


class TestTransportAndRateLimits:

    def test_transport_failure_has_no_status(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client, _ = _client(handler)
        with pytest.raises(GitHubAPIError) as exc_info:
            run_async(_call(client, "get_issue", "acme", "widgets", 7))

        error = exc_info.value
        assert error.status_code is None
        assert "request failed" in str(error)
        assert error.request_url.endswith("/repos/acme/widgets/issues/7")
        assert isinstance(error.__cause__, httpx.ConnectError)

    def test_429_raises_rate_limit_with_retry_after(self):
        client, _ = _client(
            lambda request: httpx.Response(429, headers={"retry-after": "30"})
        )
        with pytest.raises(RateLimitError) as exc_info:
            run_async(_call(client, "get_issue", "acme", "widgets", 7))

        assert exc_info.value.retry_after == 30
        assert exc_info.value.status_code == 429
        assert "rate limit" in str(exc_info.value)

    def test_exhausted_403_raises_rate_limit_from_reset(self):
        reset_at = int(time.time()) + 120
        client, _ = _client(
            lambda request: httpx.Response(
                403,
                headers={
                    "x-ratelimit-remaining": "0",
                    "x-ratelimit-reset": str(reset_at),
                },
            )
        )
        with pytest.raises(RateLimitError) as exc_info:
            run_async(_call(client, "get_issue", "acme", "widgets", 7))

        assert exc_info.value.reset_at == reset_at
        assert 0 < exc_info.value.retry_after <= 120

    def test_plain_403_is_not_rate_limit(self):
        client, _ = _client(
            lambda request: httpx.Response(
                403, headers={"x-ratelimit-remaining": "42"}
            )
        )
        with pytest.raises(GitHubAPIError) as exc_info:
            run_async(_call(client, "get_issue", "acme", "widgets", 7))
        assert not isinstance(exc_info.value, RateLimitError)
        assert exc_info.value.status_code == 403


class TestResponseDecoding:

    def test_comment_posted_with_empty_body_succeeds(self):
        client, _ = _client(lambda request: httpx.Response(201))
        assert run_async(_call(client, "post_comment", "acme", "widgets", 7, "hi")) is None

    def test_pr_response_without_number_is_api_error(self):
        client, _ = _client(
            lambda request: httpx.Response(201, json={"message": "weird"})
        )
        with pytest.raises(GitHubAPIError) as exc_info:
            run_async(_call(client, "create_pr", "main", "rig/issue-7", "t", "b"))

        error = exc_info.value
        assert str(error).startswith("create pull request rig/issue-7 -> main: decode response")
        assert error.status_code == 201
        assert isinstance(error.__cause__, KeyError)

    def test_pr_response_with_invalid_number_is_api_error(self):
        client, _ = _client(
            lambda request: httpx.Response(201, json={"number": 0, "html_url": "u"})
        )
        with pytest.raises(GitHubAPIError) as exc_info:
            run_async(_call(client, "create_pr", "main", "rig/issue-7", "t", "b"))
        assert "decode response" in str(exc_info.value)

    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(200, text="<html>not json</html>"),
            httpx.Response(200),
            httpx.Response(200, json=[ISSUE_JSON]),
            httpx.Response(200, json={"number": "seven"}),
        ],
    )
    def test_undecodable_issue_is_api_error(self, response):
        client, _ = _client(lambda request: response)
        with pytest.raises(GitHubAPIError) as exc_info:
            run_async(_call(client, "get_issue", "acme", "widgets", 7))

        assert str(exc_info.value).startswith("get issue #7: decode response")
        assert exc_info.value.operation == "get issue #7"
