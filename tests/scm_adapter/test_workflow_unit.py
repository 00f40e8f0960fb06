"""Unit tests for the issue-to-pull-request workflow.

The workflow is mostly driven with in-memory fakes for every capability so
the tests can assert on call order and failure handling without git or HTTP.
Workspace reuse is checked against a real repository.
"""

import asyncio
from typing import List, Optional
from unittest.mock import patch

import httpx
import pytest

from conftest import git, requires_git
from src.scm_adapter.git import GitCommandError, GitWorkspace
from src.scm_adapter.github import GitHubAPIError, GitHubClient
from src.scm_adapter.models import FileChange, Issue, PullRequest
from src.scm_adapter.notify import NotifyError
from src.scm_adapter.workflow import (
    IssueToPullRequest,
    PullRequestPlan,
    branch_name_for,
    build_plan,
)


def run_async(coro):
    return asyncio.run(coro)


class FakeGit:
    def __init__(self, calls: List[tuple], fail_on: Optional[str] = None):
        self.calls = calls
        self.fail_on = fail_on

    async def _record(self, name: str, *args):
        self.calls.append((name, *args))
        if name == self.fail_on:
            raise GitCommandError("git", [name], 1, "fatal: simulated")

    async def checkout(self, branch_name):
        await self._record("checkout", branch_name)

    async def clone_or_pull(self, owner, repo, token):
        await self._record("clone_or_pull", owner, repo, token)

    async def create_branch(self, branch_name):
        await self._record("create_branch", branch_name)

    async def commit_and_push(self, changes, message):
        await self._record("commit_and_push", list(changes), message)

    async def abandon_branch(self, branch_name, base):
        await self._record("abandon_branch", branch_name, base)


class FakeGitHub:
    def __init__(self, calls: List[tuple], fail_pr=False, fail_comment=False):
        self.calls = calls
        self.fail_pr = fail_pr
        self.fail_comment = fail_comment

    async def create_pr(self, base, head, title, body):
        self.calls.append(("create_pr", base, head, title, body))
        if self.fail_pr:
            raise GitHubAPIError("create pull request: GitHub API error: 422", 422)
        return PullRequest(number=101, url="https://github.com/acme/widgets/pull/101")

    async def post_comment(self, owner, repo, number, body):
        self.calls.append(("post_comment", owner, repo, number, body))
        if self.fail_comment:
            raise GitHubAPIError("post comment: GitHub API error: 500", 500)


class FakeNotifier:
    def __init__(self, calls: List[tuple], error: Optional[Exception] = None):
        self.calls = calls
        self.error = error

    async def notify(self, message):
        self.calls.append(("notify", message))
        if self.error is not None:
            raise self.error


ISSUE = Issue(number=7, title="New feature request", author="contributor")
CHANGES = [FileChange("src/feature.py", "create", "x = 1\n")]


@pytest.fixture
def plan() -> PullRequestPlan:
    return build_plan(ISSUE, "acme", "widgets", "tok")


class TestPlan:

    def test_branch_name(self):
        assert branch_name_for(ISSUE) == "rig/issue-7"

    def test_default_plan(self, plan):
        assert plan.base == "main"
        assert plan.branch == "rig/issue-7"
        assert plan.title == "Resolve #7: New feature request"
        assert plan.body.startswith("Closes #7")
        assert plan.commit_message == "Resolve #7: New feature request"

    def test_custom_base(self):
        assert build_plan(ISSUE, "acme", "widgets", "tok", base="develop").base == "develop"


class TestRun:

    def test_steps_run_in_order(self, plan):
        calls = []
        github = FakeGitHub(calls)
        workflow = IssueToPullRequest(FakeGit(calls), github, github)

        pr = run_async(workflow.run(ISSUE, CHANGES, plan))

        assert pr.number == 101
        assert [call[0] for call in calls] == [
            "checkout",
            "clone_or_pull",
            "create_branch",
            "commit_and_push",
            "create_pr",
            "post_comment",
        ]
        assert calls[0] == ("checkout", "main")
        assert calls[1] == ("clone_or_pull", "acme", "widgets", "tok")
        assert calls[3] == ("commit_and_push", CHANGES, plan.commit_message)
        assert calls[4] == (
            "create_pr", "main", "rig/issue-7", plan.title, plan.body
        )
        assert calls[5][1:4] == ("acme", "widgets", 7)
        assert "#101" in calls[5][4]

    def test_notifier_receives_summary(self, plan):
        calls = []
        github = FakeGitHub(calls)
        workflow = IssueToPullRequest(
            FakeGit(calls), github, github, notifier=FakeNotifier(calls)
        )

        run_async(workflow.run(ISSUE, CHANGES, plan))

        assert calls[-1][0] == "notify"
        assert calls[-1][1].startswith("acme/widgets#7: Opened pull request #101")

    @pytest.mark.parametrize(
        "step", ["checkout", "clone_or_pull", "create_branch", "commit_and_push"]
    )
    def test_git_failures_propagate_and_stop(self, plan, step):
        calls = []
        github = FakeGitHub(calls)
        workflow = IssueToPullRequest(FakeGit(calls, fail_on=step), github, github)

        with pytest.raises(GitCommandError):
            run_async(workflow.run(ISSUE, CHANGES, plan))

        assert calls[-1][0] == step
        assert "create_pr" not in [call[0] for call in calls]

    def test_pr_failure_propagates(self, plan):
        calls = []
        github = FakeGitHub(calls, fail_pr=True)
        workflow = IssueToPullRequest(
            FakeGit(calls), github, github, notifier=FakeNotifier(calls)
        )

        with pytest.raises(GitHubAPIError):
            run_async(workflow.run(ISSUE, CHANGES, plan))

        assert calls[-1][0] == "create_pr"

    def test_comment_failure_is_logged_not_raised(self, plan, caplog):
        calls = []
        github = FakeGitHub(calls, fail_comment=True)
        workflow = IssueToPullRequest(
            FakeGit(calls), github, github, notifier=FakeNotifier(calls)
        )

        pr = run_async(workflow.run(ISSUE, CHANGES, plan))

        assert pr.number == 101
        assert calls[-1][0] == "notify"
        assert "Failed to post progress comment" in caplog.text

    @pytest.mark.parametrize(
        "error",
        [NotifyError("webhook returned status 500"), GitHubAPIError("boom", 500)],
    )
    def test_notify_failure_is_logged_not_raised(self, plan, error):
        calls = []
        github = FakeGitHub(calls)
        workflow = IssueToPullRequest(
            FakeGit(calls), github, github, notifier=FakeNotifier(calls, error)
        )

        assert run_async(workflow.run(ISSUE, CHANGES, plan)).number == 101

    def test_empty_comment_response_does_not_fail_run(self, plan):
        def handler(request):
            if request.url.path.endswith("/pulls"):
                return httpx.Response(
                    201, json={"number": 101, "html_url": "https://github.com/pr/101"}
                )
            return httpx.Response(201)

        github = GitHubClient(
            token="t", owner="acme", repo="widgets",
            transport=httpx.MockTransport(handler),
        )

        async def scenario():
            async with github:
                return await IssueToPullRequest(FakeGit([]), github, github).run(
                    ISSUE, CHANGES, plan
                )

        assert run_async(scenario()).number == 101


@requires_git
class TestWorkspaceReuse:

    def test_consecutive_issues_share_one_workspace(self, tmp_path, remote_repo):
        workspace = GitWorkspace(tmp_path / "workspaces" / "acme" / "widgets")
        calls = []
        github = FakeGitHub(calls)
        workflow = IssueToPullRequest(workspace, github, github)
        first = Issue(number=5, title="First")
        second = Issue(number=6, title="Second")

        with patch.object(workspace, "_build_clone_url", return_value=str(remote_repo)):
            run_async(workflow.run(
                first,
                [FileChange("first.txt", "create", "one\n")],
                build_plan(first, "acme", "widgets", "tok"),
            ))
            run_async(workflow.run(
                second,
                [FileChange("second.txt", "create", "two\n")],
                build_plan(second, "acme", "widgets", "tok"),
            ))

        tree = git("ls-tree", "-r", "--name-only", "rig/issue-6", cwd=remote_repo)
        assert "second.txt" in tree.splitlines()
        assert "first.txt" not in tree.splitlines()
        assert git("rev-parse", "rig/issue-6~1", cwd=remote_repo) == git(
            "rev-parse", "main", cwd=remote_repo
        )
        assert [call[2] for call in calls if call[0] == "create_pr"] == [
            "rig/issue-5",
            "rig/issue-6",
        ]
