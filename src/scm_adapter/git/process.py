"""git subprocess management.

Runs the git executable as an async subprocess against a fixed workspace
directory, with timeout enforcement, combined output capture, and a
structured result. A timed-out or cancelled child is sent SIGTERM, given
a short grace period, and then killed; it is never left running.
"""

import asyncio
import logging
import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

DEFAULT_KILL_GRACE_SECONDS = 0.5
REDACTED = "***"


class GitError(Exception):
    """Base class for errors raised by local git operations."""

    pass


class GitCommandError(GitError):
    """Raised when a git command exits with a non-zero status.

    Attributes:
        command: The executable that was run.
        arguments: The arguments passed to it.
        returncode: Process exit code (-1 when the process never started).
        output: Combined stdout and stderr of the process.
    """

    def __init__(
        self,
        command: str,
        args: Sequence[str],
        returncode: int,
        output: str,
    ):
        self.command = command
        self.arguments = tuple(args)
        self.returncode = returncode
        self.output = output
        super().__init__(
            f"{command} {' '.join(self.arguments)}: exit status {returncode}"
            f" (output: {output.strip()})"
        )


class GitTimeoutError(GitError):
    """Raised when a git command is terminated because its deadline passed.

    Attributes:
        command: The executable that was run.
        arguments: The arguments passed to it.
        timeout: The deadline in seconds that was exceeded.
    """

    def __init__(self, command: str, args: Sequence[str], timeout: float):
        self.command = command
        self.arguments = tuple(args)
        self.timeout = timeout
        super().__init__(
            f"{command} {' '.join(self.arguments)}: operation timed out"
            f" after {timeout}s"
        )


@dataclass
class ProcessResult:
    """Result of a git invocation.

    Attributes:
        args: Arguments the executable was run with.
        returncode: Process exit code.
        output: Combined stdout and stderr.
        duration_seconds: Wall-clock execution time.
    """

    args: Tuple[str, ...]
    returncode: int
    output: str
    duration_seconds: float = field(default=0.0)

    @property
    def succeeded(self) -> bool:
        return self.returncode == 0


class WorkspaceProcess:
    """Runs git commands inside one workspace directory.

    Attributes:
        workspace: Directory git commands run in by default.
        executable: Path or name of the git executable.
        kill_grace_seconds: Time a terminated child gets before SIGKILL.
        default_timeout: Deadline applied when a call passes none.
    """

    def __init__(
        self,
        workspace: Path,
        executable: str = "git",
        kill_grace_seconds: float = DEFAULT_KILL_GRACE_SECONDS,
        default_timeout: Optional[float] = None,
        env: Optional[Dict[str, str]] = None,
    ):
        self.workspace = Path(workspace)
        self.executable = executable
        self.kill_grace_seconds = kill_grace_seconds
        self.default_timeout = default_timeout
        self._extra_env = dict(env or {})

    async def execute(
        self,
        *args: str,
        timeout: Optional[float] = None,
        cwd: Optional[Path] = None,
    ) -> ProcessResult:
        """Run git and return its result without judging the exit status.

        Args:
            *args: Arguments passed to git.
            timeout: Deadline in seconds. Falls back to default_timeout.
            cwd: Directory to run in. Defaults to the workspace.

        Returns:
            ProcessResult with exit code and combined output.

        Raises:
            GitTimeoutError: If the deadline is already expired or passes
                             while the command runs.
            GitCommandError: If the executable cannot be started.
            asyncio.CancelledError: If the awaiting task is cancelled; the
                                    child is terminated first.
        """
        effective_timeout = timeout if timeout is not None else self.default_timeout
        if effective_timeout is not None and effective_timeout <= 0:
            raise GitTimeoutError(self.executable, args, effective_timeout)

        start_time = time.monotonic()
        process = await self._start_process(args, cwd or self.workspace)

        try:
            stdout, _ = await asyncio.wait_for(
                process.communicate(),
                timeout=effective_timeout,
            )
        except asyncio.TimeoutError as exc:
            await self._terminate(process)
            logger.error(
                "git command timed out",
                extra={"git_args": list(args), "timeout": effective_timeout},
            )
            raise GitTimeoutError(self.executable, args, effective_timeout) from exc
        except asyncio.CancelledError:
            await self._terminate(process)
            raise

        duration = time.monotonic() - start_time
        output = (stdout or b"").decode("utf-8", errors="replace")
        returncode = process.returncode if process.returncode is not None else -1

        logger.debug(
            "git command finished",
            extra={
                "git_args": list(args),
                "returncode": returncode,
                "duration": round(duration, 3),
            },
        )

        return ProcessResult(
            args=tuple(args),
            returncode=returncode,
            output=output,
            duration_seconds=duration,
        )

    async def run(
        self,
        *args: str,
        timeout: Optional[float] = None,
        cwd: Optional[Path] = None,
        redact: Iterable[str] = (),
    ) -> str:
        """Run git and return its output, raising on a non-zero exit.

        Args:
            *args: Arguments passed to git.
            timeout: Deadline in seconds. Falls back to default_timeout.
            cwd: Directory to run in. Defaults to the workspace.
            redact: Secret strings masked out of any raised error.

        Returns:
            Combined stdout and stderr.

        Raises:
            GitCommandError: On a non-zero exit, embedding the arguments and
                             the captured output.
            GitTimeoutError: If the deadline passes.
        """
        secrets = [secret for secret in redact if secret]
        try:
            result = await self.execute(*args, timeout=timeout, cwd=cwd)
        except GitTimeoutError as exc:
            if not secrets:
                raise
            raise GitTimeoutError(
                exc.command, _redact_all(exc.arguments, secrets), exc.timeout
            ) from None
        except GitCommandError as exc:
            if not secrets:
                raise
            raise GitCommandError(
                exc.command,
                _redact_all(exc.arguments, secrets),
                exc.returncode,
                _redact(exc.output, secrets),
            ) from None

        if not result.succeeded:
            raise GitCommandError(
                self.executable,
                _redact_all(result.args, secrets),
                result.returncode,
                _redact(result.output, secrets),
            )
        return result.output

    async def _start_process(
        self, args: Sequence[str], cwd: Path
    ) -> asyncio.subprocess.Process:
        """Launch the git subprocess.

        Raises:
            GitCommandError: If the executable cannot be found or started.
        """
        try:
            return await asyncio.create_subprocess_exec(
                self.executable,
                *args,
                cwd=str(cwd),
                env=self._build_env(),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except OSError as exc:
            logger.error("Failed to start %s: %s", self.executable, exc)
            raise GitCommandError(
                self.executable, args, -1, f"failed to start: {exc}"
            ) from exc

    def _build_env(self) -> Dict[str, str]:
        env = dict(os.environ)
        # Never block on an interactive credential prompt.
        env["GIT_TERMINAL_PROMPT"] = "0"
        env.update(self._extra_env)
        return env

    async def _terminate(self, process: asyncio.subprocess.Process) -> None:
        """Stop a running child: SIGTERM, bounded wait, then SIGKILL."""
        if process.returncode is not None:
            return

        try:
            process.terminate()
        except ProcessLookupError:
            return

        try:
            await asyncio.wait_for(process.wait(), timeout=self.kill_grace_seconds)
        except asyncio.TimeoutError:
            logger.warning(
                "git did not exit after SIGTERM; killing",
                extra={"grace_seconds": self.kill_grace_seconds},
            )
            try:
                process.kill()
            except ProcessLookupError:
                return
            await process.wait()


def _redact(text: str, secrets: Sequence[str]) -> str:
    for secret in secrets:
        text = text.replace(secret, REDACTED)
    return text


def _redact_all(args: Sequence[str], secrets: Sequence[str]) -> Tuple[str, ...]:
    return tuple(_redact(arg, secrets) for arg in args)
