"""FastAPI application entry point for the source adapter.

This module exposes the webhook receiver. It authenticates GitHub
deliveries, normalizes issue events, and hands accepted issues to an
optional background handler.

Status codes:
- 202: issue event accepted
- 200: authenticated delivery that is not an issue event (ignored)
- 400: malformed payload
- 401: signature rejected
"""

import logging
from contextlib import asynccontextmanager
from typing import Awaitable, Callable, Optional

from fastapi import BackgroundTasks, FastAPI, Request
from fastapi.responses import JSONResponse

from .adapter import SourceAdapter, create_notifier, create_source_adapter
from .config import AdapterSettings, get_settings
from .capabilities import Notifier
from .models import Issue
from .webhook.handler import NotAnIssueError, PayloadError
from .webhook.signature import SignatureError

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Hub-Signature-256"

# Receives the accepted issue, the repository adapter, and the configured
# chat notifier (None when notifications are disabled).
IssueHandler = Callable[
    [Issue, SourceAdapter, Optional[Notifier]], Awaitable[None]
]


def redact_secret(value: str, visible_chars: int = 4) -> str:
    """Redact a secret value, showing only the first few characters.

    Args:
        value: The secret value to redact.
        visible_chars: Number of characters to show at the start.

    Returns:
        Redacted string with asterisks replacing hidden characters.
    """
    if len(value) <= visible_chars:
        return "*" * len(value)
    return value[:visible_chars] + "*" * (len(value) - visible_chars)


def _log_configuration(settings: AdapterSettings) -> None:
    """Log configuration values with secrets redacted."""
    logger.info("Adapter configuration:")
    logger.info(f"  GitHub Base URL: {settings.github_base_url}")
    logger.info(f"  GitHub Token: {redact_secret(settings.github_token)}")
    logger.info(
        f"  GitHub Webhook Secret: {redact_secret(settings.github_webhook_secret)}"
    )
    logger.info(f"  Repository: {settings.github_owner}/{settings.github_repo}")
    logger.info(f"  Workspace: {settings.workspace_path}")
    logger.info(f"  Git Timeout Seconds: {settings.git_timeout_seconds}")
    logger.info(f"  Notify Type: {settings.notify_type or 'disabled'}")
    logger.info(f"  Host: {settings.host}")
    logger.info(f"  Port: {settings.port}")


def create_app(
    adapter: Optional[SourceAdapter] = None,
    issue_handler: Optional[IssueHandler] = None,
    notifier: Optional[Notifier] = None,
) -> FastAPI:
    """Build the webhook receiver application.

    Args:
        adapter: Pre-built adapter. When None, settings are loaded from the
                 environment and an adapter is wired at startup.
        issue_handler: Coroutine run in the background for each accepted
                       issue, given the adapter and the chat notifier.
        notifier: Notifier handed to issue_handler alongside a pre-built
                  adapter. Ignored when the adapter is built from settings.

    Returns:
        The configured FastAPI application.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Source adapter starting up...")

        owns_adapter = adapter is None
        if owns_adapter:
            settings = get_settings()
            _log_configuration(settings)
            app.state.adapter = create_source_adapter(settings)
            app.state.notifier = create_notifier(settings)
        else:
            app.state.adapter = adapter
            app.state.notifier = notifier

        yield

        logger.info("Source adapter shutting down...")
        if owns_adapter:
            await app.state.adapter.close()

    app = FastAPI(
        title="SCM Adapter",
        description="GitHub webhook intake and pull request publishing",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.issue_handler = issue_handler

    @app.get("/health")
    async def health():
        """Liveness probe endpoint."""
        return {"status": "healthy"}

    @app.post("/webhooks/github")
    async def github_webhook(request: Request, background_tasks: BackgroundTasks):
        """GitHub webhook receiver endpoint.

        Returns:
            JSON acknowledgment describing how the delivery was handled.
        """
        body = await request.body()
        signature = request.headers.get(SIGNATURE_HEADER, "")
        source: SourceAdapter = request.app.state.adapter

        try:
            issue = source.parse_webhook(body, signature)
        except SignatureError as exc:
            logger.warning("Rejected webhook delivery: %s", exc)
            return JSONResponse(
                status_code=401,
                content={"status": "unauthorized", "message": str(exc)},
            )
        except NotAnIssueError as exc:
            return JSONResponse(
                status_code=200,
                content={"status": "ignored", "message": str(exc)},
            )
        except PayloadError as exc:
            logger.warning("Malformed webhook delivery: %s", exc)
            return JSONResponse(
                status_code=400,
                content={"status": "error", "message": str(exc)},
            )

        handler = request.app.state.issue_handler
        if handler is not None:
            background_tasks.add_task(
                handler, issue, source, request.app.state.notifier
            )

        return JSONResponse(
            status_code=202,
            content={"status": "accepted", "issue_number": issue.number},
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    dev_settings = get_settings()
    uvicorn.run(
        "src.scm_adapter.main:app",
        host=dev_settings.host,
        port=dev_settings.port,
    )
