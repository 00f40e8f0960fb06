"""Notification delivery for workflow progress.

Two channels are supported: a comment on the originating issue, and an
incoming chat webhook (Slack or Discord). Both satisfy the one-method
Notifier protocol.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from src.scm_adapter.capabilities import CommentPoster

logger = logging.getLogger(__name__)

DEFAULT_COMMENT_PREFIX = "**[rig]**"

# Payload key carrying the message text, per chat platform
CHAT_MESSAGE_KEYS = {
    "slack": "text",
    "discord": "content",
}


class NotifyError(Exception):
    """Raised when a notification cannot be delivered."""

    pass


class CommentNotifier:
    """Sends notifications as comments on one issue or pull request.

    Attributes:
        poster: Capability used to post the comment.
        owner: Repository owner.
        repo: Repository name.
        number: Issue or pull request number to comment on.
        prefix: Marker prepended to every message.
    """

    def __init__(
        self,
        poster: CommentPoster,
        owner: str,
        repo: str,
        number: int,
        prefix: str = DEFAULT_COMMENT_PREFIX,
    ):
        self.poster = poster
        self.owner = owner
        self.repo = repo
        self.number = number
        self.prefix = prefix

    async def notify(self, message: str) -> None:
        body = f"{self.prefix} {message}" if self.prefix else message
        await self.poster.post_comment(self.owner, self.repo, self.number, body)


class ChatWebhookNotifier:
    """Sends notifications to a Slack or Discord incoming webhook.

    Attributes:
        notify_type: "slack" or "discord".
        webhook_url: Incoming webhook URL.
        timeout: Request timeout in seconds.
    """

    def __init__(
        self,
        notify_type: str,
        webhook_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.notify_type = notify_type
        self.webhook_url = webhook_url
        self.timeout = timeout
        self._transport = transport

    def build_payload(self, message: str) -> Dict[str, Any]:
        """Build the JSON body for the configured chat platform.

        Raises:
            NotifyError: If the notify type is not supported.
        """
        key = CHAT_MESSAGE_KEYS.get(self.notify_type)
        if key is None:
            raise NotifyError(
                f"unsupported webhook notify type {self.notify_type!r}"
            )
        return {key: message}

    async def notify(self, message: str) -> None:
        """Post a message to the chat webhook.

        Raises:
            NotifyError: If the type is unsupported, the request fails, or
                         the webhook answers with a non-2xx status.
        """
        payload = self.build_payload(message)

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(self.webhook_url, json=payload)
        except httpx.RequestError as exc:
            raise NotifyError(f"send webhook request: {exc}") from exc

        if not response.is_success:
            logger.warning(
                "Chat webhook returned non-2xx response",
                extra={
                    "status_code": response.status_code,
                    "response_body": response.text[:500],
                },
            )
            raise NotifyError(f"webhook returned status {response.status_code}")
