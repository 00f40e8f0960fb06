"""GitHub webhook handler for the source adapter.

This module provides the WebhookHandler class, which authenticates a raw
GitHub webhook delivery and normalizes it into an Issue record.

Only issue events are accepted. Rather than dispatching on the
``X-GitHub-Event`` header, the handler requires the envelope to carry an
``issue`` object with a non-zero number, so push, ping, and other event
types are rejected by shape.

GitHub Webhook Payload Structure (issues event, consumed subset):
{
  "action": "opened",
  "issue": {
    "id": 1001,
    "number": 7,
    "title": "Issue title",
    "body": "Issue body",
    "created_at": "2025-01-15T10:00:00Z",
    "labels": [{"name": "enhancement"}],
    "user": {"login": "username"}
  }
}
"""

import json
import logging
from typing import Any, Dict

from ..models import Issue
from .signature import SignatureVerifier, WebhookError

logger = logging.getLogger(__name__)


class PayloadError(WebhookError):
    """Raised when an authenticated payload cannot be turned into an Issue."""

    pass


class PayloadParseError(PayloadError):
    """Raised when the payload is not a well-formed JSON object."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"parse webhook payload: {detail}")


class NotAnIssueError(PayloadError):
    """Raised when the envelope does not describe an issue."""

    def __init__(self) -> None:
        super().__init__("webhook payload does not contain an issue")


class WebhookHandler:
    """Handler for authenticating and parsing GitHub webhook deliveries.

    Attributes:
        verifier: Signature verifier bound to the configured secret.
    """

    def __init__(self, secret: str) -> None:
        """Initialize the webhook handler.

        Args:
            secret: The GitHub webhook secret. An empty secret disables
                    signature verification entirely.
        """
        self.verifier = SignatureVerifier(secret)
        if not self.verifier.enabled:
            logger.warning(
                "Webhook secret not configured; signature verification disabled"
            )

    def parse_webhook(self, body: bytes, signature: str) -> Issue:
        """Verify and parse a raw webhook delivery.

        Args:
            body: The exact raw request body.
            signature: The ``X-Hub-Signature-256`` header value.

        Returns:
            The Issue described by the delivery.

        Raises:
            SignatureError: If the signature is malformed or does not match.
            PayloadParseError: If the body is not a JSON object, or its
                               ``issue`` is present but not an object.
            NotAnIssueError: If the envelope carries no issue.
        """
        self.verifier.verify(body, signature)

        envelope = self._decode_envelope(body)

        issue_data = envelope.get("issue")
        if issue_data is None:
            raise NotAnIssueError()
        if not isinstance(issue_data, dict):
            raise PayloadParseError(
                f"issue must be an object, got {type(issue_data).__name__}"
            )

        number = issue_data.get("number")
        if number is None or number == 0:
            raise NotAnIssueError()
        if not isinstance(number, int) or isinstance(number, bool):
            raise PayloadParseError(
                f"issue.number must be an integer, got {type(number).__name__}"
            )

        issue = Issue.from_github_payload(issue_data)

        logger.info(
            "Parsed issue webhook",
            extra={
                "action": envelope.get("action"),
                "issue_number": issue.number,
                "label_count": len(issue.labels),
            },
        )

        return issue

    def _decode_envelope(self, body: bytes) -> Dict[str, Any]:
        """Decode the JSON envelope.

        Args:
            body: The raw request body.

        Returns:
            The decoded top-level JSON object.

        Raises:
            PayloadParseError: If the body is not valid UTF-8 JSON or its
                               top-level value is not an object.
        """
        try:
            envelope = json.loads(body)
        except (UnicodeDecodeError, ValueError) as exc:
            raise PayloadParseError(str(exc)) from exc

        if not isinstance(envelope, dict):
            raise PayloadParseError(
                f"expected a JSON object, got {type(envelope).__name__}"
            )

        return envelope


def create_webhook_handler(secret: str) -> WebhookHandler:
    """Factory function to create a WebhookHandler instance.

    Args:
        secret: The GitHub webhook secret.

    Returns:
        A configured WebhookHandler instance.
    """
    return WebhookHandler(secret=secret)
