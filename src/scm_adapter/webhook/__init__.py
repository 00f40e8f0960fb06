"""GitHub webhook handling for the source adapter.

This module authenticates and parses GitHub webhook deliveries:
- HMAC-SHA256 verification of the X-Hub-Signature-256 header
- Normalization of issue events into Issue records

Signature verification is skipped when no webhook secret is configured.
"""

from .handler import (
    NotAnIssueError,
    PayloadError,
    PayloadParseError,
    WebhookHandler,
    create_webhook_handler,
)
from .signature import (
    SignatureDecodeError,
    SignatureError,
    SignatureFormatError,
    SignatureMismatchError,
    SignatureVerifier,
    WebhookError,
    sign_payload,
    verify_signature,
)

__all__ = [
    "NotAnIssueError",
    "PayloadError",
    "PayloadParseError",
    "SignatureDecodeError",
    "SignatureError",
    "SignatureFormatError",
    "SignatureMismatchError",
    "SignatureVerifier",
    "WebhookError",
    "WebhookHandler",
    "create_webhook_handler",
    "sign_payload",
    "verify_signature",
]
