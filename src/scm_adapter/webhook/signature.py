"""HMAC-SHA256 verification of GitHub webhook signatures.

GitHub signs each delivery with the shared webhook secret and sends the
result in the ``X-Hub-Signature-256`` header as ``sha256=<hex digest>``.
Each way a signature can be rejected raises its own exception type so
callers can tell a malformed header from a forged payload.
"""

import binascii
import hashlib
import hmac
import logging

logger = logging.getLogger(__name__)

SIGNATURE_PREFIX = "sha256="


class WebhookError(Exception):
    """Base class for errors raised while handling a webhook delivery."""

    pass


class SignatureError(WebhookError):
    """Raised when a webhook signature cannot be accepted."""

    pass


class SignatureFormatError(SignatureError):
    """Raised when the signature lacks the ``sha256=`` prefix."""

    def __init__(self) -> None:
        super().__init__(
            f"invalid signature format: expected {SIGNATURE_PREFIX} prefix"
        )


class SignatureDecodeError(SignatureError):
    """Raised when the signature digest is not valid hexadecimal."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"decode signature hex: {detail}")


class SignatureMismatchError(SignatureError):
    """Raised when the digest does not match the payload."""

    def __init__(self) -> None:
        super().__init__("webhook signature mismatch")


def sign_payload(body: bytes, secret: str) -> str:
    """Compute the ``X-Hub-Signature-256`` header value for a payload.

    Args:
        body: The exact raw request body.
        secret: The shared webhook secret.

    Returns:
        The signature in ``sha256=<lowercase hex>`` form.
    """
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def verify_signature(body: bytes, signature: str, secret: str) -> None:
    """Verify a webhook signature against the raw payload.

    An empty secret means the deployment opted out of authentication and
    every delivery is accepted.

    Args:
        body: The exact raw request body.
        signature: The ``X-Hub-Signature-256`` header value.
        secret: The shared webhook secret.

    Raises:
        SignatureFormatError: If the ``sha256=`` prefix is missing.
        SignatureDecodeError: If the digest is not hexadecimal.
        SignatureMismatchError: If the digest does not match the payload.
    """
    if not secret:
        return

    if not signature.startswith(SIGNATURE_PREFIX):
        raise SignatureFormatError()

    try:
        decoded = binascii.unhexlify(signature[len(SIGNATURE_PREFIX):])
    except (binascii.Error, ValueError) as exc:
        raise SignatureDecodeError(str(exc)) from exc

    expected = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    if not hmac.compare_digest(decoded, expected):
        logger.warning("Rejected webhook delivery with mismatched signature")
        raise SignatureMismatchError()


class SignatureVerifier:
    """Verifies webhook deliveries against a configured secret.

    Attributes:
        secret: The shared webhook secret. Empty disables verification.
    """

    def __init__(self, secret: str) -> None:
        self.secret = secret

    @property
    def enabled(self) -> bool:
        """Whether deliveries are actually authenticated."""
        return bool(self.secret)

    def verify(self, body: bytes, signature: str) -> None:
        """Verify a delivery; see ``verify_signature`` for the error types."""
        verify_signature(body, signature, self.secret)
