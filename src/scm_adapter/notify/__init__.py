"""Progress notifications for issue-to-PR workflows."""

from .notifiers import (
    ChatWebhookNotifier,
    CommentNotifier,
    NotifyError,
)

__all__ = [
    "ChatWebhookNotifier",
    "CommentNotifier",
    "NotifyError",
]
