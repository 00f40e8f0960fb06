"""Data models shared across the adapter.

Issue and PullRequest are immutable snapshots built from GitHub JSON;
FileChange describes one mutation applied to the local workspace.

The models use Pydantic for validation, consistent with the adapter's
configuration approach in config.py. FileChange is a plain dataclass so
that an unrecognized action survives construction and is rejected by the
workspace when the batch is applied.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


class FileAction(str, Enum):
    """Mutation kinds understood by the workspace.

    Attributes:
        CREATE: Write a new file and stage it.
        UPDATE: Overwrite an existing file and stage it.
        DELETE: Remove a file from the working tree and the index.
    """

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class FileChange:
    """A single file mutation to apply to the workspace.

    Attributes:
        path: Path relative to the workspace root.
        action: One of the FileAction values. Kept as a plain string so
                that unknown actions reach the workspace unchanged.
        content: New file content. Ignored (and usually None) for deletes.
    """

    path: str
    action: str
    content: Optional[str] = None


class Issue(BaseModel):
    """Snapshot of a GitHub issue.

    Produced fresh by every webhook parse or API fetch and never mutated.

    Attributes:
        id: Platform-assigned id, stringified from GitHub's numeric id.
        number: Issue number, unique within the repository.
        title: The issue title text.
        body: The issue body text. Empty when GitHub sends null.
        author: Login of the user who opened the issue.
        labels: Label names in the order GitHub lists them.
        created_at: Creation timestamp, or None when absent/unparseable.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default="", description="Stringified GitHub issue id")
    number: int = Field(..., description="Issue number within the repository")
    title: str = Field(default="", description="The issue title text")
    body: str = Field(default="", description="The issue body text")
    author: str = Field(default="", description="Login of the issue author")
    labels: Tuple[str, ...] = Field(
        default_factory=tuple,
        description="Label names attached to the issue",
    )
    created_at: Optional[datetime] = Field(
        default=None,
        description="Creation timestamp (None if missing or invalid)",
    )

    @classmethod
    def from_github_payload(cls, data: Dict[str, Any]) -> "Issue":
        """Build an Issue from a GitHub issue JSON object.

        Accepts both the ``issue`` sub-object of a webhook envelope and the
        body of ``GET /repos/{owner}/{repo}/issues/{number}``.

        Args:
            data: The issue JSON object.

        Returns:
            Issue populated from the payload.
        """
        raw_id = data.get("id")
        body = data.get("body")
        title = data.get("title")

        return cls(
            id=str(raw_id) if raw_id is not None else "0",
            number=data.get("number") or 0,
            title=title if isinstance(title, str) else "",
            body=body if isinstance(body, str) else "",
            author=_extract_login(data.get("user")),
            labels=tuple(_extract_labels(data.get("labels"))),
            created_at=parse_timestamp(data.get("created_at")),
        )

    def has_label(self, label_name: str) -> bool:
        """Check if the issue has a specific label (case-sensitive)."""
        return label_name in self.labels


class PullRequest(BaseModel):
    """Result of a pull request creation.

    Attributes:
        number: Pull request number.
        url: HTML URL of the pull request.
        title: Pull request title as stored by GitHub.
    """

    model_config = ConfigDict(frozen=True)

    number: int = Field(..., gt=0, description="Pull request number")
    url: str = Field(..., description="HTML URL of the pull request")
    title: str = Field(default="", description="Pull request title")

    @classmethod
    def from_github_response(cls, data: Dict[str, Any]) -> "PullRequest":
        """Build a PullRequest from the ``POST /pulls`` response body."""
        return cls(
            number=data["number"],
            url=data.get("html_url", ""),
            title=data.get("title", ""),
        )


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp, returning None on any failure.

    GitHub sends UTC timestamps with a trailing ``Z`` which older
    ``fromisoformat`` implementations reject, so it is normalized first.

    Args:
        value: The raw timestamp value from the payload.

    Returns:
        A timezone-aware datetime, or None if the value is not parseable.
    """
    if not isinstance(value, str) or not value:
        return None

    normalized = value[:-1] + "+00:00" if value.endswith("Z") else value
    try:
        return datetime.fromisoformat(normalized)
    except ValueError:
        logger.debug("Unparseable issue timestamp: %r", value)
        return None


def _extract_labels(labels_data: Any) -> List[str]:
    """Extract label names from GitHub's label object list.

    GitHub sends labels as ``[{"name": "bug"}, {"name": "enhancement"}]``.
    Source order is kept. Entries without a string name are skipped.
    """
    if not isinstance(labels_data, list):
        return []

    labels = []
    for label in labels_data:
        if isinstance(label, dict):
            name = label.get("name")
            if isinstance(name, str):
                labels.append(name)
    return labels


def _extract_login(user_data: Any) -> str:
    if not isinstance(user_data, dict):
        return ""
    login = user_data.get("login")
    return login if isinstance(login, str) else ""
