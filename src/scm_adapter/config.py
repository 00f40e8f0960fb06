"""Adapter configuration using pydantic-settings.

This module defines the AdapterSettings class that reads configuration
from environment variables with the SCM_ prefix. One settings instance
describes one repository and its local workspace.
"""

from pathlib import Path
from typing import Dict, Optional

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AdapterSettings(BaseSettings):
    """Source adapter configuration from environment variables.

    All environment variables are prefixed with SCM_ (e.g., SCM_GITHUB_TOKEN).

    Required fields (must be set via environment variables):
    - github_token: GitHub API token, also used as the clone credential
    - github_owner: Owner of the repository the adapter is bound to
    - github_repo: Name of the repository the adapter is bound to
    """

    model_config = SettingsConfigDict(
        env_prefix="SCM_",
        case_sensitive=False,
    )

    # -------------------------------------------------------------------------
    # GitHub Configuration
    # -------------------------------------------------------------------------
    github_token: str

    # Empty disables webhook signature verification
    github_webhook_secret: str = ""

    # Base URL for GitHub API (supports GitHub Enterprise)
    github_base_url: str = "https://api.github.com"

    github_owner: str
    github_repo: str

    # Host embedded in authenticated clone URLs
    clone_host: str = "github.com"

    github_timeout_seconds: float = 30.0

    # -------------------------------------------------------------------------
    # Workspace Configuration
    # -------------------------------------------------------------------------
    # Workspaces live at <workspace_base_path>/<owner>/<repo>
    workspace_base_path: str = str(Path.home() / ".rig" / "workspaces")

    git_executable: str = "git"

    # Deadline for a single git invocation (clone, push, ...)
    git_timeout_seconds: float = 300.0

    # Time a cancelled git process gets between SIGTERM and SIGKILL
    git_kill_grace_seconds: float = 0.5

    # Commit identity; falls back to the git config of the host when unset
    git_author_name: Optional[str] = None
    git_author_email: Optional[str] = None

    # -------------------------------------------------------------------------
    # Notification Configuration
    # -------------------------------------------------------------------------
    # "slack" or "discord"; notifications are disabled when unset
    notify_type: Optional[str] = None
    notify_webhook_url: Optional[str] = Field(default=None, validate_default=True)

    # -------------------------------------------------------------------------
    # Server Configuration
    # -------------------------------------------------------------------------
    host: str = "0.0.0.0"
    port: int = 8080

    # -------------------------------------------------------------------------
    # Validators
    # -------------------------------------------------------------------------
    @field_validator("github_token", "github_owner", "github_repo")
    @classmethod
    def validate_not_empty(cls, v: str, info: ValidationInfo) -> str:
        """Validate that required GitHub identifiers are not empty."""
        if not v or not v.strip():
            raise ValueError(f"{info.field_name} cannot be empty")
        return v.strip()

    @field_validator("github_base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Validate that the API base URL is an http(s) URL."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("github_base_url must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("workspace_base_path")
    @classmethod
    def validate_workspace_path(cls, v: str) -> str:
        """Validate that workspace base path is an absolute path."""
        if not Path(v).expanduser().is_absolute():
            raise ValueError("workspace_base_path must be an absolute path")
        return str(Path(v).expanduser())

    @field_validator(
        "git_timeout_seconds", "git_kill_grace_seconds", "github_timeout_seconds"
    )
    @classmethod
    def validate_positive(cls, v: float, info: ValidationInfo) -> float:
        """Validate that timeouts are positive."""
        if v <= 0:
            raise ValueError(f"{info.field_name} must be positive")
        return v

    @field_validator("notify_type")
    @classmethod
    def validate_notify_type(cls, v: Optional[str]) -> Optional[str]:
        """Validate that the notifier type is supported."""
        if v is not None and v not in ("slack", "discord"):
            raise ValueError("notify_type must be 'slack' or 'discord'")
        return v

    @field_validator("notify_webhook_url")
    @classmethod
    def validate_notify_webhook_url(
        cls, v: Optional[str], info: ValidationInfo
    ) -> Optional[str]:
        """Validate that a chat notifier has somewhere to post."""
        if info.data.get("notify_type") and not v:
            raise ValueError("notify_webhook_url is required when notify_type is set")
        return v

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate that port is in valid range."""
        if not 1 <= v <= 65535:
            raise ValueError("port must be between 1 and 65535")
        return v

    @property
    def workspace_path(self) -> Path:
        """Workspace directory for the configured repository."""
        return Path(self.workspace_base_path) / self.github_owner / self.github_repo

    def git_env(self) -> Dict[str, str]:
        """Extra environment for git invocations (commit identity)."""
        env: Dict[str, str] = {}
        if self.git_author_name:
            env["GIT_AUTHOR_NAME"] = self.git_author_name
            env["GIT_COMMITTER_NAME"] = self.git_author_name
        if self.git_author_email:
            env["GIT_AUTHOR_EMAIL"] = self.git_author_email
            env["GIT_COMMITTER_EMAIL"] = self.git_author_email
        return env


def get_settings() -> AdapterSettings:
    """Create and return AdapterSettings instance.

    Returns:
        AdapterSettings: Configured settings instance.

    Raises:
        pydantic.ValidationError: If required fields are missing or invalid.
    """
    return AdapterSettings()
