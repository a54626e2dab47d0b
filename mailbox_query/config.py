"""Mailbox query configuration loaded from environment variables.

Uses pydantic-settings so every field can be overridden via env vars;
command-line flags take precedence over the environment.
"""

from __future__ import annotations

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings

STDIN_PASSWORD = "-"


class ImapConfig(BaseSettings):
    """IMAP server connection settings."""

    model_config = {"env_prefix": "IMAP_"}

    host: str = Field(default="imap.gmail.com", description="IMAP server hostname")
    port: int = Field(default=993, description="IMAP server port")
    use_ssl: bool = Field(
        default=True,
        description="Implicit TLS; when False the session is upgraded with STARTTLS",
    )
    username: str = Field(description="IMAP login username")
    password: SecretStr = Field(
        default=SecretStr(STDIN_PASSWORD),
        description="IMAP login password ('-' reads it from stdin)",
    )
    mailbox: str = Field(default="INBOX", description="IMAP mailbox/folder to search")
    timeout_seconds: float = Field(
        default=30.0,
        description="Socket timeout for each IMAP round-trip",
    )


class PollConfig(BaseSettings):
    """Backoff between searches that found nothing, driven by Tenacity."""

    model_config = {"env_prefix": "POLL_"}

    initial_wait_seconds: float = Field(
        default=1.0,
        description="Shortest wait between search attempts",
    )
    max_wait_seconds: float = Field(
        default=5.0,
        description="Longest wait between search attempts",
    )
    multiplier: float = Field(default=1.0, description="Exponential backoff multiplier")


class LogConfig(BaseSettings):
    """Logging output settings."""

    model_config = {"env_prefix": "LOG_"}

    level: str = Field(default="WARNING", description="Root log level name")
    json_lines: bool = Field(
        default=False,
        description="Emit JSON log lines instead of console output",
    )
