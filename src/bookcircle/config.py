"""Configuration management for bookcircle.

Loads configuration from environment variables and provides defaults.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class Config:
    """Application configuration."""

    # Database
    db_path: Path

    # HTTP server
    api_host: str = "127.0.0.1"
    api_port: int = 4000
    app_url: str = "http://localhost:3000"

    # Logging
    log_level: str = "INFO"

    # Access: "token=user_id[:email]" entries for the static token verifier
    api_tokens: list[str] = field(default_factory=list)
    admin_emails: list[str] = field(default_factory=list)

    # Email
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_from: str = "Book Circle <noreply@bookcircle.local>"
    smtp_timeout: float = 20.0

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        db_path_str = os.environ.get(
            "BOOKCIRCLE_DB_PATH",
            str(Path.home() / ".bookcircle" / "bookcircle.db"),
        )
        db_path = Path(db_path_str).expanduser()

        return cls(
            db_path=db_path,
            api_host=os.environ.get("BOOKCIRCLE_HOST", "127.0.0.1"),
            api_port=int(os.environ.get("BOOKCIRCLE_PORT", "4000")),
            app_url=os.environ.get("BOOKCIRCLE_APP_URL", "http://localhost:3000"),
            log_level=os.environ.get("BOOKCIRCLE_LOG_LEVEL", "INFO").upper(),
            api_tokens=_split_csv(os.environ.get("BOOKCIRCLE_API_TOKENS", "")),
            admin_emails=[
                e.lower() for e in _split_csv(os.environ.get("BOOKCIRCLE_ADMIN_EMAILS", ""))
            ],
            smtp_host=os.environ.get("SMTP_HOST") or None,
            smtp_port=int(os.environ.get("SMTP_PORT", "587")),
            smtp_username=os.environ.get("SMTP_USERNAME") or None,
            smtp_password=os.environ.get("SMTP_PASSWORD") or None,
            smtp_from=os.environ.get("SMTP_FROM", "Book Circle <noreply@bookcircle.local>"),
            smtp_timeout=float(os.environ.get("SMTP_TIMEOUT", "20")),
        )

    def validate(self) -> list[str]:
        """Validate configuration, return list of errors."""
        errors = []

        # Check database directory is writable
        if str(self.db_path) != ":memory:" and not self.db_path.parent.exists():
            try:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            except PermissionError:
                errors.append(f"Cannot create database directory: {self.db_path.parent}")

        if self.smtp_host and not (self.smtp_username and self.smtp_password):
            errors.append("SMTP_HOST is set but SMTP_USERNAME/SMTP_PASSWORD are missing")

        for entry in self.api_tokens:
            token, sep, subject = entry.partition("=")
            if not sep or not token or not subject.split(":", 1)[0]:
                errors.append(f"Malformed BOOKCIRCLE_API_TOKENS entry: {entry!r}")

        return errors

    def has_smtp_config(self) -> bool:
        """Check if outgoing email is configured."""
        return bool(self.smtp_host)
