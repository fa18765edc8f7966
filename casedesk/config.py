# casedesk/config.py
"""
Application Configuration
Only imports from standard library and pydantic, so every module can import it.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict

# Project root
BASE_DIR = Path(__file__).resolve().parents[1]

DEFAULT_SECRET_KEY = "CHANGE-ME-IN-PRODUCTION-USE-LONG-RANDOM-STRING"


class Settings(BaseSettings):
    """
    Application configuration with environment variable support

    All settings can be overridden via environment variables or .env file.
    Environment variables take precedence over .env file values.
    """

    # ========== Entity store ==========
    database_url: str = f"sqlite:///{BASE_DIR}/casedesk.db"

    # ========== Binary store ==========
    storage_root: str = str(BASE_DIR / "storage")
    documents_bucket: str = "documents"
    upload_cache_control: str = "3600"
    signed_url_ttl_seconds: int = 60
    upload_max_size_mb: int = 50

    # ========== Security ==========
    secret_key: str = DEFAULT_SECRET_KEY

    # ========== Logging ==========
    log_level: str = "INFO"
    log_file: Optional[str] = None  # None = console only, otherwise path to log file

    # ========== Application ==========
    app_name: str = "CaseDesk Foreclosure Manager"
    toast_history_size: int = 50

    # ========== Pydantic Configuration ==========
    model_config = SettingsConfigDict(
        env_file=str(BASE_DIR / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore unknown env vars
    )

    # ========== Computed Properties ==========

    @property
    def database_path(self) -> Optional[Path]:
        """
        Extract file path from sqlite URL

        Returns:
            Path to the database file, or None for in-memory and non-sqlite URLs
        """
        if self.database_url.startswith("sqlite:///"):
            return Path(self.database_url.replace("sqlite:///", ""))
        return None

    @property
    def upload_max_size_bytes(self) -> int:
        return self.upload_max_size_mb * 1024 * 1024

    # ========== Validation ==========

    def validate_secret_key(self) -> None:
        """
        Validate that secret key is properly configured for production

        Signed download URLs are HMAC'd with this key.

        Raises:
            ValueError: If secret key is not set or too short
        """
        if not self.secret_key or self.secret_key == DEFAULT_SECRET_KEY:
            raise ValueError(
                "SECRET_KEY must be set in production! "
                "Generate with: python -c 'import secrets; print(secrets.token_urlsafe(32))'"
            )

        if len(self.secret_key) < 32:
            raise ValueError(
                "SECRET_KEY must be at least 32 characters for security. "
                f"Current length: {len(self.secret_key)}"
            )


# ========== Global Settings Instance ==========
settings = Settings()
