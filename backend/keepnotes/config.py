"""
KeepNotes Backend — Application Configuration
===============================================

What:  Centralized configuration management using Pydantic Settings.
Why:   Typed settings validated once at startup; a bad LOG_LEVEL or port
       fails the boot instead of the first request that reads it.
How:   Pydantic Settings reads from environment variables (or .env file),
       validates types/ranges, and provides a singleton `settings` object.
Who:   Passed into create_app(); tests build their own Settings per test.
"""

from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Every value has a development default, so a bare `keepnotes` run works
    from any directory. Attributes are grouped by concern.
    """

    # ── Storage ───────────────────────────────────────────────────────────
    # What: The single JSON document holding every note: {"notes": [...]}
    data_file: str = Field(default="./data/notes.json")

    # What: Directory receiving uploaded attachment bytes
    upload_dir: str = Field(default="./uploads")

    # What: URL prefix under which uploaded files are served
    # Attachment.url is always "<prefix>/<generated filename>"
    upload_url_prefix: str = Field(default="/uploads")

    # ── Notes ─────────────────────────────────────────────────────────────
    default_note_color: str = Field(default="#fff9c4")

    # ── CORS ──────────────────────────────────────────────────────────────
    # Format: Comma-separated origins, or "*" for any origin
    cors_origins: str = Field(default="*")

    @property
    def cors_origins_list(self) -> List[str]:
        """Splits comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    # ── Server ────────────────────────────────────────────────────────────
    backend_host: str = Field(default="0.0.0.0")
    backend_port: int = Field(default=3000, ge=1, le=65535)

    # Valid: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    @field_validator("upload_url_prefix")
    @classmethod
    def validate_upload_url_prefix(cls, v: str) -> str:
        """Normalizes the prefix to '/name' form (leading slash, no trailing slash)."""
        stripped = v.strip().strip("/")
        if not stripped:
            raise ValueError("upload_url_prefix must not be empty")
        return f"/{stripped}"

    # ── Pydantic Settings Config ──────────────────────────────────────────
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,  # DATA_FILE and data_file both work
    }


# Default instance used by `keepnotes.main:app`
settings = Settings()
