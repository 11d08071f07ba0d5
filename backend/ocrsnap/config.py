"""
OCRSnap Backend — Application Configuration
============================================

What:  Centralized configuration management using Pydantic Settings.
How:   Pydantic Settings reads from environment variables (or .env file),
       validates types/ranges, and provides a singleton `settings` object.
Who:   Imported by every module that needs configuration values.
When:  Loaded once at module import time; validated before app starts.
"""

from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have sensible defaults for development.
    Attributes are grouped by concern for readability.
    """

    # ── Tesseract Engine ──────────────────────────────────────────────────
    # What: Path to the tesseract binary. None = whatever is on PATH.
    tesseract_cmd: Optional[str] = Field(
        default=None,
        description="Absolute path to the tesseract executable",
    )

    # What: Seconds before a single recognition call is abandoned (0 = no limit)
    engine_timeout: int = Field(default=60, ge=0, le=600)

    # ── Recognition Defaults ──────────────────────────────────────────────
    # What: Applied when the form omits the `mode` / `language` field
    default_mode: str = Field(default="fast")
    default_language: str = Field(default="eng")

    # What: Form field name the image attachment is expected under
    image_field: str = Field(default="image")

    # ── Upload Limits ─────────────────────────────────────────────────────
    # What: Maximum accepted image size in bytes
    # Default: 10MB = 10 * 1024 * 1024 = 10485760
    # Valid range: 1MB to 50MB
    max_file_size: int = Field(default=10_485_760, ge=1_048_576, le=52_428_800)

    # ── CORS ──────────────────────────────────────────────────────────────
    # Format: Comma-separated URLs, or "*" for any origin
    cors_origins: str = Field(default="*")

    @property
    def cors_origins_list(self) -> List[str]:
        """Splits comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    # ── Server ────────────────────────────────────────────────────────────
    backend_host: str = Field(default="0.0.0.0")
    backend_port: int = Field(default=8000, ge=1024, le=65535)

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

    @field_validator("default_mode", "default_language")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        """Recognition defaults must be non-empty codes."""
        stripped = v.strip()
        if not stripped:
            raise ValueError("Recognition defaults cannot be blank")
        return stripped

    # ── Rate Limiting ─────────────────────────────────────────────────────
    # What: Per-IP sliding window rate limit
    rate_limit_requests: int = Field(default=100, ge=10, le=10000)
    rate_limit_window: int = Field(default=3600, ge=60, le=86400)  # seconds

    # ── Pydantic Settings Config ──────────────────────────────────────────
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,  # TESSERACT_CMD and tesseract_cmd both work
    }


# Singleton instance, imported throughout the application
settings = Settings()
