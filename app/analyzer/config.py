"""
Application configuration using Pydantic Settings.

Automatically loads environment variables from .env files.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

MEGABYTE = 1024 * 1024


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Upstream generative-AI API (both required, checked per request)
    ai_api_key: str | None = None
    ai_base_url: str | None = None
    ai_model: str = "gemini-2.0-flash"
    ai_auth_mode: Literal["bearer", "query"] = "bearer"

    # Upload limits (4MB when deployed behind a size-constrained host)
    max_upload_bytes: int = Field(default=10 * MEGABYTE, gt=0)
    verify_pdf_header: bool = True

    # Upstream call limits; one request can wait up to timeout * (max_retries + 1) plus backoff
    request_timeout_seconds: float = Field(default=30.0, gt=0)
    max_request_bytes: int = Field(default=25 * MEGABYTE, gt=0)
    max_response_bytes: int = Field(default=5 * MEGABYTE, gt=0)
    max_retries: int = Field(default=1, ge=0)

    # Generation parameters
    temperature: float = Field(default=0.1, ge=0.0, le=2.0)
    max_output_tokens: int = Field(default=2048, ge=1, le=8192)
    top_p: float = Field(default=0.95, gt=0.0, le=1.0)

    # HTTP front door
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]
    static_dir: Path = Path(__file__).resolve().parents[2] / "public"

    # Debug flags
    debug: bool = False

    model_config = SettingsConfigDict(
        # Load from .env file in the project root
        env_file=Path(__file__).resolve().parents[2] / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
        # Case insensitive environment variable names
        case_sensitive=False,
        frozen=True,
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Application configuration loaded from environment.
    """
    return Settings()
