"""Application configuration using pydantic-settings."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

PACKAGE_DIR = Path(__file__).resolve().parent
DEFAULT_TEMPLATES_DIR = PACKAGE_DIR / "templates"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    env: Literal["development", "production", "test"] = "development"
    log_level: str = "INFO"

    # Rendering engine discovery
    browser_executable_path: str | None = None
    browser_probe_names: list[str] = Field(
        default_factory=lambda: [
            "chromium",
            "chromium-browser",
            "google-chrome",
            "google-chrome-stable",
        ]
    )
    browser_known_paths: list[str] = Field(
        default_factory=lambda: [
            "/usr/bin/chromium",
            "/usr/bin/chromium-browser",
            "/usr/bin/google-chrome",
            "/usr/bin/google-chrome-stable",
            "/snap/bin/chromium",
            "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome",
            "C:/Program Files/Google/Chrome/Application/chrome.exe",
        ]
    )
    browser_args: list[str] = Field(
        default_factory=lambda: [
            "--no-sandbox",
            "--disable-setuid-sandbox",
            "--disable-dev-shm-usage",
            "--disable-gpu",
        ]
    )

    # Rendering
    render_timeout_ms: int = 30000  # parse + network quiescence
    settle_delay_ms: int = 1000  # grace period for late image decoding
    page_format: str = "A4"

    # Competency layout
    max_items_per_tier: int = 12
    single_page_threshold: int = 7
    headline_size: int = 5
    cap_pretiered_input: bool = False

    # Assets
    templates_dir: Path = DEFAULT_TEMPLATES_DIR
    platform_logo_path: str | None = None

    # Storage naming
    storage_prefix: str = "reports"

    @property
    def is_production(self) -> bool:
        """Check if running in production (managed environment)."""
        return self.env == "production"

    @property
    def is_test(self) -> bool:
        """Check if running in test mode."""
        return self.env == "test"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
