"""Build configuration using Pydantic settings."""

from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_BROWSER_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--no-zygote",
    "--single-process",
    "--disable-gpu",
    "--disable-web-security",
    "--disable-features=VizDisplayCompositor",
]


class Settings(BaseSettings):
    """Central build configuration."""

    model_config = SettingsConfigDict(
        env_prefix="CRITICAL_CSS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    app_name: str = "critical-inline"
    debug: bool = False
    log_json: bool = False

    viewport_width: int = 1200
    viewport_height: int = 800
    output_dir: str = "_site"
    timeout_ms: int = 30_000

    headless: bool = True
    browser_executable_path: Optional[str] = None
    browser_args: List[str] = list(DEFAULT_BROWSER_ARGS)


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()


settings = get_settings()
