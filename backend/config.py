"""
Page builder configuration — all environment variables in one place.

Read from environment at runtime. Never hardcode secrets.
"""

from __future__ import annotations

import os


def _csv(value: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in value.split(",") if part.strip())


class Settings:
    """Application settings from environment variables."""

    # Database (pages fall back to in-memory storage when unset)
    DATABASE_URL: str = os.environ.get("DATABASE_URL", "")

    # Remote page persistence API used by HttpPageStorage
    PAGE_API_URL: str = os.environ.get("PAGE_API_URL", "")
    PAGE_API_TOKEN: str = os.environ.get("PAGE_API_TOKEN", "")

    # Editor session
    AUTOSAVE_DEBOUNCE_SECONDS: float = float(os.environ.get("AUTOSAVE_DEBOUNCE_SECONDS", "2.0"))
    HISTORY_LIMIT: int = int(os.environ.get("HISTORY_LIMIT", "100"))

    # Rendering
    TABLET_MAX_WIDTH: int = int(os.environ.get("TABLET_MAX_WIDTH", "768"))
    MOBILE_MAX_WIDTH: int = int(os.environ.get("MOBILE_MAX_WIDTH", "480"))
    DEFAULT_UNIT: str = os.environ.get("DEFAULT_UNIT", "px")
    ASSET_BASE_URL: str = os.environ.get("ASSET_BASE_URL", "")

    # Pages the storefront knows about
    VALID_PAGES: tuple[str, ...] = _csv(os.environ.get("VALID_PAGES", "home,categories,products,about,contact"))

    # Application
    ENVIRONMENT: str = os.environ.get("ENVIRONMENT", "development")


# Singleton instance
settings = Settings()

if settings.ENVIRONMENT == "production" and not settings.DATABASE_URL:
    raise RuntimeError("DATABASE_URL environment variable is required")
if settings.MOBILE_MAX_WIDTH >= settings.TABLET_MAX_WIDTH:
    raise RuntimeError("MOBILE_MAX_WIDTH must be smaller than TABLET_MAX_WIDTH")
