"""Human-friendly configuration loader.

``AppSettings`` centralises every environment variable the site relies on.

*What:* Which settings exist and what do they control?
*When:* They are read once, the first time ``get_settings()`` is called.
*Why:* Centralising configuration prevents magic strings scattered all over the
codebase.
*How:* Each attribute has a sensible default so the site can boot in
development without extra setup; ``.env`` files and the environment override
them.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Environment-driven application configuration."""

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    BASE_DIR: Path = Field(default_factory=lambda: Path(__file__).resolve().parent.parent)
    TEMPLATES_DIR: Path | None = None
    STATIC_DIR: Path | None = None

    # ---- Persistent store
    # One JSON document holding addresses, rules and the admin password hash.
    DATA_FILE: Path = Path("db.json")

    # ---- Admin authentication
    ADMIN_USERNAME: str = "admin"
    # Only used the very first time the store is created; it is hashed
    # immediately and should be changed from the admin page.
    DEFAULT_ADMIN_PASSWORD: str = "password123"
    BCRYPT_ROUNDS: int = 10

    # Cookie/session secret. MUST be long & random in production.
    SESSION_SECRET: str = Field(
        default="dev-insecure-secret-change-me",
        validation_alias=AliasChoices("SESSION_SECRET", "APP_SECRET"),
    )
    SESSION_COOKIE_NAME: str = "eventmap_session"
    SESSION_MAX_AGE: int = 60 * 60  # one hour from sign-in
    SESSION_HTTPS_ONLY: bool = False

    # Sign-in and password-change attempts allowed per source address.
    RATE_LIMIT_ATTEMPTS: int = 10
    RATE_LIMIT_WINDOW_SECONDS: int = 15 * 60

    # App binding
    HOST: str = "0.0.0.0"
    PORT: int = 3000

    # ---- Geocoding (Nominatim-compatible search endpoint)
    GEOCODER_URL: str = "https://nominatim.openstreetmap.org/search"
    GEOCODER_COUNTRY_CODES: str = "au"
    GEOCODER_USER_AGENT: str = "EventMap/1.0 (server-side)"
    GEOCODER_TIMEOUT_SECONDS: float = 10.0

    # ---- Presentation
    SITE_TITLE: str = "Ardlethan Halloween"
    # Addresses are stored as "<street> <suffix>"; the admin only types the
    # street part. Empty disables the normalisation.
    ADDRESS_SUFFIX: str = "ardlethan nsw 2665"
    # "lat,lon" pairs used when there is nothing better to centre a map on.
    MAP_FALLBACK_CENTER: str = "-33.0,146.9"
    PICKER_FALLBACK_CENTER: str = "-33.8688,151.2093"

    LOG_LEVEL: str = "INFO"

    @property
    def templates_dir(self) -> Path:
        return self.TEMPLATES_DIR or self.BASE_DIR / "templates"

    @property
    def static_dir(self) -> Path:
        return self.STATIC_DIR or self.BASE_DIR / "static"

    @property
    def map_fallback_center(self) -> tuple[float, float]:
        return _parse_center(self.MAP_FALLBACK_CENTER)

    @property
    def picker_fallback_center(self) -> tuple[float, float]:
        return _parse_center(self.PICKER_FALLBACK_CENTER)

    @field_validator("MAP_FALLBACK_CENTER", "PICKER_FALLBACK_CENTER", mode="after")
    @classmethod
    def check_center(cls, value: str) -> str:
        _parse_center(value)
        return value

    @field_validator("ADDRESS_SUFFIX", mode="after")
    @classmethod
    def strip_suffix(cls, value: str) -> str:
        return value.strip()


def _parse_center(value: str) -> tuple[float, float]:
    parts = [item.strip() for item in value.split(",") if item.strip()]
    if len(parts) != 2:
        raise ValueError("map centre must look like 'lat,lon'")
    return float(parts[0]), float(parts[1])


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    return AppSettings()
