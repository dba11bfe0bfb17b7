import os
import re
from functools import lru_cache
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file early so env vars are available for YAML interpolation
_env_file = Path(__file__).parent.parent / ".env"
load_dotenv(_env_file)

# Pattern to match $VAR_NAME environment variable references
ENV_VAR_PATTERN = re.compile(r"\$([A-Z_][A-Z0-9_]*)")


def interpolate_env_vars(value):
    """Recursively replace $VAR_NAME with os.environ values."""
    if isinstance(value, str):

        def replace(match):
            var = match.group(1)
            val = os.environ.get(var)
            if val is None:
                raise ValueError(f"Environment variable ${var} not set")
            return val

        return ENV_VAR_PATTERN.sub(replace, value)
    elif isinstance(value, dict):
        return {k: interpolate_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [interpolate_env_vars(item) for item in value]
    return value


def get_config_path() -> Path:
    """Return the app.yaml path, honouring MOSAIC_CONFIG when set."""
    override = os.environ.get("MOSAIC_CONFIG")
    if override:
        return Path(override)
    return Path.cwd() / "app.yaml"


def load_app_config() -> dict:
    """Load and parse app.yaml with environment variable interpolation."""
    config_path = get_config_path()

    if not config_path.exists():
        raise FileNotFoundError(f"app.yaml not found at {config_path}")

    with open(config_path, "r") as f:
        config = yaml.safe_load(f) or {}

    return interpolate_env_vars(config)


class DatabaseConfig(BaseModel):
    """Database connection configuration."""

    url: str = "sqlite+aiosqlite:///./mosaic.db"
    pool_size: int = 5
    pool_overflow: int = 10
    pool_timeout: int = 30
    pool_pre_ping: bool = False
    echo: bool = False
    # Create missing tables on startup; meant for SQLite development setups
    create_all: bool = False


class I18nConfig(BaseModel):
    """Languages the site is served in."""

    default_locale: str = "pt"
    locales: list[str] = ["pt", "en"]

    @model_validator(mode="after")
    def _default_is_enabled(self) -> "I18nConfig":
        if self.default_locale not in self.locales:
            raise ValueError(
                f"default_locale {self.default_locale!r} must be one of {self.locales}"
            )
        return self


class PaginationConfig(BaseModel):
    """Defaults for list endpoints."""

    default_page_size: int = 25
    max_page_size: int = 100

    @field_validator("default_page_size", "max_page_size")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("page sizes must be at least 1")
        return value


class AuthConfig(BaseModel):
    """API key to permission mapping used by the HTTP layer."""

    api_keys: dict[str, list[str]] = {}


class LogfireConfig(BaseModel):
    """Pydantic Logfire observability configuration."""

    enabled: bool = False
    service_name: str = "mosaic"
    environment: str | None = None
    console: bool = False


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", env_prefix="MOSAIC_", extra="ignore"
    )

    debug: bool = False
    # Upsert the section type catalog on startup
    sync_sections: bool = False

    db: DatabaseConfig = DatabaseConfig()
    i18n: I18nConfig = I18nConfig()
    pagination: PaginationConfig = PaginationConfig()
    auth: AuthConfig = AuthConfig()
    logfire: LogfireConfig = LogfireConfig()


@lru_cache
def get_settings() -> Settings:
    """Load settings from .env and app.yaml."""
    base_settings = Settings()

    try:
        app_config = load_app_config()
    except FileNotFoundError:
        return base_settings

    updates = {}

    if "db" in app_config:
        updates["db"] = DatabaseConfig(**app_config["db"])

    if "i18n" in app_config:
        updates["i18n"] = I18nConfig(**app_config["i18n"])

    if "pagination" in app_config:
        updates["pagination"] = PaginationConfig(**app_config["pagination"])

    if "auth" in app_config:
        updates["auth"] = AuthConfig(**app_config["auth"])

    if "logfire" in app_config:
        updates["logfire"] = LogfireConfig(**app_config["logfire"])

    if "debug" in app_config:
        updates["debug"] = bool(app_config["debug"])

    if "sync_sections" in app_config:
        updates["sync_sections"] = bool(app_config["sync_sections"])

    if updates:
        return base_settings.model_copy(update=updates)

    return base_settings
