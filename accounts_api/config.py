"""Application configuration using Pydantic Settings.

Every field has a development default so the service starts with no
environment at all; deployments override through env vars or `.env`.
"""

from functools import cached_property

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def parse_comma_list(value: str | list[str] | None, default: list[str]) -> list[str]:
    """Parse comma-separated string into list."""
    if value is None:
        return default
    if isinstance(value, list):
        return value
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database
    database_url: str = "sqlite+aiosqlite:///./data/accounts.db"
    # Run Base.metadata.create_all on startup; disable when Alembic owns the schema
    auto_create_schema: bool = True

    # App settings
    environment: str = Field(
        default="development", validation_alias=AliasChoices("ENVIRONMENT", "ENV")
    )
    debug: bool = False

    # Password hashing work factor (bcrypt log2 rounds, 4..31)
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)

    # Sessions
    session_cookie_name: str = "session_id"
    session_max_age_minutes: int = Field(default=60 * 24, ge=1)

    # Profile pictures
    upload_dir: str = "data/images"
    image_url_prefix: str = "/images"
    max_upload_bytes: int = 5 * 1024 * 1024

    # Only honour X-Forwarded-Proto when running behind a trusted reverse proxy
    trust_proxy: bool = False

    # Env format: CORS_ORIGINS="http://localhost:3000,http://localhost:3001"
    cors_origins_str: str | None = Field(default=None, validation_alias="CORS_ORIGINS")

    @cached_property
    def cors_origins(self) -> list[str]:
        """Extra origins allowed to make credentialed, state-changing requests."""
        return parse_comma_list(self.cors_origins_str, [])

    @property
    def session_max_age_seconds(self) -> int:
        return self.session_max_age_minutes * 60


settings = Settings()
