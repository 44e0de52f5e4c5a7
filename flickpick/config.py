"""Application configuration models."""

from __future__ import annotations

from functools import lru_cache
from typing import Iterable, Literal

from pydantic import Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_ALLOWED_ORIGINS: tuple[str, ...] = ("*",)


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="FlickPick", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=5000, alias="PORT")
    api_prefix: str = Field(default="/api", alias="API_PREFIX")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    jwt_secret: str | None = Field(default=None, alias="JWT_SECRET")
    bcrypt_rounds: int = Field(default=10, alias="BCRYPT_ROUNDS", ge=10, le=15)

    database_url: str = Field(
        default="sqlite+aiosqlite:///./flickpick.db", alias="DATABASE_URL"
    )

    tmdb_api_key: str | None = Field(default=None, alias="TMDB_API_KEY")
    tmdb_api_url: HttpUrl = Field(
        default="https://api.themoviedb.org/3", alias="TMDB_API_URL"
    )
    tmdb_timeout_seconds: float = Field(
        default=10.0, alias="TMDB_TIMEOUT", gt=0, le=120
    )
    tmdb_max_concurrency: int = Field(
        default=8, alias="TMDB_MAX_CONCURRENCY", ge=1, le=64
    )
    default_genre_id: int = Field(default=28, alias="DEFAULT_GENRE_ID", ge=1)

    allowed_origins_raw: str = Field(default="*", alias="ALLOWED_ORIGINS")

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator("jwt_secret", "tmdb_api_key", mode="before")
    @classmethod
    def _blank_secret_is_unset(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("allowed_origins_raw", mode="before")
    @classmethod
    def _join_origin_list(cls, value: object) -> str:
        if value is None:
            return "*"
        if isinstance(value, str):
            return value
        if isinstance(value, Iterable):
            return ",".join(str(part) for part in value)
        raise TypeError("ALLOWED_ORIGINS must be a string or iterable of strings")

    @property
    def allowed_origins(self) -> tuple[str, ...]:
        """Return the configured browser origins, de-duplicated in order."""

        raw_values = [part.strip() for part in self.allowed_origins_raw.split(",")]
        cleaned: list[str] = []
        for entry in raw_values:
            origin = entry.rstrip("/")
            if origin and origin not in cleaned:
                cleaned.append(origin)
        if not cleaned:
            return DEFAULT_ALLOWED_ORIGINS
        return tuple(cleaned)

    @field_validator("api_prefix", mode="before")
    @classmethod
    def _normalise_api_prefix(cls, value: object) -> str:
        prefix = str(value or "").strip().strip("/")
        return f"/{prefix}" if prefix else ""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]
