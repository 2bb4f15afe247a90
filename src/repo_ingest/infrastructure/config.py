"""Application configuration, loaded from environment variables."""

from __future__ import annotations

from functools import lru_cache

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from repo_ingest.domain.entities import (
    DEFAULT_EXCLUDED_EXTENSIONS,
    DEFAULT_IGNORED_DIRECTORIES,
    IngestionConfig,
)
from repo_ingest.infrastructure.github_rest_adapter import GITHUB_API, RAW_BASE


class Settings(BaseSettings):
    """Central configuration loaded from env vars (or ``.env`` file)."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    github_token: SecretStr | None = None
    github_api_url: str = GITHUB_API
    github_raw_url: str = RAW_BASE
    http_timeout_seconds: float = 30.0
    max_file_size_kb: int = 500
    excluded_extensions: frozenset[str] = DEFAULT_EXCLUDED_EXTENSIONS
    ignored_directories: frozenset[str] = DEFAULT_IGNORED_DIRECTORIES
    concurrency_limit: int = 5
    include_all_files: bool = False
    fetch_timeout_seconds: float | None = None
    log_level: str = "INFO"

    @field_validator("excluded_extensions")
    @classmethod
    def _normalise_extensions(cls, v: frozenset[str]) -> frozenset[str]:
        return frozenset(
            ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in v
        )

    @field_validator("concurrency_limit")
    @classmethod
    def _positive_limit(cls, v: int) -> int:
        if v < 1:
            msg = "concurrency_limit must be at least 1."
            raise ValueError(msg)
        return v

    def to_ingestion_config(self) -> IngestionConfig:
        """Build the explicit engine configuration from these settings."""
        return IngestionConfig(
            max_file_size_kb=self.max_file_size_kb,
            excluded_extensions=self.excluded_extensions,
            ignored_directories=self.ignored_directories,
            concurrency_limit=self.concurrency_limit,
            include_all_files=self.include_all_files,
            fetch_timeout_seconds=self.fetch_timeout_seconds,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the singleton application settings (cached after first call)."""
    return Settings()
