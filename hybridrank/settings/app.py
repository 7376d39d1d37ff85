"""Application settings powered by Pydantic BaseSettings."""

from enum import Enum
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EmbeddingProviderName(str, Enum):
    """Embedding backends that can be wired into the pipeline."""

    OPENAI = "openai"
    FASTEMBED = "fastembed"
    NONE = "none"


class AppSettings(BaseSettings):
    """Centralized environment configuration."""

    model_config = SettingsConfigDict(
        env_prefix="", case_sensitive=False, env_file=".env", env_file_encoding="utf-8"
    )

    openai_api_key: str | None = Field(default=None, validation_alias="OPENAI_API_KEY")
    openai_base_url: str = Field(
        default="https://api.openai.com/v1", validation_alias="OPENAI_BASE_URL"
    )
    db_path: Path = Field(
        default=Path("data/hybridrank.sqlite"), validation_alias="HYBRIDRANK_DB_PATH"
    )
    embedding_provider: EmbeddingProviderName = Field(
        default=EmbeddingProviderName.OPENAI,
        validation_alias="HYBRIDRANK_EMBEDDING_PROVIDER",
    )
    embedding_model: str | None = Field(
        default=None, validation_alias="HYBRIDRANK_EMBEDDING_MODEL"
    )
    scoring_config_path: Path | None = Field(
        default=None, validation_alias="HYBRIDRANK_SCORING_CONFIG"
    )


def get_settings() -> AppSettings:
    """Get a settings instance."""
    return AppSettings()
