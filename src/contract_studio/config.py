"""
Configuration management for Contract Studio.

Loads settings from environment variables with sensible defaults.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # Environment
    # ==========================================================================
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: str = "INFO"
    log_json: bool = False

    # ==========================================================================
    # AI Backend Credentials
    # ==========================================================================
    openai_api_key: str = Field(default="", description="OpenAI API key")
    gemini_api_key: str = Field(default="", description="Google Gemini API key")
    grok_api_key: str = Field(default="", description="xAI Grok API key")
    anthropic_api_key: str = Field(default="", description="Anthropic API key for Claude")

    # ==========================================================================
    # AI Backend Configuration
    # ==========================================================================
    openai_model: str = "gpt-4o"
    analysis_model: str = "gpt-4o-mini"
    gemini_model: str = "gemini-1.5-pro"
    grok_model: str = "grok-2-latest"
    grok_base_url: str = "https://api.x.ai/v1"
    claude_model: str = "claude-sonnet-4-20250514"

    analysis_ai_model: str = "openai"
    generation_temperature: float = 0.3
    gemini_temperature: float = 0.2
    llm_max_tokens: int = 4096

    # Upstream calls slower than this fail the analysis
    analysis_timeout_seconds: float = 120.0
    # Documents analyzing longer than this are expired by the CLI
    stale_analysis_minutes: int = 30
    # Contracts generating longer than this may be restarted or expired
    stale_generation_minutes: int = 10

    # ==========================================================================
    # Database
    # ==========================================================================
    # Unset means the in-memory store
    database_url: str | None = None
    db_echo: bool = False

    # ==========================================================================
    # API Configuration
    # ==========================================================================
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    # Comma-separated; "*" allows any origin
    cors_origins: str = "*"

    @field_validator("analysis_ai_model")
    @classmethod
    def normalize_ai_model(cls, v: str) -> str:
        return v.strip().lower()

    @property
    def cors_origin_list(self) -> list[str]:
        """CORS origins as a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def uses_database(self) -> bool:
        return bool(self.database_url)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
