"""
Settings from environment variables or .env (pydantic-settings).

Credentials have no defaults: a missing GEMINI_API_KEY switches the mapper
to the offline fallback, a missing Supabase config keeps uploads in memory.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """Every field maps to the upper-case env var of the same name."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # ===================
    # SUPABASE
    # ===================
    supabase_url: Optional[str] = Field(
        None,
        description="Supabase project URL"
    )
    supabase_key: Optional[str] = Field(
        None,
        description="Supabase anon/public key"
    )

    # ===================
    # INFERENCE (GEMINI)
    # ===================
    gemini_api_key: Optional[str] = Field(
        None,
        description="API key for the Gemini generateContent endpoint"
    )
    gemini_model: str = Field(
        default="gemini-1.5-flash",
        description="Model used for field mapping and product names"
    )
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Base URL of the Generative Language API"
    )
    inference_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        le=300,
        description="Transport timeout for the single inference call"
    )
    inference_temperature: float = Field(
        default=0.1,
        ge=0,
        le=1,
        description="Sampling temperature for field mapping"
    )
    inference_min_output_tokens: int = Field(
        default=2048,
        ge=256,
        description="Lower bound for maxOutputTokens"
    )
    inference_max_output_tokens: int = Field(
        default=8192,
        ge=256,
        description="Upper bound for maxOutputTokens"
    )
    inference_tokens_per_field: int = Field(
        default=80,
        ge=10,
        le=1000,
        description="Output tokens budgeted per source field"
    )

    # ===================
    # MAPPING
    # ===================
    fallback_min_similarity: float = Field(
        default=0.5,
        ge=0,
        le=1,
        description="Minimum edit-distance similarity for a fallback match"
    )

    # ===================
    # UPLOADS
    # ===================
    max_upload_size_mb: int = Field(
        default=50,
        ge=1,
        le=500,
        description="Maximum accepted upload size in MB"
    )
    session_ttl_minutes: int = Field(
        default=60,
        ge=1,
        le=1440,
        description="How long normalized uploads stay in the session cache"
    )


    # ===================
    # SERVER
    # ===================
    environment: str = Field(
        default="development",
        pattern="^(development|staging|production)$",
        description="development enables /docs and auto-reload"
    )
    debug: bool = Field(default=True, description="Expose docs and error details")
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$"
    )
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8000, ge=1000, le=65535)
    cors_origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="Frontends allowed to call the API (JSON list in env)"
    )

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def inference_configured(self) -> bool:
        """A non-blank Gemini key is present."""
        return bool(self.gemini_api_key and self.gemini_api_key.strip())

    @property
    def persistence_configured(self) -> bool:
        """Both Supabase URL and key are present."""
        return bool(self.supabase_url and self.supabase_key)

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024


@lru_cache()
def get_settings() -> Settings:
    """Load settings once per process (get_settings.cache_clear() reloads)."""
    return Settings()


settings = get_settings()
