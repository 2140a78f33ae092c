import os
import logging
from functools import lru_cache
from typing import Annotated, List
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from pydantic import Field, field_validator


class Settings(BaseSettings):
    """
    Sample load-testing service configuration
    Manages all environment variables with validation and type safety
    """

    # Basic application settings
    APP_NAME: str = "Liberty Sample Service"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # API settings
    API_PREFIX: str = "/api"
    ALLOWED_ORIGINS: Annotated[List[str], NoDecode] = Field(
        default=["http://localhost:3000", "http://localhost:9080"],
        description="Allowed CORS origins"
    )

    # Server
    HOST: str = Field(
        default="0.0.0.0",
        description="Bind address for the development server"
    )
    PORT: int = Field(
        default=9080,
        ge=1, le=65535,
        description="Bind port for the development server"
    )

    # Logging
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Root log level (DEBUG|INFO|WARNING|ERROR|CRITICAL)"
    )

    # Feature flags
    ENABLE_DEBUG_ENDPOINTS: bool = Field(
        default=False,
        description="Expose /api/info with host and runtime details"
    )
    METRICS_ENABLED: bool = Field(
        default=True,
        description="Expose Prometheus metrics on /metrics"
    )

    model_config = SettingsConfigDict(
        env_file=os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))), ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True
    )

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def parse_allowed_origins(cls, v):
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        level = v.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Invalid LOG_LEVEL: {v}")
        return level


@lru_cache
def get_settings() -> Settings:
    """Cached settings accessor for dependency injection"""
    return Settings()


# Global settings instance
settings = get_settings()
