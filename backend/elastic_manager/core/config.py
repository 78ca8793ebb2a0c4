import os
from typing import List, Literal
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator


class Settings(BaseSettings):
    """
    Elastic application manager configuration
    Manages all environment variables with validation and type safety
    """

    # Basic application settings
    APP_NAME: str = "Elastic Application Manager"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Root logging level"
    )

    # API settings
    API_PREFIX: str = "/api/v1"
    ALLOWED_ORIGINS: List[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins"
    )

    # Registration store
    STORE_BACKEND: Literal["sql", "memory"] = Field(
        default="sql",
        description="Registration store implementation: sql or memory"
    )
    DATABASE_URL: str = Field(
        default="sqlite+aiosqlite:///./elastic_manager.db",
        description="SQLAlchemy database URL used by the sql store"
    )

    # Error mapping
    DISTINCT_ERROR_STATUS: bool = Field(
        default=False,
        description="Map each error kind to its own HTTP status instead of 400"
    )

    model_config = SettingsConfigDict(
        env_file=os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))), ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True
    )

    @property
    def ASYNC_DATABASE_URL(self) -> str:
        if self.DATABASE_URL.startswith("postgresql://"):
            return self.DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://", 1)
        return self.DATABASE_URL

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def parse_allowed_origins(cls, v):
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid LOG_LEVEL: {v}")
        return level


settings = Settings()
