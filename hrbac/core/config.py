"""
Library configuration using Pydantic Settings.
"""

from functools import lru_cache
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RBACSettings(BaseSettings):
    """Permission naming and subject defaults."""

    model_config = SettingsConfigDict(env_prefix="RBAC_")

    delimiter: str = Field(
        default="_",
        description="Joins action and resource into a permission name",
    )
    default_role: str | None = Field(
        default=None,
        description="Role given to new subjects",
    )
    default_permissions: list[str] = Field(
        default_factory=list,
        description="Ad-hoc permission names given to new subjects",
    )

    @field_validator("delimiter")
    @classmethod
    def validate_delimiter(cls, v: str) -> str:
        if not v:
            raise ValueError("delimiter must not be empty")
        return v


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: str = Field(default="INFO")
    format: str = Field(default="json", description="json or text")

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        allowed = {"json", "text"}
        if v not in allowed:
            raise ValueError(f"format must be one of {allowed}")
        return v


class Settings(BaseSettings):
    """Main settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    rbac: RBACSettings = Field(default_factory=RBACSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
