"""Centralized configuration for Data Transform using Pydantic Settings."""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from datatransform.version import __version__


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be overridden via environment variables with the
    DATATRANSFORM_ prefix. For example:
        DATATRANSFORM_INDENT=4
        DATATRANSFORM_INPUT_MODE=file
    """

    model_config = SettingsConfigDict(
        env_prefix="DATATRANSFORM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def version(self) -> str:
        return __version__

    # Output
    indent: int = 2
    query_output: Literal["json", "csv", "lines"] = "json"
    diff_format: Literal["json", "unified"] = "json"

    # Input resolution: auto tries the filesystem first, then inline JSON
    input_mode: Literal["auto", "file", "inline"] = "auto"

    # Limits
    max_depth: int = 10000
    max_expression_length: int = 4096

    # Logging
    log_level: str = "WARNING"


def get_settings() -> Settings:
    """Get settings instance.

    Creates a new instance each time to pick up .env changes.
    """
    return Settings()


settings = get_settings()
