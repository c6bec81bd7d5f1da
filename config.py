"""Configuration management for the funnel layout tools.

This module handles environment variable loading and application configuration
using pydantic-settings for type-safe configuration management.
"""

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from funnel_model.colorizer import is_hex_color


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Attributes:
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        CHART_WIDTH: Default outer chart width in pixels.
        CHART_HEIGHT: Default outer chart height in pixels.
        LABEL_FORMAT: Default label template ({l}, {v}, {f}).
        LABEL_FILL: Default label color.
        OUTPUT_DIR: Directory name, under the project root, for saved layouts.
    """

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore',
        case_sensitive=True
    )

    LOG_LEVEL: str = Field(
        default="ERROR",
        description="Logging level"
    )

    CHART_WIDTH: float = Field(
        default=350,
        gt=0,
        description="Default chart width in pixels"
    )

    CHART_HEIGHT: float = Field(
        default=400,
        gt=0,
        description="Default chart height in pixels"
    )

    LABEL_FORMAT: str = Field(
        default="{l}: {f}",
        description="Default label template"
    )

    LABEL_FILL: str = Field(
        default="#fff",
        description="Default label color"
    )

    OUTPUT_DIR: str = Field(
        default="layouts",
        description="Directory for saved layouts"
    )

    @field_validator('LOG_LEVEL')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the standard levels."""
        valid_levels = {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(
                f"LOG_LEVEL must be one of {valid_levels}, got '{v}'"
            )
        return v_upper

    @field_validator('LABEL_FILL')
    @classmethod
    def validate_label_fill(cls, v: str) -> str:
        """Validate the label color is a 3- or 6-digit hex color."""
        if not is_hex_color(v):
            raise ValueError(f"LABEL_FILL must be a hex color, got '{v}'")
        return v


def get_project_root() -> Path:
    """Get the project root directory.

    Returns:
        Path object pointing to the project root.
    """
    return Path(__file__).parent


def get_output_dir() -> Path:
    """Get the layout output directory.

    Returns:
        Path object pointing to the output directory.
    """
    output_dir = get_project_root() / settings.OUTPUT_DIR
    output_dir.mkdir(exist_ok=True)
    return output_dir


# Global settings instance
settings = Settings()
