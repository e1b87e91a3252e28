"""
Configuration management for ScanReport.

Uses Pydantic Settings for type-safe environment variable handling.
All configuration is loaded from environment variables or .env file.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # ==========================================================================
    # Application
    # ==========================================================================
    app_name: str = "ScanReport"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"

    # ==========================================================================
    # Server
    # ==========================================================================
    host: str = "0.0.0.0"
    port: int = 8000

    # ==========================================================================
    # Rate Limiting
    # ==========================================================================
    rate_limit_per_minute: int = 30

    # ==========================================================================
    # File Upload
    # ==========================================================================
    max_file_size_mb: int = 20
    allowed_image_extensions: str = ".png,.jpg,.jpeg,.bmp,.tif,.tiff"

    # ==========================================================================
    # Overlay Style (pixels in image space)
    # ==========================================================================
    label_font_path: Optional[str] = None
    label_font_size: int = 14
    label_padding_x: int = 12
    label_height: int = 20
    label_margin: int = 4
    highlight_alpha: float = 0.3
    stroke_width: int = 2
    highlight_color: str = "#ff3b30"
    stroke_color: str = "#ff3b30"
    label_background_color: str = "#ff3b30"
    label_text_color: str = "#ffffff"

    # ==========================================================================
    # Document Layout (PDF points)
    # ==========================================================================
    page_size: Literal["A4", "letter"] = "A4"
    page_margin: float = 50.0
    disclaimer_bottom_margin: float = 36.0
    max_image_height: float = 360.0
    block_spacing: float = 10.0
    body_font: str = "Helvetica"
    bold_font: str = "Helvetica-Bold"
    italic_font: str = "Helvetica-Oblique"
    title_font_size: float = 20.0
    heading_font_size: float = 14.0
    body_font_size: float = 11.0
    disclaimer_font_size: float = 8.5
    line_height_factor: float = 1.35
    report_title: str = "Medical Scan Analysis Report"
    disclaimer_text: str = (
        "Disclaimer: This report was generated by an automated image analysis "
        "system and is provided for informational purposes only. It is not a "
        "medical diagnosis and must be reviewed by a qualified healthcare "
        "professional before any clinical decision is made."
    )

    # ==========================================================================
    # Output Settings
    # ==========================================================================
    output_dir: str = "outputs"

    # ==========================================================================
    # Computed Properties
    # ==========================================================================
    @property
    def max_file_size_bytes(self) -> int:
        """Maximum file size in bytes."""
        return self.max_file_size_mb * 1024 * 1024

    @property
    def image_extensions(self) -> list[str]:
        """List of allowed image extensions."""
        return [ext.strip() for ext in self.allowed_image_extensions.split(",")]

    @property
    def output_path(self) -> Path:
        """Path to output directory."""
        path = Path(self.output_dir)
        path.mkdir(parents=True, exist_ok=True)
        return path


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()


# Convenience access
settings = get_settings()
