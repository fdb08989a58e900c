"""
Board engine configuration using pydantic-settings.

Settings are read from BOARD_* environment variables or a .env file and
normalised the same way the canvas normalises user preferences:
widths never drop below 1, smoothing stays in [0, 1] and the anchor snap
tolerance stays in [0, 240] world units.
"""

from pathlib import Path
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

MAX_SNAP_TOLERANCE = 240.0


class Settings(BaseSettings):
    """Canvas, presence and server settings."""

    model_config = SettingsConfigDict(
        env_prefix="BOARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Presence
    cursor_label: str = "You"
    cursor_color: str = "#22d3ee"

    # Freehand ink
    stroke_width: float = 3.0
    stroke_smoothing: float = 0.45

    # Connector defaults
    connector_color: str = "#fbbf24"
    connector_width: float = 2.0
    connector_label: str = "flow"

    # Anchor snapping
    snap_to_anchors: bool = True
    snap_tolerance: float = 32.0

    # Server
    host: str = "127.0.0.1"
    port: int = 8080
    data_file: Optional[Path] = None  # JSON file for board persistence (None = memory only)
    api_base: str = "http://127.0.0.1:8080"

    # Logging
    log_level: str = "INFO"
    log_format: str = "console"  # "console" or "json"

    @field_validator("stroke_width", "connector_width")
    @classmethod
    def floor_width(cls, value: float) -> float:
        return max(1.0, value)

    @field_validator("stroke_smoothing")
    @classmethod
    def clamp_smoothing(cls, value: float) -> float:
        return min(1.0, max(0.0, value))

    @field_validator("snap_tolerance")
    @classmethod
    def clamp_tolerance(cls, value: float) -> float:
        return min(MAX_SNAP_TOLERANCE, max(0.0, value))

    @field_validator("log_format")
    @classmethod
    def check_format(cls, value: str) -> str:
        if value not in ("console", "json"):
            raise ValueError(f"log_format must be 'console' or 'json', got {value!r}")
        return value

    @property
    def effective_snap_tolerance(self) -> float:
        """Snap tolerance in world units, 0 when snapping is switched off."""
        return self.snap_tolerance if self.snap_to_anchors else 0.0


settings = Settings()
