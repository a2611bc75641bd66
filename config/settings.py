"""
Centralized configuration for the linked LISA views.

Handles environment variables, interaction tuning and colour palettes
with typed defaults applied at construction.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Tuple


LABELS = ("High-high", "High-low", "Low-high", "Low-low", "Not significant")


@dataclass
class ColorScheme:
    """Cluster label palette plus accent colours shared by every view."""

    high_high: str = "#ff3d47"
    high_low: str = "#f99ae4"
    low_high: str = "#94d1ff"
    low_low: str = "#186ffb"
    not_significant: str = "#f0f0f0"
    not_significant_point: str = "#d1d1d1"

    highlight: str = "orange"
    connection: str = "blue"
    distribution: str = "#E5E4E2"
    positive_autocorrelation: str = "green"
    negative_autocorrelation: str = "purple"
    outlier: str = "purple"
    font: str = "#414848"

    def label_colors(self, point_mode: bool = False) -> Dict[str, str]:
        """Map cluster labels to fill colours."""
        return {
            "High-high": self.high_high,
            "High-low": self.high_low,
            "Low-high": self.low_high,
            "Low-low": self.low_low,
            "Not significant": self.not_significant_point if point_mode else self.not_significant,
        }

    def color_for(self, label: Optional[str], point_mode: bool = False) -> str:
        return self.label_colors(point_mode).get(label, self.not_significant_point)


@dataclass
class ViewConfig:
    """Interaction and geometry tuning for the coordinated views."""

    # Hit testing (screen pixels)
    hover_distance: float = 15.0
    map_hover_distance: float = 30.0

    # Single vs double click discrimination (seconds)
    click_window: float = 0.2

    # Density estimation
    density_resolution: int = 50
    density_threshold: float = 0.001

    # Point styling by tier
    r_small: float = 2.0
    r_medium: float = 3.0
    r_big: float = 5.0
    point_opacity: float = 0.5
    dim_opacity: float = 0.1

    # Radial neighbor plot
    radial_size: float = 180.0
    radial_margin: float = 5.0
    inner_radius: float = 15.0
    point_radius: Tuple[float, float] = (2.0, 5.0)

    @classmethod
    def from_env(cls) -> "ViewConfig":
        """Load view tuning from environment variables."""
        return cls(
            hover_distance=float(os.getenv("HOVER_DISTANCE", "15")),
            map_hover_distance=float(os.getenv("MAP_HOVER_DISTANCE", "30")),
            click_window=float(os.getenv("CLICK_WINDOW", "0.2")),
            density_resolution=int(os.getenv("DENSITY_RESOLUTION", "50")),
            density_threshold=float(os.getenv("DENSITY_THRESHOLD", "0.001")),
        )


@dataclass
class AppConfig:
    """Application-level configuration."""

    title: str = "LISA Linked Views"
    page_icon: str = "🗺️"
    layout: str = "wide"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Load app config from environment variables."""
        return cls(
            title=os.getenv("APP_TITLE", "LISA Linked Views"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )


class Config:
    """Global configuration manager."""

    _instance: Optional["Config"] = None

    def __init__(self):
        self.app = AppConfig.from_env()
        self.view = ViewConfig.from_env()
        self.colors = ColorScheme()
        self.root_dir = Path(__file__).parent.parent
        self.data_dir = self.root_dir / "data"

    @classmethod
    def load(cls) -> "Config":
        """Singleton pattern - load or return existing config."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance


def configure_logging(level: str = "INFO") -> None:
    """Apply the shared log format to the root logger."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
