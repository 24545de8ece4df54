"""Conversion configuration and presets."""
import math
from dataclasses import dataclass, replace

from tracevec.types import ColorMode, ConfigError, Hierarchical, PathSimplifyMode

# Clustering engine constants
BATCH_SIZE = 25600
HIERARCHICAL_MAX = 2**32 - 1
CUTOUT_HIERARCHY_DEPTH = 64


@dataclass
class ConverterConfig:
    """Derived configuration consumed by the conversion pipeline.

    Thresholds are in engine units: areas in pixels, angles in radians,
    color precision as a number of dropped low bits per channel.
    """
    color_mode: ColorMode = ColorMode.COLOR
    hierarchical: Hierarchical = Hierarchical.STACKED
    filter_speckle_area: int = 16
    color_precision_loss: int = 2
    layer_difference: int = 16
    mode: PathSimplifyMode = PathSimplifyMode.SPLINE
    corner_threshold: float = math.radians(60)
    length_threshold: float = 4.0
    max_iterations: int = 10
    splice_threshold: float = math.radians(45)
    max_error: float = 1.0
    path_precision: int = 2


@dataclass
class Config:
    """User-facing configuration for the tracing pipeline."""

    # Input interpretation
    color_mode: ColorMode = ColorMode.COLOR
    hierarchical: Hierarchical = Hierarchical.STACKED

    # Clustering
    filter_speckle: int = 4  # Side length in pixels, squared into an area
    color_precision: int = 6  # Significant bits per channel
    layer_difference: int = 16  # 0 = diagonal adjacency, single level

    # Path simplification
    mode: PathSimplifyMode = PathSimplifyMode.SPLINE
    corner_threshold: int = 60  # Degrees
    length_threshold: float = 4.0
    max_iterations: int = 10
    splice_threshold: int = 45  # Degrees
    max_error: float = 1.0

    # Output
    path_precision: int = 2  # Decimal places for SVG coordinates

    def validate(self) -> "Config":
        """Check value ranges.

        Raises:
            ConfigError: If any value is out of range
        """
        if not 1 <= self.color_precision <= 8:
            raise ConfigError(f"color_precision must be in 1..8, got {self.color_precision}")
        if self.filter_speckle < 0:
            raise ConfigError(f"filter_speckle must be >= 0, got {self.filter_speckle}")
        if self.layer_difference < 0:
            raise ConfigError(f"layer_difference must be >= 0, got {self.layer_difference}")
        if not 3.5 <= self.length_threshold <= 10.0:
            raise ConfigError(
                f"length_threshold must be in [3.5, 10], got {self.length_threshold}"
            )
        if self.max_iterations < 0:
            raise ConfigError(f"max_iterations must be >= 0, got {self.max_iterations}")
        if self.path_precision < 0:
            raise ConfigError(f"path_precision must be >= 0, got {self.path_precision}")
        if self.max_error <= 0:
            raise ConfigError(f"max_error must be > 0, got {self.max_error}")
        return self

    def into_converter_config(self) -> ConverterConfig:
        """Derive engine units from user units."""
        self.validate()
        return ConverterConfig(
            color_mode=self.color_mode,
            hierarchical=self.hierarchical,
            filter_speckle_area=self.filter_speckle * self.filter_speckle,
            color_precision_loss=8 - self.color_precision,
            layer_difference=self.layer_difference,
            mode=self.mode,
            corner_threshold=math.radians(self.corner_threshold),
            length_threshold=self.length_threshold,
            max_iterations=self.max_iterations,
            splice_threshold=math.radians(self.splice_threshold),
            max_error=self.max_error,
            path_precision=self.path_precision,
        )

    @classmethod
    def from_preset(cls, name: str) -> "Config":
        """Build a configuration from a named preset (bw, poster, photo)."""
        try:
            return replace(PRESETS[name])
        except KeyError:
            raise ConfigError(
                f"Unknown preset '{name}', expected one of {sorted(PRESETS)}"
            ) from None


PRESETS = {
    "bw": Config(
        color_mode=ColorMode.BINARY,
        hierarchical=Hierarchical.STACKED,
        filter_speckle=4,
        color_precision=6,
        layer_difference=16,
        mode=PathSimplifyMode.SPLINE,
        corner_threshold=60,
        length_threshold=4.0,
        max_iterations=10,
        splice_threshold=45,
    ),
    "poster": Config(
        color_mode=ColorMode.COLOR,
        hierarchical=Hierarchical.STACKED,
        filter_speckle=4,
        color_precision=8,
        layer_difference=16,
        mode=PathSimplifyMode.SPLINE,
        corner_threshold=60,
        length_threshold=4.0,
        max_iterations=10,
        splice_threshold=45,
    ),
    "photo": Config(
        color_mode=ColorMode.COLOR,
        hierarchical=Hierarchical.STACKED,
        filter_speckle=10,
        color_precision=8,
        layer_difference=48,
        mode=PathSimplifyMode.SPLINE,
        corner_threshold=180,
        length_threshold=4.0,
        max_iterations=10,
        splice_threshold=45,
    ),
}
