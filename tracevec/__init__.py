"""tracevec: raster to vector conversion by region clustering and tracing.

Converts color, binary or segmentation raster images into SVG documents by
partitioning pixels into homogeneous regions and tracing each region's
boundary into simplified path geometry.
"""

__version__ = "0.1.0"

from tracevec.config import Config, ConverterConfig
from tracevec.converter import convert, convert_array, convert_image_to_svg
from tracevec.document import VectorDocument
from tracevec.svg_export import generate_svg
from tracevec.types import (
    ColorMode,
    Hierarchical,
    PathSimplifyMode,
    VectorizationError,
    InputError,
    KeyColorExhaustedError,
    OutputWriteError,
    ConfigError,
)

__all__ = [
    "Config",
    "ConverterConfig",
    "convert",
    "convert_array",
    "convert_image_to_svg",
    "VectorDocument",
    "generate_svg",
    "ColorMode",
    "Hierarchical",
    "PathSimplifyMode",
    "VectorizationError",
    "InputError",
    "KeyColorExhaustedError",
    "OutputWriteError",
    "ConfigError",
]
