"""Raster to vector conversion: mode dispatch and pipeline entry points."""
import logging
from pathlib import Path
from typing import Optional, Union

import numpy as np

from tracevec.clusters import ClusterEngine, label_clusters
from tracevec.config import Config, ConverterConfig
from tracevec.document import VectorDocument
from tracevec.keying import key_image
from tracevec.orchestrator import run_clustering
from tracevec.path_builder import build_color_paths, build_shape_paths
from tracevec.raster_ingest import (
    color_image_from_array,
    read_color_image,
    read_seg_image,
    seg_image_from_array,
)
from tracevec.svg_export import generate_svg, save_svg
from tracevec.types import ColorMode, Hierarchical, ImageArray, VectorizationError

logger = logging.getLogger(__name__)

# Fill used for every shape in binary and segmentation modes
FOREGROUND_COLOR = (0, 0, 0)

# Binary mode: a pixel is foreground when its red channel is below this
BINARY_THRESHOLD = 128


def color_image_to_svg(
    image: ImageArray,
    config: ConverterConfig,
    rng: Optional[np.random.Generator] = None,
    engine: Optional[ClusterEngine] = None,
) -> VectorDocument:
    """
    Convert an RGBA image with color clustering.

    Outlines are traced 8-connected only for a stacked single-level pass
    (layer_difference 0); the cutout pass is always 4-connected.

    Args:
        image: (H, W, 4) RGBA array, modified in place by keying
        config: Converter configuration
        rng: Random source for the key color search
        engine: Clustering engine override

    Returns:
        VectorDocument with one entry per cluster, bottom-most first

    Raises:
        KeyColorExhaustedError: If keying is needed but impossible
    """
    height, width = image.shape[:2]
    image, key_color = key_image(image, rng)

    view = run_clustering(image, config, key_color, engine)

    diagonal = config.layer_difference == 0 and config.hierarchical == Hierarchical.STACKED

    document = VectorDocument(width, height, config.path_precision)
    document.extend(build_color_paths(view, config, diagonal=diagonal))
    return document


def binary_image_to_svg(image: ImageArray, config: ConverterConfig) -> VectorDocument:
    """Convert an RGBA image thresholded on its red channel."""
    height, width = image.shape[:2]
    mask = image[..., 0] < BINARY_THRESHOLD

    clusters = label_clusters(mask, diagonal=False, background=0)
    logger.info(f"Binary image has {len(clusters)} foreground components")

    document = VectorDocument(width, height, config.path_precision)
    document.extend(build_shape_paths(clusters, config, FOREGROUND_COLOR))
    return document


def seg_image_to_svg(labels: ImageArray, config: ConverterConfig) -> VectorDocument:
    """Convert a label image; every component of equal label is traced, label 0 included."""
    height, width = labels.shape[:2]

    clusters = label_clusters(labels, diagonal=False, background=None)
    logger.info(f"Segmentation image has {len(clusters)} labelled components")

    document = VectorDocument(width, height, config.path_precision)
    document.extend(build_shape_paths(clusters, config, FOREGROUND_COLOR))
    return document


def convert_array(
    image: np.ndarray,
    config: Optional[Config] = None,
    rng: Optional[np.random.Generator] = None,
    engine: Optional[ClusterEngine] = None,
) -> VectorDocument:
    """
    Convert an in-memory image.

    The array is copied before processing, so the caller's data is untouched.

    Raises:
        InputError: If the array layout does not match the color mode
        VectorizationError: If conversion fails
    """
    converter_config = (config or Config()).into_converter_config()
    mode = converter_config.color_mode
    logger.info(f"Converting {mode.value} image")

    if mode == ColorMode.SEG:
        return seg_image_to_svg(seg_image_from_array(image), converter_config)

    image = color_image_from_array(image)
    if mode == ColorMode.BINARY:
        return binary_image_to_svg(image, converter_config)
    return color_image_to_svg(image, converter_config, rng, engine)


def convert(
    input_path: Union[str, Path],
    config: Optional[Config] = None,
    rng: Optional[np.random.Generator] = None,
) -> VectorDocument:
    """
    Convert an image file into an in-memory vector document.

    Raises:
        InputError: If the file is missing or undecodable
        VectorizationError: If conversion fails
    """
    config = config or Config()
    if config.color_mode == ColorMode.SEG:
        image = read_seg_image(input_path)
    else:
        image = read_color_image(input_path)

    return convert_array(image, config, rng)


def convert_image_to_svg(
    input_path: Union[str, Path],
    output_path: Union[str, Path],
    config: Optional[Config] = None,
    rng: Optional[np.random.Generator] = None,
) -> str:
    """
    Convert an image file and write the SVG document.

    Nothing is written when conversion fails.

    Returns:
        SVG string

    Raises:
        VectorizationError: If loading, conversion or writing fails
    """
    try:
        document = convert(input_path, config, rng)
    except VectorizationError:
        raise
    except Exception as e:
        raise VectorizationError(f"Conversion failed: {e}") from e

    svg = generate_svg(document)
    save_svg(svg, output_path)
    logger.info(f"Wrote {len(document)} paths to {output_path}")
    return svg
