"""Clustering pass orchestration for color images."""
import logging
from typing import Optional, Tuple

from tracevec.clusters import ClusterEngine, ClustersView, ColorClusterEngine, RunnerConfig
from tracevec.config import BATCH_SIZE, CUTOUT_HIERARCHY_DEPTH, HIERARCHICAL_MAX, ConverterConfig
from tracevec.types import NO_KEY, Hierarchical, ImageArray, KeyingAction

logger = logging.getLogger(__name__)


def first_pass_config(
    width: int,
    height: int,
    config: ConverterConfig,
    key_color: Tuple[int, int, int],
) -> RunnerConfig:
    """Runner settings for the initial hierarchical pass."""
    cutout = config.hierarchical == Hierarchical.CUTOUT
    return RunnerConfig(
        diagonal=config.layer_difference == 0,
        hierarchical=HIERARCHICAL_MAX,
        batch_size=BATCH_SIZE,
        good_min_area=config.filter_speckle_area,
        good_max_area=width * height,
        is_same_color_a=config.color_precision_loss,
        is_same_color_b=1,
        deepen_diff=config.layer_difference,
        hollow_neighbours=1,
        key_color=key_color,
        keying_action=KeyingAction.KEEP if cutout else KeyingAction.DISCARD,
    )


def cutout_pass_config(
    width: int,
    height: int,
    key_color: Tuple[int, int, int],
) -> RunnerConfig:
    """Runner settings for re-clustering the flattened composite in cutout mode."""
    return RunnerConfig(
        diagonal=False,
        hierarchical=CUTOUT_HIERARCHY_DEPTH,
        batch_size=BATCH_SIZE,
        good_min_area=0,
        good_max_area=width * height,
        is_same_color_a=0,
        is_same_color_b=1,
        deepen_diff=0,
        hollow_neighbours=0,
        key_color=key_color,
        keying_action=KeyingAction.DISCARD,
    )


def run_clustering(
    image: ImageArray,
    config: ConverterConfig,
    key_color: Tuple[int, int, int],
    engine: Optional[ClusterEngine] = None,
) -> ClustersView:
    """
    Cluster a keyed color image.

    Stacked mode uses a single hierarchical pass. Cutout mode flattens that
    pass into a composite image and clusters the composite again, flat and
    exact-color, so overlapping layers become disjoint pieces. Pixels the
    first pass leaves uncovered are flattened to the key color, so the
    second pass discards them with the transparent area.

    Args:
        image: (H, W, 4) keyed RGBA image
        config: Converter configuration
        key_color: Key color, or NO_KEY
        engine: Clustering engine (defaults to ColorClusterEngine)

    Returns:
        View over the clusters of the final pass, in emission order
    """
    engine = engine or ColorClusterEngine()
    height, width = image.shape[:2]

    clusters = engine.cluster(image, first_pass_config(width, height, config, key_color))
    logger.info(f"First clustering pass: {clusters.output_len()} clusters")

    if config.hierarchical == Hierarchical.CUTOUT:
        background = key_color if tuple(key_color) != NO_KEY else None
        composite = clusters.view().to_color_image(background)
        clusters = engine.cluster(composite, cutout_pass_config(width, height, key_color))
        logger.info(f"Cutout clustering pass: {clusters.output_len()} clusters")

    return clusters.view()
