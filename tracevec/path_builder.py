"""Per-region shape classification and compound path construction."""
import logging
from typing import Iterable, List, Tuple

import numpy as np

from tracevec.boundary_tracing import trace_boundaries
from tracevec.clusters import Cluster, ClustersView
from tracevec.config import ConverterConfig
from tracevec.path_simplify import simplify_outline
from tracevec.shape import approximate_circle_with_spline
from tracevec.types import Color, CompoundPath, PathSimplifyMode

logger = logging.getLogger(__name__)


def mask_to_compound_path(
    mask: np.ndarray,
    left_top: Tuple[int, int],
    config: ConverterConfig,
    diagonal: bool = False,
) -> CompoundPath:
    """
    Trace every outline of a mask (outer outlines and holes) and simplify it.

    Args:
        mask: Boolean mask cropped to the region's bounding rectangle
        left_top: Image position of the mask's top-left pixel
        config: Simplification settings
        diagonal: Whether the region is 8-connected

    Returns:
        CompoundPath in image coordinates, possibly with several sub-paths
    """
    offset = np.asarray(left_top)
    paths = CompoundPath()

    for outline in trace_boundaries(mask, diagonal=diagonal):
        sub = simplify_outline(
            outline + offset,
            config.mode,
            config.corner_threshold,
            config.length_threshold,
            config.max_iterations,
            config.splice_threshold,
            config.max_error,
        )
        if not sub.is_empty():
            paths.paths.append(sub)

    return paths


def cluster_to_compound_path(
    cluster: Cluster,
    config: ConverterConfig,
    diagonal: bool = False,
) -> CompoundPath:
    """
    Build the path for one cluster.

    In spline mode, circular clusters become a circle of diameter
    rect.width anchored at rect.left_top; the rectangle's height is not used.
    """
    if config.mode == PathSimplifyMode.SPLINE and cluster.is_circle():
        logger.debug(f"Cluster {cluster.id} classified as circle")
        paths = CompoundPath()
        paths.add_spline(approximate_circle_with_spline(cluster.rect.left_top, cluster.rect.width))
        return paths

    return mask_to_compound_path(cluster.mask(), cluster.rect.left_top, config, diagonal)


def build_color_paths(
    view: ClustersView,
    config: ConverterConfig,
    diagonal: bool = False,
) -> List[Tuple[CompoundPath, Color]]:
    """
    Paths for every emitted cluster, in paint order.

    Clusters are visited in reverse emission order so the first emitted
    cluster is painted last (topmost).
    """
    entries = []
    for index in reversed(view.clusters_output):
        cluster = view.get_cluster(index)
        paths = cluster_to_compound_path(cluster, config, diagonal)
        if paths.is_empty():
            continue
        entries.append((paths, cluster.residue_color()))
    return entries


def build_shape_paths(
    clusters: Iterable[Cluster],
    config: ConverterConfig,
    color: Color,
) -> List[Tuple[CompoundPath, Color]]:
    """
    Paths for flat connected components, all painted with one color.

    Components smaller than the speckle floor are dropped.
    """
    entries = []
    for cluster in clusters:
        if cluster.size() < config.filter_speckle_area:
            logger.debug(f"Dropped component {cluster.id} of {cluster.size()} pixels")
            continue
        paths = mask_to_compound_path(cluster.mask(), cluster.rect.left_top, config)
        if paths.is_empty():
            continue
        entries.append((paths, color))
    return entries
