"""Region clustering: connected components plus hierarchical merging.

The engine groups pixels of (quantized) equal color into connected seed
clusters, then merges clusters bottom-up by area. Speckles are absorbed
silently; larger clusters absorbed while deepening the hierarchy are first
emitted as their own layer, so the emission order runs from the smallest,
topmost shapes to the largest, bottom-most ones.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

import numpy as np
from scipy import ndimage
from scipy.sparse import coo_matrix
from scipy.sparse.csgraph import connected_components

from tracevec.config import BATCH_SIZE, HIERARCHICAL_MAX
from tracevec.shape import is_circle
from tracevec.types import NO_KEY, ImageArray, KeyingAction, Rect

logger = logging.getLogger(__name__)

# Largest possible sum of absolute RGB channel differences
MAX_COLOR_DIFF = 3 * 255


@dataclass
class RunnerConfig:
    """Parameters of one clustering pass."""
    diagonal: bool = False
    hierarchical: int = HIERARCHICAL_MAX
    batch_size: int = BATCH_SIZE
    good_min_area: int = 16
    good_max_area: int = 256 * 256
    is_same_color_a: int = 4
    is_same_color_b: int = 1
    deepen_diff: int = 16
    hollow_neighbours: int = 1
    key_color: Tuple[int, int, int] = NO_KEY
    keying_action: KeyingAction = KeyingAction.DISCARD


@dataclass
class Cluster:
    """A region produced by a clustering pass.

    Pixel membership is stored as the set of seed labels the region covers,
    resolved against the pass's seed label map on demand.
    """
    id: int
    area: int
    rect: Rect
    color: Tuple[int, int, int]
    members: Tuple[int, ...]
    labels: np.ndarray = field(repr=False)
    is_key: bool = False

    def size(self) -> int:
        return self.area

    def residue_color(self) -> Tuple[int, int, int]:
        return self.color

    def mask(self) -> np.ndarray:
        """Boolean mask cropped to the bounding rectangle."""
        window = self.labels[self.rect.top:self.rect.bottom, self.rect.left:self.rect.right]
        if len(self.members) == 1:
            return window == self.members[0]
        return np.isin(window, self.members)

    def full_mask(self) -> np.ndarray:
        """Boolean mask over the whole image."""
        mask = np.zeros(self.labels.shape, dtype=bool)
        mask[self.rect.top:self.rect.bottom, self.rect.left:self.rect.right] = self.mask()
        return mask

    def is_circle(self) -> bool:
        return is_circle(self.mask())


class ClustersView:
    """Read-only ordered view over the clusters emitted by one pass."""

    def __init__(self, clusters: List[Cluster], width: int, height: int):
        self.clusters = clusters
        self.width = width
        self.height = height
        self.clusters_output = list(range(len(clusters)))

    def get_cluster(self, index: int) -> Cluster:
        return self.clusters[index]

    def __iter__(self):
        return (self.clusters[i] for i in self.clusters_output)

    def __len__(self) -> int:
        return len(self.clusters_output)

    def to_color_image(self, background: Optional[Tuple[int, int, int]] = None) -> ImageArray:
        """
        Flatten the emitted clusters into an RGBA composite.

        Clusters are painted in reverse emission order so earlier emitted
        clusters end up on top. Pixels not covered by any cluster keep the
        background color (opaque), or stay zero when background is None.
        """
        image = np.zeros((self.height, self.width, 4), dtype=np.uint8)
        if background is not None:
            image[...] = (*background, 255)
        for index in reversed(self.clusters_output):
            cluster = self.clusters[index]
            r = cluster.rect
            window = image[r.top:r.bottom, r.left:r.right]
            window[cluster.mask()] = (*cluster.color, 255)
        return image


class ClusterSet:
    """Output of a clustering pass."""

    def __init__(self, clusters: List[Cluster], width: int, height: int):
        self.clusters = clusters
        self.width = width
        self.height = height

    def view(self) -> ClustersView:
        return ClustersView(self.clusters, self.width, self.height)

    def output_len(self) -> int:
        return len(self.clusters)


class ClusterEngine:
    """Capability interface: cluster an RGBA image into ordered regions."""

    def cluster(self, image: ImageArray, config: RunnerConfig) -> ClusterSet:
        raise NotImplementedError


def connected_labels(codes: np.ndarray, diagonal: bool) -> Tuple[np.ndarray, int]:
    """
    Label connected components of pixels sharing the same code.

    Labels are numbered 0..n-1 in raster order of each component's first pixel.

    Args:
        codes: (H, W) integer array
        diagonal: Use 8-neighbour adjacency instead of 4-neighbour

    Returns:
        Tuple of (labels, n_components)
    """
    h, w = codes.shape
    if h == 0 or w == 0:
        return np.zeros((h, w), dtype=np.int64), 0

    idx = np.arange(h * w, dtype=np.int64).reshape(h, w)
    rows = []
    cols = []
    for a, b in _neighbour_slices(diagonal):
        same = codes[a] == codes[b]
        rows.append(idx[a][same])
        cols.append(idx[b][same])

    rows = np.concatenate(rows) if rows else np.zeros(0, dtype=np.int64)
    cols = np.concatenate(cols) if cols else np.zeros(0, dtype=np.int64)
    graph = coo_matrix(
        (np.ones(len(rows), dtype=np.int8), (rows, cols)), shape=(h * w, h * w)
    )
    n, raw = connected_components(graph, directed=False)

    # Renumber by first pixel so ids are stable for identical input
    _, first = np.unique(raw, return_index=True)
    order = np.argsort(first)
    remap = np.empty(n, dtype=np.int64)
    remap[order] = np.arange(n, dtype=np.int64)
    return remap[raw].reshape(h, w), n


def _neighbour_slices(diagonal: bool):
    """Pairs of array slices selecting each pixel and one of its forward neighbours."""
    full = slice(None)
    pairs = [
        ((full, slice(None, -1)), (full, slice(1, None))),  # right
        ((slice(None, -1), full), (slice(1, None), full)),  # down
    ]
    if diagonal:
        pairs.append(((slice(None, -1), slice(None, -1)), (slice(1, None), slice(1, None))))
        pairs.append(((slice(None, -1), slice(1, None)), (slice(1, None), slice(None, -1))))
    return pairs


def adjacent_label_pairs(labels: np.ndarray, diagonal: bool) -> np.ndarray:
    """Unique (a, b) label pairs with a < b that touch under the given adjacency."""
    found = []
    for a, b in _neighbour_slices(diagonal):
        la = labels[a].ravel()
        lb = labels[b].ravel()
        differ = la != lb
        found.append(np.stack([np.minimum(la[differ], lb[differ]),
                               np.maximum(la[differ], lb[differ])], axis=1))
    if not found:
        return np.zeros((0, 2), dtype=np.int64)
    pairs = np.concatenate(found)
    if len(pairs) == 0:
        return pairs
    return np.unique(pairs, axis=0)


def _label_rects(labels: np.ndarray, n: int) -> List[Rect]:
    rects = []
    for sl in ndimage.find_objects(labels + 1, max_label=n):
        rects.append(Rect(sl[1].start, sl[0].start, sl[1].stop, sl[0].stop))
    return rects


class _Node:
    """Mutable cluster state during hierarchical merging."""
    __slots__ = ("id", "area", "rect", "color_sum", "residue_area",
                 "members", "neighbours", "is_key")

    def __init__(self, id, area, rect, color_sum, members, is_key):
        self.id = id
        self.area = area
        self.rect = rect
        self.color_sum = color_sum
        self.residue_area = area
        self.members = members
        self.neighbours: Set[int] = set()
        self.is_key = is_key

    def color(self) -> Tuple[int, int, int]:
        mean = self.color_sum / max(self.residue_area, 1)
        return tuple(int(c) for c in np.round(mean))


def _color_diff(a: Tuple[int, int, int], b: Tuple[int, int, int]) -> int:
    return sum(abs(int(x) - int(y)) for x, y in zip(a, b))


class ColorClusterEngine(ClusterEngine):
    """Color similarity clustering with stacked hierarchical output."""

    def cluster(self, image: ImageArray, config: RunnerConfig) -> ClusterSet:
        height, width = image.shape[:2]
        rgb = image[..., :3].astype(np.int64)

        codes = self._color_codes(rgb, config)
        labels, n = connected_labels(codes, config.diagonal)
        nodes = self._seed_nodes(rgb, codes, labels, n)

        for a, b in adjacent_label_pairs(labels, config.diagonal):
            nodes[a].neighbours.add(int(b))
            nodes[b].neighbours.add(int(a))

        logger.debug(f"Seeded {n} clusters from {width}x{height} image")

        emitted: List[Cluster] = []
        active = {node.id for node in nodes.values() if not node.is_key}
        self._merge_hierarchy(nodes, active, emitted, labels, config)

        remaining = [nodes[i] for i in active] + [node for node in nodes.values() if node.is_key]
        for node in sorted(remaining, key=lambda nd: (nd.area, nd.id)):
            self._emit(node, emitted, labels, config)

        logger.info(f"Clustering pass emitted {len(emitted)} of {n} seed clusters")
        return ClusterSet(emitted, width, height)

    def _color_codes(self, rgb: np.ndarray, config: RunnerConfig) -> np.ndarray:
        shift = max(int(config.is_same_color_a), 0)
        q = rgb >> shift
        codes = (q[..., 0] << 16) | (q[..., 1] << 8) | q[..., 2]

        if tuple(config.key_color) != NO_KEY:
            is_key = np.all(rgb == np.asarray(config.key_color), axis=-1)
            codes[is_key] = -1

        return codes

    def _seed_nodes(self, rgb, codes, labels, n) -> Dict[int, _Node]:
        flat = labels.ravel()
        areas = np.bincount(flat, minlength=n)
        sums = np.stack(
            [np.bincount(flat, weights=rgb[..., c].ravel(), minlength=n) for c in range(3)],
            axis=1,
        )
        rects = _label_rects(labels, n)

        # Codes are uniform within a seed, so its first pixel tells if it is keyed
        _, first = np.unique(flat, return_index=True)
        key_flags = codes.ravel()[first] == -1

        return {
            i: _Node(i, int(areas[i]), rects[i], sums[i], [i], bool(key_flags[i]))
            for i in range(n)
        }

    def _merge_hierarchy(self, nodes, active, emitted, labels, config: RunnerConfig) -> None:
        level = 0
        batch_size = max(int(config.batch_size), 1)

        while level < config.hierarchical and len(active) > 1:
            level += 1
            threshold = level * config.deepen_diff
            merged = False

            order = sorted(active, key=lambda i: (nodes[i].area, i))

            for start in range(0, len(order), batch_size):
                for cid in order[start:start + batch_size]:
                    if cid not in active:
                        continue
                    node = nodes[cid]
                    candidates = [nodes[i] for i in node.neighbours if i in active]
                    if not candidates:
                        continue

                    parent = self._best_neighbour(node, candidates, config.is_same_color_b)

                    if node.area < config.good_min_area:
                        self._absorb(parent, node, nodes, active)
                        merged = True
                    elif config.deepen_diff > 0 and (
                        len(node.neighbours) <= config.hollow_neighbours
                        or _color_diff(node.color(), parent.color()) < threshold
                    ):
                        self._emit(node, emitted, labels, config)
                        self._absorb(parent, node, nodes, active, silent=False)
                        merged = True

            if not merged and (config.deepen_diff == 0 or threshold > MAX_COLOR_DIFF):
                break

        logger.debug(f"Hierarchy settled after {level} levels with {len(active)} clusters")

    @staticmethod
    def _best_neighbour(node: _Node, candidates: List[_Node], tolerance: int) -> _Node:
        color = node.color()
        diffs = [(_color_diff(color, c.color()), c) for c in candidates]
        best = min(d for d, _ in diffs)
        close = [c for d, c in diffs if d - best <= tolerance]
        return min(close, key=lambda c: (-c.area, c.id))

    @staticmethod
    def _absorb(parent: _Node, child: _Node, nodes, active, silent: bool = True) -> None:
        parent.members.extend(child.members)
        parent.area += child.area
        parent.rect = Rect(
            min(parent.rect.left, child.rect.left),
            min(parent.rect.top, child.rect.top),
            max(parent.rect.right, child.rect.right),
            max(parent.rect.bottom, child.rect.bottom),
        )
        if silent:
            # Absorbed speckles show through in the parent's fill
            parent.color_sum = parent.color_sum + child.color_sum
            parent.residue_area += child.residue_area

        for other in child.neighbours:
            if other == parent.id:
                continue
            nodes[other].neighbours.discard(child.id)
            nodes[other].neighbours.add(parent.id)
            parent.neighbours.add(other)
        parent.neighbours.discard(child.id)
        active.discard(child.id)

    @staticmethod
    def _emit(node: _Node, emitted: List[Cluster], labels, config: RunnerConfig) -> None:
        if node.is_key and config.keying_action == KeyingAction.DISCARD:
            return
        # Kept key clusters are emitted whatever their size
        if not node.is_key and not config.good_min_area <= node.area <= config.good_max_area:
            logger.debug(f"Cluster {node.id} with area {node.area} outside accepted range")
            return
        emitted.append(Cluster(
            id=node.id,
            area=node.area,
            rect=Rect(node.rect.left, node.rect.top, node.rect.right, node.rect.bottom),
            color=node.color(),
            members=tuple(node.members),
            labels=labels,
            is_key=node.is_key,
        ))


def label_clusters(
    codes: np.ndarray,
    diagonal: bool = False,
    background: Optional[int] = 0,
) -> List[Cluster]:
    """
    Flat, non-hierarchical connected component pass.

    Used for binary masks and segmentation label maps. Components whose
    code equals background are skipped. The fill color of the returned
    clusters is left black; callers decide how to paint them.

    Args:
        codes: (H, W) integer or boolean array
        diagonal: Use 8-neighbour adjacency
        background: Code value that is not traced, or None to keep all

    Returns:
        Clusters in raster order of their first pixel
    """
    codes = np.asarray(codes).astype(np.int64)
    labels, n = connected_labels(codes, diagonal)
    if n == 0:
        return []

    flat = labels.ravel()
    areas = np.bincount(flat, minlength=n)
    rects = _label_rects(labels, n)

    _, first = np.unique(flat, return_index=True)
    component_codes = codes.ravel()[first]

    clusters = []
    for i in range(n):
        if background is not None and component_codes[i] == background:
            continue
        clusters.append(Cluster(
            id=i,
            area=int(areas[i]),
            rect=rects[i],
            color=(0, 0, 0),
            members=(i,),
            labels=labels,
        ))
    return clusters
