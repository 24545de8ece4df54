"""Pixel-edge boundary tracing of binary masks."""
from collections import defaultdict
from typing import List, Tuple

import numpy as np


def _boundary_edges(mask: np.ndarray) -> Tuple[np.ndarray, ...]:
    """
    Collect directed pixel edges separating foreground from background.

    Edges are oriented so outer outlines run clockwise in image coordinates
    (y pointing down) and holes run counter-clockwise.

    Returns:
        Tuple of (sx, sy, ex, ey, owner) arrays; owner is the flat index of
        the foreground pixel each edge belongs to.
    """
    h, w = mask.shape
    padded = np.pad(mask, 1, constant_values=False)
    inner = padded[1:-1, 1:-1]

    ys, xs = np.nonzero(inner & ~padded[:-2, 1:-1])  # top
    ry, rx = np.nonzero(inner & ~padded[1:-1, 2:])   # right
    by, bx = np.nonzero(inner & ~padded[2:, 1:-1])   # bottom
    ly, lx = np.nonzero(inner & ~padded[1:-1, :-2])  # left

    sx = np.concatenate([xs, rx + 1, bx + 1, lx])
    sy = np.concatenate([ys, ry, by + 1, ly + 1])
    ex = np.concatenate([xs + 1, rx + 1, bx, lx])
    ey = np.concatenate([ys, ry + 1, by + 1, ly])
    owner = np.concatenate([ys * w + xs, ry * w + rx, by * w + bx, ly * w + lx])

    # Start each walk at the top-left-most vertex
    order = np.lexsort((sx, sy))
    return sx[order], sy[order], ex[order], ey[order], owner[order]


def trace_boundaries(mask: np.ndarray, diagonal: bool = False) -> List[np.ndarray]:
    """
    Trace every closed outline of a binary mask along pixel edges.

    Pixel (x, y) covers the square [x, x+1] x [y, y+1], so a single pixel
    yields a unit square. Where two foreground pixels touch only at a
    corner they are kept apart for 4-connected regions and joined into one
    outline when diagonal is True.

    Args:
        mask: (H, W) boolean mask
        diagonal: Whether the region is 8-connected

    Returns:
        List of (N, 2) integer arrays of (x, y) vertices, one per outline,
        in discovery order (an outer outline precedes the holes inside it).
    """
    mask = np.asarray(mask, dtype=bool)
    if mask.ndim != 2 or not mask.any():
        return []

    sx, sy, ex, ey, owner = _boundary_edges(mask)
    stride = mask.shape[1] + 1
    start_key = sy * stride + sx
    end_key = ey * stride + ex

    outgoing = defaultdict(list)
    for i, key in enumerate(start_key.tolist()):
        outgoing[key].append(i)

    visited = np.zeros(len(sx), dtype=bool)
    loops = []

    for first in range(len(sx)):
        if visited[first]:
            continue

        loop = []
        edge = first
        while not visited[edge]:
            visited[edge] = True
            loop.append((int(sx[edge]), int(sy[edge])))

            candidates = outgoing[int(end_key[edge])]
            if len(candidates) == 1:
                edge = candidates[0]
                continue

            # Corner contact: stay on the same pixel to keep regions apart
            same = [c for c in candidates if owner[c] == owner[edge]]
            other = [c for c in candidates if owner[c] != owner[edge]]
            if diagonal:
                edge = (other or same)[0]
            else:
                edge = (same or other)[0]

        loops.append(np.array(loop, dtype=np.int64))

    return loops


def signed_area(points: np.ndarray) -> float:
    """
    Shoelace area of a closed polygon.

    Positive for outlines that run clockwise in image coordinates.
    """
    points = np.asarray(points, dtype=float)
    if len(points) < 3:
        return 0.0
    x = points[:, 0]
    y = points[:, 1]
    return float(np.sum(x * np.roll(y, -1) - np.roll(x, -1) * y) / 2)


def is_hole(points: np.ndarray) -> bool:
    return signed_area(points) < 0
