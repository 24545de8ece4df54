"""Circle detection and circle path construction."""
from typing import List, Tuple

import numpy as np
from scipy import ndimage
from skimage.draw import ellipse

from tracevec.types import BezierCurve, Point

# Control point distance for a quarter circle, as a fraction of the radius
KAPPA = 0.5522847498

MIN_CIRCLE_SIZE = 4
MAX_ASPECT_DEVIATION = 1.25
MAX_MISMATCH_RATIO = 0.1


def is_circle(mask: np.ndarray) -> bool:
    """
    Classify a region mask as circular.

    The mask is compared with the ideal ellipse inscribed in its bounding
    rectangle. Masks with holes, small masks and elongated masks are rejected.

    Args:
        mask: Boolean mask cropped to the region's bounding rectangle

    Returns:
        True if the region is close enough to a filled circle
    """
    h, w = mask.shape[:2]
    if w < MIN_CIRCLE_SIZE or h < MIN_CIRCLE_SIZE:
        return False

    aspect = w / h
    if not 1 / MAX_ASPECT_DEVIATION <= aspect <= MAX_ASPECT_DEVIATION:
        return False

    mask = mask.astype(bool)
    if not np.array_equal(ndimage.binary_fill_holes(mask), mask):
        return False

    ideal = np.zeros((h, w), dtype=bool)
    rr, cc = ellipse(h / 2 - 0.5, w / 2 - 0.5, h / 2, w / 2, shape=(h, w))
    ideal[rr, cc] = True

    mismatch = np.count_nonzero(mask != ideal)
    return mismatch <= MAX_MISMATCH_RATIO * max(np.count_nonzero(ideal), 1)


def approximate_circle_with_spline(left_top: Tuple[int, int], diameter: int) -> List[BezierCurve]:
    """
    Build a circle of the given diameter as four cubic bezier quarter arcs.

    The circle is inscribed in the square of side diameter whose top-left
    corner is left_top. Arcs run clockwise (in image coordinates) from the top.
    """
    r = diameter / 2
    cx = left_top[0] + r
    cy = left_top[1] + r
    k = KAPPA * r

    top = Point(cx, cy - r)
    right = Point(cx + r, cy)
    bottom = Point(cx, cy + r)
    left = Point(cx - r, cy)

    return [
        BezierCurve(top, Point(cx + k, cy - r), Point(cx + r, cy - k), right),
        BezierCurve(right, Point(cx + r, cy + k), Point(cx + k, cy + r), bottom),
        BezierCurve(bottom, Point(cx - k, cy + r), Point(cx - r, cy + k), left),
        BezierCurve(left, Point(cx - r, cy - k), Point(cx - k, cy - r), top),
    ]
