"""Outline simplification: staircase removal, smoothing and bezier fitting."""
import logging
from typing import List, Tuple

import cv2
import numpy as np

from tracevec.boundary_tracing import signed_area
from tracevec.types import BezierCurve, PathSimplifyMode, Point, SubPath

logger = logging.getLogger(__name__)


def remove_collinear(points: np.ndarray) -> np.ndarray:
    """Drop vertices of a closed polygon that lie on a straight run."""
    points = np.asarray(points)
    if len(points) < 3:
        return points

    prev = np.roll(points, 1, axis=0)
    nxt = np.roll(points, -1, axis=0)
    v1 = points - prev
    v2 = nxt - points
    cross = v1[:, 0] * v2[:, 1] - v1[:, 1] * v2[:, 0]
    dot = v1[:, 0] * v2[:, 0] + v1[:, 1] * v2[:, 1]
    keep = (cross != 0) | (dot <= 0)

    if keep.sum() < 3:
        return points
    return points[keep]


def remove_staircase(points: np.ndarray) -> np.ndarray:
    """
    Flatten single-pixel steps of a traced outline.

    A vertex next to a unit-length segment is kept only when it turns the
    same way as the outline itself, so staircases collapse onto the chord
    through their outer corners.
    """
    points = np.asarray(points)
    n = len(points)
    if n < 4:
        return points

    orientation = np.sign(signed_area(points))
    prev = np.roll(points, 1, axis=0)
    nxt = np.roll(points, -1, axis=0)
    v1 = points - prev
    v2 = nxt - points
    len_prev = np.hypot(v1[:, 0], v1[:, 1])
    len_next = np.hypot(v2[:, 0], v2[:, 1])
    cross = v1[:, 0] * v2[:, 1] - v1[:, 1] * v2[:, 0]

    step = (len_prev == 1) | (len_next == 1)
    keep = ~step | (np.sign(cross) == orientation)
    keep[0] = True

    if keep.sum() < 3:
        return points
    return points[keep]


def simplify_polygon(points: np.ndarray, max_error: float) -> np.ndarray:
    """
    Simplify a closed outline using Douglas-Peucker.

    Outlines that would collapse below three vertices are returned unchanged.
    """
    points = remove_staircase(remove_collinear(points))
    if len(points) < 4:
        return points.astype(float)

    simplified = cv2.approxPolyDP(points.astype(np.float32).reshape(-1, 1, 2), max_error, closed=True)
    simplified = simplified.reshape(-1, 2)

    if len(simplified) < 3:
        return points.astype(float)
    return simplified.astype(float)


def turn_angles(points: np.ndarray) -> np.ndarray:
    """Absolute turning angle (radians) at every vertex of a closed polygon."""
    prev = np.roll(points, 1, axis=0)
    nxt = np.roll(points, -1, axis=0)
    v1 = points - prev
    v2 = nxt - points
    n1 = np.linalg.norm(v1, axis=1)
    n2 = np.linalg.norm(v2, axis=1)
    denom = np.where(n1 * n2 > 0, n1 * n2, 1.0)
    cos = np.clip((v1 * v2).sum(axis=1) / denom, -1.0, 1.0)
    return np.arccos(cos)


def smooth_polygon(
    points: np.ndarray,
    corner_threshold: float,
    length_threshold: float,
    max_iterations: int,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Subdivide long segments with the four-point scheme, keeping corners sharp.

    Args:
        points: (N, 2) closed polygon
        corner_threshold: Turning angle (radians) at or above which a vertex is a corner
        length_threshold: Segments longer than this are subdivided
        max_iterations: Maximum subdivision rounds

    Returns:
        Tuple of (points, corners) where corners flags corner vertices
    """
    points = np.asarray(points, dtype=float)
    corners = turn_angles(points) >= corner_threshold

    for _ in range(max_iterations):
        n = len(points)
        new_points = []
        new_corners = []
        changed = False

        for i in range(n):
            a = points[i]
            b = points[(i + 1) % n]
            new_points.append(a)
            new_corners.append(corners[i])

            if np.hypot(*(b - a)) <= length_threshold:
                continue

            # Corners do not pull the curve towards their other side
            before = a if corners[i] else points[i - 1]
            after = b if corners[(i + 1) % n] else points[(i + 2) % n]
            new_points.append((-before + 9 * a + 9 * b - after) / 16)
            new_corners.append(False)
            changed = True

        points = np.array(new_points)
        corners = np.array(new_corners, dtype=bool)
        if not changed:
            break

    return points, corners


def _line_curve(p0: np.ndarray, p3: np.ndarray) -> BezierCurve:
    p1 = p0 + (p3 - p0) / 3
    p2 = p0 + 2 * (p3 - p0) / 3
    return BezierCurve(Point(*p0), Point(*p1), Point(*p2), Point(*p3))


def _chord_params(points: np.ndarray) -> np.ndarray:
    lengths = np.linalg.norm(np.diff(points, axis=0), axis=1)
    t = np.concatenate([[0.0], np.cumsum(lengths)])
    return t / t[-1] if t[-1] > 0 else np.linspace(0, 1, len(points))


def _eval_bezier(ctrl: np.ndarray, t: np.ndarray) -> np.ndarray:
    mt = 1 - t
    basis = np.stack([mt ** 3, 3 * mt ** 2 * t, 3 * mt * t ** 2, t ** 3], axis=1)
    return basis @ ctrl


def fit_cubic(points: np.ndarray) -> Tuple[BezierCurve, float, int]:
    """
    Least-squares cubic bezier through the endpoints of a point run.

    Returns:
        Tuple of (curve, max_error, index_of_max_error)
    """
    p0 = points[0]
    p3 = points[-1]

    if len(points) == 2:
        return _line_curve(p0, p3), 0.0, 0

    if len(points) == 3:
        mid = points[1]
        p1 = p0 + 2 * (mid - p0) / 3
        p2 = p3 + 2 * (mid - p3) / 3
        ctrl = np.array([p0, p1, p2, p3])
    else:
        t = _chord_params(points)
        mt = 1 - t
        b1 = 3 * mt ** 2 * t
        b2 = 3 * mt * t ** 2
        rhs = points - np.outer(mt ** 3, p0) - np.outer(t ** 3, p3)
        a = np.stack([b1, b2], axis=1)
        solution, _, _, _ = np.linalg.lstsq(a, rhs, rcond=None)
        ctrl = np.array([p0, solution[0], solution[1], p3])

    t = _chord_params(points)
    errors = np.linalg.norm(_eval_bezier(ctrl, t) - points, axis=1)
    worst = int(np.argmax(errors))
    curve = BezierCurve(*(Point(float(x), float(y)) for x, y in ctrl))
    return curve, float(errors[worst]), worst


def _fit_recursive(points: np.ndarray, max_error: float, depth: int) -> List[BezierCurve]:
    curve, error, worst = fit_cubic(points)
    if error <= max_error or depth <= 0 or len(points) < 4:
        return [curve]

    split = min(max(worst, 1), len(points) - 2)
    return (_fit_recursive(points[:split + 1], max_error, depth - 1)
            + _fit_recursive(points[split:], max_error, depth - 1))


def splice_points(points: np.ndarray, corners: np.ndarray, splice_threshold: float) -> List[int]:
    """
    Indices where a closed outline is cut into separately fitted pieces.

    Cuts happen at corners and wherever the turning accumulated since the
    last cut exceeds splice_threshold. Index 0 is always a cut.
    """
    angles = turn_angles(points)
    cuts = [0]
    accumulated = 0.0
    for i in range(1, len(points)):
        accumulated += angles[i]
        if corners[i] or accumulated > splice_threshold:
            cuts.append(i)
            accumulated = 0.0
    return cuts


def fit_spline(
    points: np.ndarray,
    corners: np.ndarray,
    splice_threshold: float,
    max_error: float,
    max_iterations: int,
) -> List[BezierCurve]:
    """Fit a closed outline with a chain of cubic beziers."""
    if len(points) < 2:
        return []

    # Start on a corner when there is one so the seam falls on a sharp vertex
    if corners.any() and not corners[0]:
        shift = int(np.argmax(corners))
        points = np.roll(points, -shift, axis=0)
        corners = np.roll(corners, -shift)

    cuts = splice_points(points, corners, splice_threshold)
    closed = np.vstack([points, points[:1]])
    bounds = cuts + [len(points)]

    curves = []
    for start, end in zip(bounds[:-1], bounds[1:]):
        curves.extend(_fit_recursive(closed[start:end + 1], max_error, max_iterations))
    return curves


def simplify_outline(
    points: np.ndarray,
    mode: PathSimplifyMode,
    corner_threshold: float,
    length_threshold: float,
    max_iterations: int,
    splice_threshold: float,
    max_error: float,
) -> SubPath:
    """
    Turn one traced outline into a sub-path according to mode.

    Args:
        points: (N, 2) closed pixel-edge outline
        mode: NONE keeps the pixel outline, POLYGON straightens it,
            SPLINE smooths and fits cubic beziers
        corner_threshold: Corner angle in radians
        length_threshold: Subdivision segment length
        max_iterations: Subdivision rounds and bezier split depth
        splice_threshold: Accumulated turning (radians) before a spline is cut
        max_error: Polygon tolerance and bezier fitting tolerance

    Returns:
        Closed SubPath
    """
    if mode == PathSimplifyMode.NONE:
        return SubPath(points=remove_collinear(points).astype(float))

    if mode == PathSimplifyMode.POLYGON:
        return SubPath(points=simplify_polygon(points, max_error))

    polygon = remove_staircase(remove_collinear(points)).astype(float)
    smoothed, corners = smooth_polygon(polygon, corner_threshold, length_threshold, max_iterations)
    curves = fit_spline(smoothed, corners, splice_threshold, max_error, max_iterations)
    logger.debug(f"Fitted {len(curves)} curves to outline of {len(points)} vertices")
    return SubPath(curves=curves)
