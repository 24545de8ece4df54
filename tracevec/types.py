"""Core types for the tracing pipeline."""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Tuple, Union

import numpy as np

# Type aliases
ImageArray = np.ndarray
Color = Union[Tuple[int, int, int], Tuple[int, int, int, int]]

# All-zero key color: no keying applied
NO_KEY: Tuple[int, int, int] = (0, 0, 0)


class ColorMode(Enum):
    """Input interpretation."""
    COLOR = "color"
    BINARY = "binary"
    SEG = "seg"


class Hierarchical(Enum):
    """Clustering output layout."""
    STACKED = "stacked"
    CUTOUT = "cutout"


class PathSimplifyMode(Enum):
    """Path simplification applied to traced outlines."""
    NONE = "none"
    POLYGON = "polygon"
    SPLINE = "spline"


class KeyingAction(Enum):
    """What the cluster engine does with key-colored regions."""
    KEEP = "keep"
    DISCARD = "discard"


@dataclass
class Point:
    """2D point with float coordinates."""
    x: float
    y: float


@dataclass
class BezierCurve:
    """Cubic bezier curve segment."""
    p0: Point
    p1: Point  # Control point
    p2: Point  # Control point
    p3: Point


@dataclass
class Rect:
    """Axis aligned pixel rectangle, right/bottom exclusive."""
    left: int
    top: int
    right: int
    bottom: int

    @property
    def width(self) -> int:
        return self.right - self.left

    @property
    def height(self) -> int:
        return self.bottom - self.top

    @property
    def left_top(self) -> Tuple[int, int]:
        return (self.left, self.top)


@dataclass
class SubPath:
    """One closed outline: either a polygon or a chain of bezier curves."""
    points: np.ndarray = field(default_factory=lambda: np.zeros((0, 2)))
    curves: List[BezierCurve] = field(default_factory=list)
    is_closed: bool = True

    @property
    def is_spline(self) -> bool:
        return len(self.curves) > 0

    def start(self) -> Tuple[float, float]:
        if self.curves:
            return (self.curves[0].p0.x, self.curves[0].p0.y)
        return (float(self.points[0][0]), float(self.points[0][1]))

    def is_empty(self) -> bool:
        return not self.curves and len(self.points) == 0


@dataclass
class CompoundPath:
    """Full outline of one region, including holes, as ordered sub-paths."""
    paths: List[SubPath] = field(default_factory=list)

    def add_polygon(self, points: np.ndarray) -> None:
        self.paths.append(SubPath(points=np.asarray(points, dtype=float)))

    def add_spline(self, curves: List[BezierCurve]) -> None:
        self.paths.append(SubPath(curves=list(curves)))

    def is_empty(self) -> bool:
        return all(p.is_empty() for p in self.paths)

    def __len__(self) -> int:
        return len(self.paths)


class VectorizationError(Exception):
    """Base exception for vectorization errors."""
    pass


class InputError(VectorizationError):
    """Input missing, undecodable, or with the wrong channel layout."""
    pass


class KeyColorExhaustedError(VectorizationError):
    """Transparency keying needed but every candidate color is in use."""
    pass


class OutputWriteError(VectorizationError):
    """Destination cannot be created or written."""
    pass


class ConfigError(VectorizationError):
    """Configuration value out of range."""
    pass
