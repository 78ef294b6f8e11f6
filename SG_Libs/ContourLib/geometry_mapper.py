"""
Geometry mapping from normalized detector space to display space.

Contours come out of the silhouette extractor in a normalized 0-1 space with
an inverted vertical axis (0 = bottom). Presentation layers draw in a
top-left-origin space where the image is aspect-fit into an arbitrary
rectangle. This module builds the single affine transform between the two.

Everything here is pure; the transform must be recomputed whenever the
display size changes.

Classes:
    VectorPath: Immutable compound path of closed polylines

Functions:
    fit_scale: Uniform scale that fits one size into another
    letterbox_rect: Offset and drawn size of the aspect-fit rectangle
    display_transform: 3x3 affine for normalized -> display mapping
    map_to_display: Map a normalized path into a display rectangle
"""

from dataclasses import dataclass
from typing import Iterable, Sequence, Tuple

import numpy as np

Size = Tuple[float, float]
Bounds = Tuple[float, float, float, float]


@dataclass(frozen=True)
class VectorPath:
    """A compound path made of closed polylines.

    Attributes:
        subpaths: Tuple of (N, 2) float arrays of (x, y) points; each
                  subpath is implicitly closed
    """
    subpaths: Tuple[np.ndarray, ...] = ()

    @classmethod
    def from_polylines(cls, polylines: Iterable[Sequence[Sequence[float]]]) -> "VectorPath":
        subpaths = []
        for polyline in polylines:
            points = np.asarray(polyline, dtype=float).reshape(-1, 2)
            if len(points):
                subpaths.append(points)
        return cls(tuple(subpaths))

    @property
    def is_empty(self) -> bool:
        return self.point_count == 0

    @property
    def point_count(self) -> int:
        return sum(len(subpath) for subpath in self.subpaths)

    def __len__(self) -> int:
        return len(self.subpaths)

    def bounds(self) -> Bounds:
        """Return (min_x, min_y, max_x, max_y); raises ValueError when empty."""
        if self.is_empty:
            raise ValueError("Empty path has no bounds")
        points = np.vstack(self.subpaths)
        min_x, min_y = points.min(axis=0)
        max_x, max_y = points.max(axis=0)
        return float(min_x), float(min_y), float(max_x), float(max_y)

    def transformed(self, matrix: np.ndarray) -> "VectorPath":
        """Apply a 3x3 affine matrix to every point."""
        linear = matrix[:2, :2]
        translation = matrix[:2, 2]
        return VectorPath(tuple(subpath @ linear.T + translation for subpath in self.subpaths))

    def to_svg_path(self, precision: int = 2) -> str:
        """Render as an SVG path ``d`` attribute (one closed subpath each)."""
        parts = []
        for subpath in self.subpaths:
            coords = [f"{x:.{precision}f},{y:.{precision}f}" for x, y in subpath]
            parts.append("M " + " L ".join(coords) + " Z")
        return " ".join(parts)


def _validate_size(size: Size, name: str) -> Tuple[float, float]:
    width, height = float(size[0]), float(size[1])
    if width <= 0 or height <= 0:
        raise ValueError(f"{name} must be positive, got {size}")
    return width, height


def fit_scale(content_size: Size, container_size: Size) -> float:
    """
    Uniform scale that fits content into container preserving aspect ratio.

    Example:
        >>> fit_scale((100, 100), (200, 100))
        1.0
    """
    content_w, content_h = _validate_size(content_size, "content_size")
    container_w, container_h = _validate_size(container_size, "container_size")
    return min(container_w / content_w, container_h / content_h)


def letterbox_rect(content_size: Size, container_size: Size) -> Tuple[float, float, float, float]:
    """
    Compute the aspect-fit rectangle of content inside container.

    Returns:
        (offset_x, offset_y, drawn_width, drawn_height)

    Example:
        >>> letterbox_rect((100, 100), (200, 100))
        (50.0, 0.0, 100.0, 100.0)
    """
    scale = fit_scale(content_size, container_size)
    container_w, container_h = float(container_size[0]), float(container_size[1])
    drawn_w = float(content_size[0]) * scale
    drawn_h = float(content_size[1]) * scale
    return (container_w - drawn_w) / 2.0, (container_h - drawn_h) / 2.0, drawn_w, drawn_h


def display_transform(mask_pixel_size: Size, display_rect_size: Size) -> np.ndarray:
    """
    Build the affine that maps normalized bottom-origin points to display space.

    The transform flips the vertical axis, scales to the letterboxed drawn
    size, and offsets to center it, in a single matrix:

        x' = offset_x + x * drawn_w
        y' = offset_y + drawn_h - y * drawn_h

    Args:
        mask_pixel_size: (width, height) of the mask the path was traced on
        display_rect_size: (width, height) of the target display rectangle

    Returns:
        3x3 numpy affine matrix
    """
    offset_x, offset_y, drawn_w, drawn_h = letterbox_rect(mask_pixel_size, display_rect_size)
    return np.array(
        [
            [drawn_w, 0.0, offset_x],
            [0.0, -drawn_h, offset_y + drawn_h],
            [0.0, 0.0, 1.0],
        ]
    )


def map_to_display(path: VectorPath, mask_pixel_size: Size, display_rect_size: Size) -> VectorPath:
    """
    Map a normalized contour path into a top-left-origin display rectangle.

    Args:
        path: Path in normalized 0-1 coordinates, y = 0 at the bottom
        mask_pixel_size: (width, height) of the source mask
        display_rect_size: (width, height) of the display rectangle

    Returns:
        The path in display coordinates

    Raises:
        ValueError: If either size is not positive
    """
    return path.transformed(display_transform(mask_pixel_size, display_rect_size))
