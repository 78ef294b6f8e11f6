"""
Silhouette extraction from binary foreground masks.

Traces the outer boundary of every foreground region in a mask, smooths the
blocky tracer output with Chaikin corner cutting, and returns one compound
path in normalized coordinates (0-1, y = 0 at the bottom). The path is later
mapped into display space by the geometry mapper and stroked with a wide
border to produce the sticker look.

Classes:
    SilhouetteExtractor: Mask -> smoothed compound outline

Functions:
    trace_contours: Default contour tracer (marching squares, outer contours only)
    chaikin_smooth: One Chaikin corner-cutting pass
    mask_to_array: Convert a PIL mask or array to a boolean array
    is_degenerate: Check whether an outline is unusable
"""

import logging
from typing import Any, Callable, List, Optional

import numpy as np
from PIL import Image
from skimage.measure import find_contours, points_in_poly

from SG_Libs.ContourLib.geometry_mapper import VectorPath
from SG_Libs.constants import (
    CHAIKIN_FAR_WEIGHT,
    CHAIKIN_NEAR_WEIGHT,
    CONTOUR_LEVEL,
    CONTOUR_PADDING,
    DEFAULT_CONTOUR_MAX_DIMENSION,
    DEFAULT_SMOOTHING_PASSES,
    MASK_THRESHOLD,
)
from SG_Libs.errors import DegenerateContourError

logger = logging.getLogger(__name__)

# Type alias for a contour tracer: boolean (H, W) array -> list of (N, 2) x/y arrays
ContourTracer = Callable[[np.ndarray], List[np.ndarray]]

# Tolerance (in normalized units) for "the outline spans the whole image"
_FULL_FRAME_EPSILON = 1e-3


def mask_to_array(mask: Any) -> np.ndarray:
    """
    Convert a mask to a boolean foreground array.

    Args:
        mask: PIL Image (any mode, converted to "L") or numpy array.
              Values above 127 (or True) are foreground.

    Returns:
        Boolean (H, W) array
    """
    if hasattr(mask, "mode"):
        return np.asarray(mask.convert("L")) > MASK_THRESHOLD
    array = np.asarray(mask)
    if array.dtype == bool:
        return array
    if array.ndim == 3:
        array = array[:, :, -1]
    return array > MASK_THRESHOLD


def trace_contours(binary: np.ndarray) -> List[np.ndarray]:
    """
    Trace the outer contours of a binary image.

    The image is padded so regions touching the border still produce closed
    curves. Contours whose first point lies inside another contour (holes
    and islands inside holes) are dropped, leaving one closed curve per
    top-level region.

    Args:
        binary: Boolean (H, W) array, foreground = True

    Returns:
        List of (N, 2) float arrays of (x, y) pixel-center coordinates
    """
    padded = np.pad(binary.astype(float), CONTOUR_PADDING, mode="constant", constant_values=0)
    raw_contours = find_contours(padded, level=CONTOUR_LEVEL)

    # (row, col) -> (x, y) and undo the padding
    contours = [c[:, ::-1] - CONTOUR_PADDING for c in raw_contours if len(c) >= 3]

    top_level: List[np.ndarray] = []
    for index, contour in enumerate(contours):
        probe = contour[:1]
        enclosed = False
        for other_index, other in enumerate(contours):
            if other_index == index:
                continue
            if points_in_poly(probe, other)[0]:
                enclosed = True
                break
        if not enclosed:
            top_level.append(contour)

    return top_level


def chaikin_smooth(points: np.ndarray, closed: bool = True) -> np.ndarray:
    """
    Apply one pass of Chaikin corner cutting.

    Each edge (p0, p1) is replaced by the points at 1/4 and 3/4 along it.
    Closed polylines wrap around (a duplicated closing point is removed
    first); open polylines keep their two endpoints.

    Args:
        points: (N, 2) array of points
        closed: Treat the polyline as a closed ring

    Returns:
        Smoothed (M, 2) array
    """
    pts = np.asarray(points, dtype=float)
    if closed and len(pts) > 1 and np.allclose(pts[0], pts[-1]):
        pts = pts[:-1]
    if len(pts) < 3:
        return pts

    if closed:
        p0 = pts
        p1 = np.roll(pts, -1, axis=0)
    else:
        p0 = pts[:-1]
        p1 = pts[1:]

    q = CHAIKIN_NEAR_WEIGHT * p0 + CHAIKIN_FAR_WEIGHT * p1
    r = CHAIKIN_FAR_WEIGHT * p0 + CHAIKIN_NEAR_WEIGHT * p1
    cut = np.empty((len(p0) * 2, 2), dtype=float)
    cut[0::2] = q
    cut[1::2] = r

    if closed:
        return cut
    return np.vstack([pts[:1], cut, pts[-1:]])


def is_degenerate(path: Optional[VectorPath]) -> bool:
    """
    Check whether a normalized outline is unusable.

    An empty path is degenerate, and so is a path whose bounding box covers
    the full image: that is the tracer following the image border rather
    than the subject.
    """
    if path is None or path.is_empty:
        return True
    min_x, min_y, max_x, max_y = path.bounds()
    return (
        min_x <= _FULL_FRAME_EPSILON
        and min_y <= _FULL_FRAME_EPSILON
        and max_x >= 1.0 - _FULL_FRAME_EPSILON
        and max_y >= 1.0 - _FULL_FRAME_EPSILON
    )


class SilhouetteExtractor:
    """
    Extracts a smoothed compound outline from a binary foreground mask.

    Example:
        >>> extractor = SilhouetteExtractor()
        >>> outline = extractor.extract_outline(mask)
        >>> if outline is None:
        ...     pass  # fall back to the flat cutout
    """

    def __init__(
        self,
        tracer: ContourTracer = trace_contours,
        smoothing_passes: int = DEFAULT_SMOOTHING_PASSES,
        max_image_dimension: Optional[int] = DEFAULT_CONTOUR_MAX_DIMENSION,
    ):
        if smoothing_passes < 0:
            raise ValueError(f"smoothing_passes cannot be negative, got {smoothing_passes}")
        self.tracer = tracer
        self.smoothing_passes = smoothing_passes
        self.max_image_dimension = max_image_dimension

    def _prepare(self, mask: Any) -> np.ndarray:
        binary = mask_to_array(mask)
        height, width = binary.shape
        if not self.max_image_dimension or max(width, height) <= self.max_image_dimension:
            return binary

        scale = self.max_image_dimension / float(max(width, height))
        new_size = (max(1, round(width * scale)), max(1, round(height * scale)))
        small = Image.fromarray(binary.astype(np.uint8) * 255).resize(
            new_size, Image.Resampling.BILINEAR
        )
        return np.asarray(small) > MASK_THRESHOLD

    def extract_outline(self, mask: Any) -> Optional[VectorPath]:
        """
        Trace, smooth and normalize the outline of a mask.

        Args:
            mask: Binary mask (PIL "L" image or numpy array)

        Returns:
            Compound path in normalized bottom-origin coordinates, or None
            when the result is degenerate
        """
        binary = self._prepare(mask)
        height, width = binary.shape
        if width == 0 or height == 0 or not binary.any():
            logger.debug("Mask has no foreground, no outline")
            return None

        subpaths = []
        for contour in self.tracer(binary):
            points = np.asarray(contour, dtype=float)
            for _ in range(self.smoothing_passes):
                points = chaikin_smooth(points, closed=True)
            if len(points) < 3:
                continue

            normalized = np.empty_like(points)
            normalized[:, 0] = (points[:, 0] + 0.5) / width
            normalized[:, 1] = 1.0 - (points[:, 1] + 0.5) / height
            subpaths.append(normalized)

        path = VectorPath(tuple(subpaths))
        if is_degenerate(path):
            logger.debug(f"Degenerate outline ({len(path)} subpaths) for {width}x{height} mask")
            return None

        logger.debug(f"Extracted outline with {len(path)} subpaths, {path.point_count} points")
        return path

    def extract_outline_or_raise(self, mask: Any, record_id: Optional[str] = None) -> VectorPath:
        """Like extract_outline, but raises DegenerateContourError instead of returning None."""
        path = self.extract_outline(mask)
        if path is None:
            raise DegenerateContourError("Outline is empty or spans the full image", record_id)
        return path
