"""
ContourLib - Silhouette outlines and geometry

This module extracts smoothed silhouette outlines from binary masks and maps
them from normalized detector space into display rectangles.
"""

from SG_Libs.ContourLib.geometry_mapper import (
    VectorPath,
    display_transform,
    fit_scale,
    letterbox_rect,
    map_to_display,
)
from SG_Libs.ContourLib.silhouette_extractor import (
    SilhouetteExtractor,
    chaikin_smooth,
    is_degenerate,
    trace_contours,
)

__all__ = [
    "VectorPath",
    "display_transform",
    "fit_scale",
    "letterbox_rect",
    "map_to_display",
    "SilhouetteExtractor",
    "chaikin_smooth",
    "is_degenerate",
    "trace_contours",
]
