"""
SegmentationLib - Foreground segmentation

This module wraps external foreground segmenters behind a registry and
provides the service that turns a photo into a transparent cutout and mask.
"""

from SG_Libs.SegmentationLib.segmenters import (
    AlphaSegmenter,
    AutoSegmenter,
    RembgSegmenter,
    Segmenter,
    SegmenterRegistry,
    create_segmenter,
    get_default_registry,
)
from SG_Libs.SegmentationLib.segmentation_service import (
    SegmentationResult,
    SegmentationService,
)

__all__ = [
    "AlphaSegmenter",
    "AutoSegmenter",
    "RembgSegmenter",
    "Segmenter",
    "SegmenterRegistry",
    "create_segmenter",
    "get_default_registry",
    "SegmentationResult",
    "SegmentationService",
]
