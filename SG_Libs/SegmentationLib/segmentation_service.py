"""
Segmentation service: photo in, transparent cutout and binary mask out.

The service is stateless; one call processes one photo:

1. Normalize the photo to upright pixel orientation.
2. Downscale it when its longest side exceeds the configured maximum.
3. Ask the segmenter for every foreground instance.
4. Union all instances into one binary mask.
5. Composite the foreground onto a transparent canvas.

The mask is returned next to the composite rather than only baked into its
alpha, so later stages can draw any backdrop without alpha fringing.

Classes:
    SegmentationResult: Composite image plus aligned binary mask
    SegmentationService: Runs the steps above
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

import numpy as np
from PIL import Image

from SG_Libs.ImageEditingLib.image_editing_ops import (
    composite_foreground,
    downscale_to_fit,
    ensure_decoded,
    merge_instance_masks,
    normalize_orientation,
)
from SG_Libs.ImageEditingLib.image_models import SourceImage
from SG_Libs.SegmentationLib.segmenters import Segmenter
from SG_Libs.constants import DEFAULT_MAX_DIMENSION, MASK_THRESHOLD
from SG_Libs.errors import InvalidInputError, NoForegroundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SegmentationResult:
    """Output of one segmentation call.

    Attributes:
        processed: RGBA foreground composite on a transparent background
        mask: Binary "L" mask (0/255), pixel-aligned with processed
    """
    processed: 'Image.Image'
    mask: 'Image.Image'


class SegmentationService:
    """
    Wraps a segmenter with orientation, size and compositing handling.

    Example:
        >>> service = SegmentationService(AlphaSegmenter(), max_dimension=2048)
        >>> result = service.process(SourceImage(photo, orientation=6))
        >>> result.processed.size == result.mask.size
        True
    """

    def __init__(self, segmenter: Segmenter, max_dimension: int = DEFAULT_MAX_DIMENSION):
        if not callable(getattr(segmenter, "segment", None)):
            raise ValueError(f"segmenter must provide segment(image), got {type(segmenter)}")
        if max_dimension < 1:
            raise ValueError(f"max_dimension must be positive, got {max_dimension}")
        self.segmenter = segmenter
        self.max_dimension = max_dimension

    def prepare(self, source: Any) -> 'Image.Image':
        """
        Decode, normalize and size-limit the input.

        Raises:
            InvalidInputError: If the input is not a decodable image
        """
        if not isinstance(source, SourceImage):
            source = SourceImage(ensure_decoded(source))
        ensure_decoded(source.pixels)
        upright = normalize_orientation(source).pixels
        return downscale_to_fit(upright, self.max_dimension)

    def process(self, source: Any, record_id: Optional[str] = None) -> SegmentationResult:
        """
        Segment a photo and composite its foreground.

        Args:
            source: SourceImage (or a bare PIL image, treated as upright)
            record_id: Optional record id attached to raised errors

        Returns:
            SegmentationResult in the (possibly downscaled) working resolution

        Raises:
            InvalidInputError: If the image cannot be decoded
            NoForegroundError: If no foreground instance was found
        """
        try:
            image = self.prepare(source)
        except InvalidInputError as e:
            e.record_id = e.record_id or record_id
            raise

        instances = list(self.segmenter.segment(image) or [])
        if not instances:
            raise NoForegroundError("Segmentation found no foreground instances", record_id)

        mask = merge_instance_masks(instances, image.size)
        if not (np.asarray(mask) > MASK_THRESHOLD).any():
            raise NoForegroundError("All foreground instances are empty", record_id)

        processed = composite_foreground(image, mask)
        logger.debug(
            f"Segmented {image.size[0]}x{image.size[1]} image into "
            f"{len(instances)} instance(s)"
        )
        return SegmentationResult(processed=processed, mask=mask)
