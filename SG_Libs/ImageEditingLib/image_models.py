"""
Image data models for Sticker Gallery.

This module defines the per-photo data structures used throughout the
processing pipeline.

Classes:
    SourceImage: Decoded pixels plus EXIF orientation, immutable
    DisplayVariant: Which derived image the viewer shows
    ProcessingState: Segmentation lifecycle of a record
    ImageRecord: Container for a photo and its derived images

Type Aliases:
    RgbaColor: A tuple of 4 integers representing RGBA color values (0-255)
"""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Optional, Tuple

from PIL import Image

from SG_Libs.constants import ORIENTATION_UP, VALID_ORIENTATIONS

if TYPE_CHECKING:
    from SG_Libs.ContourLib.geometry_mapper import VectorPath
    from SG_Libs.errors import GalleryError

RgbaColor = Tuple[int, int, int, int]


class DisplayVariant(Enum):
    STICKER = "sticker"
    CUTOUT = "cutout"
    ORIGINAL = "original"


class ProcessingState(Enum):
    UNPROCESSED = "unprocessed"
    IN_FLIGHT = "in_flight"
    PROCESSED = "processed"
    FAILED = "failed"


@dataclass(frozen=True)
class SourceImage:
    """Decoded photo pixels and their EXIF orientation (1-8).

    The pixels are stored as delivered by the capture or import collaborator;
    upright normalization always produces a new image.
    """
    pixels: 'Image.Image'
    orientation: int = ORIENTATION_UP

    def __post_init__(self):
        if self.orientation not in VALID_ORIENTATIONS:
            raise ValueError(f"orientation must be 1-8, got {self.orientation}")

    @property
    def size(self) -> Tuple[int, int]:
        return self.pixels.size


def _new_record_id() -> str:
    return uuid.uuid4().hex


@dataclass(eq=False)
class ImageRecord:
    """A captured or imported photo and everything derived from it.

    ``processed`` and ``mask`` are written together, once, by the processing
    coordinator. ``selected_variant`` belongs to the record so that it
    survives closing and reopening the viewer.
    """
    original: SourceImage
    id: str = field(default_factory=_new_record_id)
    processed: Optional['Image.Image'] = None
    mask: Optional['Image.Image'] = None
    selected_variant: DisplayVariant = DisplayVariant.STICKER
    processing_state: ProcessingState = ProcessingState.UNPROCESSED
    last_error: Optional['GalleryError'] = None
    outline: Optional['VectorPath'] = field(default=None, repr=False)
    outline_unavailable: bool = False

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ImageRecord):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    @property
    def has_processed_image(self) -> bool:
        return self.processed is not None

    @property
    def display_image(self) -> 'Image.Image':
        """The processed image when available, else the original pixels."""
        if self.processed is not None:
            return self.processed
        return self.original.pixels

    def effective_variant(self, outline_available: Optional[bool] = None) -> DisplayVariant:
        """
        Resolve the selected variant against what is actually available.

        STICKER degrades to CUTOUT when no usable outline exists, and any
        variant degrades to ORIGINAL until the record is processed.

        Args:
            outline_available: Override for outline availability (default:
                               derived from the cached outline state)

        Returns:
            The variant the presentation layer should draw
        """
        if self.processing_state is not ProcessingState.PROCESSED:
            return DisplayVariant.ORIGINAL
        if self.selected_variant is DisplayVariant.STICKER:
            if outline_available is None:
                outline_available = self.outline is not None and not self.outline_unavailable
            if not outline_available:
                return DisplayVariant.CUTOUT
        return self.selected_variant

    def check_invariants(self) -> bool:
        """True when processed, mask and state agree with each other."""
        processed = self.processing_state is ProcessingState.PROCESSED
        return (self.processed is not None) == (self.mask is not None) == processed
