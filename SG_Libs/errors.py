"""
Error types for the Sticker Gallery processing pipeline.

Every error here is scoped to a single image record. None of them is fatal:
a record whose processing fails keeps showing its original image and can be
retried by the user.

Classes:
    GalleryError: Base class for all per-record errors
    InvalidInputError: The image could not be decoded
    NoForegroundError: Segmentation found no subject
    DegenerateContourError: The traced outline is unusable
    RecordNotFoundError: No record exists for the requested id
"""

from typing import Optional


class GalleryError(Exception):
    """Base class for per-record processing errors."""

    def __init__(self, message: str = "", record_id: Optional[str] = None):
        super().__init__(message)
        self.record_id = record_id

    def __str__(self) -> str:
        message = super().__str__()
        if self.record_id:
            return f"{message} (record {self.record_id})"
        return message


class InvalidInputError(GalleryError):
    pass


class NoForegroundError(GalleryError):
    pass


class DegenerateContourError(GalleryError):
    pass


class RecordNotFoundError(GalleryError, KeyError):
    def __str__(self) -> str:
        return GalleryError.__str__(self)
