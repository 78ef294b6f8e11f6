"""
GalleryLib - Gallery state and processing coordination

This module holds the in-memory gallery and the coordinator that serializes
its mutations and dispatches segmentation work.
"""

from SG_Libs.GalleryLib.gallery_store import GalleryStore
from SG_Libs.GalleryLib.processing_coordinator import ProcessingCoordinator

__all__ = [
    "GalleryStore",
    "ProcessingCoordinator",
]
