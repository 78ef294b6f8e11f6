"""
SG_Libs - Sticker Gallery Library Modules

This package contains the image-record processing pipeline of Sticker
Gallery, organized into specialized sub-packages:

- ImageEditingLib: Image models, pixel operations and variant rendering
- SegmentationLib: Foreground segmenters and the segmentation service
- ContourLib: Silhouette extraction and display-space geometry
- GalleryLib: In-memory gallery store and processing coordinator
"""

__version__ = "0.1.0"
