"""
ImageEditingLib - Image models and pixel operations

This module provides the per-photo data model, orientation and size
handling, mask compositing and variant rendering.
"""

from SG_Libs.ImageEditingLib.image_models import (
    DisplayVariant,
    ImageRecord,
    ProcessingState,
    RgbaColor,
    SourceImage,
)
from SG_Libs.ImageEditingLib.image_editing_ops import (
    composite_foreground,
    crop_to_aspect_ratio,
    downscale_to_fit,
    ensure_decoded,
    load_source_image,
    merge_instance_masks,
    normalize_orientation,
    save_images,
)
from SG_Libs.ImageEditingLib.sticker_renderer import (
    fit_to_display,
    render_cutout,
    render_record,
    render_sticker,
)

__all__ = [
    "DisplayVariant",
    "ImageRecord",
    "ProcessingState",
    "RgbaColor",
    "SourceImage",
    "composite_foreground",
    "crop_to_aspect_ratio",
    "downscale_to_fit",
    "ensure_decoded",
    "load_source_image",
    "merge_instance_masks",
    "normalize_orientation",
    "save_images",
    "fit_to_display",
    "render_cutout",
    "render_record",
    "render_sticker",
]
