"""
Core image operations for Sticker Gallery.

This module provides the pixel-level building blocks of the segmentation
pipeline: decoding checks, orientation normalization, size limiting,
aspect-ratio cropping, mask merging and foreground compositing.

Functions:
    load_source_image: Open an image file or bytes with its EXIF orientation
    ensure_decoded: Force-decode an image, raising InvalidInputError on failure
    normalize_orientation: Physically rotate pixels so orientation is upright
    downscale_to_fit: Limit the longest side, preserving aspect ratio
    crop_to_aspect_ratio: Center-crop to a width/height ratio
    instance_mask_to_array: Convert one segmenter instance mask to booleans
    merge_instance_masks: Union all instance masks into one binary mask
    composite_foreground: Put the foreground on a transparent canvas
    save_images: Batch save rendered images to disk
"""

import io
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Sequence, Tuple, Union

import numpy as np
from PIL import Image

from SG_Libs.ImageEditingLib.image_models import SourceImage
from SG_Libs.constants import (
    ASPECT_RATIO_TOLERANCE,
    DEFAULT_OUTPUT_FORMAT,
    MASK_BACKGROUND,
    MASK_FOREGROUND,
    MASK_THRESHOLD,
    ORIENTATION_DOWN,
    ORIENTATION_DOWN_MIRRORED,
    ORIENTATION_LEFT,
    ORIENTATION_LEFT_MIRRORED,
    ORIENTATION_RIGHT,
    ORIENTATION_RIGHT_MIRRORED,
    ORIENTATION_UP,
    ORIENTATION_UP_MIRRORED,
    OUTPUT_FILE_PREFIX,
)
from SG_Libs.errors import InvalidInputError

logger = logging.getLogger(__name__)

_EXIF_ORIENTATION_TAG = 0x0112

# Transpose that turns stored pixels into upright pixels, per EXIF orientation
ORIENTATION_TRANSPOSES: Dict[int, Image.Transpose] = {
    ORIENTATION_UP_MIRRORED: Image.Transpose.FLIP_LEFT_RIGHT,
    ORIENTATION_DOWN: Image.Transpose.ROTATE_180,
    ORIENTATION_DOWN_MIRRORED: Image.Transpose.FLIP_TOP_BOTTOM,
    ORIENTATION_LEFT_MIRRORED: Image.Transpose.TRANSPOSE,
    ORIENTATION_RIGHT: Image.Transpose.ROTATE_270,
    ORIENTATION_RIGHT_MIRRORED: Image.Transpose.TRANSVERSE,
    ORIENTATION_LEFT: Image.Transpose.ROTATE_90,
}


def load_source_image(source: Union[Path, str, bytes]) -> SourceImage:
    """
    Open an image from a path or raw bytes, keeping its EXIF orientation.

    Args:
        source: File path or encoded image bytes

    Returns:
        SourceImage with the stored (not yet rotated) pixels

    Raises:
        InvalidInputError: If the data is not a decodable image
    """
    try:
        if isinstance(source, bytes):
            image = Image.open(io.BytesIO(source))
        else:
            image = Image.open(Path(source))
        image.load()
    except OSError as e:
        raise InvalidInputError(f"Cannot decode image: {e}") from e

    orientation = image.getexif().get(_EXIF_ORIENTATION_TAG, ORIENTATION_UP)
    if orientation not in ORIENTATION_TRANSPOSES:
        orientation = ORIENTATION_UP
    return SourceImage(image, orientation)


def ensure_decoded(image: Any) -> 'Image.Image':
    """
    Make sure an image is a fully decoded, non-empty PIL image.

    Raises:
        InvalidInputError: If the object is not an image, is empty, or its
                           pixel data cannot be decoded
    """
    if not hasattr(image, "mode") or not hasattr(image, "load"):
        raise InvalidInputError(f"Expected PIL Image, got {type(image).__name__}")
    try:
        image.load()
    except OSError as e:
        raise InvalidInputError(f"Cannot decode image: {e}") from e

    width, height = image.size
    if width == 0 or height == 0:
        raise InvalidInputError(f"Image has no pixels ({width}x{height})")
    return image


def normalize_orientation(source: SourceImage) -> SourceImage:
    """
    Rotate/mirror pixels so that the orientation becomes upright (1).

    The input is never modified. An already upright source is returned
    unchanged, so normalizing twice equals normalizing once.

    Args:
        source: Stored pixels and EXIF orientation

    Returns:
        Upright SourceImage
    """
    transpose = ORIENTATION_TRANSPOSES.get(source.orientation)
    if transpose is None:
        return source
    return SourceImage(source.pixels.transpose(transpose), ORIENTATION_UP)


def downscale_to_fit(image: 'Image.Image', max_dimension: int) -> 'Image.Image':
    """
    Downscale so the longest side is at most max_dimension.

    Images already within the limit are returned as-is.

    Example:
        >>> downscale_to_fit(Image.new("RGB", (5000, 2500)), 2048).size
        (2048, 1024)
    """
    if max_dimension < 1:
        raise ValueError(f"max_dimension must be positive, got {max_dimension}")

    width, height = image.size
    longest = max(width, height)
    if longest <= max_dimension:
        return image

    scale = max_dimension / float(longest)
    if width >= height:
        new_size = (max_dimension, max(1, round(height * scale)))
    else:
        new_size = (max(1, round(width * scale)), max_dimension)

    logger.debug(f"Downscaling {width}x{height} to {new_size[0]}x{new_size[1]}")
    return image.resize(new_size, Image.Resampling.LANCZOS)


def crop_to_aspect_ratio(image: 'Image.Image', target_ratio: float) -> 'Image.Image':
    """
    Center-crop an image to a width/height ratio.

    Images whose ratio is already within tolerance are returned as-is.

    Example:
        >>> crop_to_aspect_ratio(Image.new("RGB", (400, 400)), 3 / 4).size
        (300, 400)
    """
    if target_ratio <= 0:
        raise ValueError(f"target_ratio must be positive, got {target_ratio}")

    width, height = image.size
    image_ratio = width / float(height)
    if abs(image_ratio - target_ratio) <= ASPECT_RATIO_TOLERANCE:
        return image

    if image_ratio > target_ratio:
        new_width, new_height = max(1, round(height * target_ratio)), height
    else:
        new_width, new_height = width, max(1, round(width / target_ratio))

    left = (width - new_width) // 2
    top = (height - new_height) // 2
    return image.crop((left, top, left + new_width, top + new_height))


def instance_mask_to_array(mask: Any, size: Tuple[int, int]) -> np.ndarray:
    """
    Convert one instance mask to a boolean array of the given (width, height).

    Accepts PIL images, boolean arrays, float confidence maps (>= 0.5 is
    foreground) and integer maps (0/1 or 0/255).
    """
    if hasattr(mask, "mode"):
        image = mask.convert("L")
    else:
        array = np.asarray(mask)
        if array.dtype == bool:
            binary = array
        elif np.issubdtype(array.dtype, np.floating):
            binary = array >= 0.5
        elif array.size and array.max() <= 1:
            binary = array > 0
        else:
            binary = array > MASK_THRESHOLD
        image = Image.fromarray(binary.astype(np.uint8) * MASK_FOREGROUND)

    if image.size != tuple(size):
        image = image.resize(tuple(size), Image.Resampling.NEAREST)
    return np.asarray(image) > MASK_THRESHOLD


def merge_instance_masks(masks: Iterable[Any], size: Tuple[int, int]) -> 'Image.Image':
    """
    Union every instance mask into a single binary "L" mask (0/255).

    Args:
        masks: Instance masks from a segmenter
        size: (width, height) of the image the masks belong to

    Returns:
        Binary mask image of the given size
    """
    width, height = size
    merged = np.zeros((height, width), dtype=bool)
    for mask in masks:
        merged |= instance_mask_to_array(mask, size)
    return Image.fromarray(np.where(merged, MASK_FOREGROUND, MASK_BACKGROUND).astype(np.uint8))


def composite_foreground(image: 'Image.Image', mask: 'Image.Image') -> 'Image.Image':
    """
    Composite the foreground pixels onto a transparent canvas.

    Pixels outside the mask become fully transparent black; pixels inside
    keep their color and their original alpha.

    Args:
        image: Upright source image
        mask: Binary "L" mask of the same size

    Returns:
        RGBA image
    """
    if image.size != mask.size:
        raise ValueError(f"Mask size {mask.size} does not match image size {image.size}")

    rgba = np.array(image.convert("RGBA"))
    foreground = np.asarray(mask.convert("L")) > MASK_THRESHOLD
    rgba[~foreground] = 0
    return Image.fromarray(rgba)


def save_images(images: Sequence[Tuple[str, 'Image.Image']], output_dir: Path) -> int:
    """
    Save rendered images to disk in PNG format.

    Each image is saved as ``sticker_<name>.png``.

    Args:
        images: Sequence of (name, image) pairs
        output_dir: Directory path where images should be saved

    Returns:
        The number of images successfully saved

    Raises:
        OSError: If directory cannot be accessed or files cannot be written
    """
    if not output_dir.exists():
        raise OSError(f"Output directory does not exist: {output_dir}")

    if not output_dir.is_dir():
        raise OSError(f"Output path is not a directory: {output_dir}")

    saved_count = 0
    for name, image in images:
        save_path = output_dir / f"{OUTPUT_FILE_PREFIX}{Path(name).stem}.png"
        image.save(save_path, format=DEFAULT_OUTPUT_FORMAT)
        saved_count += 1
    return saved_count
