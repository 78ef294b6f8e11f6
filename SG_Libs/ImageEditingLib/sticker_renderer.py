"""
Variant rendering for Sticker Gallery records.

Turns a record into the image a presentation layer shows for its selected
variant:

- ORIGINAL: the upright original photo
- CUTOUT: the transparent foreground composite, optionally on a backdrop
- STICKER: the cutout with a wide border stroked along its silhouette

A sticker whose outline is unavailable silently degrades to the cutout.

Functions:
    render_cutout: Foreground composite on a backdrop color
    render_sticker: Foreground composite with a silhouette border
    fit_to_display: Aspect-fit an image into a display rectangle
    render_record: Render a record's effective variant
"""

from typing import Optional, Tuple

from PIL import Image, ImageDraw

from SG_Libs.ContourLib.geometry_mapper import VectorPath, letterbox_rect, map_to_display
from SG_Libs.ImageEditingLib.image_editing_ops import normalize_orientation
from SG_Libs.ImageEditingLib.image_models import DisplayVariant, ImageRecord, RgbaColor
from SG_Libs.constants import (
    DEFAULT_CUTOUT_BACKDROP_COLOR,
    DEFAULT_STICKER_BORDER_COLOR,
    DEFAULT_STICKER_BORDER_WIDTH,
)


def render_cutout(
    processed: 'Image.Image',
    backdrop_color: RgbaColor = DEFAULT_CUTOUT_BACKDROP_COLOR,
) -> 'Image.Image':
    """Composite the transparent foreground over a flat backdrop."""
    backdrop = Image.new("RGBA", processed.size, backdrop_color)
    return Image.alpha_composite(backdrop, processed.convert("RGBA"))


def render_sticker(
    processed: 'Image.Image',
    outline: VectorPath,
    border_width: int = DEFAULT_STICKER_BORDER_WIDTH,
    border_color: RgbaColor = DEFAULT_STICKER_BORDER_COLOR,
    mask_size: Optional[Tuple[int, int]] = None,
) -> 'Image.Image':
    """
    Draw the cutout with a border following its silhouette.

    The canvas grows by border_width on every side so the stroke is never
    clipped.

    Args:
        processed: RGBA foreground composite
        outline: Normalized outline from the silhouette extractor
        border_width: Border thickness outside the silhouette, in pixels
        border_color: RGBA border color
        mask_size: Size of the mask the outline was traced on
                   (default: processed.size)

    Returns:
        RGBA sticker image
    """
    if border_width < 0:
        raise ValueError(f"border_width cannot be negative, got {border_width}")

    width, height = processed.size
    canvas = Image.new("RGBA", (width + 2 * border_width, height + 2 * border_width), (0, 0, 0, 0))

    pixel_path = map_to_display(outline, mask_size or processed.size, processed.size)
    draw = ImageDraw.Draw(canvas)
    for subpath in pixel_path.subpaths:
        points = [(float(x) + border_width, float(y) + border_width) for x, y in subpath]
        if len(points) < 3:
            continue
        draw.polygon(points, fill=border_color)
        if border_width > 0:
            draw.line(points + points[:1], fill=border_color, width=2 * border_width, joint="curve")

    canvas.alpha_composite(processed.convert("RGBA"), (border_width, border_width))
    return canvas


def fit_to_display(image: 'Image.Image', display_size: Tuple[int, int]) -> 'Image.Image':
    """Aspect-fit an image into a transparent canvas of display_size."""
    offset_x, offset_y, drawn_w, drawn_h = letterbox_rect(image.size, display_size)
    resized = image.convert("RGBA").resize(
        (max(1, round(drawn_w)), max(1, round(drawn_h))), Image.Resampling.LANCZOS
    )
    canvas = Image.new("RGBA", (int(display_size[0]), int(display_size[1])), (0, 0, 0, 0))
    canvas.alpha_composite(resized, (int(round(offset_x)), int(round(offset_y))))
    return canvas


def render_record(
    record: ImageRecord,
    display_size: Optional[Tuple[int, int]] = None,
    border_width: int = DEFAULT_STICKER_BORDER_WIDTH,
    border_color: RgbaColor = DEFAULT_STICKER_BORDER_COLOR,
) -> 'Image.Image':
    """
    Render the variant a record should currently display.

    Args:
        record: The image record
        display_size: Optional (width, height) to aspect-fit into
        border_width: Sticker border thickness
        border_color: Sticker border color

    Returns:
        RGBA image
    """
    variant = record.effective_variant()

    if variant is DisplayVariant.STICKER:
        rendered = render_sticker(
            record.processed,
            record.outline,
            border_width=border_width,
            border_color=border_color,
            mask_size=record.mask.size,
        )
    elif variant is DisplayVariant.CUTOUT:
        rendered = render_cutout(record.processed)
    else:
        rendered = normalize_orientation(record.original).pixels.convert("RGBA")

    if display_size is not None:
        return fit_to_display(rendered, display_size)
    return rendered
