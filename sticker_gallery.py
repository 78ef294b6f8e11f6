"""
Sticker Gallery command-line tool.

Imports photos into an in-memory gallery, runs background segmentation and
silhouette extraction on each, and writes the selected variant as PNG.

Usage:
    python sticker_gallery.py photo1.jpg photo2.png --output out/
    python sticker_gallery.py photo.jpg --output out/ --variant cutout --segmenter rembg

Exit status:
    0  every image was processed
    1  processing did not finish within --timeout
    2  at least one image failed (its original is written instead)
"""

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional, Tuple

from SG_Libs.GalleryLib.processing_coordinator import ProcessingCoordinator
from SG_Libs.ImageEditingLib.image_editing_ops import load_source_image, save_images
from SG_Libs.ImageEditingLib.image_models import DisplayVariant, ProcessingState
from SG_Libs.config import apply_env_overrides, load_config
from SG_Libs.constants import SUPPORTED_STANDARD_IMAGES
from SG_Libs.errors import InvalidInputError
from SG_Libs.SegmentationLib.segmenters import get_default_registry

logger = logging.getLogger("sticker_gallery")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Turn photos into cutouts and stickers.")
    parser.add_argument("images", nargs="+", type=Path, help="Input image files")
    parser.add_argument("--output", "-o", type=Path, required=True, help="Output directory")
    parser.add_argument(
        "--variant",
        choices=[variant.value for variant in DisplayVariant],
        default=DisplayVariant.STICKER.value,
        help="Variant to export (default: sticker)",
    )
    parser.add_argument(
        "--segmenter",
        choices=get_default_registry().list_segmenters(),
        help="Segmenter to use (default: from config)",
    )
    parser.add_argument("--config", type=Path, help="JSON configuration file")
    parser.add_argument("--timeout", type=float, default=None, help="Seconds to wait for processing")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = apply_env_overrides(load_config(args.config))
    if args.segmenter:
        config = replace(config, segmenter=args.segmenter)
    config = replace(config, auto_process=True, import_aspect_ratio=None)

    args.output.mkdir(parents=True, exist_ok=True)

    coordinator = ProcessingCoordinator(config=config)
    timed_out = False
    try:
        submitted: List[Tuple[str, Path]] = []
        for path in args.images:
            if path.suffix.lower() not in SUPPORTED_STANDARD_IMAGES:
                logger.warning(f"Skipping unsupported file: {path}")
                continue
            try:
                source = load_source_image(path)
            except InvalidInputError as e:
                logger.error(f"Cannot open {path}: {e}")
                continue
            record_id = coordinator.import_photo(source)
            coordinator.set_selected_variant(record_id, args.variant)
            submitted.append((record_id, path))

        if not coordinator.wait_idle(timeout=args.timeout):
            timed_out = True
            logger.error(f"Timed out after {args.timeout}s waiting for processing")
            return 1

        rendered = []
        failures = 0
        for record_id, path in submitted:
            record = coordinator.get_record(record_id)
            if record.processing_state is ProcessingState.FAILED:
                failures += 1
                logger.warning(f"{path.name}: {record.last_error}")
            rendered.append((path.name, coordinator.render(record_id)))
    finally:
        # Running segmentations cannot be interrupted; do not wait for them after a timeout
        coordinator.shutdown(wait=not timed_out, cancel_pending=timed_out)

    saved = save_images(rendered, args.output)
    logger.info(f"Saved {saved} image(s) to {args.output} ({failures} failed)")
    return 0 if failures == 0 else 2


if __name__ == "__main__":
    sys.exit(main())
