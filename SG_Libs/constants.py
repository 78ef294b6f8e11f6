"""
Constants and configuration values for Sticker Gallery.

This module centralizes all constant values, magic numbers, and
default settings used throughout the processing pipeline.
"""

# Segmentation limits
DEFAULT_MAX_DIMENSION = 2048
DEFAULT_CONTOUR_MAX_DIMENSION = 512

# Contour smoothing
DEFAULT_SMOOTHING_PASSES = 2
CHAIKIN_NEAR_WEIGHT = 0.75
CHAIKIN_FAR_WEIGHT = 0.25

# Mask thresholds
MASK_FOREGROUND = 255
MASK_BACKGROUND = 0
MASK_THRESHOLD = 127
DEFAULT_ALPHA_THRESHOLD = 10
CONTOUR_LEVEL = 0.5
CONTOUR_PADDING = 1

# Import cropping (width / height)
DEFAULT_IMPORT_ASPECT_RATIO = 3.0 / 4.0
ASPECT_RATIO_TOLERANCE = 0.01

# Sticker rendering
DEFAULT_STICKER_BORDER_WIDTH = 12
DEFAULT_STICKER_BORDER_COLOR = (255, 255, 255, 255)
DEFAULT_CUTOUT_BACKDROP_COLOR = (0, 0, 0, 0)

# EXIF orientation values
ORIENTATION_UP = 1
ORIENTATION_UP_MIRRORED = 2
ORIENTATION_DOWN = 3
ORIENTATION_DOWN_MIRRORED = 4
ORIENTATION_LEFT_MIRRORED = 5
ORIENTATION_RIGHT = 6
ORIENTATION_RIGHT_MIRRORED = 7
ORIENTATION_LEFT = 8
VALID_ORIENTATIONS = range(1, 9)

# Segmenter names
SEGMENTER_ALPHA = "alpha"
SEGMENTER_REMBG = "rembg"
SEGMENTER_AUTO = "auto"
DEFAULT_SEGMENTER = SEGMENTER_AUTO
DEFAULT_REMBG_MODEL = "u2net"

# Configuration field names
FIELD_AUTO_PROCESS = "auto_process"
FIELD_MAX_DIMENSION = "max_dimension"
FIELD_SEGMENTER = "segmenter"

# Environment overrides
ENV_AUTO_PROCESS = "SG_AUTO_PROCESS"
ENV_MAX_DIMENSION = "SG_MAX_DIMENSION"
ENV_SEGMENTER = "SG_SEGMENTER"

# Coordinator events
EVENT_INSERTED = "inserted"
EVENT_DELETED = "deleted"
EVENT_PROCESSING_STARTED = "processing_started"
EVENT_PROCESSED = "processed"
EVENT_FAILED = "failed"
EVENT_VARIANT_CHANGED = "variant_changed"

# File naming
OUTPUT_FILE_PREFIX = "sticker_"
DEFAULT_OUTPUT_FORMAT = "PNG"
SUPPORTED_STANDARD_IMAGES = {".png", ".jpg", ".jpeg", ".bmp", ".gif", ".tiff", ".webp"}
