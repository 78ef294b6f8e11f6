"""
Runtime configuration for Sticker Gallery.

The gallery is configured by a small set of values owned by the outer UI or
settings layer. The most important one is ``auto_process``: when enabled,
segmentation starts right after a photo is captured; otherwise it starts the
first time the photo is opened for detailed viewing.

Classes:
    GalleryConfig: Configuration values read by the processing coordinator

Functions:
    load_config: Load configuration from a JSON file with defaults
    apply_env_overrides: Apply SG_* environment variables to a config
"""

import json
import logging
import os
from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

from SG_Libs.constants import (
    DEFAULT_CONTOUR_MAX_DIMENSION,
    DEFAULT_IMPORT_ASPECT_RATIO,
    DEFAULT_MAX_DIMENSION,
    DEFAULT_SEGMENTER,
    DEFAULT_SMOOTHING_PASSES,
    DEFAULT_STICKER_BORDER_COLOR,
    DEFAULT_STICKER_BORDER_WIDTH,
    ENV_AUTO_PROCESS,
    ENV_MAX_DIMENSION,
    ENV_SEGMENTER,
    FIELD_AUTO_PROCESS,
    FIELD_MAX_DIMENSION,
    FIELD_SEGMENTER,
)

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class GalleryConfig:
    """Configuration for the processing pipeline.

    Attributes:
        auto_process: Start segmentation immediately after capture/import
        max_dimension: Longest side allowed before segmentation downscales
        contour_max_dimension: Longest mask side used for contour tracing
        smoothing_passes: Number of Chaikin passes applied to outlines
        import_aspect_ratio: Width/height ratio imported photos are cropped to
        max_workers: Worker pool size (None = executor default)
        sticker_border_width: Stroke width of the sticker border, in pixels
        sticker_border_color: RGBA color of the sticker border
        segmenter: Registered segmenter name used when none is injected
    """
    auto_process: bool = True
    max_dimension: int = DEFAULT_MAX_DIMENSION
    contour_max_dimension: int = DEFAULT_CONTOUR_MAX_DIMENSION
    smoothing_passes: int = DEFAULT_SMOOTHING_PASSES
    import_aspect_ratio: Optional[float] = DEFAULT_IMPORT_ASPECT_RATIO
    max_workers: Optional[int] = None
    sticker_border_width: int = DEFAULT_STICKER_BORDER_WIDTH
    sticker_border_color: Tuple[int, int, int, int] = DEFAULT_STICKER_BORDER_COLOR
    segmenter: str = DEFAULT_SEGMENTER

    def __post_init__(self):
        if self.max_dimension < 1:
            raise ValueError(f"max_dimension must be positive, got {self.max_dimension}")
        if self.contour_max_dimension < 1:
            raise ValueError(
                f"contour_max_dimension must be positive, got {self.contour_max_dimension}"
            )
        if self.smoothing_passes < 0:
            raise ValueError(f"smoothing_passes cannot be negative, got {self.smoothing_passes}")
        if self.import_aspect_ratio is not None and self.import_aspect_ratio <= 0:
            raise ValueError(
                f"import_aspect_ratio must be positive, got {self.import_aspect_ratio}"
            )
        if self.max_workers is not None and self.max_workers < 1:
            raise ValueError(f"max_workers must be positive, got {self.max_workers}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "GalleryConfig":
        """Create from dictionary, ignoring unknown keys."""
        normalized = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        if FIELD_AUTO_PROCESS in normalized:
            normalized[FIELD_AUTO_PROCESS] = _parse_bool(normalized[FIELD_AUTO_PROCESS])
        color = normalized.get("sticker_border_color")
        if isinstance(color, list):
            normalized["sticker_border_color"] = tuple(int(c) for c in color[:4])
        return cls(**normalized)


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ValueError(f"Cannot interpret {value!r} as a boolean")


def load_config(config_path: Optional[Path] = None) -> GalleryConfig:
    """
    Load configuration from a JSON file.

    Missing files, unreadable files and malformed JSON fall back to the
    defaults, the same way a damaged settings file should never prevent the
    gallery from starting.

    Args:
        config_path: Path to a JSON object with GalleryConfig fields

    Returns:
        The loaded configuration
    """
    if config_path is None:
        return GalleryConfig()

    try:
        payload = json.loads(Path(config_path).read_text(encoding="utf-8"))
    except (FileNotFoundError, json.JSONDecodeError, OSError) as e:
        logger.warning(f"Could not read config {config_path}, using defaults: {e}")
        return GalleryConfig()

    if not isinstance(payload, dict):
        logger.warning(f"Config {config_path} is not a JSON object, using defaults")
        return GalleryConfig()

    return GalleryConfig.from_dict(payload)


def apply_env_overrides(
    config: GalleryConfig, environ: Optional[Mapping[str, str]] = None
) -> GalleryConfig:
    """
    Apply SG_AUTO_PROCESS, SG_MAX_DIMENSION and SG_SEGMENTER overrides.

    Args:
        config: Base configuration
        environ: Environment mapping (default: os.environ)

    Returns:
        A new configuration with overrides applied
    """
    env = os.environ if environ is None else environ
    overrides: Dict[str, Any] = {}

    if env.get(ENV_AUTO_PROCESS):
        overrides[FIELD_AUTO_PROCESS] = _parse_bool(env[ENV_AUTO_PROCESS])
    if env.get(ENV_MAX_DIMENSION):
        overrides[FIELD_MAX_DIMENSION] = int(env[ENV_MAX_DIMENSION])
    if env.get(ENV_SEGMENTER):
        overrides[FIELD_SEGMENTER] = env[ENV_SEGMENTER].strip()

    if overrides:
        logger.debug(f"Applying environment overrides: {sorted(overrides)}")
        return replace(config, **overrides)
    return config
