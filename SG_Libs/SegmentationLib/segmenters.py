"""
Foreground segmenters and their registry.

A segmenter is the external capability the segmentation service consumes:
any object with a ``segment(image) -> list of masks`` method, one mask per
detected foreground instance. This module provides a registry for named
segmenter factories and two built-in segmenters.

Classes:
    Segmenter: Base class documenting the segmenter interface
    AlphaSegmenter: Foreground from an existing alpha channel
    RembgSegmenter: Foreground from the rembg U2Net model
    AutoSegmenter: Alpha channel when present, rembg otherwise
    SegmenterRegistry: Registry of named segmenter factories

Functions:
    split_instances: Split a binary mask into connected instances
    has_transparency: Check whether an image carries a non-opaque alpha channel
    get_default_registry: Get the global default registry (singleton)
    register_default_segmenters: Register all built-in segmenters
    create_segmenter: Build a segmenter by name from the default registry
"""

import logging
import threading
from typing import Any, Callable, Dict, List, Optional

import numpy as np
from PIL import Image
from scipy import ndimage

from SG_Libs.constants import (
    DEFAULT_ALPHA_THRESHOLD,
    DEFAULT_REMBG_MODEL,
    MASK_THRESHOLD,
    SEGMENTER_ALPHA,
    SEGMENTER_AUTO,
    SEGMENTER_REMBG,
)

logger = logging.getLogger(__name__)

# Type alias for segmenter factory
SegmenterFactory = Callable[..., "Segmenter"]


def split_instances(foreground: np.ndarray) -> List[np.ndarray]:
    """
    Split a binary mask into one boolean mask per connected region.

    Args:
        foreground: Boolean (H, W) array

    Returns:
        List of boolean arrays, largest region first
    """
    labels, count = ndimage.label(foreground)
    if count == 0:
        return []
    sizes = ndimage.sum(foreground, labels, index=range(1, count + 1))
    order = np.argsort(sizes)[::-1]
    return [labels == (int(i) + 1) for i in order]


def has_transparency(image: 'Image.Image') -> bool:
    """True if the image has an alpha channel with at least one non-opaque pixel."""
    if "A" not in image.getbands():
        return False
    return image.getchannel("A").getextrema()[0] < 255


class Segmenter:
    """Interface for foreground segmenters.

    ``segment`` receives an upright image and returns one mask per detected
    foreground instance (boolean arrays, 0/255 arrays or "L" images of the
    image size). An empty list means nothing was found.
    """

    name = "base"

    def segment(self, image: 'Image.Image') -> List[Any]:
        raise NotImplementedError


class AlphaSegmenter(Segmenter):
    """
    Treat pixels with alpha above a threshold as foreground.

    Useful for imported images that already carry transparency, and as a
    deterministic segmenter in tests. Opaque images without an alpha
    channel yield no foreground.
    """

    name = SEGMENTER_ALPHA

    def __init__(self, alpha_threshold: int = DEFAULT_ALPHA_THRESHOLD):
        if not 0 <= alpha_threshold <= 255:
            raise ValueError(f"alpha_threshold must be 0-255, got {alpha_threshold}")
        self.alpha_threshold = alpha_threshold

    def segment(self, image: 'Image.Image') -> List[np.ndarray]:
        if "A" not in image.getbands():
            return []
        alpha = np.asarray(image.getchannel("A"))
        return split_instances(alpha > self.alpha_threshold)


class RembgSegmenter(Segmenter):
    """
    Salient-object segmentation with rembg (U2Net family models).

    The model session is created lazily on first use and shared by all
    worker threads.
    """

    name = SEGMENTER_REMBG

    def __init__(self, model_name: str = DEFAULT_REMBG_MODEL):
        self.model_name = model_name
        self._session = None
        self._session_lock = threading.Lock()

    def _get_session(self):
        with self._session_lock:
            if self._session is None:
                from rembg import new_session

                logger.info(f"Loading rembg model: {self.model_name}")
                self._session = new_session(self.model_name)
            return self._session

    def segment(self, image: 'Image.Image') -> List[np.ndarray]:
        from rembg import remove

        mask = remove(image.convert("RGB"), session=self._get_session(), only_mask=True)
        foreground = np.asarray(mask.convert("L")) > MASK_THRESHOLD
        return split_instances(foreground)


class AutoSegmenter(Segmenter):
    """
    Pick a segmenter per image.

    Images that already carry transparency (imported cutouts, screenshots
    with alpha) are split along their alpha channel; opaque photos, which
    is every camera capture, go through rembg.
    """

    name = SEGMENTER_AUTO

    def __init__(
        self,
        alpha_threshold: int = DEFAULT_ALPHA_THRESHOLD,
        model_name: str = DEFAULT_REMBG_MODEL,
    ):
        self.alpha = AlphaSegmenter(alpha_threshold)
        self.rembg = RembgSegmenter(model_name)

    def segment(self, image: 'Image.Image') -> List[np.ndarray]:
        if has_transparency(image):
            return self.alpha.segment(image)
        return self.rembg.segment(image)


class SegmenterRegistry:
    """
    Registry for named segmenter factories.

    Example:
        >>> registry = SegmenterRegistry()
        >>> registry.register("alpha", AlphaSegmenter, description="Alpha channel")
        >>> segmenter = registry.create("alpha")
    """

    def __init__(self):
        self._factories: Dict[str, SegmenterFactory] = {}
        self._descriptions: Dict[str, str] = {}

    def register(self, name: str, factory: SegmenterFactory, description: str = "") -> None:
        """
        Register a segmenter factory.

        Raises:
            ValueError: If name is empty or factory is not callable
            RuntimeError: If name is already registered
        """
        name = str(name).strip().lower()

        if not name:
            raise ValueError("name cannot be empty")

        if not callable(factory):
            raise ValueError(f"factory must be callable, got {type(factory)}")

        if name in self._factories:
            raise RuntimeError(
                f"Segmenter '{name}' is already registered. "
                f"Use unregister() first to replace it."
            )

        self._factories[name] = factory
        self._descriptions[name] = str(description)
        logger.debug(f"Registered segmenter: {name}")

    def unregister(self, name: str) -> bool:
        name = str(name).strip().lower()
        if name in self._factories:
            del self._factories[name]
            del self._descriptions[name]
            logger.debug(f"Unregistered segmenter: {name}")
            return True
        return False

    def has_segmenter(self, name: str) -> bool:
        return str(name).strip().lower() in self._factories

    def create(self, name: str, **kwargs: Any) -> Segmenter:
        """
        Build a segmenter by name.

        Raises:
            KeyError: If name is not registered
        """
        name = str(name).strip().lower()
        if name not in self._factories:
            available = ", ".join(self.list_segmenters())
            raise KeyError(f"No segmenter registered as '{name}'. Available: {available}")
        return self._factories[name](**kwargs)

    def list_segmenters(self) -> List[str]:
        return sorted(self._factories)

    def get_description(self, name: str) -> str:
        return self._descriptions[str(name).strip().lower()]


# Global singleton registry
_default_registry: Optional[SegmenterRegistry] = None


def get_default_registry() -> SegmenterRegistry:
    """
    Get the global default registry (singleton).

    Creates the registry on first call and registers the built-in segmenters.
    """
    global _default_registry

    if _default_registry is None:
        _default_registry = SegmenterRegistry()
        register_default_segmenters(_default_registry)

    return _default_registry


def register_default_segmenters(registry: SegmenterRegistry) -> None:
    registry.register(
        SEGMENTER_ALPHA,
        AlphaSegmenter,
        description="Foreground from the image alpha channel",
    )
    registry.register(
        SEGMENTER_REMBG,
        RembgSegmenter,
        description="Salient object segmentation with rembg (U2Net)",
    )
    registry.register(
        SEGMENTER_AUTO,
        AutoSegmenter,
        description="Alpha channel for transparent images, rembg for opaque photos",
    )
    logger.info("Registered default segmenters")


def create_segmenter(name: str, **kwargs: Any) -> Segmenter:
    return get_default_registry().create(name, **kwargs)
