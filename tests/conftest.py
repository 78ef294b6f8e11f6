"""
Pytest configuration and shared fixtures for Sticker Gallery tests.

This module provides synthetic photos, masks and controllable fake
segmenters used across multiple test modules.
"""

import threading
from typing import List, Sequence, Tuple

import numpy as np
import pytest
from PIL import Image

Box = Tuple[int, int, int, int]


def make_mask(size: Tuple[int, int], boxes: Sequence[Box]) -> np.ndarray:
    """Boolean (H, W) mask with the given (left, top, right, bottom) boxes set."""
    width, height = size
    mask = np.zeros((height, width), dtype=bool)
    for left, top, right, bottom in boxes:
        mask[top:bottom, left:right] = True
    return mask


def make_cutout_photo(size: Tuple[int, int], boxes: Sequence[Box]) -> Image.Image:
    """RGBA photo: transparent background, opaque red rectangles as subjects."""
    rgba = np.zeros((size[1], size[0], 4), dtype=np.uint8)
    rgba[make_mask(size, boxes)] = (200, 30, 30, 255)
    return Image.fromarray(rgba)


class RecordingSegmenter:
    """
    Segmenter returning fixed instance masks and counting its calls.

    When ``gate`` is set, every call blocks until the test releases it, so
    tests can act while a record is IN_FLIGHT.
    """

    def __init__(self, boxes: Sequence[Box] = ((8, 8, 24, 40),), gate: bool = False):
        self.boxes = list(boxes)
        self.calls = 0
        self.seen_sizes: List[Tuple[int, int]] = []
        self.started = threading.Event()
        self.release = threading.Event()
        if not gate:
            self.release.set()
        self._lock = threading.Lock()

    def segment(self, image):
        with self._lock:
            self.calls += 1
            self.seen_sizes.append(image.size)
        self.started.set()
        assert self.release.wait(timeout=10), "segmenter gate was never released"
        return [make_mask(image.size, [box]) for box in self.boxes]


class FailingSegmenter:
    """Segmenter that never finds a foreground."""

    def __init__(self):
        self.calls = 0

    def segment(self, image):
        self.calls += 1
        return []


@pytest.fixture
def photo():
    """A 48x64 opaque photo with a gradient so orientation changes are visible."""
    xs = np.linspace(0, 255, 48, dtype=np.uint8)
    ys = np.linspace(0, 255, 64, dtype=np.uint8)
    rgb = np.zeros((64, 48, 3), dtype=np.uint8)
    rgb[:, :, 0] = xs[np.newaxis, :]
    rgb[:, :, 1] = ys[:, np.newaxis]
    rgb[:10, :6, 2] = 255
    return Image.fromarray(rgb)


@pytest.fixture
def cutout_photo():
    """A 60x80 RGBA photo with one opaque subject."""
    return make_cutout_photo((60, 80), [(15, 20, 45, 70)])


@pytest.fixture
def group_photo():
    """A 100x60 RGBA photo with two disjoint subjects."""
    return make_cutout_photo((100, 60), [(10, 10, 40, 50), (60, 15, 90, 45)])


@pytest.fixture
def recording_segmenter():
    return RecordingSegmenter()


@pytest.fixture
def gated_segmenter():
    segmenter = RecordingSegmenter(gate=True)
    yield segmenter
    segmenter.release.set()
