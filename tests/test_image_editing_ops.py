"""
Unit tests for image_editing_ops module.

Tests the pixel-level pipeline steps: decoding, orientation normalization,
downscaling, cropping, mask merging, compositing and image saving.
"""

import io
import tempfile
from pathlib import Path
from unittest.mock import Mock

import numpy as np
import pytest
from PIL import Image

from SG_Libs.ImageEditingLib.image_editing_ops import (
    ORIENTATION_TRANSPOSES,
    composite_foreground,
    crop_to_aspect_ratio,
    downscale_to_fit,
    ensure_decoded,
    instance_mask_to_array,
    load_source_image,
    merge_instance_masks,
    normalize_orientation,
    save_images,
)
from SG_Libs.ImageEditingLib.image_models import SourceImage
from SG_Libs.errors import InvalidInputError
from conftest import make_mask

# Transpose that undoes each normalization step (rotations by 90 swap)
INVERSE_TRANSPOSES = {
    orientation: transpose for orientation, transpose in ORIENTATION_TRANSPOSES.items()
}
INVERSE_TRANSPOSES[6] = Image.Transpose.ROTATE_90
INVERSE_TRANSPOSES[8] = Image.Transpose.ROTATE_270


class TestNormalizeOrientation:
    """Tests for normalize_orientation function."""

    @pytest.mark.parametrize("orientation", range(2, 9))
    def test_recovers_upright_pixels(self, photo, orientation):
        """Stored pixels for every EXIF orientation come back upright."""
        stored = photo.transpose(INVERSE_TRANSPOSES[orientation])
        result = normalize_orientation(SourceImage(stored, orientation))

        assert result.orientation == 1
        assert result.size == photo.size
        np.testing.assert_array_equal(np.asarray(result.pixels), np.asarray(photo))

    def test_upright_is_unchanged(self, photo):
        """Orientation 1 returns the same source."""
        source = SourceImage(photo, 1)
        assert normalize_orientation(source) is source

    def test_idempotent(self, photo):
        """Normalizing twice equals normalizing once."""
        once = normalize_orientation(SourceImage(photo, 6))
        twice = normalize_orientation(once)
        np.testing.assert_array_equal(np.asarray(once.pixels), np.asarray(twice.pixels))

    def test_rotation_swaps_dimensions(self, photo):
        """Orientations 5-8 swap width and height."""
        result = normalize_orientation(SourceImage(photo, 6))
        assert result.size == (photo.height, photo.width)

    def test_does_not_modify_input(self, photo):
        """The stored pixels are left alone."""
        before = np.asarray(photo).copy()
        normalize_orientation(SourceImage(photo, 3))
        np.testing.assert_array_equal(np.asarray(photo), before)


class TestLoadSourceImage:
    """Tests for load_source_image function."""

    def test_reads_exif_orientation(self, photo):
        """The EXIF orientation tag is kept with the stored pixels."""
        exif = Image.Exif()
        exif[0x0112] = 6
        buffer = io.BytesIO()
        photo.save(buffer, format="JPEG", exif=exif)

        source = load_source_image(buffer.getvalue())
        assert source.orientation == 6
        assert source.size == photo.size

    def test_missing_exif_is_upright(self, photo):
        """Images without EXIF are treated as orientation 1."""
        buffer = io.BytesIO()
        photo.save(buffer, format="PNG")
        assert load_source_image(buffer.getvalue()).orientation == 1

    def test_invalid_bytes(self):
        """Undecodable data raises InvalidInputError."""
        with pytest.raises(InvalidInputError):
            load_source_image(b"definitely not an image")

    def test_from_path(self, photo):
        """Paths are opened directly."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "photo.png"
            photo.save(path)
            assert load_source_image(path).size == photo.size


class TestEnsureDecoded:
    """Tests for ensure_decoded function."""

    def test_returns_image(self, photo):
        """Decodable images pass through."""
        assert ensure_decoded(photo) is photo

    def test_rejects_non_image(self):
        """Objects that are not images are invalid input."""
        with pytest.raises(InvalidInputError):
            ensure_decoded("photo.png")

    def test_rejects_empty_image(self):
        """Zero-sized images are invalid input."""
        with pytest.raises(InvalidInputError):
            ensure_decoded(Image.new("RGB", (0, 10)))


class TestDownscaleToFit:
    """Tests for downscale_to_fit function."""

    def test_large_square(self):
        """A 5000x5000 image becomes 2048x2048."""
        result = downscale_to_fit(Image.new("RGB", (5000, 5000)), 2048)
        assert result.size == (2048, 2048)

    def test_preserves_aspect_ratio(self):
        """The longest side equals the limit."""
        assert downscale_to_fit(Image.new("RGB", (1000, 4000)), 2048).size == (512, 2048)

    def test_small_image_untouched(self, photo):
        """Images within the limit are returned as-is."""
        assert downscale_to_fit(photo, 2048) is photo

    def test_rejects_zero_limit(self, photo):
        """The limit must be positive."""
        with pytest.raises(ValueError):
            downscale_to_fit(photo, 0)


class TestCropToAspectRatio:
    """Tests for crop_to_aspect_ratio function."""

    def test_square_to_portrait(self):
        """A square crops to 3:4 keeping the full height."""
        assert crop_to_aspect_ratio(Image.new("RGB", (400, 400)), 3 / 4).size == (300, 400)

    def test_tall_to_portrait(self):
        """A very tall image keeps its width."""
        assert crop_to_aspect_ratio(Image.new("RGB", (300, 1000)), 3 / 4).size == (300, 400)

    def test_crop_is_centered(self):
        """The crop window is centered."""
        image = Image.new("L", (400, 400), 0)
        image.putpixel((50, 200), 255)
        image.putpixel((49, 200), 128)
        result = crop_to_aspect_ratio(image, 3 / 4)
        assert result.getpixel((0, 200)) == 255

    def test_matching_ratio_untouched(self):
        """Images already at the ratio are returned as-is."""
        image = Image.new("RGB", (300, 400))
        assert crop_to_aspect_ratio(image, 3 / 4) is image


class TestMasks:
    """Tests for instance mask conversion and merging."""

    def test_instance_mask_formats(self):
        """Boolean, float, 0/1 and 0/255 masks are all understood."""
        expected = make_mask((4, 2), [(0, 0, 2, 2)])
        variants = [
            expected,
            expected.astype(float) * 0.9,
            expected.astype(np.uint8),
            expected.astype(np.uint8) * 255,
            Image.fromarray(expected.astype(np.uint8) * 255),
        ]
        for mask in variants:
            np.testing.assert_array_equal(instance_mask_to_array(mask, (4, 2)), expected)

    def test_instance_mask_resized(self):
        """Masks at a different resolution are resized to the image."""
        small = make_mask((2, 2), [(0, 0, 1, 2)])
        result = instance_mask_to_array(small, (4, 4))
        assert result.shape == (4, 4)
        assert result[:, :2].all()
        assert not result[:, 2:].any()

    def test_merge_is_union(self):
        """The merged mask is the union of all instances."""
        first = make_mask((10, 10), [(0, 0, 5, 5)])
        second = make_mask((10, 10), [(5, 5, 10, 10)])
        merged = merge_instance_masks([first, second], (10, 10))

        assert merged.mode == "L"
        values = np.asarray(merged)
        assert set(np.unique(values)) == {0, 255}
        np.testing.assert_array_equal(values > 0, first | second)

    def test_merge_empty(self):
        """No instances gives an all-background mask."""
        merged = merge_instance_masks([], (6, 3))
        assert merged.size == (6, 3)
        assert not np.asarray(merged).any()


class TestCompositeForeground:
    """Tests for composite_foreground function."""

    def test_background_is_transparent(self, photo):
        """Pixels outside the mask are fully transparent; inside keep color."""
        mask = merge_instance_masks([make_mask(photo.size, [(10, 10, 20, 30)])], photo.size)
        result = composite_foreground(photo, mask)

        assert result.mode == "RGBA"
        assert result.size == photo.size
        assert result.getpixel((0, 0)) == (0, 0, 0, 0)
        inside = result.getpixel((15, 20))
        assert inside[3] == 255
        assert inside[:3] == photo.getpixel((15, 20))

    def test_rejects_size_mismatch(self, photo):
        """Mask and image must share dimensions."""
        with pytest.raises(ValueError):
            composite_foreground(photo, Image.new("L", (5, 5)))


class TestSaveImages:
    """Tests for save_images function."""

    def test_saves_all_images(self):
        """Should save every image to the output directory."""
        with tempfile.TemporaryDirectory() as tmpdir:
            mock_image = Mock()
            mock_image.save = Mock()

            count = save_images([("a.jpg", mock_image), ("b.png", mock_image)], Path(tmpdir))

            assert count == 2
            assert mock_image.save.call_count == 2

    def test_adds_sticker_prefix(self):
        """Should add 'sticker_' prefix and a .png extension."""
        with tempfile.TemporaryDirectory() as tmpdir:
            saved_paths = []
            mock_image = Mock()
            mock_image.save = Mock(side_effect=lambda path, **kwargs: saved_paths.append(path))

            save_images([("holiday.jpg", mock_image)], Path(tmpdir))

            assert len(saved_paths) == 1
            assert saved_paths[0].name == "sticker_holiday.png"

    def test_uses_png_format(self):
        """Should save images in PNG format."""
        with tempfile.TemporaryDirectory() as tmpdir:
            mock_image = Mock()
            save_images([("test.jpg", mock_image)], Path(tmpdir))

            call_kwargs = mock_image.save.call_args[1]
            assert call_kwargs.get("format") == "PNG"

    def test_missing_directory(self):
        """Should refuse to write into a missing directory."""
        with tempfile.TemporaryDirectory() as tmpdir:
            with pytest.raises(OSError):
                save_images([], Path(tmpdir) / "missing")
