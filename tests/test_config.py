"""
Unit tests for config module.
"""

import json
import tempfile
import unittest
from pathlib import Path

from SG_Libs.config import GalleryConfig, apply_env_overrides, load_config


class TestGalleryConfig(unittest.TestCase):
    """Test GalleryConfig defaults, validation and dict conversion."""

    def test_defaults(self):
        """Test default values."""
        config = GalleryConfig()
        self.assertTrue(config.auto_process)
        self.assertEqual(config.max_dimension, 2048)
        self.assertEqual(config.segmenter, "auto")
        self.assertAlmostEqual(config.import_aspect_ratio, 0.75)

    def test_validation(self):
        """Test that invalid values are rejected."""
        with self.assertRaises(ValueError):
            GalleryConfig(max_dimension=0)
        with self.assertRaises(ValueError):
            GalleryConfig(smoothing_passes=-1)
        with self.assertRaises(ValueError):
            GalleryConfig(import_aspect_ratio=0)
        with self.assertRaises(ValueError):
            GalleryConfig(max_workers=0)

    def test_from_dict_ignores_unknown_keys(self):
        """Test that unknown keys are dropped and strings parsed."""
        config = GalleryConfig.from_dict({
            "auto_process": "off",
            "sticker_border_color": [0, 0, 0, 255],
            "theme": "dark",
        })
        self.assertFalse(config.auto_process)
        self.assertEqual(config.sticker_border_color, (0, 0, 0, 255))

    def test_round_trip(self):
        """Test to_dict output can rebuild the config."""
        config = GalleryConfig(auto_process=False, smoothing_passes=3)
        self.assertEqual(GalleryConfig.from_dict(config.to_dict()), config)


class TestLoadConfig(unittest.TestCase):
    """Test load_config fallbacks."""

    def test_no_path(self):
        """Test defaults without a file."""
        self.assertEqual(load_config(), GalleryConfig())

    def test_missing_file(self):
        """Test that a missing file yields defaults."""
        self.assertEqual(load_config(Path("/nonexistent/config.json")), GalleryConfig())

    def test_malformed_json(self):
        """Test that malformed JSON yields defaults."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "config.json"
            path.write_text("{not json", encoding="utf-8")
            self.assertEqual(load_config(path), GalleryConfig())

    def test_non_object(self):
        """Test that a JSON list yields defaults."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "config.json"
            path.write_text("[1, 2]", encoding="utf-8")
            self.assertEqual(load_config(path), GalleryConfig())

    def test_valid_file(self):
        """Test loading values from a file."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "config.json"
            path.write_text(json.dumps({"auto_process": False, "max_dimension": 1024}), encoding="utf-8")
            config = load_config(path)
        self.assertFalse(config.auto_process)
        self.assertEqual(config.max_dimension, 1024)


class TestEnvOverrides(unittest.TestCase):
    """Test apply_env_overrides."""

    def test_overrides(self):
        """Test that SG_* variables replace config values."""
        config = apply_env_overrides(
            GalleryConfig(),
            {"SG_AUTO_PROCESS": "0", "SG_MAX_DIMENSION": "512", "SG_SEGMENTER": " rembg "},
        )
        self.assertFalse(config.auto_process)
        self.assertEqual(config.max_dimension, 512)
        self.assertEqual(config.segmenter, "rembg")

    def test_no_overrides(self):
        """Test that an empty environment returns the same config."""
        config = GalleryConfig()
        self.assertIs(apply_env_overrides(config, {}), config)

    def test_bad_boolean(self):
        """Test that unparseable booleans raise."""
        with self.assertRaises(ValueError):
            apply_env_overrides(GalleryConfig(), {"SG_AUTO_PROCESS": "maybe"})
