# tests/test_config.py
"""Tests for configuration defaults and per-group override merging."""

import pytest

from respimg.config import (
    DEFAULT_SIZES,
    JpegOptions,
    SizeProfile,
    merge_jpeg,
    merge_sizes,
    resolve_config,
)


class TestDefaults:
    """Test resolved defaults with no overrides."""

    def test_encode_defaults(self):
        """Test documented encode defaults."""
        config = resolve_config()
        assert config.quality == 80
        assert config.jpeg.quality == 80
        assert config.jpeg.progressive is True
        assert config.png.quality == 80
        assert config.png.compression_level == 9
        assert config.webp.quality == 80

    def test_size_defaults(self):
        """Test default tiers are ascending by width."""
        config = resolve_config({})
        assert [s.name for s in config.sizes] == ["small", "medium", "large", "xl"]
        assert [s.width for s in config.sizes] == [480, 768, 1280, 1920]
        assert config.largest == SizeProfile("xl", 1920)

    def test_background_defaults(self):
        """Test background image options default on."""
        bg = resolve_config().background_images
        assert bg.enabled is True
        assert bg.inject_css is True
        assert bg.style_selector == ".bg-responsive"


class TestMerge:
    """Test one-level-deep merging per group."""

    def test_partial_jpeg_override_keeps_siblings(self):
        """Test overriding jpeg.quality leaves jpeg.progressive at default."""
        config = resolve_config({"jpeg": {"quality": 60}})
        assert config.jpeg.quality == 60
        assert config.jpeg.progressive is True
        assert config.png.quality == 80

    def test_top_level_quality_seeds_groups(self):
        """Test top-level quality applies where a group sets none."""
        config = resolve_config({"quality": 70, "webp": {"quality": 55}})
        assert config.jpeg.quality == 70
        assert config.png.quality == 70
        assert config.webp.quality == 55

    def test_png_camel_case_key(self):
        """Test compressionLevel is accepted as written in host config."""
        config = resolve_config({"png": {"compressionLevel": 4}})
        assert config.png.compression_level == 4
        assert config.png.quality == 80

    def test_background_class_key(self):
        """Test background_images.class sets the style class."""
        config = resolve_config({"background_images": {"class": "hero-bg"}})
        assert config.background_images.css_class == "hero-bg"
        assert config.background_images.style_selector == ".hero-bg"
        assert config.background_images.enabled is True

    def test_background_selector_wins(self):
        """Test explicit selector overrides class-derived selector."""
        config = resolve_config({"background_images": {"selector": "section.cover", "enabled": False}})
        assert config.background_images.style_selector == "section.cover"
        assert config.background_images.enabled is False

    def test_merge_function_does_not_mutate_base(self):
        """Test merge returns a new options object."""
        base = JpegOptions()
        merged = merge_jpeg(base, {"progressive": False})
        assert merged.progressive is False
        assert base.progressive is True

    def test_picture_options(self):
        """Test picture group."""
        config = resolve_config({"picture": {"sizes": "100vw", "loading": "lazy"}})
        assert config.picture.sizes == "100vw"
        assert config.picture.loading == "lazy"


class TestSizes:
    """Test size tier overrides."""

    def test_override_and_add_tier(self):
        """Test replacing a width and adding a tier re-sorts by width."""
        sizes = merge_sizes(DEFAULT_SIZES, {"xl": 2400, "thumb": 160})
        assert [s.name for s in sizes] == ["thumb", "small", "medium", "large", "xl"]
        assert sizes[-1].width == 2400

    def test_override_keeps_other_tiers(self):
        """Test overriding one width leaves the other tiers at default."""
        config = resolve_config({"sizes": {"medium": 800}})
        assert {s.name: s.width for s in config.sizes} == {"small": 480, "medium": 800, "large": 1280, "xl": 1920}

    def test_invalid_width(self):
        """Test non-positive widths are rejected."""
        with pytest.raises(ValueError):
            resolve_config({"sizes": {"small": 0}})


class TestValidation:
    """Test bad values fail at resolution time."""

    @pytest.mark.parametrize("overrides", [
        {"quality": "high"},
        {"quality": 0},
        {"quality": 101},
        {"jpeg": {"progressive": "yes"}},
        {"png": {"compressionLevel": 12}},
        {"jpeg": 90},
        {"workers": 0},
        {"background_images": {"selector": 3}},
    ])
    def test_rejected(self, overrides):
        """Test each malformed override raises ValueError."""
        with pytest.raises(ValueError):
            resolve_config(overrides)

    def test_bool_is_not_int(self):
        """Test True is not accepted as a quality."""
        with pytest.raises(ValueError):
            resolve_config({"quality": True})
