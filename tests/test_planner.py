# tests/test_planner.py
"""Tests for classification and derivative planning."""

from pathlib import Path

import pytest

from respimg.config import resolve_config
from respimg.errors import UnsupportedFormatError
from respimg.models import BACKGROUND, FOREGROUND, SourceImage, classify
from respimg.planner import plan


def _source(path, fmt="jpeg", width=2000, height=1000):
    return SourceImage(Path(path), fmt, width, height, classify(path))


class TestClassify:
    """Test path-based classification."""

    @pytest.mark.parametrize("path", [
        "source/images/background.jpg",
        "source/bg-stars.png",
        "themes/x/hero.jpg",
        "source/Hero/banner.jpg",
    ])
    def test_background(self, path):
        """Test background tokens."""
        assert classify(path) == BACKGROUND

    @pytest.mark.parametrize("path", [
        "source/images/sunset.jpg",
        "source/bg.png",
        "source/big-cat.jpg",
    ])
    def test_foreground(self, path):
        """Test everything else is foreground."""
        assert classify(path) == FOREGROUND

    def test_deterministic(self):
        """Test repeated classification gives the same bucket."""
        path = Path("a/hero-shot.jpg")
        assert {classify(path) for _ in range(5)} == {classify(path)}


class TestPlan:
    """Test the size x format cross product."""

    def test_jpeg_plan(self):
        """Test photos/sunset.jpg gives 8 named derivatives."""
        derivatives = plan(_source("photos/sunset.jpg"), resolve_config())
        names = sorted(d.path.name for d in derivatives)
        assert names == sorted(
            f"sunset-{size}.{ext}"
            for size in ("small", "medium", "large", "xl")
            for ext in ("jpg", "webp")
        )
        assert all(d.path.parent == Path("photos") for d in derivatives)

    def test_png_plan_keeps_png_fallback(self):
        """Test PNG sources fall back to PNG."""
        derivatives = plan(_source("logo.png", fmt="png"), resolve_config())
        assert {d.format for d in derivatives} == {"webp", "png"}
        assert len(derivatives) == 8

    def test_size_major_order(self):
        """Test order follows ascending tiers, next-gen first within a tier."""
        derivatives = plan(_source("a.jpg"), resolve_config())
        assert [(d.size.name, d.format) for d in derivatives[:4]] == [
            ("small", "webp"), ("small", "jpeg"), ("medium", "webp"), ("medium", "jpeg"),
        ]

    def test_no_upscale_guard(self):
        """Test tiers wider than the source are still planned."""
        derivatives = plan(_source("tiny.jpg", width=100, height=50), resolve_config())
        assert max(d.width for d in derivatives) == 1920

    def test_plan_follows_configured_tiers(self):
        """Test extra tiers add derivatives."""
        config = resolve_config({"sizes": {"thumb": 160}})
        assert len(plan(_source("a.jpg"), config)) == 10

    @pytest.mark.parametrize("fmt", ["gif", "webp", "tiff", ""])
    def test_unsupported(self, fmt):
        """Test formats other than jpeg/png have no plan."""
        with pytest.raises(UnsupportedFormatError):
            plan(_source("a.jpg", fmt=fmt), resolve_config())
