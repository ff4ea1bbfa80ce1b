"""Shared fixtures: temporary site trees and synthetic images."""

import tempfile
from pathlib import Path

import pytest
from PIL import Image


@pytest.fixture
def site_dir():
    """Create temporary site root."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def small_sizes():
    """Tiers with the default names but tiny widths, to keep encoding fast."""
    return {"small": 20, "medium": 40, "large": 60, "xl": 80}


@pytest.fixture
def make_image():
    """Factory writing a flat-colour image to disk."""
    def _make(path: Path, size=(200, 100), fmt="JPEG", mode="RGB", color=(200, 80, 40)) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        if mode == "RGBA" and len(color) == 3:
            color = color + (128,)
        Image.new(mode, size, color).save(path, format=fmt)
        return path
    return _make
